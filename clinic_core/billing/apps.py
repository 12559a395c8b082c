# clinic_core/billing/apps.py
from django.apps import AppConfig


class BillingConfig(AppConfig):
    name = "clinic_core.billing"
    verbose_name = "Billing & payments"
    default_auto_field = "django.db.models.BigAutoField"
