# clinic_core/visits/apps.py
from __future__ import annotations

from django.apps import AppConfig


class VisitsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "clinic_core.visits"

    def ready(self) -> None:
        from django.db.models.signals import post_save

        from clinic_core.billing.models import BillingItem
        from clinic_core.orders.models import ImagingOrder, LabOrder, MedicationOrder
        from clinic_core.visits.signals.payment_routing import route_visit_after_payment

        for model in (LabOrder, ImagingOrder, MedicationOrder, BillingItem):
            post_save.connect(
                route_visit_after_payment,
                sender=model,
                dispatch_uid=f"visits.route_visit_after_payment.{model._meta.label_lower}",
            )
