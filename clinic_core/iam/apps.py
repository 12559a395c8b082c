# clinic_core/iam/apps.py
from django.apps import AppConfig


class IamConfig(AppConfig):
    name = "clinic_core.iam"
    label = "iam"
    verbose_name = "Staff & roles"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self) -> None:
        from clinic_core.iam import openapi  # noqa: F401
