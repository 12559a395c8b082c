# clinic_core/audit/apps.py
from __future__ import annotations

from django.apps import AppConfig


class AuditConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "clinic_core.audit"

    def ready(self) -> None:
        # registers event handlers
        from clinic_core.audit import subscribers  # noqa: F401
