# clinic_core/audit/models.py
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from clinic_core.common.models import ScopedModel


class AuditEvent(ScopedModel):
    """
    Append-only audit trail of journey, payment and registration actions.
    """
    event_code = models.CharField(max_length=128, db_index=True)  # e.g. "visit.stage_changed"
    entity_type = models.CharField(max_length=128, db_index=True)  # e.g. "Visit"
    entity_id = models.UUIDField(db_index=True)

    actor_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="audit_events",
        null=True,
        blank=True,
    )

    occurred_at = models.DateTimeField(auto_now_add=True, db_index=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "audit_audit_event"
        ordering = ["-occurred_at"]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "occurred_at"]),
            models.Index(fields=["entity_type", "entity_id"]),
            models.Index(fields=["tenant_id", "facility_id", "event_code"]),
        ]

    def __str__(self):
        return f"{self.event_code} {self.entity_type}:{self.entity_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("AuditEvent is append-only.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("AuditEvent is append-only.")
