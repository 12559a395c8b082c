# clinic_core/audit/selectors.py
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from django.db.models import QuerySet

from clinic_core.audit.models import AuditEvent


def list_audit_events(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    entity_type: str | None = None,
    entity_id: UUID | None = None,
    event_code: str | None = None,
    actor_user_id: int | None = None,
    since: datetime | None = None,
) -> QuerySet[AuditEvent]:
    """Newest first. `event_code` also matches a prefix ending in "." (e.g. "payment.")."""
    qs = AuditEvent.objects.filter(tenant_id=tenant_id, facility_id=facility_id).select_related("actor_user")

    filters = {
        "entity_type": entity_type,
        "entity_id": entity_id,
        "actor_user_id": actor_user_id,
        "occurred_at__gte": since,
    }
    qs = qs.filter(**{k: v for k, v in filters.items() if v is not None and v != ""})

    if event_code:
        if event_code.endswith("."):
            qs = qs.filter(event_code__startswith=event_code)
        else:
            qs = qs.filter(event_code=event_code)

    return qs.order_by("-occurred_at", "-created_at")
