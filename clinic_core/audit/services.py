# clinic_core/audit/services.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from django.db import transaction

from clinic_core.audit.models import AuditEvent
from clinic_core.common.logging import get_logger, log_domain_event

logger = get_logger(__name__)


class AuditService:
    """
    Single writer for AuditEvent rows.

    Runs inside the caller's transaction: when a settlement or stage change
    rolls back, its audit row goes with it.
    """

    @staticmethod
    @transaction.atomic
    def log(
        *,
        event_code: str,
        entity_type: str,
        entity_id: UUID,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditEvent:
        event = AuditEvent.objects.create(
            tenant_id=tenant_id,
            facility_id=facility_id,
            event_code=event_code,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_user_id=actor_user_id,
            metadata=dict(metadata or {}),
        )
        log_domain_event(
            logger,
            "audit.recorded",
            level=logging.DEBUG,
            event_code=event_code,
            entity_type=entity_type,
            entity_id=str(entity_id),
        )
        return event
