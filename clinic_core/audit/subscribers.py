# clinic_core/audit/subscribers.py
from uuid import UUID

from clinic_core.audit.services import AuditService
from clinic_core.common.events import VISIT_PAYMENT_ROUTED, VISIT_STAGE_CHANGED, subscribe


@subscribe(VISIT_STAGE_CHANGED)
def on_visit_stage_changed(payload: dict) -> None:
    AuditService.log(
        event_code="visit.stage_changed",
        entity_type="Visit",
        entity_id=UUID(payload["visit_id"]),
        tenant_id=UUID(payload["tenant_id"]),
        facility_id=UUID(payload["facility_id"]),
        actor_user_id=payload.get("actor_user_id"),
        metadata={
            "from": payload.get("previous_stage"),
            "to": payload.get("new_stage"),
            "role": payload.get("role"),
        },
    )


@subscribe(VISIT_PAYMENT_ROUTED)
def on_visit_payment_routed(payload: dict) -> None:
    # System transition; no actor.
    AuditService.log(
        event_code="visit.payment_routed",
        entity_type="Visit",
        entity_id=UUID(payload["visit_id"]),
        tenant_id=UUID(payload["tenant_id"]),
        facility_id=UUID(payload["facility_id"]),
        actor_user_id=None,
        metadata={
            "from": payload.get("previous_stage"),
            "to": payload.get("new_stage"),
            "item_id": payload.get("item_id"),
        },
    )
