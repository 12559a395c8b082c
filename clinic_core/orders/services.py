# clinic_core/orders/services.py
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict
from uuid import UUID

from django.db import transaction
from rest_framework.exceptions import ValidationError

from clinic_core.audit.services import AuditService
from clinic_core.common.api.exceptions import ConflictError
from clinic_core.common.logging import get_logger, log_domain_event
from clinic_core.orders.models import ORDER_MODELS, ClinicalOrder, OrderStatus
from clinic_core.visits.journey import TERMINAL_STAGES
from clinic_core.visits.models import StatusEventType, Visit
from clinic_core.visits.services import record_status_event

logger = get_logger(__name__)

# Fields a caller may set per kind, beyond the shared ones.
KIND_FIELDS = {
    "lab_test": {"test_name", "test_code"},
    "imaging": {"study_name", "body_part"},
    "medication": {"medication_name", "dosage", "frequency", "duration", "quantity"},
}

_ALLOWED_STATUS_MOVES = {
    OrderStatus.PENDING: {OrderStatus.IN_PROGRESS, OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.IN_PROGRESS: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}


def order_model(kind: str):
    try:
        return ORDER_MODELS[kind]
    except KeyError:
        raise ValidationError({"kind": f"Unknown order kind: {kind}"})


class OrderService:
    """
    Write-model operations for clinical orders.
    Payment columns are owned by billing; only clinical fields change here.
    """

    @staticmethod
    @transaction.atomic
    def place_order(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        kind: str,
        visit_id: UUID,
        actor_user_id: int | None,
        amount: Decimal = Decimal("0.00"),
        priority: str | None = None,
        notes: str = "",
        **fields: Any,
    ) -> ClinicalOrder:
        model = order_model(kind)

        unknown = set(fields) - KIND_FIELDS[kind]
        if unknown:
            raise ValidationError({"detail": f"Unknown fields for {kind} order: {', '.join(sorted(unknown))}"})

        if amount is None or Decimal(amount) < 0:
            raise ValidationError({"amount": "Amount must be zero or positive."})

        visit = Visit.objects.get(id=visit_id, tenant_id=tenant_id, facility_id=facility_id)
        if visit.status in TERMINAL_STAGES:
            raise ConflictError(f"Cannot place orders on a {visit.status} visit.")

        extra: Dict[str, Any] = {"notes": notes or ""}
        if priority:
            extra["priority"] = priority

        order = model.objects.create(
            tenant_id=tenant_id,
            facility_id=facility_id,
            visit=visit,
            patient_id=visit.patient_id,
            amount=Decimal(amount),
            ordered_by_id=actor_user_id,
            **extra,
            **fields,
        )

        record_status_event(
            visit=visit,
            event_key=f"order_placed:{kind}:{order.id}",
            previous_status=visit.status,
            new_status=visit.status,
            event_type=StatusEventType.ORDER_PLACED,
            changed_by_id=actor_user_id,
            metadata={"order_kind": kind, "order_id": str(order.id)},
        )
        AuditService.log(
            event_code=f"order.{kind}.placed",
            entity_type=model.__name__,
            entity_id=order.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            metadata={"visit_id": str(visit.id), "amount": str(order.amount)},
        )
        log_domain_event(logger, "order.placed", order_kind=kind, order_id=str(order.id), visit_id=str(visit.id))
        return order

    @staticmethod
    @transaction.atomic
    def set_status(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        kind: str,
        order_id: UUID,
        status: str,
        actor_user_id: int | None,
    ) -> ClinicalOrder:
        model = order_model(kind)
        order = model.objects.select_for_update().get(id=order_id, tenant_id=tenant_id, facility_id=facility_id)

        if status == order.status:
            return order

        if status not in _ALLOWED_STATUS_MOVES.get(order.status, set()):
            raise ConflictError(f"Cannot move {kind} order from {order.status} to {status}.")

        previous = order.status
        order.status = status
        order.save(update_fields=["status", "updated_at"])

        AuditService.log(
            event_code=f"order.{kind}.status_changed",
            entity_type=model.__name__,
            entity_id=order.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            metadata={"from": previous, "to": status},
        )
        return order
