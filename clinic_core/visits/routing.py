# clinic_core/visits/routing.py
"""
Payment-driven routing: once everything billed to a visit is settled, a visit
sitting in a paying_* stage moves on to where the patient has to go next.
"""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from django.db import transaction
from django.db.models import Q

from clinic_core.billing.models import BillingItem
from clinic_core.common.events import VISIT_PAYMENT_ROUTED, publish
from clinic_core.common.logging import get_logger, log_domain_event
from clinic_core.common.models import SETTLED_PAYMENT_STATUSES, ItemPaymentStatus
from clinic_core.orders.models import ImagingOrder, LabOrder, MedicationOrder, OrderStatus
from clinic_core.visits.journey import PAYMENT_STAGES
from clinic_core.visits.models import RoutingStatus, StatusEventType, Visit, VisitStatus
from clinic_core.visits.services import JourneyService

logger = get_logger(__name__)

ORDER_MODELS = (LabOrder, ImagingOrder, MedicationOrder)


def _outstanding_orders(model, visit_id: UUID):
    return (
        model.objects.filter(visit_id=visit_id)
        .exclude(Q(status=OrderStatus.CANCELLED) | Q(payment_status=ItemPaymentStatus.CANCELLED))
        .exclude(payment_status__in=SETTLED_PAYMENT_STATUSES)
    )


def _outstanding_billing_items(visit_id: UUID):
    return (
        BillingItem.objects.filter(visit_id=visit_id)
        .exclude(payment_status=ItemPaymentStatus.CANCELLED)
        .exclude(payment_status__in=SETTLED_PAYMENT_STATUSES)
    )


def check_visit_payment_complete(visit_id: UUID) -> bool:
    """True when nothing billed to the visit is left unpaid. Cancelled rows do not count."""
    for model in ORDER_MODELS:
        if _outstanding_orders(model, visit_id).exists():
            return False
    return not _outstanding_billing_items(visit_id).exists()


def _has_active(model, visit_id: UUID) -> bool:
    return model.objects.filter(visit_id=visit_id).exclude(status=OrderStatus.CANCELLED).exists()


def determine_next_stage_after_payment(visit_id: UUID, current_status: str) -> str:
    if current_status == VisitStatus.PAYING_CONSULTATION:
        return VisitStatus.AT_TRIAGE

    if current_status == VisitStatus.PAYING_DIAGNOSIS:
        if _has_active(LabOrder, visit_id):
            return VisitStatus.AT_LAB
        if _has_active(ImagingOrder, visit_id):
            return VisitStatus.AT_IMAGING
        if _has_active(MedicationOrder, visit_id):
            return VisitStatus.AT_PHARMACY
        return VisitStatus.WITH_DOCTOR

    if current_status == VisitStatus.PAYING_PHARMACY:
        return VisitStatus.AT_PHARMACY

    return VisitStatus.WITH_DOCTOR


@transaction.atomic
def auto_update_visit_status_after_payment(item) -> Optional[Visit]:
    """
    Called after an order or billing item is saved. Routes the visit when the
    item's payment status just became paid/waived, the visit is waiting at a
    payment stage and nothing else is outstanding. Returns the routed visit.
    """
    new_status = item.payment_status
    if new_status not in SETTLED_PAYMENT_STATUSES:
        return None
    if item.previous_payment_status == new_status:
        return None

    visit = Visit.objects.select_for_update().filter(id=item.visit_id).first()
    if visit is None or visit.status not in PAYMENT_STAGES:
        return None

    if not check_visit_payment_complete(visit.id):
        logger.info(
            "payment recorded, visit still has outstanding items",
            extra={"visit_id": str(visit.id), "item_id": str(item.pk)},
        )
        return None

    previous_stage = visit.status
    next_stage = determine_next_stage_after_payment(visit.id, previous_stage)

    JourneyService._append(
        visit,
        stage=next_stage,
        user_id=None,
        event_type=StatusEventType.PAYMENT_UPDATE,
        metadata={
            "trigger": type(item).__name__,
            "item_id": str(item.pk),
            "payment_status": new_status,
        },
    )
    visit.routing_status = RoutingStatus.AWAITING_ROUTING
    visit.save(update_fields=["routing_status", "updated_at"])

    publish(
        VISIT_PAYMENT_ROUTED,
        {
            "tenant_id": str(visit.tenant_id),
            "facility_id": str(visit.facility_id),
            "visit_id": str(visit.id),
            "patient_id": str(visit.patient_id),
            "previous_stage": previous_stage,
            "new_stage": next_stage,
            "item_id": str(item.pk),
        },
    )
    log_domain_event(
        logger,
        "visit.payment_routed",
        visit_id=str(visit.id),
        previous_stage=previous_stage,
        new_stage=next_stage,
    )
    return visit
