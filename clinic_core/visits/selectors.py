# clinic_core/visits/selectors.py
from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict, List
from uuid import UUID

from django.db.models import Count, Q, QuerySet, Sum
from django.utils import timezone

from clinic_core.billing.models import BillingItem
from clinic_core.common.models import ZERO, ItemPaymentStatus
from clinic_core.orders.models import ImagingOrder, LabOrder, MedicationOrder, OrderStatus
from clinic_core.visits.journey import PAYMENT_STAGES
from clinic_core.visits.models import PatientStatusEvent, RoutingStatus, Visit
from clinic_core.visits.routing import determine_next_stage_after_payment

NOT_OUTSTANDING = (ItemPaymentStatus.PAID, ItemPaymentStatus.WAIVED, ItemPaymentStatus.CANCELLED)


def visits_qs(*, tenant_id: UUID, facility_id: UUID) -> QuerySet[Visit]:
    return Visit.objects.filter(tenant_id=tenant_id, facility_id=facility_id).select_related("patient")


def visits_filtered(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    status: str | None = None,
    routing_status: str | None = None,
    patient_id: UUID | None = None,
) -> QuerySet[Visit]:
    qs = visits_qs(tenant_id=tenant_id, facility_id=facility_id).order_by("-created_at")

    if status:
        qs = qs.filter(status=status)
    if routing_status:
        qs = qs.filter(routing_status=routing_status)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)

    return qs


def get_visit(*, tenant_id: UUID, facility_id: UUID, visit_id: UUID) -> Visit:
    return visits_qs(tenant_id=tenant_id, facility_id=facility_id).get(id=visit_id)


def status_events_for_visit(*, tenant_id: UUID, facility_id: UUID, visit_id: UUID) -> QuerySet[PatientStatusEvent]:
    return PatientStatusEvent.objects.filter(
        tenant_id=tenant_id,
        facility_id=facility_id,
        visit_id=visit_id,
    ).order_by("changed_at", "id")


def _outstanding_by_visit(visit_ids: List[UUID]) -> Dict[UUID, Dict[str, Any]]:
    totals: Dict[UUID, Dict[str, Any]] = defaultdict(lambda: {"amount": ZERO, "count": 0})

    for model in (LabOrder, ImagingOrder, MedicationOrder):
        rows = (
            model.objects.filter(visit_id__in=visit_ids)
            .exclude(status=OrderStatus.CANCELLED)
            .exclude(payment_status__in=NOT_OUTSTANDING)
            .values("visit_id")
            .annotate(total=Sum("amount"), n=Count("id"))
        )
        for row in rows:
            totals[row["visit_id"]]["amount"] += row["total"] or ZERO
            totals[row["visit_id"]]["count"] += row["n"]

    rows = (
        BillingItem.objects.filter(visit_id__in=visit_ids)
        .exclude(payment_status__in=NOT_OUTSTANDING)
        .values("visit_id")
        .annotate(total=Sum("total_amount"), n=Count("id"))
    )
    for row in rows:
        totals[row["visit_id"]]["amount"] += row["total"] or ZERO
        totals[row["visit_id"]]["count"] += row["n"]

    return totals


def cashier_queue(*, tenant_id: UUID, facility_id: UUID) -> List[Dict[str, Any]]:
    """
    Visits waiting on the cashier (paying_* stages) or on the front desk to
    route them after payment, oldest status change first.
    """
    visits = list(
        visits_qs(tenant_id=tenant_id, facility_id=facility_id)
        .filter(Q(status__in=PAYMENT_STAGES) | Q(routing_status=RoutingStatus.AWAITING_ROUTING))
        .order_by("status_updated_at", "id")
    )
    outstanding = _outstanding_by_visit([v.id for v in visits])
    now = timezone.now()

    queue = []
    for v in visits:
        o = outstanding.get(v.id, {"amount": ZERO, "count": 0})
        queue.append(
            {
                "visit_id": str(v.id),
                "patient_id": str(v.patient_id),
                "patient_name": v.patient.full_name,
                "mrn": v.patient.mrn,
                "status": v.status,
                "routing_status": v.routing_status,
                "status_updated_at": v.status_updated_at.isoformat(),
                "outstanding_amount": str(Decimal(o["amount"]).quantize(Decimal("0.01"))),
                "outstanding_items": o["count"],
                "wait_minutes": max(int((now - v.status_updated_at).total_seconds() // 60), 0),
                # only visits still at a payment stage have somewhere to go next
                "suggested_next_stage": (
                    determine_next_stage_after_payment(v.id, v.status) if v.status in PAYMENT_STAGES else None
                ),
            }
        )
    return queue
