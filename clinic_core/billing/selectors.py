# clinic_core/billing/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import QuerySet

from clinic_core.billing.models import BillingItem, Payment


def payments_qs(*, tenant_id: UUID, facility_id: UUID) -> QuerySet[Payment]:
    return Payment.objects.filter(tenant_id=tenant_id, facility_id=facility_id)


def payments_filtered(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    visit_id: UUID | None = None,
    patient_id: UUID | None = None,
    payment_status: str | None = None,
) -> QuerySet[Payment]:
    qs = payments_qs(tenant_id=tenant_id, facility_id=facility_id).order_by("-created_at")

    if visit_id:
        qs = qs.filter(visit_id=visit_id)

    if patient_id:
        qs = qs.filter(patient_id=patient_id)

    if payment_status:
        qs = qs.filter(payment_status=payment_status)

    return qs


def get_payment(*, tenant_id: UUID, facility_id: UUID, payment_id: UUID) -> Payment:
    return (
        payments_qs(tenant_id=tenant_id, facility_id=facility_id)
        .prefetch_related("line_items", "transactions")
        .get(id=payment_id)
    )


def billing_items_for_visit(*, tenant_id: UUID, facility_id: UUID, visit_id: UUID) -> QuerySet[BillingItem]:
    return (
        BillingItem.objects.filter(tenant_id=tenant_id, facility_id=facility_id, visit_id=visit_id)
        .select_related("service")
        .order_by("created_at")
    )
