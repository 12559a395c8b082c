from decimal import Decimal

import pytest

from clinic_core.billing.models import BillingItem, Payment, PaymentLineItem
from clinic_core.orders.models import ImagingOrder, LabOrder, MedicationOrder


@pytest.fixture
def make_payment(visit, patient):
    """make_payment("300.00") -> pending payment header with one line item of that total."""
    def _make(total="300.00", *, paid="0.00", for_visit=None):
        v = for_visit or visit
        total, paid = Decimal(total), Decimal(paid)
        payment = Payment.objects.create(
            tenant_id=v.tenant_id,
            facility_id=v.facility_id,
            visit=v,
            patient_id=patient.id,
            total_amount=total,
            amount_paid=paid,
            amount_due=total - paid,
            payment_status="pending" if not paid else "partial",
        )
        if total:
            PaymentLineItem.objects.create(
                tenant_id=v.tenant_id,
                facility_id=v.facility_id,
                payment=payment,
                item_type="service",
                description="Dressing",
                unit_price=total,
                subtotal=total,
                final_amount=total,
            )
        return payment

    return _make


@pytest.fixture
def make_order():
    models = {"lab_test": LabOrder, "imaging": ImagingOrder, "medication": MedicationOrder}
    names = {"lab_test": "test_name", "imaging": "study_name", "medication": "medication_name"}

    def _make(kind, visit, amount, **kw):
        kw.setdefault(names[kind], f"{kind} order")
        return models[kind].objects.create(
            tenant_id=visit.tenant_id,
            facility_id=visit.facility_id,
            visit=visit,
            patient_id=visit.patient_id,
            amount=Decimal(amount),
            **kw,
        )

    return _make


@pytest.fixture
def consultation_item(make_visit, consultation_service):
    v = make_visit("paying_consultation")
    return BillingItem.objects.create(
        tenant_id=v.tenant_id,
        facility_id=v.facility_id,
        visit=v,
        patient_id=v.patient_id,
        service=consultation_service,
        unit_price=consultation_service.price,
        total_amount=consultation_service.price,
    )
