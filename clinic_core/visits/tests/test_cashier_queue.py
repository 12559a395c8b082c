from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from clinic_core.billing.models import BillingItem
from clinic_core.orders.models import LabOrder, MedicationOrder, OrderStatus
from clinic_core.visits.models import RoutingStatus
from clinic_core.visits.selectors import cashier_queue

pytestmark = pytest.mark.django_db


def _order(model, visit, amount, **kw):
    return model.objects.create(
        tenant_id=visit.tenant_id,
        facility_id=visit.facility_id,
        visit=visit,
        patient_id=visit.patient_id,
        amount=Decimal(amount),
        **kw,
    )


def test_queue_lists_paying_and_awaiting_routing_visits(make_visit, tenant, facility):
    now = timezone.now()
    paying = make_visit("paying_diagnosis", status_updated_at=now - timedelta(minutes=5))
    routed = make_visit("at_lab", routing_status=RoutingStatus.AWAITING_ROUTING, status_updated_at=now - timedelta(minutes=20))
    make_visit("with_doctor")

    queue = cashier_queue(tenant_id=tenant.id, facility_id=facility.id)

    assert [row["visit_id"] for row in queue] == [str(routed.id), str(paying.id)]
    assert queue[0]["patient_name"] == "Abebe Kebede"
    assert queue[0]["mrn"] == "MRN-TEST0001"


def test_outstanding_sums_unsettled_items_only(make_visit, tenant, facility, consultation_service):
    v = make_visit("paying_diagnosis")
    _order(LabOrder, v, "120.00", test_name="CBC")
    _order(LabOrder, v, "60.00", test_name="ESR", payment_status="paid")
    _order(LabOrder, v, "999.00", test_name="Cancelled", status=OrderStatus.CANCELLED)
    _order(MedicationOrder, v, "45.50", medication_name="Paracetamol")
    BillingItem.objects.create(
        tenant_id=v.tenant_id,
        facility_id=v.facility_id,
        visit=v,
        patient_id=v.patient_id,
        service=consultation_service,
        unit_price=Decimal("150.00"),
        total_amount=Decimal("150.00"),
    )

    (row,) = cashier_queue(tenant_id=tenant.id, facility_id=facility.id)

    assert row["outstanding_amount"] == "315.50"
    assert row["outstanding_items"] == 3


def test_entries_carry_wait_time_and_suggested_stage(make_visit, tenant, facility):
    now = timezone.now()
    diagnosis = make_visit("paying_diagnosis", status_updated_at=now - timedelta(minutes=42))
    _order(LabOrder, diagnosis, "80.00", test_name="CBC")
    consultation = make_visit("paying_consultation", status_updated_at=now - timedelta(minutes=10))
    routed = make_visit("at_lab", routing_status=RoutingStatus.AWAITING_ROUTING, status_updated_at=now)

    rows = {row["visit_id"]: row for row in cashier_queue(tenant_id=tenant.id, facility_id=facility.id)}

    assert rows[str(diagnosis.id)]["wait_minutes"] >= 42
    assert rows[str(diagnosis.id)]["suggested_next_stage"] == "at_lab"
    assert rows[str(consultation.id)]["suggested_next_stage"] == "at_triage"
    assert rows[str(routed.id)]["suggested_next_stage"] is None
    assert rows[str(routed.id)]["wait_minutes"] == 0


def test_queue_is_scoped_to_facility(make_visit, tenant, other_facility):
    make_visit("paying_consultation")

    assert cashier_queue(tenant_id=tenant.id, facility_id=other_facility.id) == []


def test_api_cashier_queue(client_for, cashier, make_visit):
    v = make_visit("paying_consultation")

    res = client_for(cashier).get("/api/v1/visits/cashier-queue/")

    assert res.status_code == 200
    assert res.data["count"] == 1
    assert res.data["results"][0]["visit_id"] == str(v.id)
    assert res.data["results"][0]["outstanding_amount"] == "0.00"


def test_api_cashier_queue_not_for_doctors(client_for, doctor):
    res = client_for(doctor).get("/api/v1/visits/cashier-queue/")

    assert res.status_code == 403
