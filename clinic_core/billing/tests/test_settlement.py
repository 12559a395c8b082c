import uuid
from decimal import Decimal

import pytest
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from clinic_core.audit.models import AuditEvent
from clinic_core.billing.models import Payment, PaymentLineItem, PaymentTransaction
from clinic_core.billing.services import PaymentService
from clinic_core.common.api.exceptions import ConflictError
from clinic_core.common.events import PAYMENT_SETTLED
from clinic_core.visits.models import RoutingStatus

pytestmark = pytest.mark.django_db


def _settle(visit, user, items, **kw):
    return PaymentService.process_payment_bulk(visit_id=visit.id, cashier_id=user.id, items=items, **kw)


def test_cash_settlement_pays_items_and_routes(make_visit, make_order, cashier):
    v = make_visit("paying_diagnosis")
    cbc = make_order("lab_test", v, "120.00", test_name="CBC")
    xray = make_order("imaging", v, "300.00", study_name="Chest X-ray")

    summary = _settle(
        v,
        cashier,
        [{"item_type": "lab_test", "item_id": cbc.id}, {"item_type": "imaging", "item_id": xray.id}],
    )

    assert summary["total_amount"] == "420.00"
    assert summary["amount_paid"] == "420.00"
    assert summary["amount_due"] == "0.00"
    assert summary["payment_status"] == "paid"

    cbc.refresh_from_db()
    xray.refresh_from_db()
    assert cbc.payment_status == xray.payment_status == "paid"
    assert cbc.payment_mode == "cash"
    assert cbc.paid_at is not None

    payment = Payment.objects.get(id=summary["id"])
    assert payment.cashier_id == cashier.id
    assert payment.line_items.count() == 2
    (tx,) = payment.transactions.all()
    assert tx.amount == Decimal("420.00")
    assert tx.reference_number.startswith("CASH-")

    v.refresh_from_db()
    assert v.status == "at_lab"
    assert v.routing_status == RoutingStatus.AWAITING_ROUTING


def test_consultation_fee_settlement_routes_to_triage(consultation_item, receptionist):
    v = consultation_item.visit

    _settle(v, receptionist, [{"item_type": "service", "item_id": consultation_item.id}])

    line = PaymentLineItem.objects.get(item_id=consultation_item.id)
    assert line.item_type == "consultation"
    assert line.description == "New Patient Consultation"
    assert line.final_amount == Decimal("150.00")

    v.refresh_from_db()
    assert v.status == "at_triage"


def test_free_mode_waives_without_transaction(consultation_item, cashier):
    summary = _settle(
        consultation_item.visit,
        cashier,
        [{"item_type": "service", "item_id": consultation_item.id}],
        payment_mode="free",
    )

    consultation_item.refresh_from_db()
    assert consultation_item.payment_status == "waived"

    line = PaymentLineItem.objects.get(item_id=consultation_item.id)
    assert line.subtotal == Decimal("150.00")
    assert line.discount_percentage == Decimal("100.00")
    assert line.discount_amount == Decimal("150.00")
    assert line.final_amount == Decimal("0.00")
    assert line.payment_status == "waived"

    assert not PaymentTransaction.objects.exists()
    assert summary["total_amount"] == "0.00"
    assert summary["payment_status"] == "pending"

    consultation_item.visit.refresh_from_db()
    assert consultation_item.visit.status == "at_triage"


def test_partial_settlement_keeps_visit_waiting(make_visit, make_order, cashier):
    v = make_visit("paying_diagnosis")
    cbc = make_order("lab_test", v, "120.00")
    make_order("medication", v, "45.00")

    _settle(v, cashier, [{"item_type": "lab_test", "item_id": cbc.id}])

    v.refresh_from_db()
    assert v.status == "paying_diagnosis"


def test_second_settlement_reuses_payment_header(make_visit, make_order, cashier):
    v = make_visit("paying_diagnosis")
    cbc = make_order("lab_test", v, "120.00")
    med = make_order("medication", v, "45.00")

    first = _settle(v, cashier, [{"item_type": "lab_test", "item_id": cbc.id}], notes="first")
    second = _settle(v, cashier, [{"item_type": "medication", "item_id": med.id}], notes="second")

    assert first["id"] == second["id"]
    assert second["total_amount"] == "165.00"
    assert second["payment_status"] == "paid"
    assert Payment.objects.get(id=second["id"]).notes == "first\nsecond"

    v.refresh_from_db()
    assert v.status == "at_lab"


def test_settled_item_cannot_be_paid_twice(make_visit, make_order, cashier):
    v = make_visit("paying_diagnosis")
    cbc = make_order("lab_test", v, "120.00", payment_status="paid")

    with pytest.raises(ConflictError):
        _settle(v, cashier, [{"item_type": "lab_test", "item_id": cbc.id}])


def test_cancelled_order_cannot_be_settled(make_visit, make_order, cashier):
    v = make_visit("paying_diagnosis")
    cbc = make_order("lab_test", v, "120.00", status="cancelled")

    with pytest.raises(ConflictError):
        _settle(v, cashier, [{"item_type": "lab_test", "item_id": cbc.id}])


def test_failure_rolls_back_whole_settlement(make_visit, make_order, cashier):
    v = make_visit("paying_diagnosis")
    cbc = make_order("lab_test", v, "120.00")

    with pytest.raises(NotFound):
        _settle(
            v,
            cashier,
            [{"item_type": "lab_test", "item_id": cbc.id}, {"item_type": "imaging", "item_id": uuid.uuid4()}],
        )

    cbc.refresh_from_db()
    assert cbc.payment_status == "unpaid"
    assert not Payment.objects.exists()
    v.refresh_from_db()
    assert v.status == "paying_diagnosis"


def test_item_from_another_visit_not_found(make_visit, make_order, cashier):
    v1 = make_visit("paying_diagnosis")
    v2 = make_visit("paying_diagnosis")
    foreign = make_order("lab_test", v2, "10.00")

    with pytest.raises(NotFound) as exc:
        _settle(v1, cashier, [{"item_type": "lab_test", "item_id": foreign.id}])

    assert "not found on this visit" in str(exc.value.detail)


def test_unknown_item_type_and_empty_items(make_visit, cashier):
    v = make_visit("paying_diagnosis")

    with pytest.raises(ValidationError):
        _settle(v, cashier, [{"item_type": "bed_day", "item_id": uuid.uuid4()}])
    with pytest.raises(ValidationError):
        _settle(v, cashier, [])


def test_only_payment_roles_settle(make_visit, make_order, doctor):
    v = make_visit("paying_diagnosis")
    cbc = make_order("lab_test", v, "120.00")

    with pytest.raises(PermissionDenied):
        _settle(v, doctor, [{"item_type": "lab_test", "item_id": cbc.id}])


def test_settlement_is_audited_and_published(make_visit, make_order, cashier, capture_events):
    seen = capture_events(PAYMENT_SETTLED)
    v = make_visit("paying_pharmacy")
    med = make_order("medication", v, "45.00")

    summary = _settle(v, cashier, [{"item_type": "medication", "item_id": med.id}], payment_mode="mobile_money")

    ev = AuditEvent.objects.get(event_code="payment.settled")
    assert ev.metadata["items"] == [str(med.id)]
    assert ev.metadata["payment_mode"] == "mobile_money"
    assert seen[0]["payment_id"] == summary["id"]
    assert seen[0]["item_count"] == 1


# --- API ---


def test_api_settle(client_for, cashier, make_visit, make_order):
    v = make_visit("paying_pharmacy")
    med = make_order("medication", v, "45.00")

    res = client_for(cashier).post(
        "/api/v1/billing/payments/settle/",
        {
            "visit_id": str(v.id),
            "items": [{"item_type": "medication", "item_id": str(med.id)}],
            "payment_mode": "cash",
        },
        format="json",
    )

    assert res.status_code == 200, res.content
    assert res.data["payment_status"] == "paid"

    v.refresh_from_db()
    assert v.status == "at_pharmacy"


def test_api_settle_conflict_is_409(client_for, cashier, make_visit, make_order):
    v = make_visit("paying_pharmacy")
    med = make_order("medication", v, "45.00", payment_status="paid")

    res = client_for(cashier).post(
        "/api/v1/billing/payments/settle/",
        {"visit_id": str(v.id), "items": [{"item_type": "medication", "item_id": str(med.id)}]},
        format="json",
    )

    assert res.status_code == 409
    assert res.json()["error"]["code"] == "conflict"


def test_api_list_and_retrieve(client_for, cashier, make_payment, visit):
    payment = make_payment("80.00")
    c = client_for(cashier)

    res = c.get("/api/v1/billing/payments/", {"visit": str(visit.id)})
    assert res.status_code == 200
    assert res.data["count"] == 1

    res = c.get(f"/api/v1/billing/payments/{payment.id}/")
    assert res.status_code == 200
    assert len(res.data["line_items"]) == 1
    assert res.data["transactions"] == []


def test_api_list_forbidden_for_nurse(client_for, nurse):
    res = client_for(nurse).get("/api/v1/billing/payments/")

    assert res.status_code == 403
