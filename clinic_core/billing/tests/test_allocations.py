import uuid
from decimal import Decimal

import pytest
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from clinic_core.audit.models import AuditEvent
from clinic_core.billing.models import Payment, PaymentTransaction
from clinic_core.billing.services import PaymentService

pytestmark = pytest.mark.django_db


def _allocate(payment, user, allocations):
    return PaymentService.apply_payment_method_allocations(
        payment_id=payment.id,
        cashier_id=user.id,
        method_allocations=allocations,
    )


def test_split_payment_settles_in_full(make_payment, cashier):
    payment = make_payment("300.00")

    result = _allocate(
        payment,
        cashier,
        [
            {"payment_method": "cash", "amount": "100.00"},
            {"payment_method": "mobile_money", "amount": 200, "reference_number": "TB-991"},
        ],
    )

    assert result["total_allocated"] == "300.00"
    assert result["payment"]["payment_status"] == "paid"
    assert result["payment"]["amount_due"] == "0.00"
    assert [t["payment_method"] for t in result["transactions"]] == ["cash", "mobile_money"]

    txs = PaymentTransaction.objects.filter(payment=payment).order_by("amount")
    assert [t.amount for t in txs] == [Decimal("100.00"), Decimal("200.00")]
    assert all(t.received_by_id == cashier.id for t in txs)
    assert txs[1].reference_number == "TB-991"


def test_partial_allocation(make_payment, cashier):
    payment = make_payment("300.00")

    result = _allocate(payment, cashier, [{"payment_method": "cash", "amount": "120.50"}])

    payment.refresh_from_db()
    assert payment.payment_status == "partial"
    assert payment.amount_paid == Decimal("120.50")
    assert payment.amount_due == Decimal("179.50")
    assert result["payment"]["amount_paid"] == "120.50"


def test_allocations_accumulate(make_payment, cashier):
    payment = make_payment("300.00", paid="100.00")

    _allocate(payment, cashier, [{"payment_method": "bank_transfer", "amount": "200.00"}])

    payment.refresh_from_db()
    assert payment.amount_paid == Decimal("300.00")
    assert payment.payment_status == "paid"


def test_overpayment_rejects_whole_batch(make_payment, cashier):
    payment = make_payment("300.00")

    with pytest.raises(ValidationError) as exc:
        _allocate(
            payment,
            cashier,
            [
                {"payment_method": "cash", "amount": "200.00"},
                {"payment_method": "credit", "amount": "150.00"},
            ],
        )

    assert "Allocation exceeds amount due" in str(exc.value.detail)
    assert not PaymentTransaction.objects.exists()
    payment.refresh_from_db()
    assert payment.amount_paid == Decimal("0.00")


@pytest.mark.parametrize(
    "entry, message",
    [
        ({"amount": "10"}, "Allocation 0: payment_method is required"),
        ({"payment_method": "barter", "amount": "10"}, "Allocation 0: unsupported payment_method barter"),
        ({"payment_method": "cash", "amount": "ten"}, "Allocation 0: amount must be a number"),
        ({"payment_method": "cash", "amount": "0"}, "Allocation 0: amount must be greater than zero"),
        ({"payment_method": "cash", "amount": "-5"}, "Allocation 0: amount must be greater than zero"),
        ({"payment_method": "cash", "amount": "0.001"}, "Allocation 0: amount must be greater than zero"),
        ({"payment_method": "cash", "amount": "0.004"}, "Allocation 0: amount must be greater than zero"),
        ({"payment_method": "cash", "amount": "1e30"}, "Allocation 0: amount must be a number"),
        (
            {"payment_method": "cash", "amount": "5", "transaction_date": "yesterday"},
            "Allocation 0: transaction_date is not a valid datetime",
        ),
    ],
)
def test_invalid_entries_are_named(make_payment, cashier, entry, message):
    payment = make_payment("300.00")

    with pytest.raises(ValidationError) as exc:
        _allocate(payment, cashier, [entry])

    assert message in str(exc.value.detail)


def test_empty_allocations_rejected(make_payment, cashier):
    with pytest.raises(ValidationError) as exc:
        _allocate(make_payment(), cashier, [])

    assert "method_allocations must be a non-empty list" in str(exc.value.detail)


def test_unknown_payment(cashier):
    with pytest.raises(NotFound):
        PaymentService.apply_payment_method_allocations(
            payment_id=uuid.uuid4(),
            cashier_id=cashier.id,
            method_allocations=[{"payment_method": "cash", "amount": "1"}],
        )


def test_role_must_record_payments(make_payment, nurse):
    with pytest.raises(PermissionDenied) as exc:
        _allocate(make_payment(), nurse, [{"payment_method": "cash", "amount": "10"}])

    assert str(exc.value.detail) == "Role nurse cannot record payments"


def test_cashier_must_belong_to_facility(make_payment, make_user, other_facility):
    elsewhere = make_user("cashier", at_facility=other_facility)

    with pytest.raises(PermissionDenied) as exc:
        _allocate(make_payment(), elsewhere, [{"payment_method": "cash", "amount": "10"}])

    assert str(exc.value.detail) == "Cashier does not belong to this facility"


def test_allocation_is_audited(make_payment, cashier):
    payment = make_payment("50.00")

    _allocate(payment, cashier, [{"payment_method": "cash", "amount": "50"}])

    ev = AuditEvent.objects.get(event_code="payment.allocated", entity_id=payment.id)
    assert ev.actor_user_id == cashier.id
    assert ev.metadata["methods"] == ["cash"]


# --- API ---


def test_api_allocations(client_for, make_payment, cashier):
    payment = make_payment("80.00")

    res = client_for(cashier).post(
        f"/api/v1/billing/payments/{payment.id}/allocations/",
        {"method_allocations": [{"payment_method": "cash", "amount": "80.00"}]},
        format="json",
    )

    assert res.status_code == 200, res.content
    assert res.data["payment"]["payment_status"] == "paid"
    assert Payment.objects.get(id=payment.id).amount_due == Decimal("0.00")


def test_api_allocations_overpay_is_400(client_for, make_payment, cashier):
    payment = make_payment("80.00")

    res = client_for(cashier).post(
        f"/api/v1/billing/payments/{payment.id}/allocations/",
        {"method_allocations": [{"payment_method": "cash", "amount": "81.00"}]},
        format="json",
    )

    assert res.status_code == 400
    assert res.json()["error"]["code"] == "validation_error"


def test_api_allocations_other_facility_payment_is_404(client_for, make_payment, cashier, other_facility):
    payment = make_payment("80.00")
    Payment.objects.filter(id=payment.id).update(facility_id=other_facility.id)

    res = client_for(cashier).post(
        f"/api/v1/billing/payments/{payment.id}/allocations/",
        {"method_allocations": [{"payment_method": "cash", "amount": "1.00"}]},
        format="json",
    )

    assert res.status_code == 404


def test_sub_cent_amounts_round_before_recording(make_payment, cashier):
    payment = make_payment("300.00")

    _allocate(payment, cashier, [{"payment_method": "cash", "amount": "10.005"}])

    tx = PaymentTransaction.objects.get(payment=payment)
    assert tx.amount == Decimal("10.00")
