# clinic_core/billing/services.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional
from uuid import UUID

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from clinic_core.audit.services import AuditService
from clinic_core.billing.models import (
    BillingItem,
    ItemType,
    LineItemPaymentMethod,
    Payment,
    PaymentLineItem,
    PaymentTransaction,
    TransactionPaymentMethod,
)
from clinic_core.catalog.models import ServiceCategory
from clinic_core.common.api.exceptions import ConflictError
from clinic_core.common.events import PAYMENT_ALLOCATED, PAYMENT_SETTLED, publish
from clinic_core.common.logging import get_logger, log_domain_event
from clinic_core.common.models import ZERO, ItemPaymentStatus
from clinic_core.iam.services.membership import get_facility_role
from clinic_core.orders.models import ImagingOrder, LabOrder, MedicationOrder
from clinic_core.visits.models import Visit

logger = get_logger(__name__)

CENTS = Decimal("0.01")

PAYMENT_RECORDING_ROLES = frozenset({"finance", "cashier", "receptionist", "admin", "super_admin"})

FREE_MODE = LineItemPaymentMethod.FREE

# item_type accepted by settlement -> model holding the payable row
SETTLEABLE_MODELS = {
    "lab_test": LabOrder,
    "imaging": ImagingOrder,
    "medication": MedicationOrder,
    "service": BillingItem,
}


def _money(value) -> Decimal:
    return Decimal(value or 0).quantize(CENTS)


def payment_summary(payment: Payment) -> Dict[str, Any]:
    return {
        "id": str(payment.id),
        "total_amount": str(payment.total_amount),
        "amount_paid": str(payment.amount_paid),
        "amount_due": str(payment.amount_due),
        "payment_status": payment.payment_status,
    }


@dataclass(frozen=True)
class Allocation:
    payment_method: str
    amount: Decimal
    reference_number: str = ""
    notes: str = ""
    transaction_date: Optional[datetime] = None


def _parse_allocation(index: int, raw: Any) -> Allocation:
    if not isinstance(raw, dict):
        raise ValidationError(f"Allocation {index}: must be an object")

    method = str(raw.get("payment_method") or "").strip()
    if not method:
        raise ValidationError(f"Allocation {index}: payment_method is required")
    if method not in TransactionPaymentMethod.values:
        raise ValidationError(f"Allocation {index}: unsupported payment_method {method}")

    try:
        amount = Decimal(str(raw.get("amount")))
        if amount.is_finite():
            amount = amount.quantize(CENTS)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Allocation {index}: amount must be a number")
    # checked after rounding to cents
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"Allocation {index}: amount must be greater than zero")

    tx_date = None
    raw_date = raw.get("transaction_date")
    if raw_date:
        tx_date = raw_date if isinstance(raw_date, datetime) else parse_datetime(str(raw_date))
        if tx_date is None:
            raise ValidationError(f"Allocation {index}: transaction_date is not a valid datetime")

    return Allocation(
        payment_method=method,
        amount=amount,
        reference_number=str(raw.get("reference_number") or "").strip(),
        notes=str(raw.get("notes") or "").strip(),
        transaction_date=tx_date,
    )


class PaymentService:
    """
    Cashier-side payment writes. Every method locks the payment header row
    for the length of its transaction.
    """

    @staticmethod
    def _assert_cashier(*, cashier_id: int, facility_id: UUID) -> str:
        role = get_facility_role(user_id=cashier_id, facility_id=facility_id)
        if role is None:
            raise PermissionDenied("Cashier does not belong to this facility")
        if role not in PAYMENT_RECORDING_ROLES:
            raise PermissionDenied(f"Role {role} cannot record payments")
        return role

    @staticmethod
    def _lock_payment(payment_id: UUID) -> Payment:
        payment = Payment.objects.select_for_update().filter(id=payment_id).first()
        if payment is None:
            raise NotFound(f"Payment {payment_id} not found")
        return payment

    @staticmethod
    @transaction.atomic
    def apply_payment_method_allocations(
        *,
        payment_id: UUID,
        cashier_id: int,
        method_allocations: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """
        Splits one settlement across payment methods, one transaction per
        method. The whole batch is rejected if any entry is invalid or if it
        would push amount_paid past total_amount.
        """
        if not isinstance(method_allocations, list) or not method_allocations:
            raise ValidationError("method_allocations must be a non-empty list")

        payment = PaymentService._lock_payment(payment_id)
        PaymentService._assert_cashier(cashier_id=cashier_id, facility_id=payment.facility_id)

        allocations = [_parse_allocation(i, raw) for i, raw in enumerate(method_allocations)]
        total = sum((a.amount for a in allocations), ZERO)

        new_paid = _money(payment.amount_paid) + total
        if new_paid > _money(payment.total_amount):
            raise ValidationError("Allocation exceeds amount due")

        now = timezone.now()
        created = [
            PaymentTransaction.objects.create(
                tenant_id=payment.tenant_id,
                facility_id=payment.facility_id,
                payment=payment,
                payment_method=a.payment_method,
                amount=a.amount,
                reference_number=a.reference_number,
                notes=a.notes,
                transaction_date=a.transaction_date or now,
                received_by_id=cashier_id,
            )
            for a in allocations
        ]

        payment.amount_paid = new_paid
        payment.amount_due = max(_money(payment.total_amount) - new_paid, ZERO)
        payment.payment_status = (
            ItemPaymentStatus.PAID if payment.total_amount <= new_paid else ItemPaymentStatus.PARTIAL
        )
        payment.save(update_fields=["amount_paid", "amount_due", "payment_status", "updated_at"])

        AuditService.log(
            event_code="payment.allocated",
            entity_type="Payment",
            entity_id=payment.id,
            tenant_id=payment.tenant_id,
            facility_id=payment.facility_id,
            actor_user_id=cashier_id,
            metadata={
                "total_allocated": str(total),
                "methods": [a.payment_method for a in allocations],
            },
        )
        publish(
            PAYMENT_ALLOCATED,
            {
                "tenant_id": str(payment.tenant_id),
                "facility_id": str(payment.facility_id),
                "payment_id": str(payment.id),
                "visit_id": str(payment.visit_id),
                "total_allocated": str(total),
            },
        )
        log_domain_event(
            logger,
            "payment.allocated",
            payment_id=str(payment.id),
            total_allocated=str(total),
            payment_status=payment.payment_status,
        )

        return {
            "payment": payment_summary(payment),
            "total_allocated": str(total),
            "transactions": [
                {
                    "id": str(tx.id),
                    "payment_method": tx.payment_method,
                    "amount": str(tx.amount),
                    "reference_number": tx.reference_number,
                    "transaction_date": tx.transaction_date.isoformat(),
                }
                for tx in created
            ],
        }

    @staticmethod
    def _recalculate(payment: Payment) -> Payment:
        total = _money(
            PaymentLineItem.objects.filter(payment=payment).aggregate(s=Sum("final_amount"))["s"]
        )
        paid = _money(
            PaymentTransaction.objects.filter(payment=payment).aggregate(s=Sum("amount"))["s"]
        )
        paid = min(paid, total)
        due = max(total - paid, ZERO)

        if total == ZERO and paid == ZERO:
            status = ItemPaymentStatus.PENDING
        elif due == ZERO:
            status = ItemPaymentStatus.PAID
        elif paid > ZERO:
            status = ItemPaymentStatus.PARTIAL
        else:
            status = ItemPaymentStatus.PENDING

        payment.total_amount = total
        payment.amount_paid = paid
        payment.amount_due = due
        payment.payment_status = status
        payment.save(update_fields=["total_amount", "amount_paid", "amount_due", "payment_status", "updated_at"])
        return payment

    @staticmethod
    @transaction.atomic
    def recalculate_payment_totals(*, payment_id: UUID) -> Dict[str, Any]:
        """Rebuilds the header totals from its line items and transactions."""
        payment = PaymentService._lock_payment(payment_id)
        PaymentService._recalculate(payment)
        logger.info(
            "payment totals recalculated",
            extra={"payment_id": str(payment.id), "payment_status": payment.payment_status},
        )
        return payment_summary(payment)

    @staticmethod
    def _line_item_type(item_type: str, row) -> str:
        if item_type != "service":
            return item_type
        category = row.service.category
        if category == ServiceCategory.CONSULTATION:
            return ItemType.CONSULTATION
        if category == ServiceCategory.PROCEDURE:
            return ItemType.PROCEDURE
        return ItemType.SERVICE

    @staticmethod
    @transaction.atomic
    def process_payment_bulk(
        *,
        visit_id: UUID,
        cashier_id: int,
        items: List[Dict[str, Any]],
        payment_mode: str = LineItemPaymentMethod.CASH,
        notes: str = "",
    ) -> Dict[str, Any]:
        """
        Settles the listed orders / billing items for a visit.

        Each item save flips its payment_status, which lets the visit routing
        receiver move the patient on once nothing is outstanding.
        """
        if not isinstance(items, list) or not items:
            raise ValidationError("items must be a non-empty list")

        if payment_mode not in LineItemPaymentMethod.values and payment_mode not in TransactionPaymentMethod.values:
            raise ValidationError({"payment_mode": f"Unsupported payment mode: {payment_mode}"})

        visit = Visit.objects.filter(id=visit_id).first()
        if visit is None:
            raise NotFound("Visit not found")

        PaymentService._assert_cashier(cashier_id=cashier_id, facility_id=visit.facility_id)

        payment = (
            Payment.objects.select_for_update()
            .filter(visit_id=visit.id)
            .order_by("created_at")
            .first()
        )
        if payment is None:
            payment = Payment.objects.create(
                tenant_id=visit.tenant_id,
                facility_id=visit.facility_id,
                visit=visit,
                patient_id=visit.patient_id,
                cashier_id=cashier_id,
                notes=notes or "",
            )
        else:
            payment.cashier_id = cashier_id
            if notes:
                payment.notes = f"{payment.notes}\n{notes}".strip()
            payment.save(update_fields=["cashier_id", "notes", "updated_at"])

        free = payment_mode == FREE_MODE
        settled_status = ItemPaymentStatus.WAIVED if free else ItemPaymentStatus.PAID
        line_method = payment_mode if payment_mode in LineItemPaymentMethod.values else LineItemPaymentMethod.MANUAL_OTHER
        now = timezone.now()

        settled_total = ZERO
        settled_ids: List[str] = []

        for index, raw in enumerate(items):
            item_type = str((raw or {}).get("item_type") or "").strip()
            model = SETTLEABLE_MODELS.get(item_type)
            if model is None:
                raise ValidationError(f"Item {index}: unknown item_type {item_type or '(blank)'}")

            row = model.objects.select_for_update().filter(id=raw.get("item_id"), visit_id=visit.id).first()
            if row is None:
                raise NotFound(f"Item {index}: {item_type} {raw.get('item_id')} not found on this visit")

            if row.payment_status in (ItemPaymentStatus.PAID, ItemPaymentStatus.WAIVED):
                raise ConflictError(f"Item {index}: {item_type} is already settled")
            if row.payment_status == ItemPaymentStatus.CANCELLED or getattr(row, "status", None) == "cancelled":
                raise ConflictError(f"Item {index}: {item_type} is cancelled")

            amount = _money(row.amount)
            if isinstance(row, BillingItem):
                quantity, unit_price = row.quantity, _money(row.unit_price)
            else:
                quantity, unit_price = 1, amount

            row.payment_status = settled_status
            row.payment_mode = payment_mode
            row.paid_at = now
            row.save(update_fields=["payment_status", "payment_mode", "paid_at", "updated_at"])

            PaymentLineItem.objects.create(
                tenant_id=visit.tenant_id,
                facility_id=visit.facility_id,
                payment=payment,
                item_type=PaymentService._line_item_type(item_type, row),
                item_id=row.id,
                description=row.description[:255],
                quantity=quantity,
                unit_price=unit_price,
                subtotal=amount,
                discount_percentage=Decimal("100.00") if free else ZERO,
                discount_amount=amount if free else ZERO,
                final_amount=ZERO if free else amount,
                payment_method=line_method,
                payment_status=settled_status,
            )

            if not free:
                settled_total += amount
            settled_ids.append(str(row.id))

        if settled_total > ZERO:
            tx_method = payment_mode if payment_mode in TransactionPaymentMethod.values else TransactionPaymentMethod.MANUAL_OTHER
            PaymentTransaction.objects.create(
                tenant_id=visit.tenant_id,
                facility_id=visit.facility_id,
                payment=payment,
                payment_method=tx_method,
                amount=settled_total,
                reference_number=f"{tx_method.upper()}-{int(now.timestamp())}",
                notes=notes or "",
                transaction_date=now,
                received_by_id=cashier_id,
            )

        PaymentService._recalculate(payment)

        AuditService.log(
            event_code="payment.settled",
            entity_type="Payment",
            entity_id=payment.id,
            tenant_id=visit.tenant_id,
            facility_id=visit.facility_id,
            actor_user_id=cashier_id,
            metadata={
                "visit_id": str(visit.id),
                "payment_mode": payment_mode,
                "items": settled_ids,
                "settled_total": str(settled_total),
            },
        )
        publish(
            PAYMENT_SETTLED,
            {
                "tenant_id": str(visit.tenant_id),
                "facility_id": str(visit.facility_id),
                "payment_id": str(payment.id),
                "visit_id": str(visit.id),
                "payment_mode": payment_mode,
                "item_count": len(settled_ids),
            },
        )
        log_domain_event(
            logger,
            "payment.settled",
            payment_id=str(payment.id),
            visit_id=str(visit.id),
            payment_mode=payment_mode,
            item_count=len(settled_ids),
            settled_total=str(settled_total),
        )

        return payment_summary(payment)
