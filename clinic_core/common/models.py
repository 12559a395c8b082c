# clinic_core/common/models.py
from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import models


ZERO = Decimal("0.00")


class TimeStampedModel(models.Model):
    """
    Standard timestamps for all entities.
    """
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class ScopedModel(TimeStampedModel):
    """
    Tenant + facility scope at the data layer.
    Request scope is resolved by middleware/auth; this is the persisted side of it.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant_id = models.UUIDField(db_index=True)
    facility_id = models.UUIDField(db_index=True)

    class Meta:
        abstract = True


class ItemPaymentStatus(models.TextChoices):
    """
    Shared by orders, billing items, payment line items and payment headers.
    """
    PENDING = "pending", "Pending"
    UNPAID = "unpaid", "Unpaid"
    PARTIAL = "partial", "Partial"
    PAID = "paid", "Paid"
    CANCELLED = "cancelled", "Cancelled"
    REFUNDED = "refunded", "Refunded"
    WAIVED = "waived", "Waived"
    DISPUTED = "disputed", "Disputed"


# Statuses that count as "settled" for routing purposes.
SETTLED_PAYMENT_STATUSES = (ItemPaymentStatus.PAID, ItemPaymentStatus.WAIVED)


class PaymentTrackingMixin(models.Model):
    """
    Payment columns carried by every billable row (orders + billing items).

    Remembers the payment_status it was loaded with so post_save receivers
    can tell whether the status actually changed.
    """
    payment_status = models.CharField(
        max_length=16,
        choices=ItemPaymentStatus.choices,
        default=ItemPaymentStatus.UNPAID,
        db_index=True,
    )
    payment_mode = models.CharField(max_length=32, blank=True, default="")
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        abstract = True

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_payment_status = instance.__dict__.get("payment_status")
        return instance

    @property
    def previous_payment_status(self) -> str | None:
        return getattr(self, "_loaded_payment_status", None)

    def remember_payment_status(self) -> None:
        self._loaded_payment_status = self.payment_status
