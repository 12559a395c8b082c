# clinic_core/billing/models.py
from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from clinic_core.catalog.models import MedicalService
from clinic_core.common.models import ItemPaymentStatus, PaymentTrackingMixin, ScopedModel
from clinic_core.visits.models import Visit


class BillingItem(PaymentTrackingMixin, ScopedModel):
    """
    A catalogue service charged to a visit (consultation fee, procedure...).
    Orders carry their own amount; everything else is billed through here.
    """
    visit = models.ForeignKey(Visit, on_delete=models.CASCADE, related_name="billing_items")
    patient_id = models.UUIDField(db_index=True)
    service = models.ForeignKey(MedicalService, on_delete=models.PROTECT, related_name="billing_items")

    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "billing_billing_item"
        constraints = [
            models.UniqueConstraint(fields=["visit", "service"], name="uq_billing_item_visit_service"),
            models.CheckConstraint(condition=Q(unit_price__gte=0), name="ck_billing_item_unit_price_non_negative"),
            models.CheckConstraint(condition=Q(total_amount__gte=0), name="ck_billing_item_total_non_negative"),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "visit"]),
        ]

    @property
    def amount(self) -> Decimal:
        return self.total_amount

    @property
    def description(self) -> str:
        return self.service.name


class ItemType(models.TextChoices):
    CONSULTATION = "consultation", "Consultation"
    SERVICE = "service", "Service"
    MEDICATION = "medication", "Medication"
    LAB_TEST = "lab_test", "Lab test"
    IMAGING = "imaging", "Imaging"
    PROCEDURE = "procedure", "Procedure"


class LineItemPaymentMethod(models.TextChoices):
    CASH = "cash", "Cash"
    INSURANCE = "insurance", "Insurance"
    CREDIT = "credit", "Credit"
    FREE = "free", "Free"
    VOUCHER_MANUAL = "voucher_manual", "Voucher (manual)"
    VOUCHER_DIGITAL = "voucher_digital", "Voucher (digital)"
    MOBILE_MONEY = "mobile_money", "Mobile money"
    BANK_TRANSFER = "bank_transfer", "Bank transfer"
    MANUAL_OTHER = "manual_other", "Other (manual)"
    DIGITAL_OTHER = "digital_other", "Other (digital)"


class TransactionPaymentMethod(models.TextChoices):
    CASH = "cash", "Cash"
    INSURANCE = "insurance", "Insurance"
    CREDIT = "credit", "Credit"
    MOBILE_MONEY = "mobile_money", "Mobile money"
    BANK_TRANSFER = "bank_transfer", "Bank transfer"
    CHECK = "check", "Check"
    VOUCHER_MANUAL = "voucher_manual", "Voucher (manual)"
    VOUCHER_DIGITAL = "voucher_digital", "Voucher (digital)"
    MANUAL_OTHER = "manual_other", "Other (manual)"
    DIGITAL_OTHER = "digital_other", "Other (digital)"


class Payment(ScopedModel):
    """
    Payment header for a visit.

    amount_due is kept equal to max(total_amount - amount_paid, 0) by the
    services; the database only guards the bounds.
    """
    visit = models.ForeignKey(Visit, on_delete=models.PROTECT, related_name="payments")
    patient_id = models.UUIDField(db_index=True)
    cashier = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
    )

    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    amount_paid = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    amount_due = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    payment_status = models.CharField(
        max_length=16,
        choices=ItemPaymentStatus.choices,
        default=ItemPaymentStatus.PENDING,
        db_index=True,
    )
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "billing_payment"
        constraints = [
            models.CheckConstraint(condition=Q(total_amount__gte=0), name="ck_payment_total_non_negative"),
            models.CheckConstraint(condition=Q(amount_paid__gte=0), name="ck_payment_paid_non_negative"),
            models.CheckConstraint(condition=Q(amount_due__gte=0), name="ck_payment_due_non_negative"),
            models.CheckConstraint(
                condition=Q(amount_paid__lte=F("total_amount")),
                name="ck_payment_paid_not_above_total",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "payment_status", "created_at"]),
            models.Index(fields=["tenant_id", "facility_id", "visit"]),
        ]

    def __str__(self):
        return f"Payment({self.visit_id}, {self.amount_paid}/{self.total_amount})"


class PaymentLineItem(ScopedModel):
    payment = models.ForeignKey(Payment, on_delete=models.CASCADE, related_name="line_items")

    item_type = models.CharField(max_length=16, choices=ItemType.choices)
    item_id = models.UUIDField(null=True, blank=True)
    description = models.CharField(max_length=255)

    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    final_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    payment_method = models.CharField(
        max_length=16,
        choices=LineItemPaymentMethod.choices,
        default=LineItemPaymentMethod.CASH,
    )
    payment_status = models.CharField(
        max_length=16,
        choices=ItemPaymentStatus.choices,
        default=ItemPaymentStatus.PENDING,
    )
    insurance_provider = models.CharField(max_length=128, blank=True, default="")
    insurance_claim_number = models.CharField(max_length=64, blank=True, default="")

    class Meta:
        db_table = "billing_payment_line_item"
        constraints = [
            models.CheckConstraint(condition=Q(unit_price__gte=0), name="ck_line_item_unit_price_non_negative"),
            models.CheckConstraint(condition=Q(subtotal__gte=0), name="ck_line_item_subtotal_non_negative"),
            models.CheckConstraint(condition=Q(discount_amount__gte=0), name="ck_line_item_discount_non_negative"),
            models.CheckConstraint(condition=Q(final_amount__gte=0), name="ck_line_item_final_non_negative"),
            models.CheckConstraint(
                condition=Q(discount_percentage__gte=0) & Q(discount_percentage__lte=100),
                name="ck_line_item_discount_pct_range",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "payment"]),
        ]


class PaymentTransaction(ScopedModel):
    payment = models.ForeignKey(Payment, on_delete=models.CASCADE, related_name="transactions")
    payment_method = models.CharField(max_length=16, choices=TransactionPaymentMethod.choices)
    amount = models.DecimalField(max_digits=12, decimal_places=2)

    reference_number = models.CharField(max_length=64, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    transaction_date = models.DateTimeField(default=timezone.now)
    received_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "billing_payment_transaction"
        constraints = [
            models.CheckConstraint(condition=Q(amount__gt=0), name="ck_payment_transaction_amount_positive"),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "payment", "transaction_date"]),
        ]
