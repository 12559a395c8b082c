# clinic_core/orders/models.py
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q

from clinic_core.common.models import PaymentTrackingMixin, ScopedModel
from clinic_core.visits.models import Visit


class OrderKind(models.TextChoices):
    LAB = "lab_test", "Lab test"
    IMAGING = "imaging", "Imaging"
    MEDICATION = "medication", "Medication"


class OrderPriority(models.TextChoices):
    ROUTINE = "routine", "Routine"
    URGENT = "urgent", "Urgent"
    STAT = "stat", "Stat"


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    IN_PROGRESS = "in_progress", "In progress"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class ClinicalOrder(PaymentTrackingMixin, ScopedModel):
    """
    Shared shape of lab / imaging / medication orders: clinical status plus
    the payment columns the cashier settles and the journey routes on.
    """
    KIND = None

    visit = models.ForeignKey(Visit, on_delete=models.CASCADE, related_name="%(class)ss")
    patient_id = models.UUIDField(db_index=True)

    priority = models.CharField(max_length=16, choices=OrderPriority.choices, default=OrderPriority.ROUTINE)
    status = models.CharField(max_length=16, choices=OrderStatus.choices, default=OrderStatus.PENDING, db_index=True)
    notes = models.TextField(blank=True, default="")

    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    ordered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
    )

    class Meta:
        abstract = True

    @property
    def description(self) -> str:
        raise NotImplementedError


class LabOrder(ClinicalOrder):
    KIND = OrderKind.LAB

    test_name = models.CharField(max_length=255)
    test_code = models.CharField(max_length=64, blank=True, default="")

    class Meta:
        db_table = "orders_lab_order"
        constraints = [
            models.CheckConstraint(condition=Q(amount__gte=0), name="ck_lab_order_amount_non_negative"),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "visit"]),
        ]

    @property
    def description(self) -> str:
        return self.test_name


class ImagingOrder(ClinicalOrder):
    KIND = OrderKind.IMAGING

    study_name = models.CharField(max_length=255)
    body_part = models.CharField(max_length=128, blank=True, default="")

    class Meta:
        db_table = "orders_imaging_order"
        constraints = [
            models.CheckConstraint(condition=Q(amount__gte=0), name="ck_imaging_order_amount_non_negative"),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "visit"]),
        ]

    @property
    def description(self) -> str:
        return self.study_name


class MedicationOrder(ClinicalOrder):
    KIND = OrderKind.MEDICATION

    medication_name = models.CharField(max_length=255)
    dosage = models.CharField(max_length=128, blank=True, default="")
    frequency = models.CharField(max_length=128, blank=True, default="")
    duration = models.CharField(max_length=128, blank=True, default="")
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = "orders_medication_order"
        constraints = [
            models.CheckConstraint(condition=Q(amount__gte=0), name="ck_medication_order_amount_non_negative"),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "visit"]),
        ]

    @property
    def description(self) -> str:
        return f"{self.medication_name} {self.dosage}".strip()


ORDER_MODELS = {
    OrderKind.LAB: LabOrder,
    OrderKind.IMAGING: ImagingOrder,
    OrderKind.MEDICATION: MedicationOrder,
}
