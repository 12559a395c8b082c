# clinic_core/visits/models.py
import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from clinic_core.common.models import ScopedModel
from clinic_core.patients.models import Patient


class VisitStatus(models.TextChoices):
    REGISTERED = "registered", "Registered"
    PAYING_CONSULTATION = "paying_consultation", "Paying consultation"
    AT_TRIAGE = "at_triage", "At triage"
    VITALS_TAKEN = "vitals_taken", "Vitals taken"
    WITH_DOCTOR = "with_doctor", "With doctor"
    PAYING_DIAGNOSIS = "paying_diagnosis", "Paying diagnosis"
    AT_LAB = "at_lab", "At lab"
    AT_IMAGING = "at_imaging", "At imaging"
    PAYING_PHARMACY = "paying_pharmacy", "Paying pharmacy"
    AT_PHARMACY = "at_pharmacy", "At pharmacy"
    ADMITTED = "admitted", "Admitted"
    DISCHARGED = "discharged", "Discharged"
    CANCELLED = "cancelled", "Cancelled"


class RoutingStatus(models.TextChoices):
    COMPLETED = "completed", "Completed"
    AWAITING_ROUTING = "awaiting_routing", "Awaiting routing"
    ROUTING_IN_PROGRESS = "routing_in_progress", "Routing in progress"


class VisitType(models.TextChoices):
    NEW = "New", "New"
    FOLLOW_UP = "Follow-up", "Follow-up"
    RETURNING = "Returning", "Returning"


class ConsultationPaymentType(models.TextChoices):
    PAYING = "paying", "Paying"
    FREE = "free", "Free"
    INSURED = "insured", "Insured"


def empty_journey() -> dict:
    return {"stages": []}


class Visit(ScopedModel):
    """
    One patient encounter at a facility and the aggregate the journey state
    machine mutates. `status` always equals the last stage in journey_timeline.
    """
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="visits")

    visit_type = models.CharField(max_length=16, choices=VisitType.choices, default=VisitType.NEW)
    visit_date = models.DateField(default=timezone.localdate)
    reason = models.CharField(max_length=255, blank=True, default="")

    status = models.CharField(
        max_length=32,
        choices=VisitStatus.choices,
        default=VisitStatus.REGISTERED,
        db_index=True,
    )
    routing_status = models.CharField(
        max_length=32,
        choices=RoutingStatus.choices,
        default=RoutingStatus.COMPLETED,
        db_index=True,
    )
    status_updated_at = models.DateTimeField(default=timezone.now)

    journey_timeline = models.JSONField(default=empty_journey, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    consultation_payment_type = models.CharField(
        max_length=16,
        choices=ConsultationPaymentType.choices,
        default=ConsultationPaymentType.PAYING,
    )
    program_id = models.UUIDField(null=True, blank=True)
    creditor_id = models.UUIDField(null=True, blank=True)
    insurer_id = models.UUIDField(null=True, blank=True)
    insurance_policy_number = models.CharField(max_length=64, blank=True, default="")

    provider = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="provider_visits",
        null=True,
        blank=True,
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="created_visits",
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "visits_visit"
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "status"]),
            models.Index(fields=["tenant_id", "facility_id", "routing_status"]),
            models.Index(fields=["tenant_id", "facility_id", "visit_date"]),
        ]

    def __str__(self) -> str:
        return f"Visit({self.patient_id}, {self.status})"

    @property
    def stages(self) -> list:
        return list((self.journey_timeline or {}).get("stages") or [])


class StatusEventType(models.TextChoices):
    STATUS_CHANGE = "status_change", "Status change"
    PAYMENT_UPDATE = "payment_update", "Payment update"
    ORDER_PLACED = "order_placed", "Order placed"


class PatientStatusEvent(models.Model):
    """
    Immutable log of visit status changes. Written in the same transaction
    as the change itself; event_key makes re-emits no-ops.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant_id = models.UUIDField(db_index=True)
    facility_id = models.UUIDField(db_index=True)
    visit = models.ForeignKey(Visit, on_delete=models.CASCADE, related_name="status_events")
    patient_id = models.UUIDField(db_index=True)

    event_key = models.CharField(max_length=160)
    event_type = models.CharField(
        max_length=24,
        choices=StatusEventType.choices,
        default=StatusEventType.STATUS_CHANGE,
    )
    previous_status = models.CharField(max_length=32, blank=True, default="")
    new_status = models.CharField(max_length=32, choices=VisitStatus.choices)

    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="visit_status_changes",
        null=True,
        blank=True,
    )
    changed_at = models.DateTimeField(default=timezone.now, db_index=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "visits_patient_status_event"
        constraints = [
            models.UniqueConstraint(fields=["visit", "event_key"], name="uq_status_event_key_per_visit"),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "changed_at"]),
        ]

    def __str__(self):
        return f"{self.previous_status or '-'} -> {self.new_status}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("PatientStatusEvent is immutable and cannot be modified once created.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("PatientStatusEvent is immutable and cannot be deleted.")
