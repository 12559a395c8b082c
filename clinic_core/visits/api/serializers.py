# clinic_core/visits/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from clinic_core.patients.api.serializers import PatientWriteSerializer
from clinic_core.visits.models import (
    ConsultationPaymentType,
    PatientStatusEvent,
    Visit,
    VisitType,
)


class VisitSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)

    class Meta:
        model = Visit
        fields = [
            "id",
            "tenant_id",
            "facility_id",
            "patient",
            "patient_name",
            "visit_type",
            "visit_date",
            "reason",
            "status",
            "routing_status",
            "status_updated_at",
            "journey_timeline",
            "metadata",
            "consultation_payment_type",
            "program_id",
            "creditor_id",
            "insurer_id",
            "insurance_policy_number",
            "provider",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class RegisterVisitSerializer(PatientWriteSerializer):
    """Reception intake form: patient demographics plus the visit being opened."""
    visit_type = serializers.ChoiceField(choices=VisitType.choices, default=VisitType.NEW)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    provider_id = serializers.IntegerField(required=False, allow_null=True)
    consultation_service_id = serializers.UUIDField(required=False, allow_null=True)
    consultation_payment_type = serializers.ChoiceField(
        choices=ConsultationPaymentType.choices,
        default=ConsultationPaymentType.PAYING,
    )
    program_id = serializers.UUIDField(required=False, allow_null=True)
    creditor_id = serializers.UUIDField(required=False, allow_null=True)
    insurer_id = serializers.UUIDField(required=False, allow_null=True)
    insurance_policy_number = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")

    def validate(self, attrs):
        attrs.pop("mrn", None)
        return attrs


class RegistrationResultSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    visit_id = serializers.UUIDField()
    full_name = serializers.CharField()
    warnings = serializers.ListField(child=serializers.DictField())


class AdvanceStageSerializer(serializers.Serializer):
    # Unknown stages are reported by the journey service, not rejected here.
    next_stage = serializers.CharField(max_length=32)


class AdvanceResultSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    new_stage = serializers.CharField(required=False)
    previous_stage = serializers.CharField(required=False)
    routing_status = serializers.CharField(required=False)
    error = serializers.CharField(required=False)


class PatientStatusEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = PatientStatusEvent
        fields = [
            "id",
            "visit",
            "patient_id",
            "event_type",
            "previous_status",
            "new_status",
            "changed_by",
            "changed_at",
            "metadata",
        ]
        read_only_fields = fields


class CashierQueueEntrySerializer(serializers.Serializer):
    visit_id = serializers.UUIDField()
    patient_id = serializers.UUIDField()
    patient_name = serializers.CharField()
    mrn = serializers.CharField()
    status = serializers.CharField()
    routing_status = serializers.CharField()
    status_updated_at = serializers.DateTimeField()
    outstanding_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    outstanding_items = serializers.IntegerField()
    wait_minutes = serializers.IntegerField()
    suggested_next_stage = serializers.CharField(allow_null=True)
