# clinic_core/orders/api/serializers.py
from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from clinic_core.orders.models import ImagingOrder, LabOrder, MedicationOrder, OrderPriority, OrderStatus

_COMMON_FIELDS = [
    "id",
    "tenant_id",
    "facility_id",
    "visit",
    "patient_id",
    "priority",
    "status",
    "notes",
    "amount",
    "payment_status",
    "payment_mode",
    "paid_at",
    "ordered_by",
    "created_at",
    "updated_at",
]


class LabOrderSerializer(serializers.ModelSerializer):
    class Meta:
        model = LabOrder
        fields = _COMMON_FIELDS + ["test_name", "test_code"]
        read_only_fields = fields


class ImagingOrderSerializer(serializers.ModelSerializer):
    class Meta:
        model = ImagingOrder
        fields = _COMMON_FIELDS + ["study_name", "body_part"]
        read_only_fields = fields


class MedicationOrderSerializer(serializers.ModelSerializer):
    class Meta:
        model = MedicationOrder
        fields = _COMMON_FIELDS + ["medication_name", "dosage", "frequency", "duration", "quantity"]
        read_only_fields = fields


class OrderCreateBaseSerializer(serializers.Serializer):
    visit_id = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.00"), default=Decimal("0.00"))
    priority = serializers.ChoiceField(choices=OrderPriority.choices, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class LabOrderCreateSerializer(OrderCreateBaseSerializer):
    test_name = serializers.CharField(max_length=255)
    test_code = serializers.CharField(max_length=64, required=False, allow_blank=True)


class ImagingOrderCreateSerializer(OrderCreateBaseSerializer):
    study_name = serializers.CharField(max_length=255)
    body_part = serializers.CharField(max_length=128, required=False, allow_blank=True)


class MedicationOrderCreateSerializer(OrderCreateBaseSerializer):
    medication_name = serializers.CharField(max_length=255)
    dosage = serializers.CharField(max_length=128, required=False, allow_blank=True)
    frequency = serializers.CharField(max_length=128, required=False, allow_blank=True)
    duration = serializers.CharField(max_length=128, required=False, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1, required=False)


class OrderStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
