# clinic_core/billing/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from clinic_core.billing.models import (
    BillingItem,
    LineItemPaymentMethod,
    Payment,
    PaymentLineItem,
    PaymentTransaction,
    TransactionPaymentMethod,
)
from clinic_core.billing.services import SETTLEABLE_MODELS


class BillingItemSerializer(serializers.ModelSerializer):
    service_name = serializers.CharField(source="service.name", read_only=True)

    class Meta:
        model = BillingItem
        fields = [
            "id",
            "visit",
            "patient_id",
            "service",
            "service_name",
            "quantity",
            "unit_price",
            "total_amount",
            "payment_status",
            "payment_mode",
            "paid_at",
            "created_at",
        ]
        read_only_fields = fields


class PaymentLineItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentLineItem
        fields = [
            "id",
            "item_type",
            "item_id",
            "description",
            "quantity",
            "unit_price",
            "subtotal",
            "discount_percentage",
            "discount_amount",
            "final_amount",
            "payment_method",
            "payment_status",
            "insurance_provider",
            "insurance_claim_number",
        ]
        read_only_fields = fields


class PaymentTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentTransaction
        fields = [
            "id",
            "payment_method",
            "amount",
            "reference_number",
            "notes",
            "transaction_date",
            "received_by",
        ]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    line_items = PaymentLineItemSerializer(many=True, read_only=True)
    transactions = PaymentTransactionSerializer(many=True, read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "tenant_id",
            "facility_id",
            "visit",
            "patient_id",
            "cashier",
            "total_amount",
            "amount_paid",
            "amount_due",
            "payment_status",
            "notes",
            "line_items",
            "transactions",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PaymentListSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = [
            "id",
            "visit",
            "patient_id",
            "total_amount",
            "amount_paid",
            "amount_due",
            "payment_status",
            "created_at",
        ]
        read_only_fields = fields


class SettleItemSerializer(serializers.Serializer):
    item_type = serializers.ChoiceField(choices=sorted(SETTLEABLE_MODELS))
    item_id = serializers.UUIDField()


class SettlePaymentSerializer(serializers.Serializer):
    visit_id = serializers.UUIDField()
    items = SettleItemSerializer(many=True, allow_empty=False)
    payment_mode = serializers.ChoiceField(
        choices=sorted(set(LineItemPaymentMethod.values) | set(TransactionPaymentMethod.values)),
        default=LineItemPaymentMethod.CASH,
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class AllocationsRequestSerializer(serializers.Serializer):
    """Shape only; per-entry validation happens in PaymentService."""
    method_allocations = serializers.ListField(child=serializers.DictField(), allow_empty=True)


class PaymentSummarySerializer(serializers.Serializer):
    id = serializers.UUIDField()
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    amount_paid = serializers.DecimalField(max_digits=12, decimal_places=2)
    amount_due = serializers.DecimalField(max_digits=12, decimal_places=2)
    payment_status = serializers.CharField()


class AllocationResultSerializer(serializers.Serializer):
    payment = PaymentSummarySerializer()
    total_allocated = serializers.DecimalField(max_digits=12, decimal_places=2)
    transactions = serializers.ListField(child=serializers.DictField())
