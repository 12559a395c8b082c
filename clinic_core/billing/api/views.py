# clinic_core/billing/api/views.py
from __future__ import annotations

from uuid import UUID

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response

from clinic_core.billing.api.serializers import (
    AllocationResultSerializer,
    AllocationsRequestSerializer,
    PaymentListSerializer,
    PaymentSerializer,
    PaymentSummarySerializer,
    SettlePaymentSerializer,
)
from clinic_core.billing.models import Payment
from clinic_core.billing.selectors import get_payment, payments_filtered
from clinic_core.billing.services import PaymentService
from clinic_core.common.api.pagination import paginate
from clinic_core.common.permissions import BillingPermission
from clinic_core.common.scope import require_scope
from clinic_core.visits.selectors import get_visit


def _uuid_or_none(value: str | None, field_name: str) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise DRFValidationError({field_name: "Invalid UUID"})


class PaymentViewSet(viewsets.ViewSet):
    """
    Cashier payments:
    - list/retrieve
    - settle (bulk settlement of a visit's outstanding items)
    - allocations (split a payment across methods)
    - recalculate
    """
    permission_classes = [BillingPermission]

    serializer_class = PaymentSerializer
    queryset = Payment.objects.none()
    lookup_value_regex = "[0-9a-fA-F-]{36}"

    @extend_schema(
        tags=["Billing"],
        responses={200: PaymentListSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="visit", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="patient", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="payment_status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        scope = require_scope(request)

        qs = payments_filtered(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            visit_id=_uuid_or_none(request.query_params.get("visit"), "visit"),
            patient_id=_uuid_or_none(request.query_params.get("patient"), "patient"),
            payment_status=request.query_params.get("payment_status") or None,
        )
        return paginate(request, qs, PaymentListSerializer)

    @extend_schema(tags=["Billing"], responses={200: PaymentSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        payment = get_payment(tenant_id=scope.tenant_id, facility_id=scope.facility_id, payment_id=pk)
        return Response(PaymentSerializer(payment).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Billing"],
        request=SettlePaymentSerializer,
        responses={200: PaymentSummarySerializer},
    )
    @action(detail=False, methods=["post"], url_path="settle")
    def settle(self, request):
        scope = require_scope(request)

        ser = SettlePaymentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        visit = get_visit(tenant_id=scope.tenant_id, facility_id=scope.facility_id, visit_id=data["visit_id"])

        summary = PaymentService.process_payment_bulk(
            visit_id=visit.id,
            cashier_id=request.user.id,
            items=[dict(i) for i in data["items"]],
            payment_mode=data["payment_mode"],
            notes=data.get("notes", ""),
        )
        return Response(summary, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Billing"],
        request=AllocationsRequestSerializer,
        responses={200: AllocationResultSerializer},
    )
    @action(detail=True, methods=["post"], url_path="allocations")
    def allocations(self, request, pk=None):
        scope = require_scope(request)

        ser = AllocationsRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        payment = get_payment(tenant_id=scope.tenant_id, facility_id=scope.facility_id, payment_id=pk)

        result = PaymentService.apply_payment_method_allocations(
            payment_id=payment.id,
            cashier_id=request.user.id,
            method_allocations=ser.validated_data["method_allocations"],
        )
        return Response(result, status=status.HTTP_200_OK)

    @extend_schema(tags=["Billing"], request=None, responses={200: PaymentSummarySerializer})
    @action(detail=True, methods=["post"], url_path="recalculate")
    def recalculate(self, request, pk=None):
        scope = require_scope(request)
        payment = get_payment(tenant_id=scope.tenant_id, facility_id=scope.facility_id, payment_id=pk)
        summary = PaymentService.recalculate_payment_totals(payment_id=payment.id)
        return Response(summary, status=status.HTTP_200_OK)
