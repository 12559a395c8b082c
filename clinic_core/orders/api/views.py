# clinic_core/orders/api/views.py
from __future__ import annotations

from uuid import UUID

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.exceptions import NotFound, ValidationError as DRFValidationError
from rest_framework.response import Response

from clinic_core.common.api.pagination import paginate
from clinic_core.common.permissions import OrderPermission
from clinic_core.common.scope import require_scope
from clinic_core.orders.api.serializers import (
    ImagingOrderCreateSerializer,
    ImagingOrderSerializer,
    LabOrderCreateSerializer,
    LabOrderSerializer,
    MedicationOrderCreateSerializer,
    MedicationOrderSerializer,
    OrderStatusUpdateSerializer,
)
from clinic_core.orders.models import ImagingOrder, LabOrder, MedicationOrder, OrderKind
from clinic_core.orders.selectors import OrderSelector
from clinic_core.orders.services import OrderService

_LIST_PARAMS = [
    OpenApiParameter(name="visit", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
    OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
    OpenApiParameter(name="payment_status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
]


class _OrderViewSet(viewsets.ViewSet):
    """
    Thin API layer shared by the three order kinds:
    serializer validation, then OrderService for writes and OrderSelector for reads.
    """
    permission_classes = [OrderPermission]
    lookup_value_regex = "[0-9a-fA-F-]{36}"

    kind: str = ""
    create_serializer_class = None

    def _get(self, scope, pk):
        try:
            return OrderSelector.get_order(
                tenant_id=scope.tenant_id,
                facility_id=scope.facility_id,
                kind=self.kind,
                order_id=pk,
            )
        except OrderSelector.NotFound:
            raise NotFound("Order not found")

    def list(self, request):
        scope = require_scope(request)

        visit_raw = request.query_params.get("visit")
        visit_id = None
        if visit_raw:
            try:
                visit_id = UUID(str(visit_raw))
            except (TypeError, ValueError):
                raise DRFValidationError({"visit": "Invalid UUID"})

        qs = OrderSelector.list_orders(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            kind=self.kind,
            visit_id=visit_id,
            status=request.query_params.get("status") or None,
            payment_status=request.query_params.get("payment_status") or None,
        )
        return paginate(request, qs, self.serializer_class)

    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        return Response(self.serializer_class(self._get(scope, pk)).data, status=status.HTTP_200_OK)

    def create(self, request):
        scope = require_scope(request)

        ser = self.create_serializer_class(data=request.data)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)

        order = OrderService.place_order(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            kind=self.kind,
            actor_user_id=request.user.id,
            **data,
        )
        return Response(self.serializer_class(order).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        scope = require_scope(request)

        ser = OrderStatusUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        order = self._get(scope, pk)
        order = OrderService.set_status(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            kind=self.kind,
            order_id=order.id,
            status=ser.validated_data["status"],
            actor_user_id=request.user.id,
        )
        return Response(self.serializer_class(order).data, status=status.HTTP_200_OK)


@extend_schema(tags=["Orders"])
class LabOrderViewSet(_OrderViewSet):
    kind = OrderKind.LAB
    serializer_class = LabOrderSerializer
    create_serializer_class = LabOrderCreateSerializer
    queryset = LabOrder.objects.none()

    @extend_schema(parameters=_LIST_PARAMS)
    def list(self, request):
        return super().list(request)

    @extend_schema(request=LabOrderCreateSerializer, responses={201: LabOrderSerializer})
    def create(self, request):
        return super().create(request)

    @extend_schema(request=OrderStatusUpdateSerializer, responses={200: LabOrderSerializer})
    def partial_update(self, request, pk=None):
        return super().partial_update(request, pk=pk)


@extend_schema(tags=["Orders"])
class ImagingOrderViewSet(_OrderViewSet):
    kind = OrderKind.IMAGING
    serializer_class = ImagingOrderSerializer
    create_serializer_class = ImagingOrderCreateSerializer
    queryset = ImagingOrder.objects.none()

    @extend_schema(parameters=_LIST_PARAMS)
    def list(self, request):
        return super().list(request)

    @extend_schema(request=ImagingOrderCreateSerializer, responses={201: ImagingOrderSerializer})
    def create(self, request):
        return super().create(request)

    @extend_schema(request=OrderStatusUpdateSerializer, responses={200: ImagingOrderSerializer})
    def partial_update(self, request, pk=None):
        return super().partial_update(request, pk=pk)


@extend_schema(tags=["Orders"])
class MedicationOrderViewSet(_OrderViewSet):
    kind = OrderKind.MEDICATION
    serializer_class = MedicationOrderSerializer
    create_serializer_class = MedicationOrderCreateSerializer
    queryset = MedicationOrder.objects.none()

    @extend_schema(parameters=_LIST_PARAMS)
    def list(self, request):
        return super().list(request)

    @extend_schema(request=MedicationOrderCreateSerializer, responses={201: MedicationOrderSerializer})
    def create(self, request):
        return super().create(request)

    @extend_schema(request=OrderStatusUpdateSerializer, responses={200: MedicationOrderSerializer})
    def partial_update(self, request, pk=None):
        return super().partial_update(request, pk=pk)
