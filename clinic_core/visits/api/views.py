# clinic_core/visits/api/views.py
from __future__ import annotations

from uuid import UUID

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response

from clinic_core.common.api.pagination import paginate
from clinic_core.common.permissions import VisitPermission
from clinic_core.common.scope import require_scope
from clinic_core.visits.api.serializers import (
    AdvanceResultSerializer,
    AdvanceStageSerializer,
    CashierQueueEntrySerializer,
    PatientStatusEventSerializer,
    RegisterVisitSerializer,
    RegistrationResultSerializer,
    VisitSerializer,
)
from clinic_core.visits.models import Visit
from clinic_core.visits.registration import RegistrationService
from clinic_core.visits.selectors import cashier_queue as build_cashier_queue
from clinic_core.visits.selectors import get_visit, status_events_for_visit, visits_filtered
from clinic_core.visits.services import JourneyService


def _uuid_or_none(value: str | None, field_name: str) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise DRFValidationError({field_name: "Invalid UUID"})


class VisitViewSet(viewsets.ViewSet):
    """
    Visit journey endpoints:
    - list/retrieve
    - register (patient + visit + consultation bill)
    - advance (role-checked stage change)
    - events (status event log)
    - cashier-queue
    """
    permission_classes = [VisitPermission]

    serializer_class = VisitSerializer
    queryset = Visit.objects.none()
    lookup_value_regex = "[0-9a-fA-F-]{36}"

    @extend_schema(
        tags=["Visits"],
        responses={200: VisitSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="routing_status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="patient_id", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        scope = require_scope(request)
        qs = visits_filtered(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            status=request.query_params.get("status") or None,
            routing_status=request.query_params.get("routing_status") or None,
            patient_id=_uuid_or_none(request.query_params.get("patient_id"), "patient_id"),
        )
        return paginate(request, qs, VisitSerializer)

    @extend_schema(tags=["Visits"], responses={200: VisitSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        visit = get_visit(tenant_id=scope.tenant_id, facility_id=scope.facility_id, visit_id=pk)
        return Response(VisitSerializer(visit).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Visits"],
        request=RegisterVisitSerializer,
        responses={201: RegistrationResultSerializer},
    )
    @action(detail=False, methods=["post"], url_path="register")
    def register(self, request):
        scope = require_scope(request)

        ser = RegisterVisitSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        result = RegistrationService.register_patient_with_visit(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=request.user.id,
            **ser.validated_data,
        )
        return Response(RegistrationResultSerializer(result).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        tags=["Visits"],
        request=AdvanceStageSerializer,
        responses={200: AdvanceResultSerializer, 400: AdvanceResultSerializer},
    )
    @action(detail=True, methods=["post"], url_path="advance")
    def advance(self, request, pk=None):
        scope = require_scope(request)

        ser = AdvanceStageSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        visit = get_visit(tenant_id=scope.tenant_id, facility_id=scope.facility_id, visit_id=pk)

        result = JourneyService.advance_patient_stage(
            visit_id=visit.id,
            next_stage=ser.validated_data["next_stage"],
            user_id=request.user.id,
        )
        code = status.HTTP_200_OK if result.success else status.HTTP_400_BAD_REQUEST
        return Response(result.as_dict(), status=code)

    @extend_schema(tags=["Visits"], responses={200: PatientStatusEventSerializer(many=True)})
    @action(detail=True, methods=["get"], url_path="events")
    def events(self, request, pk=None):
        scope = require_scope(request)
        visit = get_visit(tenant_id=scope.tenant_id, facility_id=scope.facility_id, visit_id=pk)
        qs = status_events_for_visit(tenant_id=scope.tenant_id, facility_id=scope.facility_id, visit_id=visit.id)
        return paginate(request, qs, PatientStatusEventSerializer)

    @extend_schema(tags=["Visits"], responses={200: CashierQueueEntrySerializer(many=True)})
    @action(detail=False, methods=["get"], url_path="cashier-queue")
    def cashier_queue(self, request):
        scope = require_scope(request)
        return paginate(request, build_cashier_queue(tenant_id=scope.tenant_id, facility_id=scope.facility_id))
