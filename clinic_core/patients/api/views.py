# clinic_core/patients/api/views.py
from __future__ import annotations

from rest_framework import status, viewsets
from rest_framework.response import Response

from clinic_core.common.api.pagination import paginate
from clinic_core.common.permissions import PatientPermission
from clinic_core.common.scope import require_scope
from clinic_core.patients.api.serializers import (
    PatientSerializer,
    PatientUpdateSerializer,
    PatientWriteSerializer,
)
from clinic_core.patients.models import Patient
from clinic_core.patients.selectors import get_patient, search_patients
from clinic_core.patients.services import PatientService


class PatientViewSet(viewsets.ViewSet):
    permission_classes = [PatientPermission]

    serializer_class = PatientSerializer
    queryset = Patient.objects.none()
    lookup_value_regex = "[0-9a-fA-F-]{36}"

    def list(self, request):
        scope = require_scope(request)
        qs = search_patients(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            q=request.query_params.get("q", ""),
        ).prefetch_related("identifiers")
        return paginate(request, qs, PatientSerializer)

    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        patient = get_patient(tenant_id=scope.tenant_id, facility_id=scope.facility_id, patient_id=pk)
        return Response(PatientSerializer(patient).data, status=status.HTTP_200_OK)

    def create(self, request):
        scope = require_scope(request)

        ser = PatientWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        patient = PatientService.create_patient(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=request.user.id,
            **ser.validated_data,
        )
        return Response(PatientSerializer(patient).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        scope = require_scope(request)

        ser = PatientUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        patient = PatientService.update_patient(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=request.user.id,
            patient_id=pk,
            data=ser.validated_data,
        )
        return Response(PatientSerializer(patient).data, status=status.HTTP_200_OK)
