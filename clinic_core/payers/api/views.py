from __future__ import annotations

from rest_framework import viewsets

from clinic_core.common.api.pagination import paginate
from clinic_core.common.permissions import MasterDataPermission
from clinic_core.common.scope import require_scope
from clinic_core.payers.api.serializers import CreditorSerializer, InsurerSerializer, ProgramSerializer
from clinic_core.payers.models import Creditor, Insurer, Program


class _TenantMasterDataViewSet(viewsets.ViewSet):
    """Active rows of one master-data table for the caller's tenant."""
    permission_classes = [MasterDataPermission]
    model = None

    def list(self, request):
        scope = require_scope(request)
        qs = self.model.objects.filter(tenant_id=scope.tenant_id, is_active=True).order_by("name")
        return paginate(request, qs, self.serializer_class)


class ProgramViewSet(_TenantMasterDataViewSet):
    model = Program
    serializer_class = ProgramSerializer
    queryset = Program.objects.none()


class CreditorViewSet(_TenantMasterDataViewSet):
    model = Creditor
    serializer_class = CreditorSerializer
    queryset = Creditor.objects.none()


class InsurerViewSet(_TenantMasterDataViewSet):
    model = Insurer
    serializer_class = InsurerSerializer
    queryset = Insurer.objects.none()
