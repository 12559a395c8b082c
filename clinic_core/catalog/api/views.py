from __future__ import annotations

from rest_framework import viewsets

from clinic_core.catalog.api.serializers import MedicalServiceSerializer
from clinic_core.catalog.models import MedicalService
from clinic_core.catalog.selectors import active_services
from clinic_core.common.api.pagination import paginate
from clinic_core.common.permissions import MasterDataPermission
from clinic_core.common.scope import require_scope


class MedicalServiceViewSet(viewsets.ViewSet):
    permission_classes = [MasterDataPermission]
    serializer_class = MedicalServiceSerializer
    queryset = MedicalService.objects.none()

    def list(self, request):
        scope = require_scope(request)
        qs = active_services(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            category=request.query_params.get("category") or None,
        )
        return paginate(request, qs, MedicalServiceSerializer)
