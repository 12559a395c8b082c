# clinic_core/audit/api/views.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import viewsets

from clinic_core.audit.api.serializers import AuditEventFilterSerializer, AuditEventSerializer
from clinic_core.audit.models import AuditEvent
from clinic_core.audit.selectors import list_audit_events
from clinic_core.common.api.pagination import paginate
from clinic_core.common.permissions import AuditPermission
from clinic_core.common.scope import require_scope


@extend_schema(tags=["Audit"])
class AuditEventViewSet(viewsets.ViewSet):
    """Read-only audit trail for finance and administrators."""

    permission_classes = [AuditPermission]
    serializer_class = AuditEventSerializer
    queryset = AuditEvent.objects.none()

    @extend_schema(parameters=[AuditEventFilterSerializer], responses={200: AuditEventSerializer(many=True)})
    def list(self, request):
        scope = require_scope(request)

        filters = AuditEventFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)

        qs = list_audit_events(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            **filters.validated_data,
        )
        return paginate(request, qs, AuditEventSerializer)
