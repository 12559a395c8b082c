# clinic_core/iam/api/me.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from clinic_core.iam.api.serializers import MeResponseSerializer
from clinic_core.iam.scope import assert_user_membership, resolve_scope_from_headers
from clinic_core.iam.services.membership import get_facility_role, list_user_facilities


class MeView(APIView):
    """
    Current user and the facilities they can work at.

    Scope headers are optional here. When sent they must name a facility the
    user belongs to (403 otherwise) and the response reports the role held there.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["IAM"], responses={200: MeResponseSerializer})
    def get(self, request):
        user = request.user

        active_scope = None
        scope = getattr(request, "scope", None) or resolve_scope_from_headers(request)
        if scope is not None:
            assert_user_membership(user, scope)
            active_scope = {
                "tenant_id": str(scope.tenant_id),
                "facility_id": str(scope.facility_id),
                "role": get_facility_role(user_id=user.id, facility_id=scope.facility_id),
            }

        return Response(
            {
                "user": {
                    "id": user.id,
                    "username": user.get_username(),
                    "email": user.email or "",
                    "is_superuser": user.is_superuser,
                },
                "memberships": list_user_facilities(user.id),
                "active_scope": active_scope,
            },
            status=status.HTTP_200_OK,
        )
