# clinic_core/common/scope.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from rest_framework.exceptions import ValidationError

from clinic_core.iam.scope import MISSING_SCOPE_MSG, apply_scope_from_headers


@dataclass(frozen=True)
class RequestScope:
    tenant_id: UUID
    facility_id: UUID


def parse_uuid(value) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


def require_scope(request) -> RequestScope:
    """
    Returns the active (tenant_id, facility_id) for a DRF request.

    Prefers what middleware/auth already attached. Otherwise resolves the
    headers, checks membership and attaches the result.

    Raises:
      ValidationError  -> 400 (missing / invalid headers)
      PermissionDenied -> 403 (not a member of the facility)
    """
    t = getattr(request, "tenant_id", None)
    f = getattr(request, "facility_id", None)
    if t and f:
        tu, fu = parse_uuid(t), parse_uuid(f)
        if tu and fu:
            return RequestScope(tenant_id=tu, facility_id=fu)

    scope = apply_scope_from_headers(request, user=getattr(request, "user", None))
    if scope is None:
        raise ValidationError(MISSING_SCOPE_MSG)

    return RequestScope(tenant_id=scope.tenant_id, facility_id=scope.facility_id)
