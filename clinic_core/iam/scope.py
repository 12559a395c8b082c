# clinic_core/iam/scope.py
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from rest_framework.exceptions import PermissionDenied, ValidationError

from clinic_core.common.logging import bind_request_context
from clinic_core.iam.services.membership import is_user_member_of_facility


@dataclass(frozen=True)
class Scope:
    tenant_id: UUID
    facility_id: UUID


HDR_TENANT = "X-Tenant-Id"
HDR_FACILITY = "X-Facility-Id"

MISSING_SCOPE_MSG = "Missing scope headers. Provide X-Tenant-Id and X-Facility-Id."
INVALID_SCOPE_MSG = "Invalid scope headers. Provide valid UUIDs for X-Tenant-Id and X-Facility-Id."


def _get_header(request, name: str) -> str | None:
    headers = getattr(request, "headers", None)
    if headers is not None:
        v = headers.get(name)
        if v:
            return v
    meta = getattr(request, "META", {}) or {}
    return meta.get("HTTP_" + name.upper().replace("-", "_"))


def resolve_scope_from_headers(request) -> Scope | None:
    """
    Reads scope headers.
    - Neither present: None.
    - Only one present: 400 (missing).
    - Not UUIDs: 400 (invalid).
    """
    tenant_raw = _get_header(request, HDR_TENANT)
    facility_raw = _get_header(request, HDR_FACILITY)

    if not tenant_raw and not facility_raw:
        return None

    if not tenant_raw or not facility_raw:
        raise ValidationError(MISSING_SCOPE_MSG)

    try:
        return Scope(tenant_id=UUID(str(tenant_raw)), facility_id=UUID(str(facility_raw)))
    except ValueError:
        raise ValidationError(INVALID_SCOPE_MSG)


def assert_user_membership(user, scope: Scope) -> None:
    if not user or not getattr(user, "is_authenticated", False):
        raise PermissionDenied("Authentication required to set scope.")

    ok = is_user_member_of_facility(
        user_id=user.id,
        tenant_id=scope.tenant_id,
        facility_id=scope.facility_id,
    )
    if not ok:
        raise PermissionDenied("You do not have access to the selected facility.")


def apply_scope_from_headers(request, user=None) -> Scope | None:
    """
    Used by the auth layer and by require_scope().

    If scope headers are present: validates them, verifies membership and
    attaches request.scope / request.tenant_id / request.facility_id.
    If absent: returns None and does nothing.
    """
    scope = resolve_scope_from_headers(request)
    if scope is None:
        return None

    u = user or getattr(request, "user", None)
    assert_user_membership(u, scope)

    request.tenant_id = scope.tenant_id
    request.facility_id = scope.facility_id
    request.scope = scope
    bind_request_context(tenant_id=scope.tenant_id, facility_id=scope.facility_id, user_id=getattr(u, "id", None))
    return scope
