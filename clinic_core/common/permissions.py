# clinic_core/common/permissions.py

from __future__ import annotations

from typing import Set

from rest_framework.permissions import BasePermission, SAFE_METHODS

from clinic_core.common.scope import require_scope

# Role codes (iam.Role.code). A user's role at a facility comes from FacilityMembership.
ROLE_SUPER_ADMIN = "super_admin"
ROLE_ADMIN = "admin"
ROLE_RECEPTIONIST = "receptionist"
ROLE_CASHIER = "cashier"
ROLE_FINANCE = "finance"
ROLE_NURSE = "nurse"
ROLE_INPATIENT_NURSE = "inpatient_nurse"
ROLE_DOCTOR = "doctor"
ROLE_LAB_TECHNICIAN = "lab_technician"
ROLE_IMAGING_TECHNICIAN = "imaging_technician"
ROLE_PHARMACIST = "pharmacist"

ALL_ROLES = (
    ROLE_SUPER_ADMIN,
    ROLE_ADMIN,
    ROLE_RECEPTIONIST,
    ROLE_CASHIER,
    ROLE_FINANCE,
    ROLE_NURSE,
    ROLE_INPATIENT_NURSE,
    ROLE_DOCTOR,
    ROLE_LAB_TECHNICIAN,
    ROLE_IMAGING_TECHNICIAN,
    ROLE_PHARMACIST,
)

STAFF = set(ALL_ROLES)
CLINICAL = {ROLE_NURSE, ROLE_INPATIENT_NURSE, ROLE_DOCTOR}
FRONT_DESK = {ROLE_RECEPTIONIST, ROLE_CASHIER, ROLE_FINANCE}


def user_roles(user, *, tenant_id, facility_id) -> Set[str]:
    """
    Role codes the user holds at (tenant, facility).
    Django superusers are treated as super_admin everywhere.
    """
    roles: Set[str] = set()

    if not user or not getattr(user, "is_authenticated", False):
        return roles

    if getattr(user, "is_superuser", False):
        roles.add(ROLE_SUPER_ADMIN)

    from clinic_core.iam.services.membership import get_role_codes

    roles.update(get_role_codes(user_id=user.id, tenant_id=tenant_id, facility_id=facility_id))
    return roles


class BaseRolePermission(BasePermission):
    """
    Role-based access for scoped endpoints.

    - Resolves scope first (400 missing/invalid headers, 403 non-member).
    - admin / super_admin bypass.
    - allowed_roles_per_action maps view actions to role codes.
    - Unknown SAFE actions fall back to list/retrieve; unknown writes are denied.
    """
    message = "You do not have permission to perform this action."

    allowed_roles_per_action = {
        "list": STAFF,
        "retrieve": STAFF,
        "create": {ROLE_ADMIN},
        "update": {ROLE_ADMIN},
        "partial_update": {ROLE_ADMIN},
        "destroy": {ROLE_ADMIN},
    }

    def _infer_action(self, request, view) -> str | None:
        action = getattr(view, "action", None)
        if action:
            return action

        kwargs = getattr(view, "kwargs", {}) or {}
        is_detail = "pk" in kwargs or "id" in kwargs

        method = request.method.upper()
        if method in ("GET", "HEAD", "OPTIONS"):
            return "retrieve" if is_detail else "list"
        if method == "POST":
            return "create"
        if method == "PUT":
            return "update"
        if method == "PATCH":
            return "partial_update"
        if method == "DELETE":
            return "destroy"
        return None

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not user or not getattr(user, "is_authenticated", False):
            return False

        scope = require_scope(request)
        roles = user_roles(user, tenant_id=scope.tenant_id, facility_id=scope.facility_id)
        request.role_codes = roles

        if roles & {ROLE_ADMIN, ROLE_SUPER_ADMIN}:
            return True

        action = self._infer_action(request, view)
        allowed = self.allowed_roles_per_action.get(action)

        if allowed is None and request.method in SAFE_METHODS:
            kwargs = getattr(view, "kwargs", {}) or {}
            read_action = "retrieve" if ("pk" in kwargs or "id" in kwargs) else "list"
            allowed = self.allowed_roles_per_action.get(read_action)

        if allowed is not None:
            return bool(roles & allowed)

        return False

    def has_object_permission(self, request, view, obj) -> bool:
        return self.has_permission(request, view)


class PatientPermission(BaseRolePermission):
    allowed_roles_per_action = {
        "list": STAFF,
        "retrieve": STAFF,
        "create": {ROLE_RECEPTIONIST, ROLE_NURSE, ROLE_DOCTOR},
        "update": {ROLE_RECEPTIONIST, ROLE_NURSE, ROLE_DOCTOR},
        "partial_update": {ROLE_RECEPTIONIST, ROLE_NURSE, ROLE_DOCTOR},
        "destroy": set(),
    }


class VisitPermission(BaseRolePermission):
    """
    Stage-level authorization for `advance` is decided by the journey rules,
    not here; this only admits staff to the endpoint.
    """
    allowed_roles_per_action = {
        "list": STAFF,
        "retrieve": STAFF,
        "events": STAFF,
        "register": {ROLE_RECEPTIONIST},
        "advance": STAFF,
        "cashier_queue": FRONT_DESK,
    }


class OrderPermission(BaseRolePermission):
    allowed_roles_per_action = {
        "list": STAFF,
        "retrieve": STAFF,
        "create": CLINICAL,
        "update": CLINICAL | {ROLE_LAB_TECHNICIAN, ROLE_IMAGING_TECHNICIAN, ROLE_PHARMACIST},
        "partial_update": CLINICAL | {ROLE_LAB_TECHNICIAN, ROLE_IMAGING_TECHNICIAN, ROLE_PHARMACIST},
        "destroy": set(),
    }


class BillingPermission(BaseRolePermission):
    allowed_roles_per_action = {
        "list": FRONT_DESK | {ROLE_DOCTOR},
        "retrieve": FRONT_DESK | {ROLE_DOCTOR},
        "settle": {ROLE_CASHIER, ROLE_FINANCE, ROLE_RECEPTIONIST},
        "allocations": {ROLE_CASHIER, ROLE_FINANCE, ROLE_RECEPTIONIST},
        "recalculate": {ROLE_CASHIER, ROLE_FINANCE},
    }


class MasterDataPermission(BaseRolePermission):
    """Catalog + payer master data: readable by staff, managed by admins."""
    allowed_roles_per_action = {
        "list": STAFF,
        "retrieve": STAFF,
        "create": set(),
        "update": set(),
        "partial_update": set(),
        "destroy": set(),
    }


class AuditPermission(BaseRolePermission):
    allowed_roles_per_action = {
        "list": {ROLE_FINANCE},
        "retrieve": {ROLE_FINANCE},
    }
