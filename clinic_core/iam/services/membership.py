# clinic_core/iam/services/membership.py
from __future__ import annotations

from uuid import UUID

from clinic_core.iam.models import FacilityMembership


def _active_memberships():
    return FacilityMembership.objects.filter(
        is_active=True,
        user_profile__is_active=True,
        role__is_active=True,
    )


def list_user_facilities(user_id: int) -> list[dict]:
    """
    Facility memberships for the /me response.

      auth_user -> UserProfile -> FacilityMembership -> Facility (+ Tenant, Role)
    """
    qs = (
        _active_memberships()
        .select_related("facility", "tenant", "role")
        .filter(user_profile__user_id=user_id)
        .order_by("-is_primary", "facility__name")
    )

    return [
        {
            "tenant_id": str(m.tenant_id),
            "tenant_code": m.tenant.code,
            "facility_id": str(m.facility_id),
            "facility_code": m.facility.code,
            "facility_name": m.facility.name,
            "role_code": m.role.code,
            "role_name": m.role.name,
            "is_primary": m.is_primary,
        }
        for m in qs
    ]


def is_user_member_of_facility(*, user_id: int, tenant_id: UUID, facility_id: UUID) -> bool:
    """
    Single source of truth for scope enforcement.
    """
    return _active_memberships().filter(
        tenant_id=tenant_id,
        facility_id=facility_id,
        user_profile__user_id=user_id,
    ).exists()


def get_role_codes(*, user_id: int, tenant_id: UUID, facility_id: UUID) -> set[str]:
    return set(
        _active_memberships()
        .filter(tenant_id=tenant_id, facility_id=facility_id, user_profile__user_id=user_id)
        .values_list("role__code", flat=True)
    )


def get_facility_role(*, user_id: int, facility_id: UUID) -> str | None:
    """
    The role code a user acts with at a facility, or None if they have no
    active membership there. Superusers act as super_admin.
    """
    m = (
        _active_memberships()
        .select_related("role", "user_profile__user")
        .filter(facility_id=facility_id, user_profile__user_id=user_id)
        .first()
    )
    if m is not None:
        if m.user_profile.user.is_superuser:
            return "super_admin"
        return m.role.code

    from django.contrib.auth import get_user_model

    user = get_user_model().objects.filter(id=user_id, is_active=True).first()
    if user is not None and user.is_superuser:
        return "super_admin"
    return None
