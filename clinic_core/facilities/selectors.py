# clinic_core/facilities/selectors.py
from __future__ import annotations

from uuid import UUID

from clinic_core.facilities.models import Facility


def find_facility(*, facility_id: UUID, tenant_id: UUID | None = None) -> Facility | None:
    """Active facility with its tenant loaded; None if unknown, inactive or owned by another tenant."""
    qs = Facility.objects.select_related("tenant").filter(id=facility_id, is_active=True)
    if tenant_id is not None:
        qs = qs.filter(tenant_id=tenant_id)
    return qs.first()
