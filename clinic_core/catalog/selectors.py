# clinic_core/catalog/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import QuerySet

from clinic_core.catalog.models import MedicalService, ServiceCategory

# Visit type -> substring expected in the consultation service name.
CONSULTATION_NAME_BY_VISIT_TYPE = {
    "New": "new patient",
    "Follow-up": "follow-up",
    "Returning": "returning patient",
}


def active_services(*, tenant_id: UUID, facility_id: UUID, category: str | None = None) -> QuerySet[MedicalService]:
    qs = MedicalService.objects.filter(tenant_id=tenant_id, facility_id=facility_id, is_active=True)
    if category:
        qs = qs.filter(category=category)
    return qs.order_by("category", "name")


def find_consultation_service(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    visit_type: str,
    service_id: UUID | None = None,
) -> MedicalService | None:
    """
    An explicitly chosen service wins when it is active at the facility.
    Otherwise the consultation whose name matches the visit type.
    """
    base = active_services(tenant_id=tenant_id, facility_id=facility_id)

    if service_id:
        chosen = base.filter(id=service_id).first()
        if chosen is not None:
            return chosen

    needle = CONSULTATION_NAME_BY_VISIT_TYPE.get(visit_type)
    if not needle:
        return None

    return (
        base.filter(category=ServiceCategory.CONSULTATION, name__icontains=needle)
        .order_by("created_at")
        .first()
    )
