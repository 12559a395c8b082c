# clinic_core/patients/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import Q, QuerySet

from clinic_core.patients.identity import NATIONAL_ID_DIGITS, _NON_DIGITS, normalize_national_id
from clinic_core.patients.models import Patient


def get_patient(*, tenant_id: UUID, facility_id: UUID, patient_id: UUID) -> Patient:
    return Patient.objects.get(id=patient_id, tenant_id=tenant_id, facility_id=facility_id)


def _search_condition(term: str) -> Q:
    cond = (
        Q(full_name__icontains=term)
        | Q(mrn__iexact=term)
        | Q(phone__contains=term)
        | Q(identifiers__identifier_value__iexact=term)
    )
    # a Fayida id typed with or without separators
    if len(_NON_DIGITS.sub("", term)) == NATIONAL_ID_DIGITS:
        cond |= Q(national_id=normalize_national_id(term))
    return cond


def search_patients(*, tenant_id: UUID, facility_id: UUID, q: str | None = None) -> QuerySet[Patient]:
    """Active patients at the facility, newest first, optionally narrowed by a free-text term."""
    qs = Patient.objects.filter(tenant_id=tenant_id, facility_id=facility_id, is_active=True)

    term = (q or "").strip()
    if term:
        qs = qs.filter(_search_condition(term)).distinct()

    return qs.order_by("-created_at")
