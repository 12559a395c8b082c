import pytest
from rest_framework.exceptions import ValidationError

from clinic_core.patients.models import Patient
from clinic_core.patients.services import PatientService

pytestmark = pytest.mark.django_db


def _create(tenant, facility, **fields):
    return PatientService.create_patient(
        tenant_id=tenant.id,
        facility_id=facility.id,
        actor_user_id=None,
        first_name="Hana",
        last_name="Tesfaye",
        **fields,
    )


def test_out_of_range_age_is_an_age_error(tenant, facility):
    with pytest.raises(ValidationError) as exc:
        _create(tenant, facility, age=200)

    assert "age" in exc.value.detail
    assert "mrn" not in exc.value.detail
    assert not Patient.objects.exists()


def test_update_rejects_out_of_range_age(tenant, facility):
    patient = _create(tenant, facility, age=30)

    with pytest.raises(ValidationError) as exc:
        PatientService.update_patient(
            tenant_id=tenant.id,
            facility_id=facility.id,
            actor_user_id=None,
            patient_id=patient.id,
            data={"age": -1},
        )

    assert "age" in exc.value.detail
    patient.refresh_from_db()
    assert patient.age == 30


def test_duplicate_mrn_still_reported_as_mrn(tenant, facility):
    _create(tenant, facility, mrn="MRN-DUP")

    with pytest.raises(ValidationError) as exc:
        _create(tenant, facility, mrn="MRN-DUP")

    assert "mrn" in exc.value.detail
