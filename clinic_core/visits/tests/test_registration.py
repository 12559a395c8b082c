import uuid
from decimal import Decimal

import pytest
from rest_framework.exceptions import NotFound, ValidationError

from clinic_core.audit.models import AuditEvent
from clinic_core.billing.models import BillingItem
from clinic_core.common.events import VISIT_REGISTERED
from clinic_core.patients.models import IdentifierType, Patient, PatientIdentifier
from clinic_core.payers.models import Insurer, Program
from clinic_core.visits.models import PatientStatusEvent, RoutingStatus, Visit
from clinic_core.visits.registration import RegistrationService

pytestmark = pytest.mark.django_db


@pytest.fixture
def register(tenant, facility, receptionist):
    def _register(**kwargs):
        params = {
            "tenant_id": tenant.id,
            "facility_id": facility.id,
            "actor_user_id": receptionist.id,
            "first_name": "Almaz",
            "last_name": "Tesfaye",
        }
        params.update(kwargs)
        return RegistrationService.register_patient_with_visit(**params)

    return _register


def test_registration_creates_patient_visit_and_bill(register, consultation_service):
    result = register(middle_name="Bekele", kebele="03", woreda="Bole", occupation="Teacher")

    assert result["full_name"] == "Almaz Bekele Tesfaye"
    assert result["warnings"] == []

    patient = Patient.objects.get(id=result["patient_id"])
    visit = Visit.objects.get(id=result["visit_id"])

    assert visit.patient_id == patient.id
    assert visit.status == "registered"
    assert visit.routing_status == RoutingStatus.COMPLETED
    assert [s["stage"] for s in visit.stages] == ["registered"]
    assert visit.stages[0]["completed_at"] is None
    assert visit.metadata["formVersion"] == "reception_intake_v1"
    assert visit.metadata["residence"] == "03, Bole"
    assert visit.metadata["occupation"] == "Teacher"
    assert visit.metadata["intakePatientId"] == str(patient.id)

    item = BillingItem.objects.get(visit=visit)
    assert item.service_id == consultation_service.id
    assert item.total_amount == Decimal("150.00")
    assert item.payment_status == "unpaid"

    ev = PatientStatusEvent.objects.get(visit=visit)
    assert ev.previous_status == ""
    assert ev.new_status == "registered"

    assert AuditEvent.objects.filter(event_code="visit.registered", entity_id=visit.id).exists()


def test_follow_up_visit_picks_follow_up_service(register, consultation_service, follow_up_service):
    result = register(visit_type="Follow-up")

    item = BillingItem.objects.get(visit_id=result["visit_id"])
    assert item.service_id == follow_up_service.id
    assert item.total_amount == Decimal("80.00")


def test_explicit_consultation_service_wins(register, consultation_service, follow_up_service):
    result = register(visit_type="New", consultation_service_id=follow_up_service.id)

    item = BillingItem.objects.get(visit_id=result["visit_id"])
    assert item.service_id == follow_up_service.id


@pytest.mark.parametrize("payment_type", ["free", "insured"])
def test_prepaid_consultation_is_billed_as_paid(register, consultation_service, payment_type):
    result = register(consultation_payment_type=payment_type)

    item = BillingItem.objects.get(visit_id=result["visit_id"])
    assert item.payment_status == "paid"
    assert item.payment_mode == payment_type
    assert item.paid_at is not None

    visit = Visit.objects.get(id=result["visit_id"])
    assert visit.status == "registered"


def test_national_id_is_normalised_and_indexed(register, consultation_service):
    result = register(national_id="1234 5678 9012 3456")

    patient = Patient.objects.get(id=result["patient_id"])
    assert patient.national_id == "1234-5678-9012-3456"
    assert PatientIdentifier.objects.filter(
        patient=patient,
        identifier_type=IdentifierType.FAYIDA_ID,
        identifier_value="1234-5678-9012-3456",
    ).exists()


def test_bad_national_id_aborts_registration(register, consultation_service):
    with pytest.raises(ValidationError):
        register(national_id="12345")

    assert not Patient.objects.exists()


def test_duplicate_national_id_is_rejected(register, consultation_service):
    register(national_id="1234567890123456")

    with pytest.raises(ValidationError):
        register(first_name="Other", national_id="1234-5678-9012-3456")

    assert Patient.objects.count() == 1


def test_unknown_payer_ids_become_warnings(register, tenant, consultation_service):
    program = Program.objects.create(tenant_id=tenant.id, name="Maternal health")
    retired = Insurer.objects.create(tenant_id=tenant.id, name="Old Insurer", is_active=False)

    result = register(program_id=program.id, creditor_id=uuid.uuid4(), insurer_id=retired.id)

    assert [w["field"] for w in result["warnings"]] == ["creditor_id", "insurer_id"]
    assert result["warnings"][0]["message"] == "Invalid or inactive creditor selected"

    visit = Visit.objects.get(id=result["visit_id"])
    assert visit.program_id == program.id
    assert visit.creditor_id is None
    assert visit.insurer_id is None


def test_missing_consultation_service_rolls_everything_back(register):
    with pytest.raises(ValidationError) as exc:
        register(visit_type="Returning")

    assert "No matching consultation service found for visit type Returning" in str(exc.value.detail)
    assert not Patient.objects.exists()
    assert not Visit.objects.exists()


def test_facility_must_belong_to_tenant(register, tenant):
    from clinic_core.facilities.models import Facility
    from clinic_core.tenants.models import Tenant

    elsewhere = Tenant.objects.create(code="elsewhere", name="Elsewhere")
    foreign = Facility.objects.create(tenant=elsewhere, code="x", name="X")

    with pytest.raises(NotFound):
        register(facility_id=foreign.id)

    with pytest.raises(NotFound):
        register(facility_id=uuid.uuid4())


def test_registration_is_published(register, consultation_service, capture_events):
    seen = capture_events(VISIT_REGISTERED)

    result = register()

    assert len(seen) == 1
    assert seen[0]["visit_id"] == str(result["visit_id"])
    assert seen[0]["patient_id"] == str(result["patient_id"])


# --- API ---


def test_api_register_returns_201(client_for, receptionist, consultation_service):
    payload = {
        "first_name": "Hana",
        "last_name": "Girma",
        "gender": "female",
        "age": 31,
        "phone": "+251911000000",
        "national_id": "1111-2222-3333-4444",
        "visit_type": "New",
        "reason": "Headache",
    }
    res = client_for(receptionist).post("/api/v1/visits/register/", payload, format="json")

    assert res.status_code == 201, res.content
    assert res.data["full_name"] == "Hana Girma"
    assert res.data["warnings"] == []

    visit = Visit.objects.get(id=res.data["visit_id"])
    assert visit.reason == "Headache"
    assert visit.created_by_id == receptionist.id


def test_api_register_ignores_client_mrn(client_for, receptionist, consultation_service):
    res = client_for(receptionist).post(
        "/api/v1/visits/register/",
        {"first_name": "Hana", "last_name": "Girma", "mrn": "MRN-MINE"},
        format="json",
    )

    assert res.status_code == 201
    assert Patient.objects.get(id=res.data["patient_id"]).mrn != "MRN-MINE"


def test_api_register_forbidden_for_nurse(client_for, nurse, consultation_service):
    res = client_for(nurse).post(
        "/api/v1/visits/register/",
        {"first_name": "Hana", "last_name": "Girma"},
        format="json",
    )

    assert res.status_code == 403
    assert "error" in res.json()


def test_api_register_without_consultation_service_is_400(client_for, receptionist):
    res = client_for(receptionist).post(
        "/api/v1/visits/register/",
        {"first_name": "Hana", "last_name": "Girma"},
        format="json",
    )

    assert res.status_code == 400
    assert res.json()["error"]["code"] == "validation_error"


def test_suspended_tenant_cannot_register(register, tenant, consultation_service):
    tenant.status = "suspended"
    tenant.save(update_fields=["status"])

    with pytest.raises(NotFound) as exc:
        register()

    assert "Tenant ID not found" in str(exc.value.detail)
