# conftest.py
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from clinic_core.catalog.models import MedicalService, ServiceCategory
from clinic_core.facilities.models import Facility
from clinic_core.patients.models import Patient
from clinic_core.tenants.models import Tenant
from clinic_core.visits.models import Visit


def scope_headers(tenant, facility):
    """
    Standard scope headers used by the scope resolver.
    DRF test client requires HTTP_ prefix.
    """
    return {
        "HTTP_X_TENANT_ID": str(tenant.id),
        "HTTP_X_FACILITY_ID": str(facility.id),
    }


@pytest.fixture
def tenant(db):
    return Tenant.objects.create(code="test-tenant", name="Test Tenant")


@pytest.fixture
def facility(db, tenant):
    return Facility.objects.create(tenant=tenant, code="main", name="Main Facility")


@pytest.fixture
def other_facility(db, tenant):
    return Facility.objects.create(tenant=tenant, code="branch", name="Branch Facility")


@pytest.fixture
def headers(tenant, facility):
    return scope_headers(tenant, facility)


@pytest.fixture
def make_user(db, tenant, facility):
    """
    make_user("cashier") -> auth user with an active membership at `facility`.

      auth_user -> UserProfile -> FacilityMembership(role)
    """
    from clinic_core.iam.models import FacilityMembership, Role, UserProfile

    User = get_user_model()

    def _make(role_code: str, *, username: str | None = None, at_facility=None, **user_fields):
        fac = at_facility or facility
        user = User.objects.create_user(
            username=username or f"{role_code}-{User.objects.count() + 1}",
            password="testpass",
            is_active=True,
            **user_fields,
        )
        profile = UserProfile.objects.create(user=user, tenant=tenant, default_facility=fac, is_active=True)
        role, _ = Role.objects.get_or_create(
            tenant=tenant,
            code=role_code,
            defaults={"name": role_code.replace("_", " ").title(), "is_active": True},
        )
        FacilityMembership.objects.create(
            tenant=tenant,
            facility=fac,
            user_profile=profile,
            role=role,
            is_primary=True,
            is_active=True,
        )
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user("admin", username="testuser")


@pytest.fixture
def receptionist(make_user):
    return make_user("receptionist")


@pytest.fixture
def cashier(make_user):
    return make_user("cashier")


@pytest.fixture
def nurse(make_user):
    return make_user("nurse")


@pytest.fixture
def doctor(make_user):
    return make_user("doctor")


@pytest.fixture
def client_for(headers):
    """client_for(user) -> APIClient authenticated as `user` with scope headers set."""
    def _client(user, *, with_scope: bool = True):
        c = APIClient()
        c.force_authenticate(user=user)
        if with_scope:
            c.credentials(**headers)
        return c

    return _client


@pytest.fixture
def api_client(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


@pytest.fixture
def consultation_service(tenant, facility):
    return MedicalService.objects.create(
        tenant_id=tenant.id,
        facility_id=facility.id,
        code="consult-new",
        name="New Patient Consultation",
        category=ServiceCategory.CONSULTATION,
        price=Decimal("150.00"),
    )


@pytest.fixture
def follow_up_service(tenant, facility):
    return MedicalService.objects.create(
        tenant_id=tenant.id,
        facility_id=facility.id,
        code="consult-follow-up",
        name="Follow-up Consultation",
        category=ServiceCategory.CONSULTATION,
        price=Decimal("80.00"),
    )


@pytest.fixture
def patient(tenant, facility):
    return Patient.objects.create(
        tenant_id=tenant.id,
        facility_id=facility.id,
        first_name="Abebe",
        last_name="Kebede",
        full_name="Abebe Kebede",
        mrn="MRN-TEST0001",
    )


@pytest.fixture
def make_visit(tenant, facility, patient):
    """make_visit("paying_diagnosis") -> visit whose journey holds one open stage."""
    def _make(stage: str = "registered", **fields):
        now = timezone.now().isoformat()
        return Visit.objects.create(
            tenant_id=tenant.id,
            facility_id=facility.id,
            patient=patient,
            status=stage,
            journey_timeline={
                "stages": [
                    {
                        "stage": stage,
                        "arrived_at": now,
                        "start_time": now,
                        "completed_at": None,
                        "end_time": None,
                        "wait_time_minutes": None,
                        "completed_by": None,
                        "started_by": None,
                    }
                ]
            },
            **fields,
        )

    return _make


@pytest.fixture
def visit(make_visit):
    return make_visit("registered")


@pytest.fixture
def capture_events():
    """capture_events(VISIT_STAGE_CHANGED) -> list that fills with published payloads."""
    from clinic_core.common import events

    added = []

    def _capture(event_name: str):
        seen = []
        handler = events.subscribe(event_name)(seen.append)
        added.append((event_name, handler))
        return seen

    yield _capture

    for event_name, handler in added:
        events._registry[event_name].remove(handler)
