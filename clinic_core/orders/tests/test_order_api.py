import uuid
from decimal import Decimal

import pytest

from clinic_core.audit.models import AuditEvent
from clinic_core.orders.models import ImagingOrder, LabOrder, MedicationOrder
from clinic_core.visits.models import PatientStatusEvent, StatusEventType

pytestmark = pytest.mark.django_db


def test_doctor_places_lab_order(client_for, doctor, make_visit):
    v = make_visit("with_doctor")

    res = client_for(doctor).post(
        "/api/v1/orders/lab/",
        {"visit_id": str(v.id), "test_name": "CBC", "test_code": "CBC-01", "amount": "120.00", "priority": "urgent"},
        format="json",
    )

    assert res.status_code == 201, res.content
    assert res.data["test_name"] == "CBC"
    assert res.data["status"] == "pending"
    assert res.data["payment_status"] == "unpaid"
    assert res.data["priority"] == "urgent"

    order = LabOrder.objects.get(id=res.data["id"])
    assert order.patient_id == v.patient_id
    assert order.ordered_by_id == doctor.id
    assert order.amount == Decimal("120.00")

    ev = PatientStatusEvent.objects.get(visit=v)
    assert ev.event_type == StatusEventType.ORDER_PLACED
    assert ev.new_status == "with_doctor"
    assert ev.metadata["order_id"] == str(order.id)

    assert AuditEvent.objects.filter(event_code="order.lab_test.placed", entity_id=order.id).exists()


def test_imaging_and_medication_orders(client_for, doctor, make_visit):
    v = make_visit("with_doctor")
    c = client_for(doctor)

    img = c.post(
        "/api/v1/orders/imaging/",
        {"visit_id": str(v.id), "study_name": "Chest X-ray", "body_part": "chest", "amount": "300"},
        format="json",
    )
    med = c.post(
        "/api/v1/orders/medication/",
        {
            "visit_id": str(v.id),
            "medication_name": "Amoxicillin",
            "dosage": "500mg",
            "frequency": "tid",
            "duration": "7 days",
            "quantity": 21,
            "amount": "45.00",
        },
        format="json",
    )

    assert img.status_code == 201, img.content
    assert med.status_code == 201, med.content
    assert ImagingOrder.objects.get(id=img.data["id"]).body_part == "chest"
    assert MedicationOrder.objects.get(id=med.data["id"]).description == "Amoxicillin 500mg"


def test_negative_amount_rejected(client_for, doctor, make_visit):
    v = make_visit("with_doctor")

    res = client_for(doctor).post(
        "/api/v1/orders/lab/",
        {"visit_id": str(v.id), "test_name": "CBC", "amount": "-1.00"},
        format="json",
    )

    assert res.status_code == 400


def test_terminal_visit_takes_no_orders(client_for, doctor, make_visit):
    v = make_visit("discharged")

    res = client_for(doctor).post("/api/v1/orders/lab/", {"visit_id": str(v.id), "test_name": "CBC"}, format="json")

    assert res.status_code == 409


def test_unknown_visit_is_404(client_for, doctor):
    res = client_for(doctor).post("/api/v1/orders/lab/", {"visit_id": str(uuid.uuid4()), "test_name": "CBC"}, format="json")

    assert res.status_code == 404


def test_cashier_cannot_place_orders(client_for, cashier, make_visit):
    v = make_visit("with_doctor")

    res = client_for(cashier).post("/api/v1/orders/lab/", {"visit_id": str(v.id), "test_name": "CBC"}, format="json")

    assert res.status_code == 403


def test_list_filters(client_for, doctor, make_visit):
    v1 = make_visit("with_doctor")
    v2 = make_visit("with_doctor")
    for v, name in ((v1, "CBC"), (v1, "ESR"), (v2, "Malaria RDT")):
        LabOrder.objects.create(
            tenant_id=v.tenant_id, facility_id=v.facility_id, visit=v, patient_id=v.patient_id, test_name=name
        )
    LabOrder.objects.filter(test_name="ESR").update(payment_status="paid")
    c = client_for(doctor)

    assert c.get("/api/v1/orders/lab/").data["count"] == 3
    assert c.get("/api/v1/orders/lab/", {"visit": str(v1.id)}).data["count"] == 2
    assert c.get("/api/v1/orders/lab/", {"payment_status": "paid"}).data["count"] == 1
    assert c.get("/api/v1/orders/lab/", {"visit": "nope"}).status_code == 400


def test_status_moves(client_for, make_user, make_visit):
    tech = make_user("lab_technician")
    v = make_visit("at_lab")
    order = LabOrder.objects.create(
        tenant_id=v.tenant_id, facility_id=v.facility_id, visit=v, patient_id=v.patient_id, test_name="CBC"
    )
    c = client_for(tech)
    url = f"/api/v1/orders/lab/{order.id}/"

    assert c.patch(url, {"status": "in_progress"}, format="json").status_code == 200
    assert c.patch(url, {"status": "in_progress"}, format="json").status_code == 200
    assert c.patch(url, {"status": "completed"}, format="json").data["status"] == "completed"

    res = c.patch(url, {"status": "pending"}, format="json")
    assert res.status_code == 409

    assert AuditEvent.objects.filter(event_code="order.lab_test.status_changed", entity_id=order.id).count() == 2


def test_retrieve_other_facility_order_is_404(client_for, doctor, make_visit, other_facility):
    v = make_visit("with_doctor")
    order = LabOrder.objects.create(
        tenant_id=v.tenant_id, facility_id=other_facility.id, visit=v, patient_id=v.patient_id, test_name="CBC"
    )

    res = client_for(doctor).get(f"/api/v1/orders/lab/{order.id}/")

    assert res.status_code == 404
