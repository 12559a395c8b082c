from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from clinic_core.visits.models import PatientStatusEvent, StatusEventType
from clinic_core.visits.services import JourneyService

pytestmark = pytest.mark.django_db


def test_append_closes_open_stage_and_opens_new_one(visit, nurse):
    v = JourneyService.append_journey_stage(visit_id=visit.id, stage="at_triage", user_id=nurse.id)

    stages = v.stages
    assert [s["stage"] for s in stages] == ["registered", "at_triage"]
    assert stages[0]["completed_at"] is not None
    assert stages[0]["end_time"] == stages[0]["completed_at"]
    assert stages[0]["completed_by"] == str(nurse.id)
    assert stages[1]["arrived_at"] == stages[0]["completed_at"]
    assert stages[1]["completed_at"] is None
    assert stages[1]["started_by"] == str(nurse.id)
    assert v.status == "at_triage"


def test_wait_time_is_minutes_spent_in_closed_stage(visit):
    arrived = (timezone.now() - timedelta(minutes=30)).isoformat()
    visit.journey_timeline["stages"][0]["arrived_at"] = arrived
    visit.journey_timeline["stages"][0]["start_time"] = arrived
    visit.save(update_fields=["journey_timeline"])

    v = JourneyService.append_journey_stage(visit_id=visit.id, stage="at_triage")

    wait = v.stages[0]["wait_time_minutes"]
    assert 29.9 <= wait <= 31


def test_reappending_open_stage_is_noop(visit):
    JourneyService.append_journey_stage(visit_id=visit.id, stage="at_triage")
    v = JourneyService.append_journey_stage(visit_id=visit.id, stage="at_triage")

    assert [s["stage"] for s in v.stages] == ["registered", "at_triage"]
    assert PatientStatusEvent.objects.filter(visit=visit).count() == 1


def test_completed_stage_can_be_entered_again(visit):
    JourneyService.append_journey_stage(visit_id=visit.id, stage="with_doctor")
    JourneyService.append_journey_stage(visit_id=visit.id, stage="at_lab")
    v = JourneyService.append_journey_stage(visit_id=visit.id, stage="with_doctor")

    assert [s["stage"] for s in v.stages] == ["registered", "with_doctor", "at_lab", "with_doctor"]
    assert v.status == "with_doctor"


def test_append_records_status_event(visit, nurse):
    JourneyService.append_journey_stage(visit_id=visit.id, stage="at_triage", user_id=nurse.id)

    ev = PatientStatusEvent.objects.get(visit=visit)
    assert ev.previous_status == "registered"
    assert ev.new_status == "at_triage"
    assert ev.event_type == StatusEventType.STATUS_CHANGE
    assert ev.changed_by_id == nurse.id


def test_unknown_stage_rejected(visit):
    with pytest.raises(ValidationError):
        JourneyService.append_journey_stage(visit_id=visit.id, stage="in_space")


def test_status_events_are_immutable(visit):
    JourneyService.append_journey_stage(visit_id=visit.id, stage="at_triage")
    ev = PatientStatusEvent.objects.get(visit=visit)

    from django.core.exceptions import ValidationError as DjangoValidationError

    ev.metadata = {"tampered": True}
    with pytest.raises(DjangoValidationError):
        ev.save()
    with pytest.raises(DjangoValidationError):
        ev.delete()
