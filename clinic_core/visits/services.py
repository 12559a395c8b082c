# clinic_core/visits/services.py
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional
from uuid import UUID

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework.exceptions import ValidationError

from clinic_core.common.events import VISIT_STAGE_CHANGED, publish
from clinic_core.common.logging import get_logger, log_domain_event
from clinic_core.iam.services.membership import get_facility_role
from clinic_core.visits import journey
from clinic_core.visits.models import PatientStatusEvent, RoutingStatus, StatusEventType, Visit

logger = get_logger(__name__)


@dataclass(frozen=True)
class AdvanceResult:
    success: bool
    new_stage: Optional[str] = None
    previous_stage: Optional[str] = None
    routing_status: Optional[str] = None
    error: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


def _minutes_between(start_iso: Optional[str], end) -> Optional[float]:
    start = parse_datetime(start_iso) if start_iso else None
    if start is None:
        return None
    return round((end - start).total_seconds() / 60, 2)


def record_status_event(
    *,
    visit: Visit,
    event_key: str,
    previous_status: str,
    new_status: str,
    event_type: str = StatusEventType.STATUS_CHANGE,
    changed_by_id: int | None = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> PatientStatusEvent:
    """
    Idempotent write into the status event log, in the caller's transaction.
    """
    event, _ = PatientStatusEvent.objects.get_or_create(
        visit=visit,
        event_key=event_key,
        defaults={
            "tenant_id": visit.tenant_id,
            "facility_id": visit.facility_id,
            "patient_id": visit.patient_id,
            "event_type": event_type,
            "previous_status": previous_status or "",
            "new_status": new_status,
            "changed_by_id": changed_by_id,
            "metadata": metadata or {},
        },
    )
    return event


class JourneyService:
    """
    Writes to the visit journey. Every method runs in one transaction and
    holds a row lock on the visit while it mutates the timeline.
    """

    @staticmethod
    def _lock_visit(visit_id: UUID) -> Visit:
        return Visit.objects.select_for_update().get(id=visit_id)

    @staticmethod
    def _append(
        visit: Visit,
        *,
        stage: str,
        user_id: int | None,
        event_type: str = StatusEventType.STATUS_CHANGE,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Visit:
        stages = visit.stages
        last = stages[-1] if stages else None

        if last is not None and last.get("stage") == stage and not last.get("end_time"):
            return visit

        now = timezone.now()
        now_iso = now.isoformat()
        arrived_at = now_iso

        if last is not None:
            if not last.get("completed_at") and not last.get("end_time"):
                last = dict(last)
                last["completed_at"] = now_iso
                last["end_time"] = now_iso
                last["wait_time_minutes"] = _minutes_between(last.get("arrived_at") or last.get("start_time"), now)
                if user_id is not None:
                    last["completed_by"] = str(user_id)
                stages[-1] = last
            arrived_at = last.get("completed_at") or last.get("end_time") or now_iso

        stages.append(
            {
                "stage": stage,
                "arrived_at": arrived_at,
                "start_time": arrived_at,
                "completed_at": None,
                "end_time": None,
                "wait_time_minutes": None,
                "completed_by": None,
                "started_by": str(user_id) if user_id is not None else None,
            }
        )

        previous_status = visit.status
        visit.journey_timeline = {**(visit.journey_timeline or {}), "stages": stages}
        visit.status = stage
        visit.status_updated_at = now
        visit.save(update_fields=["journey_timeline", "status", "status_updated_at", "updated_at"])

        record_status_event(
            visit=visit,
            event_key=f"{event_type}:{len(stages)}:{stage}",
            previous_status=previous_status,
            new_status=stage,
            event_type=event_type,
            changed_by_id=user_id,
            metadata=metadata,
        )
        return visit

    @staticmethod
    @transaction.atomic
    def append_journey_stage(*, visit_id: UUID, stage: str, user_id: int | None = None) -> Visit:
        """
        Closes the open stage (stamping its wait time) and opens `stage`.
        Appending the stage that is already open is a no-op.
        """
        if stage not in journey.VALID_STAGES:
            raise ValidationError({"stage": f'Invalid stage "{stage}"'})

        visit = JourneyService._lock_visit(visit_id)
        return JourneyService._append(visit, stage=stage, user_id=user_id)

    @staticmethod
    @transaction.atomic
    def advance_patient_stage(*, visit_id: UUID, next_stage: str, user_id: int) -> AdvanceResult:
        """
        Role- and transition-checked stage change.

        Business rejections come back as AdvanceResult(success=False, error=...)
        rather than exceptions so callers can show them inline.
        """
        visit = Visit.objects.select_for_update().filter(id=visit_id).first()
        if visit is None:
            return JourneyService._reject(visit_id, "Visit not found")

        if not get_user_model().objects.filter(id=user_id, is_active=True).exists():
            return JourneyService._reject(visit_id, "User not found")

        role = get_facility_role(user_id=user_id, facility_id=visit.facility_id)
        if role is None:
            return JourneyService._reject(visit_id, "User not found")

        previous_stage = journey.current_stage(visit)

        if next_stage not in journey.VALID_STAGES:
            return JourneyService._reject(visit_id, f'Invalid stage "{next_stage}"')

        denial = journey.exit_denial_reason(role, previous_stage)
        if denial:
            return JourneyService._reject(visit_id, denial, role=role)

        if not journey.is_allowed_transition(previous_stage, next_stage):
            return JourneyService._reject(
                visit_id,
                f"Invalid transition from {previous_stage} to {next_stage}",
                role=role,
            )

        JourneyService._append(visit, stage=next_stage, user_id=user_id, metadata={"role": role})

        visit.routing_status = RoutingStatus.COMPLETED
        visit.save(update_fields=["routing_status", "updated_at"])

        publish(
            VISIT_STAGE_CHANGED,
            {
                "tenant_id": str(visit.tenant_id),
                "facility_id": str(visit.facility_id),
                "visit_id": str(visit.id),
                "patient_id": str(visit.patient_id),
                "previous_stage": previous_stage,
                "new_stage": next_stage,
                "actor_user_id": user_id,
                "role": role,
            },
        )
        log_domain_event(
            logger,
            "visit.stage_advanced",
            visit_id=str(visit.id),
            previous_stage=previous_stage,
            new_stage=next_stage,
            role=role,
        )

        return AdvanceResult(
            success=True,
            new_stage=next_stage,
            previous_stage=previous_stage,
            routing_status=RoutingStatus.COMPLETED.value,
        )

    @staticmethod
    def _reject(visit_id, error: str, *, role: str | None = None) -> AdvanceResult:
        log_domain_event(
            logger,
            "visit.stage_advance_rejected",
            level=logging.WARNING,
            result="rejected",
            visit_id=str(visit_id),
            role=role,
            error=error,
        )
        return AdvanceResult(success=False, error=error)
