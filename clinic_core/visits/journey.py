# clinic_core/visits/journey.py
"""
Visit journey rules.

Two tables drive every stage change:

  STAGE_EXIT_ROLES     which roles may move a visit out of a stage
  ALLOWED_TRANSITIONS  which stages a visit may move to from a stage

Both are pure data; the services in visits.services apply them.
"""
from __future__ import annotations

from typing import Dict, FrozenSet, Optional

from clinic_core.visits.models import Visit, VisitStatus as S

SUPER_ADMIN = "super_admin"

STAGE_EXIT_ROLES: Dict[str, FrozenSet[str]] = {
    S.REGISTERED: frozenset({"receptionist"}),
    S.PAYING_CONSULTATION: frozenset({"receptionist", "cashier"}),
    S.AT_TRIAGE: frozenset({"nurse"}),
    S.VITALS_TAKEN: frozenset({"nurse"}),
    S.WITH_DOCTOR: frozenset({"doctor"}),
    S.PAYING_DIAGNOSIS: frozenset({"cashier"}),
    S.AT_LAB: frozenset({"lab_technician"}),
    S.AT_IMAGING: frozenset({"imaging_technician"}),
    S.PAYING_PHARMACY: frozenset({"cashier"}),
    S.AT_PHARMACY: frozenset({"pharmacist"}),
    S.ADMITTED: frozenset({"inpatient_nurse", "doctor"}),
    S.DISCHARGED: frozenset(),
    S.CANCELLED: frozenset(),
}

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    S.REGISTERED: frozenset({S.PAYING_CONSULTATION, S.AT_TRIAGE, S.VITALS_TAKEN, S.CANCELLED}),
    S.PAYING_CONSULTATION: frozenset({S.AT_TRIAGE, S.VITALS_TAKEN, S.CANCELLED}),
    S.AT_TRIAGE: frozenset({S.VITALS_TAKEN, S.WITH_DOCTOR, S.CANCELLED}),
    S.VITALS_TAKEN: frozenset({S.WITH_DOCTOR, S.CANCELLED}),
    S.WITH_DOCTOR: frozenset({
        S.PAYING_DIAGNOSIS,
        S.AT_LAB,
        S.AT_IMAGING,
        S.PAYING_PHARMACY,
        S.AT_PHARMACY,
        S.ADMITTED,
        S.DISCHARGED,
        S.CANCELLED,
    }),
    S.PAYING_DIAGNOSIS: frozenset({S.AT_LAB, S.AT_IMAGING, S.AT_PHARMACY, S.WITH_DOCTOR, S.CANCELLED}),
    S.AT_LAB: frozenset({S.AT_IMAGING, S.PAYING_PHARMACY, S.AT_PHARMACY, S.WITH_DOCTOR, S.CANCELLED}),
    S.AT_IMAGING: frozenset({S.AT_LAB, S.PAYING_PHARMACY, S.AT_PHARMACY, S.WITH_DOCTOR, S.CANCELLED}),
    S.PAYING_PHARMACY: frozenset({S.AT_PHARMACY, S.CANCELLED}),
    S.AT_PHARMACY: frozenset({S.WITH_DOCTOR, S.DISCHARGED}),
    S.ADMITTED: frozenset({S.DISCHARGED}),
    S.DISCHARGED: frozenset(),
    S.CANCELLED: frozenset(),
}

TERMINAL_STAGES = frozenset(stage for stage, nxt in ALLOWED_TRANSITIONS.items() if not nxt)

PAYMENT_STAGES = frozenset({S.PAYING_CONSULTATION, S.PAYING_DIAGNOSIS, S.PAYING_PHARMACY})

VALID_STAGES = frozenset(S.values)


def current_stage(visit: Visit) -> str:
    """Last journey stage; the status column when the timeline is empty."""
    stages = visit.stages
    if stages and stages[-1].get("stage"):
        return stages[-1]["stage"]
    return visit.status


def exit_denial_reason(role: Optional[str], stage: str) -> Optional[str]:
    """
    None when `role` may move a visit out of `stage`, otherwise the message
    explaining why not.
    """
    if stage in TERMINAL_STAGES:
        return f"Cannot advance from {stage} state"

    if role == SUPER_ADMIN:
        return None

    if role not in STAGE_EXIT_ROLES.get(stage, frozenset()):
        return f'User role "{role}" is not authorized to advance from stage "{stage}"'

    return None


def is_allowed_transition(from_stage: str, to_stage: str) -> bool:
    return to_stage in ALLOWED_TRANSITIONS.get(from_stage, frozenset())
