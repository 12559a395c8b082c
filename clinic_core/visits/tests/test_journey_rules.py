import pytest

from clinic_core.visits import journey
from clinic_core.visits.models import VisitStatus as S


@pytest.mark.parametrize(
    "role, stage",
    [
        ("receptionist", S.REGISTERED),
        ("cashier", S.PAYING_CONSULTATION),
        ("receptionist", S.PAYING_CONSULTATION),
        ("nurse", S.AT_TRIAGE),
        ("doctor", S.WITH_DOCTOR),
        ("lab_technician", S.AT_LAB),
        ("imaging_technician", S.AT_IMAGING),
        ("pharmacist", S.AT_PHARMACY),
        ("inpatient_nurse", S.ADMITTED),
        ("doctor", S.ADMITTED),
    ],
)
def test_role_may_leave_its_own_stage(role, stage):
    assert journey.exit_denial_reason(role, stage) is None


def test_wrong_role_gets_named_in_denial():
    msg = journey.exit_denial_reason("nurse", S.REGISTERED)
    assert msg == 'User role "nurse" is not authorized to advance from stage "registered"'


def test_super_admin_bypasses_role_table():
    for stage in journey.STAGE_EXIT_ROLES:
        if stage in journey.TERMINAL_STAGES:
            continue
        assert journey.exit_denial_reason("super_admin", stage) is None


@pytest.mark.parametrize("stage", [S.DISCHARGED, S.CANCELLED])
def test_terminal_stages_block_everyone(stage):
    assert journey.exit_denial_reason("super_admin", stage) == f"Cannot advance from {stage} state"
    assert journey.exit_denial_reason("doctor", stage) == f"Cannot advance from {stage} state"


def test_terminal_stages_are_exactly_discharged_and_cancelled():
    assert journey.TERMINAL_STAGES == {S.DISCHARGED, S.CANCELLED}


def test_every_status_has_rules():
    assert set(journey.STAGE_EXIT_ROLES) == set(S.values)
    assert set(journey.ALLOWED_TRANSITIONS) == set(S.values)


@pytest.mark.parametrize(
    "src, dst, ok",
    [
        (S.REGISTERED, S.PAYING_CONSULTATION, True),
        (S.REGISTERED, S.WITH_DOCTOR, False),
        (S.WITH_DOCTOR, S.PAYING_DIAGNOSIS, True),
        (S.WITH_DOCTOR, S.REGISTERED, False),
        (S.PAYING_PHARMACY, S.AT_PHARMACY, True),
        (S.PAYING_PHARMACY, S.WITH_DOCTOR, False),
        (S.AT_PHARMACY, S.DISCHARGED, True),
        (S.AT_PHARMACY, S.CANCELLED, False),
        (S.ADMITTED, S.DISCHARGED, True),
        (S.DISCHARGED, S.WITH_DOCTOR, False),
    ],
)
def test_transition_table(src, dst, ok):
    assert journey.is_allowed_transition(src, dst) is ok
