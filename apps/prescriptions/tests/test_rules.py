from datetime import date

import pytest
from rest_framework.exceptions import ValidationError

from apps.prescriptions import rules
from apps.prescriptions.exceptions import ExhaustedDispensations, Expired, InvalidState, RefillNotDue
from apps.prescriptions.models import Prescription


def make_rx(**kw):
    fields = {
        "medication_name": "Amoxicillin",
        "dosage": "500 mg",
        "frequency": "every 8 hours",
        "issue_date": date(2024, 1, 1),
        "expiration_date": date(2024, 1, 31),
        "max_dispensations": 1,
        "current_dispensations": 0,
        "status": Prescription.ACTIVE,
    }
    fields.update(kw)
    return Prescription(**fields)


def continuous_rx(**kw):
    fields = {
        "is_continuous": True,
        "refill_every_days": 10,
        "treatment_end_date": date(2024, 1, 31),
    }
    fields.update(kw)
    return make_rx(**fields)


# ---- continuous rules ----

def test_max_dispensations_formula():
    rx = continuous_rx()
    rules.apply_continuous_rules(rx)
    # 30 days / 10 → 3 periods, plus one for the trailing partial period
    assert rx.max_dispensations == 4
    assert rx.expiration_date == date(2024, 1, 31)
    assert rx.next_refill_date == date(2024, 1, 11)


def test_max_dispensations_rounds_up_partial_period():
    assert rules.continuous_max_dispensations(date(2024, 1, 1), date(2024, 1, 15), 10) == 3
    assert rules.continuous_max_dispensations(date(2024, 1, 1), date(2024, 1, 2), 30) == 2


def test_apply_twice_is_idempotent():
    rx = continuous_rx(current_dispensations=2)
    rules.apply_continuous_rules(rx)
    first = (rx.expiration_date, rx.next_refill_date, rx.max_dispensations, rx.current_dispensations)
    rules.apply_continuous_rules(rx)
    assert (rx.expiration_date, rx.next_refill_date, rx.max_dispensations, rx.current_dispensations) == first


def test_existing_next_refill_is_kept():
    rx = continuous_rx(next_refill_date=date(2024, 1, 20))
    rules.apply_continuous_rules(rx)
    assert rx.next_refill_date == date(2024, 1, 20)


def test_turning_continuity_off_clears_refill_fields():
    rx = make_rx(
        is_continuous=False,
        refill_every_days=14,
        treatment_end_date=date(2024, 6, 1),
        next_refill_date=date(2024, 1, 15),
    )
    rules.apply_continuous_rules(rx)
    assert rx.refill_every_days is None
    assert rx.treatment_end_date is None
    assert rx.next_refill_date is None


def test_shrinking_cap_clamps_counter():
    rx = continuous_rx(current_dispensations=4, max_dispensations=4, refill_every_days=30)
    rules.apply_continuous_rules(rx)
    assert rx.max_dispensations == 2
    assert rx.current_dispensations == 2


@pytest.mark.parametrize(
    "changes, field",
    [
        ({"refill_every_days": None}, "refill_every_days"),
        ({"refill_every_days": 0}, "refill_every_days"),
        ({"treatment_end_date": None}, "treatment_end_date"),
        ({"treatment_end_date": date(2024, 1, 1)}, "treatment_end_date"),
    ],
)
def test_invalid_continuous_input_is_rejected_untouched(changes, field):
    rx = continuous_rx(**changes)
    before = (rx.expiration_date, rx.max_dispensations, rx.next_refill_date)
    with pytest.raises(ValidationError) as exc:
        rules.apply_continuous_rules(rx)
    assert field in exc.value.detail
    assert (rx.expiration_date, rx.max_dispensations, rx.next_refill_date) == before


# ---- status projection ----

def test_completed_projects_per_viewer():
    rx = make_rx(status=Prescription.COMPLETED)
    today = date(2024, 1, 10)
    assert rules.project_status(rx, "patient", today=today) == "used"
    assert rules.project_status(rx, "doctor", today=today) == "dispensed"
    assert rules.project_status(rx, "pharmacy", today=today) == "dispensed"


def test_exhausted_counter_projects_as_consumed():
    rx = make_rx(current_dispensations=1)
    assert rules.project_status(rx, "patient", today=date(2024, 1, 10)) == "used"


@pytest.mark.parametrize(
    "status, expected",
    [
        (Prescription.HIDDEN, "cancelled"),
        (Prescription.CANCELLED, "cancelled"),
        (Prescription.PAUSED, "paused"),
        (Prescription.EXPIRED, "expired"),
        (Prescription.ACTIVE, "active"),
    ],
)
def test_stored_status_projection(status, expected):
    assert rules.project_status(make_rx(status=status), "doctor", today=date(2024, 1, 10)) == expected


def test_past_expiration_wins_over_consumed():
    rx = make_rx(status=Prescription.USED)
    assert rules.project_status(rx, "patient", today=date(2024, 2, 1)) == "expired"


def test_cancelled_wins_over_expired():
    rx = make_rx(status=Prescription.CANCELLED)
    assert rules.project_status(rx, "patient", today=date(2024, 2, 1)) == "cancelled"


def test_projection_does_not_write_back():
    rx = make_rx(status=Prescription.COMPLETED)
    rules.project(rx, "patient", today=date(2024, 3, 1))
    assert rx.status == Prescription.COMPLETED


# ---- continuous state ----

def test_refill_due_boundary():
    rx = continuous_rx()
    rules.apply_continuous_rules(rx)
    rx.next_refill_date = date(2024, 1, 10)
    assert rules.continuous_state(rx, today=date(2024, 1, 10)) == "due"
    assert rules.continuous_state(rx, today=date(2024, 1, 9)) == "ok"


def test_continuous_state_labels():
    today = date(2024, 1, 5)
    assert rules.continuous_state(make_rx(), today=today) == "one_time"
    assert rules.continuous_state(continuous_rx(status=Prescription.PAUSED), today=today) == "paused"
    assert rules.continuous_state(continuous_rx(status=Prescription.HIDDEN), today=today) == "cancelled"
    assert rules.continuous_state(continuous_rx(status=Prescription.COMPLETED), today=today) == "ended"
    assert rules.continuous_state(continuous_rx(), today=date(2024, 2, 1)) == "expired"
    assert rules.continuous_state(continuous_rx(next_refill_date=None), today=today) == "ok"


def test_treatment_end_passed_reads_ended_while_expiration_is_later():
    rx = continuous_rx(expiration_date=date(2024, 3, 1), treatment_end_date=date(2024, 1, 31))
    assert rules.continuous_state(rx, today=date(2024, 2, 5)) == "ended"


# ---- refill advancement ----

def test_dispense_near_treatment_end_completes_course():
    rx = continuous_rx(treatment_end_date=date(2024, 1, 20))
    rules.apply_continuous_rules(rx)
    rules.advance_refill(rx, today=date(2024, 1, 15))
    assert rx.status == Prescription.COMPLETED
    assert rx.next_refill_date is None


def test_advance_schedules_next_refill():
    rx = continuous_rx()
    rules.apply_continuous_rules(rx)
    rules.advance_refill(rx, today=date(2024, 1, 12))
    assert rx.status == Prescription.ACTIVE
    assert rx.next_refill_date == date(2024, 1, 22)


def test_advance_after_treatment_end_completes():
    rx = continuous_rx()
    rules.apply_continuous_rules(rx)
    rules.advance_refill(rx, today=date(2024, 2, 2))
    assert rx.status == Prescription.COMPLETED
    assert rx.next_refill_date is None


# ---- eligibility ----

def test_check_dispensable_order():
    today = date(2024, 1, 10)
    with pytest.raises(InvalidState):
        rules.check_dispensable(make_rx(status=Prescription.PAUSED, expiration_date=date(2023, 1, 1)), today=today)
    with pytest.raises(Expired):
        rules.check_dispensable(make_rx(expiration_date=date(2024, 1, 9), current_dispensations=1), today=today)
    with pytest.raises(ExhaustedDispensations):
        rules.check_dispensable(make_rx(current_dispensations=1), today=today)


def test_consumed_status_reports_exhaustion():
    with pytest.raises(ExhaustedDispensations):
        rules.check_dispensable(make_rx(status=Prescription.USED), today=date(2024, 1, 10))


def test_refill_not_due():
    rx = continuous_rx()
    rules.apply_continuous_rules(rx)
    rx.current_dispensations = 1
    with pytest.raises(RefillNotDue):
        rules.check_dispensable(rx, today=date(2024, 1, 10))
    rules.check_dispensable(rx, today=date(2024, 1, 11))


def test_record_fill_marks_one_time_used():
    rx = make_rx()
    rules.record_fill(rx, today=date(2024, 1, 10))
    assert rx.current_dispensations == 1
    assert rx.status == Prescription.USED
