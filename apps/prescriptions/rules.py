# apps/prescriptions/rules.py
"""
Pure prescription lifecycle rules.

Nothing here touches the database: every function takes a Prescription (or
anything with the same attributes) and an explicit `today`, so the rules can
be exercised with fixed dates. Persisting the result is the caller's job
(see services.py).
"""
from __future__ import annotations

import math
from datetime import date, timedelta

from rest_framework.exceptions import ValidationError

from .exceptions import ExhaustedDispensations, Expired, InvalidState, RefillNotDue
from .models import Prescription

# ---- labels ----

LABEL_ACTIVE = "active"
LABEL_USED = "used"
LABEL_DISPENSED = "dispensed"
LABEL_EXPIRED = "expired"
LABEL_CANCELLED = "cancelled"
LABEL_PAUSED = "paused"

STATE_ONE_TIME = "one_time"
STATE_OK = "ok"
STATE_DUE = "due"
STATE_PAUSED = "paused"
STATE_EXPIRED = "expired"
STATE_CANCELLED = "cancelled"
STATE_ENDED = "ended"

CANCELLED_STATUSES = {Prescription.CANCELLED, Prescription.HIDDEN}
CONSUMED_STATUSES = {Prescription.USED, Prescription.COMPLETED}


def consumed_label(viewer_role: str) -> str:
    """Patients see "used", every professional role sees "dispensed"."""
    return LABEL_USED if viewer_role == "patient" else LABEL_DISPENSED


# ---- continuous therapy ----

def continuous_max_dispensations(issue_date: date, treatment_end_date: date, refill_every_days: int) -> int:
    """One fill per refill period plus one for the trailing partial period."""
    total_days = (treatment_end_date - issue_date).days
    return max(1, math.ceil(total_days / refill_every_days) + 1)


def clamp_dispensations(rx) -> None:
    rx.current_dispensations = min(max(rx.current_dispensations or 0, 0), rx.max_dispensations)


def apply_continuous_rules(rx) -> None:
    """
    Normalize the continuous-therapy fields in place, or raise ValidationError
    without touching the entity.

    Re-applying to an unchanged, valid prescription is a no-op.
    """
    if not rx.is_continuous:
        rx.refill_every_days = None
        rx.treatment_end_date = None
        rx.next_refill_date = None
        return

    errors: dict[str, list[str]] = {}
    if not rx.refill_every_days or rx.refill_every_days <= 0:
        errors["refill_every_days"] = ["Continuous prescriptions need refill_every_days greater than 0."]
    if rx.treatment_end_date is None:
        errors["treatment_end_date"] = ["Continuous prescriptions need a treatment_end_date."]
    elif rx.treatment_end_date <= rx.issue_date:
        errors["treatment_end_date"] = ["treatment_end_date must be after the issue date."]
    if errors:
        raise ValidationError(errors)

    rx.expiration_date = rx.treatment_end_date
    if rx.next_refill_date is None:
        rx.next_refill_date = rx.issue_date + timedelta(days=rx.refill_every_days)
    rx.max_dispensations = continuous_max_dispensations(
        rx.issue_date, rx.treatment_end_date, rx.refill_every_days
    )
    clamp_dispensations(rx)


def advance_refill(rx, *, today: date) -> None:
    """After a fill: schedule the next refill or close the course."""
    if rx.treatment_end_date is None or today > rx.treatment_end_date:
        rx.status = Prescription.COMPLETED
        rx.next_refill_date = None
        return

    candidate = today + timedelta(days=rx.refill_every_days)
    if candidate > rx.treatment_end_date:
        rx.status = Prescription.COMPLETED
        rx.next_refill_date = None
    else:
        rx.next_refill_date = candidate


# ---- projections (read-only) ----

def project_status(rx, viewer_role: str, *, today: date) -> str:
    if rx.status in CANCELLED_STATUSES:
        return LABEL_CANCELLED
    if rx.status == Prescription.PAUSED:
        return LABEL_PAUSED
    if rx.status == Prescription.EXPIRED or rx.expiration_date < today:
        return LABEL_EXPIRED
    if rx.status == Prescription.COMPLETED:
        return consumed_label(viewer_role)
    if rx.status == Prescription.USED or rx.current_dispensations >= rx.max_dispensations:
        return consumed_label(viewer_role)
    return LABEL_ACTIVE


def continuous_state(rx, *, today: date) -> str:
    if not rx.is_continuous:
        return STATE_ONE_TIME
    if rx.status == Prescription.PAUSED:
        return STATE_PAUSED
    if rx.status in CANCELLED_STATUSES:
        return STATE_CANCELLED
    if rx.status == Prescription.EXPIRED or rx.expiration_date < today:
        return STATE_EXPIRED
    if rx.status == Prescription.COMPLETED:
        return STATE_ENDED
    if rx.treatment_end_date is not None and today > rx.treatment_end_date:
        return STATE_ENDED
    if rx.next_refill_date is None:
        return STATE_OK
    if today >= rx.next_refill_date:
        return STATE_DUE
    return STATE_OK


def project(rx, viewer_role: str, *, today: date) -> dict[str, str]:
    return {
        "status": project_status(rx, viewer_role, today=today),
        "continuous_state": continuous_state(rx, today=today),
    }


# ---- eligibility ----

def check_dispensable(rx, *, today: date) -> None:
    """
    Raise the first failing eligibility rule, in a fixed order. A consumed
    terminal status (used/completed) reports as exhaustion, not as a bad state.
    """
    if rx.status in CONSUMED_STATUSES:
        raise ExhaustedDispensations(
            f"All {rx.max_dispensations} dispensation(s) have already been recorded."
        )
    if rx.status != Prescription.ACTIVE:
        raise InvalidState(f"Prescription is {rx.status}; only active prescriptions can be dispensed.")
    if rx.expiration_date < today:
        raise Expired(f"Prescription expired on {rx.expiration_date.isoformat()}.")
    if rx.current_dispensations >= rx.max_dispensations:
        raise ExhaustedDispensations(
            f"All {rx.max_dispensations} dispensation(s) have already been recorded."
        )
    if rx.is_continuous and rx.next_refill_date is not None and today < rx.next_refill_date:
        raise RefillNotDue(f"Next refill is due on {rx.next_refill_date.isoformat()}.")


def record_fill(rx, *, today: date) -> None:
    """Counter/status side effects of one successful fill (caller sets last_dispensed_at)."""
    rx.current_dispensations += 1
    if rx.is_continuous:
        advance_refill(rx, today=today)
    elif rx.current_dispensations >= rx.max_dispensations:
        rx.status = Prescription.USED
