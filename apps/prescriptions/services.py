# apps/prescriptions/services.py
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from django.conf import settings
from django.db import OperationalError, transaction
from django.db.models import F, Q, QuerySet
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from apps.doctors.models import Doctor
from apps.patients.models import Patient
from apps.pharmacies.models import Pharmacy
from apps.rbac.utils import Actor

from . import rules
from .exceptions import Conflict, DispenseRejected, Forbidden, InvalidRequest
from .models import Dispensation, Prescription

logger = logging.getLogger(__name__)

STATUS_ALIASES = {"canceled": Prescription.CANCELLED}
VALID_STATUSES = {value for value, _ in Prescription.STATUS_CHOICES}

_TERMINAL = [Prescription.CANCELLED, Prescription.HIDDEN, Prescription.PAUSED, Prescription.EXPIRED]
_CONSUMED = [Prescription.USED, Prescription.COMPLETED]


def _today(today: Optional[date]) -> date:
    return today or timezone.localdate()


# ---- lookups ----------------------------------------------------------------

def base_queryset() -> QuerySet[Prescription]:
    return Prescription.objects.select_related(
        "patient",
        "patient__user",
        "doctor",
        "doctor__specialty",
        "doctor__assets",
    )


def visible_to(actor: Actor) -> QuerySet[Prescription]:
    """Patients and doctors only ever see their own prescriptions."""
    qs = base_queryset()
    if actor.role == "patient":
        return qs.filter(patient_id=actor.patient_id) if actor.patient_id else qs.none()
    if actor.role == "doctor":
        return qs.filter(doctor_id=actor.doctor_id) if actor.doctor_id else qs.none()
    return qs


def parse_status(value: str) -> str:
    raw = (value or "").strip().lower()
    raw = STATUS_ALIASES.get(raw, raw)
    if raw not in VALID_STATUSES:
        raise ValidationError({"status": [f"Unknown status '{value}'."]})
    return raw


def filter_by_label(qs: QuerySet[Prescription], label: str, *, today: date) -> QuerySet[Prescription]:
    """
    Inverse of rules.project_status: keep rows whose projected label equals
    `label`. Labels are role-agnostic here ("used" and "dispensed" are the
    same set).
    """
    label = (label or "").strip().lower()
    if not label:
        return qs

    not_expired = Q(expiration_date__gte=today) & ~Q(status=Prescription.EXPIRED)
    exhausted = Q(current_dispensations__gte=F("max_dispensations"))

    if label in {"cancelled", "canceled", "hidden"}:
        return qs.filter(status__in=[Prescription.CANCELLED, Prescription.HIDDEN])
    if label == "paused":
        return qs.filter(status=Prescription.PAUSED)
    if label == "expired":
        return qs.exclude(
            status__in=[Prescription.CANCELLED, Prescription.HIDDEN, Prescription.PAUSED]
        ).filter(Q(status=Prescription.EXPIRED) | Q(expiration_date__lt=today))
    if label in {"used", "dispensed", "completed"}:
        return qs.exclude(status__in=_TERMINAL).filter(not_expired).filter(Q(status__in=_CONSUMED) | exhausted)
    if label == "active":
        return qs.exclude(status__in=_TERMINAL + _CONSUMED).filter(not_expired).exclude(exhausted)
    raise ValidationError({"status": [f"Unknown status filter '{label}'."]})


def search(
    actor: Actor,
    *,
    patient_id: Optional[int] = None,
    doctor_id: Optional[int] = None,
    patient_document_id: str = "",
    status: str = "",
    medication_name: str = "",
    today: Optional[date] = None,
) -> QuerySet[Prescription]:
    if actor.role == "pharmacy" and not (patient_document_id or "").strip():
        raise ValidationError({"patient_document_id": ["Pharmacies must search by patient document id."]})

    qs = visible_to(actor)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    if (patient_document_id or "").strip():
        qs = qs.filter(patient__in=Patient.objects.matching_document(patient_document_id))
    qs = filter_by_label(qs, status, today=_today(today))
    if (medication_name or "").strip():
        qs = qs.filter(medication_name__icontains=medication_name.strip())
    return qs.order_by("-created_at", "-id")


def _lock(rx_id: int) -> Prescription:
    """Row-lock one prescription for the rest of the transaction."""
    try:
        return Prescription.objects.select_for_update(nowait=True).get(pk=rx_id)
    except Prescription.DoesNotExist:
        raise NotFound(f"Prescription {rx_id} does not exist.")
    except OperationalError:
        raise Conflict("Prescription is being modified by another request. Retry.")


# ---- create / update --------------------------------------------------------

@transaction.atomic
def create_prescription(
    actor: Actor,
    *,
    patient_id: int,
    medication_name: str,
    dosage: str,
    frequency: str,
    doctor_id: Optional[int] = None,
    duration: str = "",
    instructions: str = "",
    is_continuous: bool = False,
    refill_every_days: Optional[int] = None,
    treatment_end_date: Optional[date] = None,
    today: Optional[date] = None,
) -> Prescription:
    today = _today(today)

    if actor.role == "doctor":
        if not actor.doctor_id:
            raise Forbidden("No doctor profile is linked to this account.")
        doctor_id = actor.doctor_id
    else:
        doctor_id = doctor_id or actor.doctor_id
        if not doctor_id:
            raise ValidationError({"doctor_id": ["Required when prescribing on behalf of a doctor."]})

    patient = Patient.objects.filter(pk=patient_id).first()
    if patient is None:
        raise NotFound(f"Patient {patient_id} does not exist.")
    doctor = Doctor.objects.filter(pk=doctor_id).first()
    if doctor is None:
        raise NotFound(f"Doctor {doctor_id} does not exist.")

    rx = Prescription(
        patient=patient,
        doctor=doctor,
        medication_name=medication_name.strip(),
        dosage=dosage.strip(),
        frequency=frequency.strip(),
        duration=(duration or "").strip(),
        instructions=(instructions or "").strip(),
        issue_date=today,
        expiration_date=today + timedelta(days=settings.PRESCRIPTION_DEFAULT_VALID_DAYS),
        is_continuous=bool(is_continuous),
        refill_every_days=refill_every_days,
        treatment_end_date=treatment_end_date,
    )
    rules.apply_continuous_rules(rx)
    rx.save()
    logger.info("prescription %s created by user %s", rx.pk, actor.user_id)
    return rx


def _guard_expiration(rx: Prescription, previous_expiration: date) -> None:
    """An expiration cannot move to before a dispensation that already happened."""
    if rx.expiration_date == previous_expiration or rx.current_dispensations <= 0:
        return
    if rx.last_dispensed_at is None:
        return
    last_fill = timezone.localdate(rx.last_dispensed_at)
    if rx.expiration_date < last_fill:
        raise Conflict(
            f"Expiration {rx.expiration_date.isoformat()} is before the last dispensation "
            f"({last_fill.isoformat()})."
        )


@transaction.atomic
def update_prescription(rx_id: int, *, actor: Actor, changes: Dict[str, Any]) -> Prescription:
    """
    Apply a structured partial update. `changes` only holds the keys the
    caller actually sent (see PrescriptionUpdateSerializer).
    """
    rx = _lock(rx_id)

    if actor.role == "doctor":
        if not actor.doctor_id or rx.doctor_id != actor.doctor_id:
            raise Forbidden("Doctors can only edit their own prescriptions.")
        if "patient_id" in changes or "doctor_id" in changes:
            raise Forbidden("Only admins can reassign a prescription.")
    elif actor.role != "admin":
        raise Forbidden("Only doctors and admins can edit prescriptions.")

    previous_expiration = rx.expiration_date

    for field in ("medication_name", "dosage", "frequency"):
        value = changes.get(field)
        if value is not None and value.strip():
            setattr(rx, field, value.strip())
    for field in ("duration", "instructions"):
        if field in changes:
            setattr(rx, field, (changes[field] or "").strip())

    if changes.get("expiration_date"):
        rx.expiration_date = changes["expiration_date"]
    if changes.get("max_dispensations"):
        rx.max_dispensations = changes["max_dispensations"]
    if changes.get("status"):
        rx.status = parse_status(changes["status"])

    if "is_continuous" in changes and changes["is_continuous"] is not None:
        rx.is_continuous = bool(changes["is_continuous"])
    if "refill_every_days" in changes:
        rx.refill_every_days = changes["refill_every_days"]
    if "treatment_end_date" in changes:
        rx.treatment_end_date = changes["treatment_end_date"]

    if changes.get("patient_id"):
        patient = Patient.objects.filter(pk=changes["patient_id"]).first()
        if patient is None:
            raise NotFound(f"Patient {changes['patient_id']} does not exist.")
        rx.patient = patient
    if changes.get("doctor_id"):
        doctor = Doctor.objects.filter(pk=changes["doctor_id"]).first()
        if doctor is None:
            raise NotFound(f"Doctor {changes['doctor_id']} does not exist.")
        rx.doctor = doctor

    rules.apply_continuous_rules(rx)
    rules.clamp_dispensations(rx)
    _guard_expiration(rx, previous_expiration)

    rx.save()
    logger.info("prescription %s updated by user %s", rx.pk, actor.user_id)
    return rx


# ---- dispense ---------------------------------------------------------------

def _record_at_pharmacy(
    rx_id: int,
    *,
    actor: Actor,
    pharmacy: Pharmacy,
    actor_type: str,
    quantity: Decimal,
    unit: str,
    notes: str,
    today: date,
    now: datetime,
) -> Dispensation:
    with transaction.atomic():
        rx = _lock(rx_id)
        rules.check_dispensable(rx, today=today)

        record = Dispensation.objects.create(
            prescription=rx,
            pharmacy=pharmacy,
            performed_by_id=actor.user_id,
            dispensation_number=rx.current_dispensations + 1,
            actor_type=actor_type,
            quantity_dispensed=quantity,
            unit=(unit or "unit").strip() or "unit",
            price=Decimal("0.00"),
            pharmacist_notes=(notes or "").strip(),
            dispensed_at=now,
        )
        rules.record_fill(rx, today=today)
        rx.last_dispensed_at = now
        rx.save(update_fields=[
            "current_dispensations", "last_dispensed_at", "status", "next_refill_date", "updated_at",
        ])

    logger.info(
        "prescription %s dispensed #%s at pharmacy %s (%s)",
        rx.pk, record.dispensation_number, pharmacy.pk, actor_type,
    )
    return record


def _record_self_report(rx_id: int, *, actor: Actor, target: int, today: date, now: datetime) -> Prescription:
    """
    Patient-reported counter. The counter is overwritten (clamped), and each
    newly counted fill is appended to the ledger as a patient self-report.
    The ledger is append-only, so a report can never lower the counter.
    """
    with transaction.atomic():
        rx = _lock(rx_id)
        if not actor.patient_id or rx.patient_id != actor.patient_id:
            raise Forbidden("Patients can only report on their own prescriptions.")

        previous = rx.current_dispensations
        rx.current_dispensations = target
        rules.clamp_dispensations(rx)
        if rx.current_dispensations < previous:
            raise ValidationError({
                "current_dispensations": [f"Cannot go below the {previous} dispensation(s) already recorded."],
            })
        rx.last_dispensed_at = now

        if rx.expiration_date < today:
            rx.status = Prescription.EXPIRED
        if not rx.is_continuous and rx.is_exhausted:
            rx.status = Prescription.USED
        if rx.is_continuous:
            rules.advance_refill(rx, today=today)

        Dispensation.objects.bulk_create(
            [
                Dispensation(
                    prescription=rx,
                    performed_by_id=actor.user_id,
                    dispensation_number=number,
                    actor_type=Dispensation.PATIENT_SELF_REPORT,
                    dispensed_at=now,
                )
                for number in range(previous + 1, rx.current_dispensations + 1)
            ]
        )
        rx.save(update_fields=[
            "current_dispensations", "last_dispensed_at", "status", "next_refill_date", "updated_at",
        ])

    logger.info("prescription %s self-reported %s → %s", rx.pk, previous, rx.current_dispensations)
    return rx


def dispense(
    rx_id: int,
    *,
    actor: Actor,
    quantity: Optional[Decimal] = None,
    pharmacy_id: Optional[int] = None,
    current_dispensations: Optional[int] = None,
    unit: str = "unit",
    notes: str = "",
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> Union[Dispensation, Prescription]:
    """
    One entry point, three callers:
      - pharmacy accounts dispense at their own pharmacy
      - admins/secretaries dispense on behalf of the pharmacy they name
      - patients report a raw counter on their own prescription
    Returns the ledger row for the first two, the prescription for the last.
    """
    today = _today(today)
    now = now or timezone.now()

    if actor.role == "pharmacy":
        pharmacy = Pharmacy.objects.filter(pk=actor.pharmacy_id).first() if actor.pharmacy_id else None
        if pharmacy is None:
            raise Forbidden("No pharmacy profile is linked to this account.")
        if not pharmacy.is_active:
            raise Forbidden("This pharmacy is inactive.")
        return _record_at_pharmacy(
            rx_id,
            actor=actor,
            pharmacy=pharmacy,
            actor_type=Dispensation.PHARMACY,
            quantity=_positive_quantity(quantity),
            unit=unit,
            notes=notes,
            today=today,
            now=now,
        )

    if pharmacy_id is not None:
        if not actor.is_staff_role:
            raise Forbidden("Only admins and secretaries can dispense on behalf of a pharmacy.")
        pharmacy = Pharmacy.objects.filter(pk=pharmacy_id).first()
        if pharmacy is None:
            raise NotFound(f"Pharmacy {pharmacy_id} does not exist.")
        if not pharmacy.is_active:
            raise ValidationError({"pharmacy_id": ["This pharmacy is inactive."]})
        return _record_at_pharmacy(
            rx_id,
            actor=actor,
            pharmacy=pharmacy,
            actor_type=Dispensation.STAFF,
            quantity=_positive_quantity(quantity),
            unit=unit,
            notes=notes,
            today=today,
            now=now,
        )

    if current_dispensations is not None:
        if actor.role != "patient":
            raise Forbidden("Only patients can report dispensations directly.")
        return _record_self_report(rx_id, actor=actor, target=current_dispensations, today=today, now=now)

    raise InvalidRequest("Send a quantity (pharmacy), pharmacy_id + quantity (staff) or current_dispensations (patient).")


def _positive_quantity(quantity) -> Decimal:
    if quantity is None or Decimal(quantity) <= 0:
        raise ValidationError({"quantity": ["A positive quantity is required."]})
    return Decimal(quantity)


# ---- read helpers -----------------------------------------------------------

def dispense_blocker(rx: Prescription, *, today: Optional[date] = None) -> Optional[str]:
    """Code of the first eligibility rule that fails today, or None when dispensable."""
    try:
        rules.check_dispensable(rx, today=_today(today))
    except DispenseRejected as exc:
        return exc.default_code
    return None
