# apps/appointments/services.py
from __future__ import annotations

import logging
import smtplib
from datetime import datetime
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone
from kombu.exceptions import OperationalError as KombuOperationalError
from rest_framework.exceptions import NotFound

from apps.core.exceptions import Forbidden
from apps.core.params import parse_when
from apps.doctors.models import Doctor
from apps.patients.models import Patient
from apps.rbac.utils import Actor

from .models import Appointment
from .tasks import send_appointment_email

logger = logging.getLogger(__name__)


def _aware(dt: datetime) -> datetime:
    """Make a naive datetime aware in the current timezone."""
    if timezone.is_aware(dt):
        return dt
    return timezone.make_aware(dt, timezone.get_current_timezone())


def conflicting_appointments(
    *,
    doctor_id: int,
    when: datetime,
    exclude_id: Optional[int] = None,
) -> QuerySet[Appointment]:
    """
    Non-cancelled appointments of this doctor at exactly the same datetime.
    """
    qs = Appointment.objects.filter(doctor_id=doctor_id, appointment_date=_aware(when)).exclude(
        status=Appointment.CANCELLED
    )
    if exclude_id:
        qs = qs.exclude(id=exclude_id)
    return qs.order_by("id")


def visible_to(actor: Actor) -> QuerySet[Appointment]:
    qs = Appointment.objects.select_related("patient", "patient__user", "doctor", "doctor__specialty")
    if actor.role == "patient":
        return qs.filter(patient_id=actor.patient_id) if actor.patient_id else qs.none()
    if actor.role == "doctor":
        return qs.filter(doctor_id=actor.doctor_id) if actor.doctor_id else qs.none()
    if actor.role in {"admin", "secretary"}:
        return qs
    return qs.none()


def filter_appointments(qs: QuerySet[Appointment], params) -> QuerySet[Appointment]:
    """Apply the list query filters; unparseable values are ignored."""
    for name, lookup in (("doctor_id", "doctor_id"), ("patient_id", "patient_id")):
        raw = params.get(name)
        if raw and str(raw).isdigit():
            qs = qs.filter(**{lookup: int(raw)})
    status = (params.get("status") or "").strip().lower()
    if status:
        qs = qs.filter(status=status)
    date_from = parse_when(params.get("date_from"))
    if date_from:
        qs = qs.filter(appointment_date__gte=date_from)
    date_to = parse_when(params.get("date_to"))
    if date_to:
        qs = qs.filter(appointment_date__lte=date_to)
    return qs


def notify_patient(appt: Appointment, kind: str) -> None:
    """Queue the patient email; a mail or broker outage is logged, never surfaced."""
    if not getattr(settings, "NOTIFY_APPOINTMENTS", True) or not appt.patient.email:
        return
    try:
        # dev/tests run inline because CELERY_TASK_ALWAYS_EAGER=True
        send_appointment_email.delay(appt.id, kind)
    except (smtplib.SMTPException, OSError, KombuOperationalError):
        logger.exception("appointment %s: %s email not sent", appt.id, kind)


@transaction.atomic
def book_appointment(actor: Actor, data: Dict[str, Any]) -> Appointment:
    """
    Create a scheduled appointment. Patients always book for themselves;
    the fee is copied from the doctor's consultation fee.
    """
    patient_id = actor.patient_id if actor.role == "patient" else data.get("patient_id")
    if actor.role == "patient" and not patient_id:
        raise Forbidden("A patient profile is required to book appointments.")

    doctor = Doctor.objects.filter(pk=data["doctor_id"]).first()
    if doctor is None:
        raise NotFound("Doctor not found.")
    patient = Patient.objects.filter(pk=patient_id).first() if patient_id else None
    if patient is None:
        raise NotFound("Patient not found.")

    appt = Appointment.objects.create(
        patient=patient,
        doctor=doctor,
        appointment_date=_aware(data["appointment_date"]),
        reason=data["reason"].strip(),
        notes=data.get("notes", ""),
        fee=doctor.consultation_fee,
        requires_payment=True,
    )
    logger.info("appointment %s booked doctor=%s patient=%s", appt.id, doctor.id, patient.id)
    return appt


def ensure_can_edit(actor: Actor, appt: Appointment) -> None:
    if actor.role == "doctor" and appt.doctor_id != actor.doctor_id:
        raise Forbidden("Doctors can only update their own appointments.")


@transaction.atomic
def update_appointment(appt: Appointment, changes: Dict[str, Any]) -> Appointment:
    for key, value in changes.items():
        if key == "appointment_date":
            value = _aware(value)
        setattr(appt, key, value)
    appt.save()
    return appt


@transaction.atomic
def cancel_appointment(appt: Appointment) -> Appointment:
    if appt.is_cancelled():
        return appt
    appt.status = Appointment.CANCELLED
    appt.save(update_fields=["status", "updated_at"])
    return appt
