# apps/dashboard/services.py
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.contrib.auth import get_user_model
from django.db.models import Count, Q, Sum
from django.utils import timezone

from apps.appointments.models import Appointment
from apps.audit.models import AuditEvent
from apps.doctors.models import Doctor
from apps.patients.models import Patient
from apps.payments.models import Payment, PaymentRefund
from apps.prescriptions import rules
from apps.prescriptions.models import Prescription

RECENT_LIMIT = 10
ACTIVE_APPOINTMENT_STATUSES = (Appointment.SCHEDULED, Appointment.CONFIRMED)


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = timezone.make_aware(datetime.combine(day, time.min))
    return start, start + timedelta(days=1)


def _month_start(day: date) -> datetime:
    return timezone.make_aware(datetime.combine(day.replace(day=1), time.min))


def _appt_row(a: Appointment) -> Dict[str, Any]:
    return {
        "id": a.id,
        "appointment_date": a.appointment_date,
        "status": a.status,
        "reason": a.reason,
        "patient": {"id": a.patient_id, "first_name": a.patient.first_name, "last_name": a.patient.last_name},
        "doctor": {"id": a.doctor_id, "full_name": a.doctor.full_name},
    }


def _sum(qs, field: str = "amount") -> Decimal:
    return qs.aggregate(total=Sum(field))["total"] or Decimal("0.00")


def recent_activity(limit: int = RECENT_LIMIT) -> List[Dict[str, Any]]:
    events = AuditEvent.objects.select_related("actor").order_by("-created_at", "-id")[:limit]
    return [
        {
            "id": e.id,
            "action": e.action,
            "object_type": e.object_type,
            "object_id": e.object_id,
            "user": e.actor.email if e.actor_id else None,
            "time": e.created_at,
        }
        for e in events
    ]


def admin_overview(*, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or timezone.localdate()
    day_start, day_end = _day_bounds(today)
    User = get_user_model()

    by_role = dict(User.objects.values_list("role").annotate(n=Count("id")).order_by())
    by_status = dict(Appointment.objects.values_list("status").annotate(n=Count("id")).order_by())

    return {
        "users": {
            "total": User.objects.count(),
            "active": User.objects.filter(is_active=True).count(),
            "new_today": User.objects.filter(date_joined__gte=day_start, date_joined__lt=day_end).count(),
            "by_role": {role: by_role.get(role, 0) for role, _ in User.ROLE_CHOICES},
        },
        "appointments": {
            "total": sum(by_status.values()),
            "today": Appointment.objects.filter(appointment_date__gte=day_start, appointment_date__lt=day_end).count(),
            "by_status": {s: by_status.get(s, 0) for s, _ in Appointment.STATUS_CHOICES},
        },
        "financial": {
            "total_payments": Payment.objects.count(),
            "completed_revenue": _sum(Payment.objects.filter(status=Payment.COMPLETED)),
            "pending_amount": _sum(Payment.objects.filter(status=Payment.PENDING)),
            "refunded_amount": _sum(PaymentRefund.objects.all()),
        },
        "recent_activity": recent_activity(),
    }


def secretary_overview(*, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or timezone.localdate()
    day_start, day_end = _day_bounds(today)
    base = Appointment.objects.select_related("patient", "doctor")

    todays = base.filter(appointment_date__gte=day_start, appointment_date__lt=day_end).order_by("appointment_date")
    pending = base.filter(status=Appointment.SCHEDULED, is_confirmed=False).order_by("appointment_date")

    return {
        "appointments": {
            "today": todays.count(),
            "pending_confirmation": pending.count(),
        },
        "today_appointments": [_appt_row(a) for a in todays[:50]],
        "pending_confirmation": [_appt_row(a) for a in pending[:50]],
    }


def doctor_overview(doctor: Doctor, *, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or timezone.now()
    today = timezone.localdate(now)
    day_start, day_end = _day_bounds(today)
    month_start = _month_start(today)

    appts = Appointment.objects.filter(doctor=doctor).select_related("patient", "doctor")
    rxs = Prescription.objects.filter(doctor=doctor).select_related("patient")

    counts = appts.aggregate(
        total=Count("id"),
        today=Count("id", filter=Q(appointment_date__gte=day_start, appointment_date__lt=day_end)),
        upcoming=Count("id", filter=Q(appointment_date__gt=now, status__in=ACTIVE_APPOINTMENT_STATUSES)),
        completed=Count("id", filter=Q(status=Appointment.COMPLETED)),
        cancelled=Count("id", filter=Q(status=Appointment.CANCELLED)),
    )
    completion_rate = round(counts["completed"] / counts["total"] * 100, 2) if counts["total"] else 0

    patient_ids = set(appts.values_list("patient_id", flat=True)) | set(rxs.values_list("patient_id", flat=True))
    patients = Patient.objects.filter(pk__in=patient_ids)
    active_patients = patients.filter(user__is_active=True).count()

    upcoming = appts.filter(appointment_date__gt=now, status__in=ACTIVE_APPOINTMENT_STATUSES).order_by("appointment_date")
    todays = appts.filter(appointment_date__gte=day_start, appointment_date__lt=day_end).order_by("appointment_date")

    return {
        "doctor": {
            "id": doctor.id,
            "first_name": doctor.first_name,
            "last_name": doctor.last_name,
            "license_number": doctor.license_number,
            "specialty": {"id": doctor.specialty_id, "name": doctor.specialty.name},
            "consultation_fee": doctor.consultation_fee,
        },
        "appointments": {**counts, "completion_rate": completion_rate},
        "patients": {
            "total": len(patient_ids),
            "new_this_month": patients.filter(created_at__gte=month_start).count(),
            "active": active_patients,
            "inactive": max(0, len(patient_ids) - active_patients),
        },
        "prescriptions": {
            "total": rxs.count(),
            "issued_this_month": rxs.filter(created_at__gte=month_start).count(),
            "active": rxs.filter(status=Prescription.ACTIVE, expiration_date__gte=today).count(),
            "expired": rxs.filter(Q(status=Prescription.EXPIRED) | Q(status=Prescription.ACTIVE, expiration_date__lt=today)).count(),
        },
        "schedule": {
            "next_appointment": _appt_row(upcoming[0]) if upcoming.exists() else None,
            "today": [_appt_row(a) for a in todays[:RECENT_LIMIT]],
            "upcoming": [_appt_row(a) for a in upcoming[:RECENT_LIMIT]],
        },
        "activity": {
            "recent_appointments": [_appt_row(a) for a in appts.order_by("-appointment_date")[:5]],
            "recent_prescriptions": [
                {
                    "id": rx.id,
                    "created_at": rx.created_at,
                    "medication_name": rx.medication_name,
                    "status": rules.project_status(rx, "doctor", today=today),
                    "patient": {"id": rx.patient_id, "first_name": rx.patient.first_name, "last_name": rx.patient.last_name},
                }
                for rx in rxs.order_by("-created_at", "-id")[:5]
            ],
        },
    }
