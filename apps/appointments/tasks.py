# apps/appointments/tasks.py
from __future__ import annotations

from email.utils import formatdate
from typing import Optional

from celery import shared_task
from django.conf import settings
from django.core.mail import EmailMessage
from django.template.loader import render_to_string
from django.template import TemplateDoesNotExist
from django.utils import timezone

from .models import Appointment


def _render_subject_and_body(template_name: str, ctx: dict[str, str]) -> tuple[str, str]:
    """Render 'Subject: ...' on line 1, rest is body; fallback if template missing."""
    try:
        raw = render_to_string(f"emails/appointments/{template_name}.txt", ctx)
    except TemplateDoesNotExist:
        return "Appointment update", "Your appointment was updated."
    lines = raw.splitlines()
    subject = (lines[0].replace("Subject:", "").strip() if lines else "") or "Appointment update"
    body = "\n".join(lines[1:]).strip() or "Your appointment was updated."
    return subject, body


@shared_task(bind=True, max_retries=2)
def send_appointment_email(
    self,
    appt_id: int,
    kind: str = "created",                      # 'created' | 'cancelled'
    to_override: Optional[list[str]] = None,    # custom recipients (tests/admin)
):
    """Email the patient (or override) about a booking or cancellation."""
    if not getattr(settings, "NOTIFY_APPOINTMENTS", True):
        return {"skipped": True, "reason": "notifications disabled"}

    appt = Appointment.objects.select_related("patient__user", "doctor__specialty").get(id=appt_id)

    to_list = to_override or ([appt.patient.email] if appt.patient.email else [])
    if not to_list:
        return {"skipped": True, "reason": "no recipient email", "appt": appt.id}

    when = timezone.localtime(appt.appointment_date)
    ctx = {
        "patient_name": appt.patient.full_name,
        "doctor_name": f"Dr. {appt.doctor.full_name}",
        "specialty": appt.doctor.specialty.name,
        "when_local": when.strftime("%a, %d %b %Y %H:%M"),
        "tzname": when.tzname() or "UTC",
        "reason": appt.reason or "",
        "fee": f"{appt.fee:.2f}",
        "kind": kind,
        "appointment_id": appt.id,
    }

    subject, body = _render_subject_and_body(kind, ctx)

    msg = EmailMessage(
        subject=subject,
        body=body,
        from_email=getattr(settings, "DEFAULT_FROM_EMAIL", "no-reply@clinic.local"),
        to=to_list,
    )
    msg.extra_headers = {
        "Date": formatdate(localtime=True),
        "X-Entity-Ref-ID": str(appt.id),
    }

    msg.send(fail_silently=False)
    return {"sent": True, "to": to_list, "kind": kind, "appt": appt.id}
