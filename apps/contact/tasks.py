# apps/contact/tasks.py
from __future__ import annotations

from celery import shared_task
from django.conf import settings
from django.core.mail import EmailMessage
from django.template.loader import render_to_string


@shared_task(bind=True, max_retries=2)
def send_contact_email(self, name: str, email: str, message: str, phone: str = ""):
    """Forward a contact-form message to the clinic inbox; replies go to the sender."""
    raw = render_to_string(
        "emails/contact/message.txt",
        {"name": name, "email": email, "phone": phone, "message": message},
    )
    lines = raw.splitlines()
    subject = lines[0].replace("Subject:", "").strip() if lines else f"Contact form: {name}"
    body = "\n".join(lines[1:]).strip()

    msg = EmailMessage(
        subject=subject,
        body=body,
        from_email=getattr(settings, "DEFAULT_FROM_EMAIL", "no-reply@clinic.local"),
        to=[settings.CONTACT_RECIPIENT],
        reply_to=[email],
    )
    msg.send(fail_silently=False)
    return {"sent": True, "to": settings.CONTACT_RECIPIENT}
