# apps/appointments/models.py
from decimal import Decimal

from django.db import models


class Appointment(models.Model):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"
    NO_SHOW = "no_show"

    STATUS_CHOICES = [
        (SCHEDULED, "Scheduled"),
        (CONFIRMED, "Confirmed"),
        (COMPLETED, "Completed"),
        (CANCELLED, "Cancelled"),
        (RESCHEDULED, "Rescheduled"),
        (NO_SHOW, "No show"),
    ]

    # Links
    patient = models.ForeignKey(
        "patients.Patient",
        on_delete=models.CASCADE,
        related_name="appointments",
    )
    doctor = models.ForeignKey(
        "doctors.Doctor",
        on_delete=models.PROTECT,
        related_name="appointments",
    )

    # When (timezone-aware; Django handles this when USE_TZ=True)
    appointment_date = models.DateTimeField()

    # Details
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=SCHEDULED)
    reason = models.CharField(max_length=255)
    notes = models.TextField(blank=True, default="")

    # Billing & confirmation
    fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    requires_payment = models.BooleanField(default=True)
    is_paid = models.BooleanField(default=False)
    confirmation_deadline = models.DateTimeField(null=True, blank=True)
    is_confirmed = models.BooleanField(default=False)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["appointment_date"]),
            models.Index(fields=["status"]),
            models.Index(fields=["doctor", "appointment_date"]),
            models.Index(fields=["patient", "appointment_date"]),
        ]
        ordering = ["-appointment_date", "id"]

    def __str__(self) -> str:
        return f"{self.patient} @ {self.appointment_date.isoformat()} ({self.status})"

    def is_cancelled(self) -> bool:
        return self.status == self.CANCELLED
