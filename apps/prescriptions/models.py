from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone


def new_digital_signature() -> str:
    return "RX-" + uuid.uuid4().hex.upper()


class Prescription(models.Model):
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    REGENERATED = "regenerated"
    HIDDEN = "hidden"
    PAUSED = "paused"
    COMPLETED = "completed"

    STATUS_CHOICES = [
        (ACTIVE, "Active"),
        (USED, "Used"),
        (EXPIRED, "Expired"),
        (CANCELLED, "Cancelled"),
        (REGENERATED, "Regenerated"),
        (HIDDEN, "Hidden"),
        (PAUSED, "Paused"),
        (COMPLETED, "Completed"),
    ]

    # Links (both required; reassignment is an admin-only patch)
    patient = models.ForeignKey(
        "patients.Patient",
        on_delete=models.PROTECT,
        related_name="prescriptions",
    )
    doctor = models.ForeignKey(
        "doctors.Doctor",
        on_delete=models.PROTECT,
        related_name="prescriptions",
    )

    # What was prescribed
    medication_name = models.CharField(max_length=200)
    dosage = models.CharField(max_length=120)
    frequency = models.CharField(max_length=120)
    duration = models.CharField(max_length=120, blank=True, default="")
    instructions = models.TextField(blank=True, default="")

    # Validity window
    issue_date = models.DateField()
    expiration_date = models.DateField()

    # Dispensation accounting
    max_dispensations = models.PositiveIntegerField(default=1)
    current_dispensations = models.PositiveIntegerField(default=0)
    last_dispensed_at = models.DateTimeField(null=True, blank=True)

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=ACTIVE, db_index=True)
    digital_signature = models.CharField(max_length=40, unique=True, editable=False, default=new_digital_signature)

    # Continuous therapy (only meaningful when is_continuous)
    is_continuous = models.BooleanField(default=False)
    refill_every_days = models.PositiveIntegerField(null=True, blank=True)
    treatment_end_date = models.DateField(null=True, blank=True)
    next_refill_date = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["patient", "status"]),
            models.Index(fields=["doctor", "created_at"]),
            models.Index(fields=["expiration_date"]),
        ]
        constraints = [
            models.CheckConstraint(
                name="rx_max_dispensations_positive",
                condition=Q(max_dispensations__gte=1),
            ),
            models.CheckConstraint(
                name="rx_current_within_max",
                condition=Q(current_dispensations__lte=F("max_dispensations")),
            ),
        ]

    def __str__(self) -> str:
        return f"{self.medication_name} for {self.patient_id} ({self.status})"

    @property
    def is_exhausted(self) -> bool:
        return self.current_dispensations >= self.max_dispensations


class Dispensation(models.Model):
    """
    Append-only ledger row: one act of filling a prescription.
    Rows are only written by apps.prescriptions.services.dispense.
    """

    PHARMACY = "pharmacy"
    STAFF = "staff"
    PATIENT_SELF_REPORT = "patient-self-report"

    ACTOR_CHOICES = [
        (PHARMACY, "Pharmacy"),
        (STAFF, "Staff on behalf of a pharmacy"),
        (PATIENT_SELF_REPORT, "Patient self-report"),
    ]

    prescription = models.ForeignKey(Prescription, on_delete=models.PROTECT, related_name="dispensations")
    pharmacy = models.ForeignKey(
        "pharmacies.Pharmacy",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="dispensations",
    )
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="dispensations",
    )

    dispensation_number = models.PositiveIntegerField()
    actor_type = models.CharField(max_length=24, choices=ACTOR_CHOICES, default=PHARMACY)
    quantity_dispensed = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    unit = models.CharField(max_length=32, default="unit")
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    pharmacist_notes = models.TextField(blank=True, default="")
    dispensed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["dispensed_at", "id"]
        indexes = [
            models.Index(fields=["prescription", "dispensation_number"]),
            models.Index(fields=["pharmacy", "dispensed_at"]),
        ]
        constraints = [
            # Pharmacy and staff rows name the pharmacy and a positive quantity.
            models.CheckConstraint(
                name="dispensation_pharmacy_rows_complete",
                condition=Q(actor_type="patient-self-report")
                | (Q(pharmacy__isnull=False) & Q(quantity_dispensed__gt=0)),
            ),
        ]

    def __str__(self) -> str:
        return f"Dispensation #{self.dispensation_number} of Rx {self.prescription_id}"
