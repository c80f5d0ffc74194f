from __future__ import annotations

from datetime import date
from typing import Optional

from django.conf import settings
from django.db import models
from django.db.models import Q


def normalize_document(value: str) -> str:
    """Strip the separators people type into national ids ("1234-567 8" → "12345678")."""
    raw = (value or "").strip()
    for ch in (" ", "-"):
        raw = raw.replace(ch, "")
    return raw


# ------------ QuerySet / Manager helpers ------------ #

class PatientQuerySet(models.QuerySet):
    def by_document(self, value: str) -> "PatientQuerySet":
        """
        Numeric-looking ids match either as typed or with separators removed;
        anything else must match exactly.
        """
        raw = (value or "").strip()
        if not raw:
            return self.none()
        normalized = normalize_document(raw)
        if normalized.isdigit():
            return self.filter(Q(document_id=raw) | Q(document_id=normalized))
        return self.filter(document_id=raw)

    def matching_document(self, value: str) -> "PatientQuerySet":
        """Raw or separator-stripped match, whatever the id looks like."""
        raw = (value or "").strip()
        if not raw:
            return self.none()
        return self.filter(Q(document_id=raw) | Q(document_id=normalize_document(raw)))

    def name_search(self, text: str) -> "PatientQuerySet":
        """
        Multi-term search across names, document id and phone.
        Usage: Patient.objects.name_search("ana gom")
        """
        text = (text or "").strip()
        if not text:
            return self
        cond = Q()
        for t in text.split():
            cond &= (
                Q(first_name__icontains=t)
                | Q(last_name__icontains=t)
                | Q(document_id__icontains=t)
                | Q(phone__icontains=t)
            )
        return self.filter(cond)


class PatientManager(models.Manager.from_queryset(PatientQuerySet)):  # type: ignore[misc]
    pass


# -------------------------- Models -------------------------- #

class Patient(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="patient",
    )

    # --- Identity & demographics ---
    document_id = models.CharField(max_length=32, unique=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    date_of_birth = models.DateField(null=True, blank=True)

    # --- Contact ---
    phone = models.CharField(max_length=50, blank=True, default="")
    address = models.CharField(max_length=255, blank=True, default="")
    emergency_contact = models.CharField(max_length=255, blank=True, default="")

    # --- Timestamps ---
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects: PatientManager = PatientManager()

    class Meta:
        ordering = ["last_name", "first_name", "id"]
        indexes = [
            models.Index(fields=["last_name", "first_name"]),
            models.Index(fields=["date_of_birth"]),
        ]

    def __str__(self) -> str:
        return f"{self.last_name}, {self.first_name} ({self.document_id})"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def email(self) -> str:
        return self.user.email if self.user_id else ""

    def age_on(self, today: date) -> Optional[int]:
        if not self.date_of_birth:
            return None
        years = today.year - self.date_of_birth.year
        if (today.month, today.day) < (self.date_of_birth.month, self.date_of_birth.day):
            years -= 1
        return max(years, 0)


class MedicalHistory(models.Model):
    """One diagnosed condition in a patient's chart, written by a doctor."""

    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name="medical_history")
    doctor = models.ForeignKey(
        "doctors.Doctor", null=True, blank=True, on_delete=models.SET_NULL, related_name="medical_entries"
    )
    condition = models.CharField(max_length=200)
    diagnosis = models.TextField(blank=True, default="")
    treatment = models.TextField(blank=True, default="")
    notes = models.TextField(blank=True, default="")
    diagnosis_date = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-diagnosis_date", "-created_at", "-id"]
        indexes = [models.Index(fields=["patient", "diagnosis_date"])]
        verbose_name_plural = "medical history"

    def __str__(self) -> str:
        return f"{self.condition} ({self.patient_id})"
