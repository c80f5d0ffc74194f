from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models


class Specialty(models.Model):
    name = models.CharField(max_length=120, unique=True)
    description = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "specialties"

    def __str__(self) -> str:
        return self.name


class DoctorQuerySet(models.QuerySet):
    def active(self) -> "DoctorQuerySet":
        return self.filter(user__is_active=True)

    def with_related(self) -> "DoctorQuerySet":
        return self.select_related("user", "specialty", "assets")


class DoctorManager(models.Manager.from_queryset(DoctorQuerySet)):  # type: ignore[misc]
    pass


class Doctor(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="doctor",
    )
    specialty = models.ForeignKey(Specialty, on_delete=models.PROTECT, related_name="doctors")

    document_id = models.CharField(max_length=32, unique=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    license_number = models.CharField(max_length=64, unique=True)
    phone = models.CharField(max_length=50, blank=True, default="")
    consultation_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    accepts_insurance = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects: DoctorManager = DoctorManager()

    class Meta:
        ordering = ["last_name", "first_name", "id"]
        indexes = [models.Index(fields=["specialty", "last_name"])]

    def __str__(self) -> str:
        return f"Dr. {self.full_name} ({self.license_number})"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


def doctor_asset_path(instance, filename):
    return f"doctors/{instance.doctor_id}/{filename}"


class DoctorAsset(models.Model):
    """Signature and seal images printed on prescriptions."""

    doctor = models.OneToOneField(Doctor, on_delete=models.CASCADE, related_name="assets")
    signature = models.ImageField(upload_to=doctor_asset_path, blank=True, null=True)
    seal = models.ImageField(upload_to=doctor_asset_path, blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"DoctorAsset({self.doctor_id})"
