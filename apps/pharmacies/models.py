from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models.functions import Lower


class PharmacyQuerySet(models.QuerySet):
    def active(self) -> "PharmacyQuerySet":
        return self.filter(is_active=True)

    def license_taken(self, license_number: str, *, exclude_id: int | None = None) -> bool:
        qs = self.filter(license_number__iexact=(license_number or "").strip())
        if exclude_id:
            qs = qs.exclude(pk=exclude_id)
        return qs.exists()


class PharmacyManager(models.Manager.from_queryset(PharmacyQuerySet)):  # type: ignore[misc]
    pass


class Pharmacy(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="pharmacy",
    )

    name = models.CharField(max_length=200)
    license_number = models.CharField(max_length=64)
    pharmacist_name = models.CharField(max_length=150, blank=True, default="")
    pharmacist_license = models.CharField(max_length=64, blank=True, default="")

    # --- Location & contact ---
    address = models.CharField(max_length=255)
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100, blank=True, default="")
    zip_code = models.CharField(max_length=20, blank=True, default="")
    phone = models.CharField(max_length=50)
    email = models.EmailField(blank=True, default="")
    operating_hours = models.CharField(max_length=255, blank=True, default="")

    # --- Lifecycle ---
    is_active = models.BooleanField(default=True, db_index=True)
    is_verified = models.BooleanField(default=False)
    verified_at = models.DateTimeField(null=True, blank=True)
    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="verified_pharmacies",
    )
    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects: PharmacyManager = PharmacyManager()

    class Meta:
        ordering = ["name", "id"]
        verbose_name_plural = "pharmacies"
        indexes = [models.Index(fields=["city", "is_active"])]
        constraints = [
            models.UniqueConstraint(Lower("license_number"), name="uniq_pharmacy_license_ci"),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.license_number})"
