from __future__ import annotations

from django.contrib.auth.models import AbstractUser, UserManager as DjangoUserManager
from django.db import models


class UserManager(DjangoUserManager):
    def create_superuser(self, username, email=None, password=None, **extra_fields):
        # Superusers are platform admins for every role gate.
        extra_fields.setdefault("role", User.ADMIN)
        return super().create_superuser(username, email, password, **extra_fields)


class User(AbstractUser):
    """
    Project user model.
    - email is unique and is what people log in with
    - role drives every API permission check (see apps.rbac)
    """
    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"
    SECRETARY = "secretary"
    PHARMACY = "pharmacy"

    ROLE_CHOICES = [
        (PATIENT, "Patient"),
        (DOCTOR, "Doctor"),
        (ADMIN, "Admin"),
        (SECRETARY, "Secretary"),
        (PHARMACY, "Pharmacy"),
    ]

    email = models.EmailField(unique=True)
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=PATIENT, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    class Meta:
        ordering = ["-date_joined", "-id"]
        indexes = [models.Index(fields=["role", "is_active"])]

    def __str__(self) -> str:  # type: ignore[override]
        return self.get_full_name() or self.email or self.username
