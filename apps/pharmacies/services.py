# apps/pharmacies/services.py
from __future__ import annotations

from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Max
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from apps.accounts.passwords import check_new_password

from .models import Pharmacy

PROFILE_FIELDS = (
    "name", "license_number", "pharmacist_name", "pharmacist_license",
    "address", "city", "state", "zip_code", "phone", "email",
    "operating_hours", "notes",
)


def _ensure_license_free(license_number: str, *, exclude_id: Optional[int] = None) -> None:
    if Pharmacy.objects.license_taken(license_number, exclude_id=exclude_id):
        raise ValidationError({"license_number": ["A pharmacy with this license number already exists."]})


@transaction.atomic
def create_pharmacy_account(*, email: str, password: str, data: Dict[str, Any]) -> Pharmacy:
    """Create the login (role=pharmacy) and its pharmacy profile in one go."""
    User = get_user_model()
    email = (email or "").strip().lower()
    if User.objects.filter(email__iexact=email).exists():
        raise ValidationError({"email": ["This email is already registered."]})
    _ensure_license_free(data.get("license_number", ""))

    user = User(username=email, email=email, role=User.PHARMACY, first_name=(data.get("name") or "")[:150])
    check_new_password(password, user)
    user.set_password(password)
    user.save()

    fields = {k: (data.get(k) or "").strip() for k in PROFILE_FIELDS if k in data}
    fields.setdefault("email", email)
    return Pharmacy.objects.create(user=user, **fields)


@transaction.atomic
def update_pharmacy(pharmacy: Pharmacy, changes: Dict[str, Any]) -> Pharmacy:
    if "license_number" in changes:
        _ensure_license_free(changes["license_number"], exclude_id=pharmacy.pk)
    for key, value in changes.items():
        if key in PROFILE_FIELDS:
            setattr(pharmacy, key, (value or "").strip())
        elif key == "is_active":
            pharmacy.is_active = bool(value)
    pharmacy.save()
    if "is_active" in changes and pharmacy.user_id:
        pharmacy.user.is_active = pharmacy.is_active
        pharmacy.user.save(update_fields=["is_active"])
    return pharmacy


@transaction.atomic
def deactivate_pharmacy(pharmacy: Pharmacy) -> Pharmacy:
    """Pharmacies are never deleted: the profile and its login are switched off."""
    pharmacy.is_active = False
    pharmacy.save(update_fields=["is_active", "updated_at"])
    if pharmacy.user_id:
        pharmacy.user.is_active = False
        pharmacy.user.save(update_fields=["is_active"])
    return pharmacy


def verify_pharmacy(pharmacy: Pharmacy, *, by) -> Pharmacy:
    pharmacy.is_verified = True
    pharmacy.verified_at = timezone.now()
    pharmacy.verified_by = by
    pharmacy.save(update_fields=["is_verified", "verified_at", "verified_by", "updated_at"])
    return pharmacy


def pharmacy_stats(pharmacy: Pharmacy) -> Dict[str, Any]:
    agg = pharmacy.dispensations.aggregate(
        total=Count("id"),
        prescriptions=Count("prescription", distinct=True),
        last=Max("dispensed_at"),
    )
    return {
        "pharmacy_id": pharmacy.pk,
        "total_dispensations": agg["total"] or 0,
        "prescriptions_served": agg["prescriptions"] or 0,
        "last_dispensed_at": agg["last"],
    }
