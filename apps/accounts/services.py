# apps/accounts/services.py
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError
from rest_framework_simplejwt.tokens import RefreshToken

from apps.doctors.models import Doctor
from apps.doctors.services import resolve_specialty
from apps.patients.models import Patient
from apps.pharmacies.services import create_pharmacy_account, update_pharmacy
from apps.rbac.utils import actor_for

from .passwords import check_new_password

logger = logging.getLogger(__name__)

User = get_user_model()

MIN_PATIENT_AGE = 18


def _email_taken(email: str, *, exclude_id: Optional[int] = None) -> bool:
    qs = User.objects.filter(email__iexact=email)
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    return qs.exists()


def _ensure_email_free(email: str, *, exclude_id: Optional[int] = None) -> None:
    if _email_taken(email, exclude_id=exclude_id):
        raise ValidationError({"email": ["This email is already registered."]})


def _ensure_patient_document_free(document_id: str, *, exclude_id: Optional[int] = None) -> None:
    qs = Patient.objects.filter(document_id=document_id.strip())
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    if qs.exists():
        raise ValidationError({"document_id": ["A patient with this document id already exists."]})


def _ensure_doctor_ids_free(data: Dict[str, Any], *, exclude_id: Optional[int] = None) -> None:
    qs = Doctor.objects.exclude(pk=exclude_id) if exclude_id else Doctor.objects.all()
    errors: Dict[str, list] = {}
    if "document_id" in data and qs.filter(document_id=data["document_id"].strip()).exists():
        errors["document_id"] = ["A doctor with this document id already exists."]
    if "license_number" in data and qs.filter(license_number__iexact=data["license_number"].strip()).exists():
        errors["license_number"] = ["A doctor with this license number already exists."]
    if errors:
        raise ValidationError({"doctor": errors})


# ---- tokens ----

def tokens_for(user) -> Dict[str, str]:
    """
    Issue a refresh/access pair. The role and profile ids ride along as
    claims for clients; permission checks always re-read the user row.
    """
    actor = actor_for(user)
    refresh = RefreshToken.for_user(user)
    refresh["role"] = actor.role
    refresh["patient_id"] = actor.patient_id
    refresh["doctor_id"] = actor.doctor_id
    refresh["pharmacy_id"] = actor.pharmacy_id
    return {"refresh": str(refresh), "access": str(refresh.access_token)}


# ---- self registration ----

def _age_on(born: date, today: date) -> int:
    return Patient(date_of_birth=born).age_on(today) or 0


@transaction.atomic
def register_patient(data: Dict[str, Any], *, today: Optional[date] = None):
    """Create a patient login and its profile; both or neither."""
    today = today or timezone.localdate()
    email = data["email"].strip().lower()

    if _age_on(data["date_of_birth"], today) < MIN_PATIENT_AGE:
        raise ValidationError({"date_of_birth": [f"You must be at least {MIN_PATIENT_AGE} years old to register."]})
    _ensure_email_free(email)
    _ensure_patient_document_free(data["document_id"])

    user = User(
        username=email,
        email=email,
        first_name=data["first_name"].strip(),
        last_name=data["last_name"].strip(),
        role=User.PATIENT,
    )
    check_new_password(data["password"], user)
    user.set_password(data["password"])
    user.save()

    Patient.objects.create(
        user=user,
        document_id=data["document_id"].strip(),
        first_name=user.first_name,
        last_name=user.last_name,
        date_of_birth=data["date_of_birth"],
        phone=data.get("phone", "").strip(),
        address=data.get("address", "").strip(),
        emergency_contact=data.get("emergency_contact", "").strip(),
    )
    logger.info("patient registered user=%s", user.pk)
    return user


# ---- admin user management ----

def _create_doctor_profile(user, data: Dict[str, Any]) -> Doctor:
    _ensure_doctor_ids_free(data)
    specialty = resolve_specialty(
        specialty_id=data.get("specialty_id"),
        specialty_name=data.get("specialty_name", ""),
    )
    extra = {k: data[k] for k in ("phone", "consultation_fee", "accepts_insurance") if k in data}
    return Doctor.objects.create(
        user=user,
        specialty=specialty,
        document_id=data["document_id"].strip(),
        license_number=data["license_number"].strip(),
        first_name=user.first_name,
        last_name=user.last_name,
        **extra,
    )


def _create_patient_profile(user, data: Dict[str, Any]) -> Patient:
    _ensure_patient_document_free(data["document_id"])
    return Patient.objects.create(
        user=user,
        document_id=data["document_id"].strip(),
        first_name=user.first_name,
        last_name=user.last_name,
        date_of_birth=data.get("date_of_birth"),
        phone=data.get("phone", ""),
        address=data.get("address", ""),
        emergency_contact=data.get("emergency_contact", ""),
    )


@transaction.atomic
def create_user_account(data: Dict[str, Any]):
    email = data["email"]
    _ensure_email_free(email)
    role = data["role"]

    if role == User.PHARMACY:
        pharmacy = create_pharmacy_account(email=email, password=data["password"], data=dict(data["pharmacy"]))
        user = pharmacy.user
        user.first_name = data.get("first_name", "")
        user.last_name = data.get("last_name", "")
        user.is_active = data.get("is_active", True)
        user.save(update_fields=["first_name", "last_name", "is_active"])
        return user

    user = User(
        username=email,
        email=email,
        first_name=data.get("first_name", ""),
        last_name=data.get("last_name", ""),
        role=role,
        is_active=data.get("is_active", True),
    )
    check_new_password(data["password"], user)
    user.set_password(data["password"])
    user.save()

    if role == User.DOCTOR:
        _create_doctor_profile(user, data["doctor"])
    elif role == User.PATIENT:
        _create_patient_profile(user, data["patient"])
    return user


def _profile(user, attr: str):
    try:
        return getattr(user, attr)
    except ObjectDoesNotExist:
        return None


def _update_doctor_profile(user, data: Dict[str, Any]) -> None:
    doctor = _profile(user, "doctor")
    if doctor is None:
        if not {"document_id", "license_number"} <= set(data):
            raise ValidationError({"doctor": ["document_id and license_number are required to add a doctor profile."]})
        _create_doctor_profile(user, data)
        return
    _ensure_doctor_ids_free(data, exclude_id=doctor.pk)
    if data.get("specialty_id") or (data.get("specialty_name") or "").strip():
        doctor.specialty = resolve_specialty(
            specialty_id=data.get("specialty_id"),
            specialty_name=data.get("specialty_name", ""),
        )
    for key in ("document_id", "license_number", "phone", "consultation_fee", "accepts_insurance"):
        if key in data:
            value = data[key]
            setattr(doctor, key, value.strip() if isinstance(value, str) else value)
    doctor.first_name, doctor.last_name = user.first_name, user.last_name
    doctor.save()


def _update_patient_profile(user, data: Dict[str, Any]) -> None:
    patient = _profile(user, "patient")
    if patient is None:
        if "document_id" not in data:
            raise ValidationError({"patient": ["document_id is required to add a patient profile."]})
        _create_patient_profile(user, data)
        return
    if "document_id" in data:
        _ensure_patient_document_free(data["document_id"], exclude_id=patient.pk)
    for key in ("document_id", "phone", "date_of_birth", "address", "emergency_contact"):
        if key in data:
            setattr(patient, key, data[key])
    patient.first_name, patient.last_name = user.first_name, user.last_name
    patient.save()


@transaction.atomic
def update_user_account(user, changes: Dict[str, Any]):
    if "email" in changes:
        _ensure_email_free(changes["email"], exclude_id=user.pk)
        user.email = changes["email"]
        user.username = changes["email"]
    for key in ("first_name", "last_name", "role", "is_active"):
        if key in changes:
            setattr(user, key, changes[key])
    user.save()

    if "doctor" in changes:
        _update_doctor_profile(user, dict(changes["doctor"]))
    if "patient" in changes:
        _update_patient_profile(user, dict(changes["patient"]))
    if "pharmacy" in changes:
        pharmacy = _profile(user, "pharmacy")
        if pharmacy is None:
            raise ValidationError({"pharmacy": ["This user has no pharmacy profile."]})
        update_pharmacy(pharmacy, dict(changes["pharmacy"]))
    return user
