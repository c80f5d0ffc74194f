import itertools
from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from apps.doctors.models import Doctor, Specialty
from apps.patients.models import Patient
from apps.pharmacies.models import Pharmacy

PASSWORD = "Clinic-pass-2024!"

_seq = itertools.count(1)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def make_user(db):
    """Factory: make_user("doctor") → saved user with a unique email."""
    User = get_user_model()

    def _make(role="patient", *, email=None, password=PASSWORD, **extra):
        n = next(_seq)
        email = email or f"{role}{n}@clinic.test"
        return User.objects.create_user(
            username=email, email=email, password=password, role=role, **extra
        )

    return _make


@pytest.fixture
def client_for():
    """Factory: an APIClient already authenticated as the given user."""

    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _client


@pytest.fixture
def admin_user(make_user):
    return make_user("admin")


@pytest.fixture
def secretary(make_user):
    return make_user("secretary")


@pytest.fixture
def specialty(db):
    return Specialty.objects.create(name="General Medicine")


@pytest.fixture
def make_doctor(make_user, specialty):
    def _make(**extra):
        n = next(_seq)
        user = make_user("doctor")
        fields = {
            "document_id": f"D-{n:04d}",
            "first_name": "Gregory",
            "last_name": f"House{n}",
            "license_number": f"MP-{n:04d}",
            "consultation_fee": Decimal("50.00"),
            "specialty": specialty,
        }
        fields.update(extra)
        return Doctor.objects.create(user=user, **fields)

    return _make


@pytest.fixture
def doctor(make_doctor):
    return make_doctor()


@pytest.fixture
def make_patient(make_user):
    def _make(*, with_user=True, **extra):
        n = next(_seq)
        fields = {
            "document_id": f"{10200000 + n}",
            "first_name": "Ana",
            "last_name": f"Gomez{n}",
            "date_of_birth": date(1990, 5, 17),
            "phone": "555-0100",
        }
        fields.update(extra)
        user = make_user("patient") if with_user else None
        return Patient.objects.create(user=user, **fields)

    return _make


@pytest.fixture
def patient(make_patient):
    return make_patient()


@pytest.fixture
def make_pharmacy(make_user):
    def _make(*, with_user=True, **extra):
        n = next(_seq)
        fields = {
            "name": f"Farmacia Central {n}",
            "license_number": f"PH-{n:04d}",
            "address": "Calle 10 # 4-20",
            "city": "Bogota",
            "phone": "555-0200",
        }
        fields.update(extra)
        user = make_user("pharmacy") if with_user else None
        return Pharmacy.objects.create(user=user, **fields)

    return _make


@pytest.fixture
def pharmacy(make_pharmacy):
    return make_pharmacy()
