# apps/accounts/management/commands/seed_demo.py
from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from apps.doctors.models import Doctor, Specialty
from apps.patients.models import Patient
from apps.pharmacies.models import Pharmacy

BASE_SPECIALTIES = [
    ("General Medicine", "Primary care and first consultations."),
    ("Cardiology", "Heart and blood vessel conditions."),
    ("Dermatology", "Skin, hair and nail conditions."),
    ("Pediatrics", "Care for infants, children and adolescents."),
    ("Endocrinology", "Diabetes, thyroid and hormonal disorders."),
]


class Command(BaseCommand):
    help = "Create base specialties and one demo user per role. Safe to run repeatedly."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="Demo-Pass!2025", help="Password for every demo user")
        parser.add_argument("--domain", default="clinic.test", help="Email domain for demo users")

    def _user(self, email, role, first, last, password, **extra):
        User = get_user_model()
        user, created = User.objects.get_or_create(
            email=email,
            defaults={"username": email, "role": role, "first_name": first, "last_name": last, **extra},
        )
        if created:
            user.set_password(password)
            user.save(update_fields=["password"])
        self.stdout.write(f"{'created' if created else 'exists '} {role:<9} {email}")
        return user

    @transaction.atomic
    def handle(self, *args, **opts):
        password = opts["password"]
        domain = opts["domain"]

        for name, description in BASE_SPECIALTIES:
            Specialty.objects.get_or_create(name=name, defaults={"description": description})
        self.stdout.write(self.style.SUCCESS(f"specialties: {Specialty.objects.count()}"))

        self._user(f"admin@{domain}", "admin", "Ada", "Admin", password, is_staff=True, is_superuser=True)
        self._user(f"secretary@{domain}", "secretary", "Sara", "Front", password)

        doctor_user = self._user(f"doctor@{domain}", "doctor", "Luis", "Rojas", password)
        Doctor.objects.get_or_create(
            user=doctor_user,
            defaults={
                "specialty": Specialty.objects.get(name="General Medicine"),
                "document_id": "D-0001",
                "first_name": doctor_user.first_name,
                "last_name": doctor_user.last_name,
                "license_number": "MP-0001",
                "consultation_fee": Decimal("50.00"),
            },
        )

        patient_user = self._user(f"patient@{domain}", "patient", "Ana", "Gomez", password)
        Patient.objects.get_or_create(
            user=patient_user,
            defaults={
                "document_id": "10203040",
                "first_name": patient_user.first_name,
                "last_name": patient_user.last_name,
                "date_of_birth": date(1990, 4, 12),
                "phone": "+57 300 000 0000",
            },
        )

        pharmacy_user = self._user(f"pharmacy@{domain}", "pharmacy", "Farmacia", "Centro", password)
        Pharmacy.objects.get_or_create(
            user=pharmacy_user,
            defaults={
                "name": "Farmacia Centro",
                "license_number": "PH-0001",
                "address": "Calle 10 # 5-20",
                "city": "Bogota",
                "phone": "+57 601 555 0101",
                "email": pharmacy_user.email,
            },
        )

        self.stdout.write(self.style.SUCCESS("Done."))
