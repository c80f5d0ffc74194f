# apps/prescriptions/schemas.py
# Swagger examples and typed error bodies for the prescription endpoints.
from drf_spectacular.utils import OpenApiExample, inline_serializer
from rest_framework import serializers

from .serializers import PrescriptionSerializer

ErrorResponse = inline_serializer(
    name="PrescriptionError",
    fields={
        "detail": serializers.CharField(),
        "code": serializers.CharField(),
    },
)

ByDocumentResponse = inline_serializer(
    name="PrescriptionsByDocument",
    fields={
        "document_id": serializers.CharField(),
        "page": serializers.IntegerField(),
        "page_size": serializers.IntegerField(),
        "total_pages": serializers.IntegerField(),
        "total_count": serializers.IntegerField(),
        "items": PrescriptionSerializer(many=True),
    },
)

CreatePrescriptionExample = OpenApiExample(
    "One-time prescription",
    value={
        "patient_id": 1,
        "medication_name": "Amoxicillin 500 mg",
        "dosage": "1 capsule",
        "frequency": "every 8 hours",
        "duration": "7 days",
        "instructions": "Take with food.",
    },
)

CreateContinuousExample = OpenApiExample(
    "Continuous therapy",
    value={
        "patient_id": 1,
        "medication_name": "Losartan 50 mg",
        "dosage": "1 tablet",
        "frequency": "daily",
        "is_continuous": True,
        "refill_every_days": 30,
        "treatment_end_date": "2025-12-31",
    },
    description="Expiration becomes the treatment end date; max dispensations is derived from the refill cadence.",
)

PatchPrescriptionExample = OpenApiExample(
    "Cancel a prescription",
    value={"status": "canceled"},
    description="`canceled` is accepted as an alias of `cancelled`.",
)

PharmacyDispenseExample = OpenApiExample(
    "Pharmacy dispense",
    value={"quantity": "30", "unit": "tablet", "notes": "Generic brand"},
    description="Pharmacy accounts dispense at their own pharmacy.",
)

StaffDispenseExample = OpenApiExample(
    "Staff dispense on behalf of a pharmacy",
    value={"pharmacy_id": 3, "quantity": "1"},
    description="Admin or secretary only.",
)

PatientReportExample = OpenApiExample(
    "Patient self-report",
    value={"current_dispensations": 2},
    description="Patients report the counter on their own prescription; the value is clamped.",
)
