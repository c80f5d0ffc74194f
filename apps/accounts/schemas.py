# apps/accounts/schemas.py
from drf_spectacular.utils import OpenApiExample, inline_serializer
from rest_framework import serializers

DetailResponse = inline_serializer(
    name="DetailResponse",
    fields={"detail": serializers.CharField()},
)

RegisterExample = OpenApiExample(
    "Patient sign-up",
    value={
        "document_id": "1020-304-05",
        "first_name": "Ana",
        "last_name": "Gómez",
        "phone": "+57 300 123 4567",
        "email": "ana.gomez@example.com",
        "date_of_birth": "1991-07-14",
        "address": "Cra 7 # 45-10",
        "password": "Str0ng-Pass!2025",
    },
)

LoginExample = OpenApiExample(
    "Login body",
    value={"email": "ana.gomez@example.com", "password": "Str0ng-Pass!2025"},
)

CreateDoctorUserExample = OpenApiExample(
    "Create doctor user",
    value={
        "email": "dr.rojas@example.com",
        "password": "Str0ng-Pass!2025",
        "first_name": "Luis",
        "last_name": "Rojas",
        "role": "doctor",
        "doctor": {
            "document_id": "79888111",
            "license_number": "MP-55821",
            "specialty_name": "Cardiology",
            "consultation_fee": "80.00",
        },
    },
)
