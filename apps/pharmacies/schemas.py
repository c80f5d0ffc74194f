# apps/pharmacies/schemas.py
from drf_spectacular.utils import OpenApiExample, inline_serializer
from rest_framework import serializers

PharmacyStatsResponse = inline_serializer(
    name="PharmacyStats",
    fields={
        "pharmacy_id": serializers.IntegerField(),
        "total_dispensations": serializers.IntegerField(),
        "prescriptions_served": serializers.IntegerField(),
        "last_dispensed_at": serializers.DateTimeField(allow_null=True),
    },
)

ValidatePrescriptionResponse = inline_serializer(
    name="PharmacyValidatePrescription",
    fields={
        "prescription_id": serializers.IntegerField(),
        "valid": serializers.BooleanField(),
        "dispensable": serializers.BooleanField(),
        "reason": serializers.CharField(allow_null=True),
    },
)

CreatePharmacyAccountExample = OpenApiExample(
    "New pharmacy account",
    value={
        "email": "farmacia.centro@example.com",
        "password": "Str0ng-Pass!2025",
        "name": "Farmacia Centro",
        "license_number": "PH-10023",
        "address": "Calle 10 # 5-20",
        "city": "Bogotá",
        "phone": "+57 601 555 0101",
        "pharmacist_name": "Laura Díaz",
        "operating_hours": "Mon-Sat 08:00-20:00",
    },
)
