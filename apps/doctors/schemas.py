# apps/doctors/schemas.py
from drf_spectacular.utils import OpenApiExample, inline_serializer
from rest_framework import serializers

StampUploadResponse = inline_serializer(
    name="DoctorStampUploadResponse",
    fields={
        "doctor_id": serializers.IntegerField(),
        "stamp_url": serializers.CharField(),
    },
)

SpecialtyInUse409 = inline_serializer(
    name="SpecialtyInUse409",
    fields={
        "detail": serializers.CharField(),
        "code": serializers.CharField(),
        "doctor_count": serializers.IntegerField(),
    },
)

CreateSpecialtyExample = OpenApiExample(
    "New specialty",
    value={"name": "Cardiology", "description": "Heart and vascular care"},
)
