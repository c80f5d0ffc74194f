# apps/appointments/schemas.py
from rest_framework import serializers
from drf_spectacular.utils import OpenApiExample


# I describe a single conflicting appointment in 409 responses.
class AppointmentConflictItemSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    patient_id = serializers.IntegerField()
    doctor_id = serializers.IntegerField()
    appointment_date = serializers.DateTimeField()
    status = serializers.CharField()


# I describe the whole 409 payload (detail + list of conflicts + hint).
class AppointmentConflicts409Serializer(serializers.Serializer):
    detail = serializers.CharField()
    code = serializers.CharField()
    conflicts = AppointmentConflictItemSerializer(many=True)
    hint = serializers.CharField()


# ---- Swagger example payloads ----

CreateAppointmentExample = OpenApiExample(
    "Create appointment",
    value={
        "patient_id": 1,
        "doctor_id": 2,
        "appointment_date": "2025-09-20T09:00:00Z",
        "reason": "Initial consultation",
    },
)

ConfirmAppointmentExample = OpenApiExample(
    "Confirm and mark paid",
    value={"status": "confirmed", "is_confirmed": True, "is_paid": True},
)
