# apps/appointments/serializers.py
from __future__ import annotations

from rest_framework import serializers

from apps.doctors.serializers import DoctorSummarySerializer
from apps.patients.serializers import PatientSummarySerializer

from .models import Appointment


class AppointmentSerializer(serializers.ModelSerializer):
    patient = PatientSummarySerializer(read_only=True)
    doctor = DoctorSummarySerializer(read_only=True)

    class Meta:
        model = Appointment
        fields = [
            "id",
            "patient_id",
            "doctor_id",
            "patient",
            "doctor",
            "appointment_date",
            "status",
            "reason",
            "notes",
            "fee",
            "requires_payment",
            "is_paid",
            "confirmation_deadline",
            "is_confirmed",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AppointmentCreateSerializer(serializers.Serializer):
    # I ignore patient_id for patients; they always book for themselves.
    patient_id = serializers.IntegerField(required=False)
    doctor_id = serializers.IntegerField()
    appointment_date = serializers.DateTimeField()
    reason = serializers.CharField(max_length=255)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_reason(self, value: str) -> str:
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Reason cannot be blank.")
        return value


class AppointmentUpdateSerializer(serializers.Serializer):
    appointment_date = serializers.DateTimeField(required=False)
    status = serializers.ChoiceField(choices=[c[0] for c in Appointment.STATUS_CHOICES], required=False)
    reason = serializers.CharField(max_length=255, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    fee = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)
    requires_payment = serializers.BooleanField(required=False)
    is_paid = serializers.BooleanField(required=False)
    confirmation_deadline = serializers.DateTimeField(required=False, allow_null=True)
    is_confirmed = serializers.BooleanField(required=False)
