# apps/prescriptions/serializers.py
from rest_framework import serializers

from apps.doctors.serializers import DoctorSummarySerializer
from apps.patients.serializers import PatientSummarySerializer

from . import rules
from .models import Dispensation, Prescription
from .services import STATUS_ALIASES, VALID_STATUSES


class PrescriptionSerializer(serializers.ModelSerializer):
    """
    Read shape. `status` is the projected label for the viewer, never the
    stored value; views pass `viewer_role` and `today` in the context.
    """

    status = serializers.SerializerMethodField()
    continuous_state = serializers.SerializerMethodField()
    remaining_dispensations = serializers.SerializerMethodField()
    patient = PatientSummarySerializer(read_only=True)
    doctor = DoctorSummarySerializer(read_only=True)

    class Meta:
        model = Prescription
        fields = [
            "id", "patient_id", "doctor_id",
            "medication_name", "dosage", "frequency", "duration", "instructions",
            "issue_date", "expiration_date",
            "max_dispensations", "current_dispensations", "remaining_dispensations",
            "last_dispensed_at",
            "status", "continuous_state",
            "is_continuous", "refill_every_days", "treatment_end_date", "next_refill_date",
            "digital_signature",
            "patient", "doctor",
            "created_at", "updated_at",
        ]
        read_only_fields = fields

    def _view(self, obj):
        return rules.project(obj, self.context.get("viewer_role", ""), today=self.context["today"])

    def get_status(self, obj) -> str:
        return self._view(obj)["status"]

    def get_continuous_state(self, obj) -> str:
        return self._view(obj)["continuous_state"]

    def get_remaining_dispensations(self, obj) -> int:
        return max(obj.max_dispensations - obj.current_dispensations, 0)


class PrescriptionCreateSerializer(serializers.Serializer):
    patient_id = serializers.IntegerField()
    doctor_id = serializers.IntegerField(required=False, allow_null=True)
    medication_name = serializers.CharField(max_length=200)
    dosage = serializers.CharField(max_length=120)
    frequency = serializers.CharField(max_length=120)
    duration = serializers.CharField(max_length=120, required=False, allow_blank=True, allow_null=True)
    instructions = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    is_continuous = serializers.BooleanField(required=False, default=False)
    refill_every_days = serializers.IntegerField(required=False, allow_null=True)
    treatment_end_date = serializers.DateField(required=False, allow_null=True)


class PrescriptionUpdateSerializer(serializers.Serializer):
    """Every field optional; only keys present in the request reach the service."""

    medication_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    dosage = serializers.CharField(max_length=120, required=False, allow_blank=True)
    frequency = serializers.CharField(max_length=120, required=False, allow_blank=True)
    duration = serializers.CharField(max_length=120, required=False, allow_blank=True, allow_null=True)
    instructions = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    expiration_date = serializers.DateField(required=False, allow_null=True)
    max_dispensations = serializers.IntegerField(required=False, min_value=1)
    status = serializers.CharField(required=False)
    is_continuous = serializers.BooleanField(required=False)
    refill_every_days = serializers.IntegerField(required=False, allow_null=True)
    treatment_end_date = serializers.DateField(required=False, allow_null=True)
    patient_id = serializers.IntegerField(required=False)
    doctor_id = serializers.IntegerField(required=False)

    def validate_status(self, value: str) -> str:
        raw = (value or "").strip().lower()
        raw = STATUS_ALIASES.get(raw, raw)
        if raw not in VALID_STATUSES:
            raise serializers.ValidationError(f"Unknown status '{value}'.")
        return raw


class DispenseSerializer(serializers.Serializer):
    quantity = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    unit = serializers.CharField(max_length=32, required=False, default="unit")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    pharmacy_id = serializers.IntegerField(required=False, allow_null=True)
    current_dispensations = serializers.IntegerField(required=False, allow_null=True)


class DispensationSerializer(serializers.ModelSerializer):
    pharmacy_name = serializers.CharField(source="pharmacy.name", read_only=True, default=None)

    class Meta:
        model = Dispensation
        fields = [
            "id", "prescription", "pharmacy", "pharmacy_name", "performed_by",
            "dispensation_number", "actor_type",
            "quantity_dispensed", "unit", "price", "pharmacist_notes", "dispensed_at",
        ]
        read_only_fields = fields
