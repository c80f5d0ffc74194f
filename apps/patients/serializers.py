# apps/patients/serializers.py
from rest_framework import serializers

from .models import MedicalHistory, Patient


class PatientSummarySerializer(serializers.ModelSerializer):
    """Compact patient block embedded in prescriptions, appointments and payments."""

    full_name = serializers.CharField(read_only=True)
    email = serializers.CharField(read_only=True)

    class Meta:
        model = Patient
        fields = ["id", "document_id", "first_name", "last_name", "full_name", "email", "phone"]
        read_only_fields = fields


class PatientSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)
    email = serializers.CharField(read_only=True)
    is_active = serializers.SerializerMethodField()

    class Meta:
        model = Patient
        fields = [
            "id", "user", "document_id", "first_name", "last_name", "full_name",
            "email", "date_of_birth", "phone", "address", "emergency_contact",
            "is_active", "created_at", "updated_at",
        ]
        read_only_fields = fields

    def get_is_active(self, obj) -> bool:
        return bool(obj.user_id and obj.user.is_active)


class MedicalHistorySerializer(serializers.ModelSerializer):
    doctor_name = serializers.CharField(source="doctor.full_name", read_only=True, default=None)
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)

    class Meta:
        model = MedicalHistory
        fields = [
            "id", "patient", "patient_name", "doctor", "doctor_name",
            "condition", "diagnosis", "treatment", "notes", "diagnosis_date",
            "created_at", "updated_at",
        ]
        read_only_fields = ["id", "doctor", "doctor_name", "patient_name", "created_at", "updated_at"]

    def validate_condition(self, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("Condition cannot be blank.")
        return value

    def validate(self, attrs):
        # Optional free-text fields: null from clients means "clear".
        for name in ("diagnosis", "treatment", "notes"):
            if name in attrs and attrs[name] is None:
                attrs[name] = ""
        return attrs


class MedicalHistoryUpdateSerializer(MedicalHistorySerializer):
    diagnosis = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    treatment = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    class Meta(MedicalHistorySerializer.Meta):
        read_only_fields = MedicalHistorySerializer.Meta.read_only_fields + ["patient"]


class PatientDetailSerializer(PatientSerializer):
    medical_history = MedicalHistorySerializer(many=True, read_only=True)

    class Meta(PatientSerializer.Meta):
        fields = PatientSerializer.Meta.fields + ["medical_history"]
        read_only_fields = fields
