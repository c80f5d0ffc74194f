# apps/accounts/serializers.py
from django.contrib.auth import get_user_model
from rest_framework import serializers

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """Current-user / admin listing shape, with the profile ids the role implies."""

    full_name = serializers.SerializerMethodField()
    patient_id = serializers.SerializerMethodField()
    doctor_id = serializers.SerializerMethodField()
    pharmacy_id = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id", "username", "email", "first_name", "last_name", "full_name",
            "role", "is_active", "is_superuser", "last_login", "date_joined",
            "patient_id", "doctor_id", "pharmacy_id",
        ]
        read_only_fields = fields

    def get_full_name(self, obj) -> str:
        return obj.get_full_name()

    def _profile_pk(self, obj, attr):
        profile = getattr(obj, attr, None)
        return profile.pk if profile is not None else None

    def get_patient_id(self, obj):
        return self._profile_pk(obj, "patient")

    def get_doctor_id(self, obj):
        return self._profile_pk(obj, "doctor")

    def get_pharmacy_id(self, obj):
        return self._profile_pk(obj, "pharmacy")


# ---- auth payloads ----

class RegisterSerializer(serializers.Serializer):
    document_id = serializers.CharField(max_length=32)
    first_name = serializers.CharField(max_length=100)
    last_name = serializers.CharField(max_length=100)
    phone = serializers.CharField(max_length=50)
    email = serializers.EmailField()
    date_of_birth = serializers.DateField()
    address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    emergency_contact = serializers.CharField(max_length=255, required=False, allow_blank=True)
    password = serializers.CharField(write_only=True, min_length=8)

    def validate_document_id(self, value: str) -> str:
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Document id cannot be blank.")
        return value

    def validate_email(self, value: str) -> str:
        return value.strip().lower()


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class RefreshTokenSerializer(serializers.Serializer):
    refresh = serializers.CharField()


class ForgotPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField()


class AuthResponseSerializer(serializers.Serializer):
    user = UserSerializer()
    access = serializers.CharField()
    refresh = serializers.CharField()


# ---- admin user management ----

class DoctorProfileInputSerializer(serializers.Serializer):
    document_id = serializers.CharField(max_length=32)
    license_number = serializers.CharField(max_length=64)
    specialty_id = serializers.IntegerField(required=False, allow_null=True)
    specialty_name = serializers.CharField(max_length=120, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True)
    consultation_fee = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, min_value=0)
    accepts_insurance = serializers.BooleanField(required=False)

    def validate(self, attrs):
        partial = getattr(self.root, "partial", False)
        if not partial and not attrs.get("specialty_id") and not (attrs.get("specialty_name") or "").strip():
            raise serializers.ValidationError({"specialty_id": ["Provide specialty_id or specialty_name."]})
        return attrs


class PatientProfileInputSerializer(serializers.Serializer):
    document_id = serializers.CharField(max_length=32)
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True)
    date_of_birth = serializers.DateField(required=False, allow_null=True)
    address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    emergency_contact = serializers.CharField(max_length=255, required=False, allow_blank=True)


class PharmacyProfileInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    license_number = serializers.CharField(max_length=64)
    address = serializers.CharField(max_length=255)
    city = serializers.CharField(max_length=100)
    phone = serializers.CharField(max_length=50)
    pharmacist_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    pharmacist_license = serializers.CharField(max_length=64, required=False, allow_blank=True)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True)
    zip_code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    operating_hours = serializers.CharField(max_length=255, required=False, allow_blank=True)


PROFILE_FOR_ROLE = {
    User.DOCTOR: "doctor",
    User.PATIENT: "patient",
    User.PHARMACY: "pharmacy",
}


class UserCreateSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES)
    is_active = serializers.BooleanField(required=False, default=True)
    doctor = DoctorProfileInputSerializer(required=False)
    patient = PatientProfileInputSerializer(required=False)
    pharmacy = PharmacyProfileInputSerializer(required=False)

    def validate_email(self, value: str) -> str:
        return value.strip().lower()

    def validate(self, attrs):
        needed = PROFILE_FOR_ROLE.get(attrs["role"])
        if needed and not attrs.get(needed):
            raise serializers.ValidationError({needed: [f"Profile data is required for role '{attrs['role']}'."]})
        return attrs


class UserUpdateSerializer(serializers.Serializer):
    email = serializers.EmailField(required=False)
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, required=False)
    is_active = serializers.BooleanField(required=False)
    doctor = DoctorProfileInputSerializer(required=False)
    patient = PatientProfileInputSerializer(required=False)
    pharmacy = PharmacyProfileInputSerializer(required=False)

    def validate_email(self, value: str) -> str:
        return value.strip().lower()
