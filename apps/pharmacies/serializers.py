from rest_framework import serializers

from .models import Pharmacy


class PharmacySerializer(serializers.ModelSerializer):
    verified_by_email = serializers.EmailField(source="verified_by.email", read_only=True, default=None)

    class Meta:
        model = Pharmacy
        fields = [
            "id", "user", "name", "license_number", "pharmacist_name", "pharmacist_license",
            "address", "city", "state", "zip_code", "phone", "email", "operating_hours",
            "is_active", "is_verified", "verified_at", "verified_by", "verified_by_email",
            "notes", "created_at", "updated_at",
        ]
        read_only_fields = fields


class PharmacyAccountCreateSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
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
    notes = serializers.CharField(required=False, allow_blank=True)


class PharmacyUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, required=False)
    license_number = serializers.CharField(max_length=64, required=False)
    pharmacist_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    pharmacist_license = serializers.CharField(max_length=64, required=False, allow_blank=True)
    address = serializers.CharField(max_length=255, required=False)
    city = serializers.CharField(max_length=100, required=False)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True)
    zip_code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=50, required=False)
    email = serializers.EmailField(required=False, allow_blank=True)
    operating_hours = serializers.CharField(max_length=255, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    is_active = serializers.BooleanField(required=False)


class ValidatePrescriptionSerializer(serializers.Serializer):
    prescription_id = serializers.IntegerField()
