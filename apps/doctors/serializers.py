from rest_framework import serializers

from .models import Doctor, Specialty
from .services import asset_urls


class SpecialtySerializer(serializers.ModelSerializer):
    class Meta:
        model = Specialty
        fields = ["id", "name", "description", "is_active", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]


class _AssetUrlsMixin(serializers.Serializer):
    signature_url = serializers.SerializerMethodField()
    seal_url = serializers.SerializerMethodField()
    stamp_url = serializers.SerializerMethodField()

    def _urls(self, obj):
        cache = self.context.setdefault("_asset_urls", {})
        if obj.pk not in cache:
            cache[obj.pk] = asset_urls(obj, self.context.get("request"))
        return cache[obj.pk]

    def get_signature_url(self, obj):
        return self._urls(obj)["signature_url"]

    def get_seal_url(self, obj):
        return self._urls(obj)["seal_url"]

    def get_stamp_url(self, obj):
        return self._urls(obj)["stamp_url"]


class DoctorSerializer(_AssetUrlsMixin, serializers.ModelSerializer):
    specialty = serializers.CharField(source="specialty.name", read_only=True)
    full_name = serializers.CharField(read_only=True)
    email = serializers.EmailField(source="user.email", read_only=True)
    is_active = serializers.BooleanField(source="user.is_active", read_only=True)

    class Meta:
        model = Doctor
        fields = [
            "id", "user", "first_name", "last_name", "full_name", "email",
            "document_id", "license_number", "phone",
            "specialty_id", "specialty",
            "consultation_fee", "accepts_insurance", "is_active",
            "signature_url", "seal_url", "stamp_url",
            "created_at", "updated_at",
        ]
        read_only_fields = fields


class DoctorSummarySerializer(_AssetUrlsMixin, serializers.ModelSerializer):
    """Compact doctor block embedded in prescriptions and appointments."""

    specialty = serializers.CharField(source="specialty.name", read_only=True)
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = Doctor
        fields = [
            "id", "first_name", "last_name", "full_name",
            "license_number", "specialty",
            "signature_url", "seal_url", "stamp_url",
        ]
        read_only_fields = fields


class StampUploadSerializer(serializers.Serializer):
    file = serializers.ImageField()
