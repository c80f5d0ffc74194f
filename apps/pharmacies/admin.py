from django.contrib import admin

from .models import Pharmacy


@admin.register(Pharmacy)
class PharmacyAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "license_number", "city", "is_active", "is_verified", "verified_at")
    search_fields = ("name", "license_number", "city", "pharmacist_name", "user__email")
    list_filter = ("is_active", "is_verified", "city")
    readonly_fields = ("verified_at", "verified_by", "created_at", "updated_at")
