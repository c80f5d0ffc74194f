from django.contrib import admin

from .models import Doctor, DoctorAsset, Specialty


@admin.register(Specialty)
class SpecialtyAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "is_active", "created_at")
    search_fields = ("name",)
    list_filter = ("is_active",)


class DoctorAssetInline(admin.StackedInline):
    model = DoctorAsset
    can_delete = False
    extra = 0


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ("id", "last_name", "first_name", "license_number", "specialty", "consultation_fee")
    search_fields = ("last_name", "first_name", "license_number", "document_id", "user__email")
    list_filter = ("specialty", "accepts_insurance")
    inlines = [DoctorAssetInline]
