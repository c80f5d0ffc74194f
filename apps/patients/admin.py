from django.contrib import admin

from .models import MedicalHistory, Patient


class MedicalHistoryInline(admin.TabularInline):
    model = MedicalHistory
    extra = 0
    fields = ("condition", "diagnosis_date", "doctor")
    readonly_fields = ("doctor",)


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ("id", "last_name", "first_name", "document_id", "date_of_birth", "phone")
    search_fields = ("last_name", "first_name", "document_id", "phone", "user__email")
    list_filter = ("date_of_birth",)
    inlines = [MedicalHistoryInline]


@admin.register(MedicalHistory)
class MedicalHistoryAdmin(admin.ModelAdmin):
    list_display = ("id", "patient", "condition", "doctor", "diagnosis_date")
    search_fields = ("condition", "patient__last_name", "patient__document_id")
    list_filter = ("diagnosis_date",)
