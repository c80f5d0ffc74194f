from django.contrib import admin

from .models import Dispensation, Prescription


class DispensationInline(admin.TabularInline):
    model = Dispensation
    extra = 0
    can_delete = False
    readonly_fields = (
        "dispensation_number", "actor_type", "pharmacy", "performed_by",
        "quantity_dispensed", "unit", "price", "pharmacist_notes", "dispensed_at",
    )

    def has_add_permission(self, request, obj=None):
        # Ledger rows are only written by the dispense endpoint.
        return False


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = (
        "id", "medication_name", "patient", "doctor", "status",
        "current_dispensations", "max_dispensations", "expiration_date", "is_continuous",
    )
    list_filter = ("status", "is_continuous")
    search_fields = ("medication_name", "digital_signature", "patient__document_id", "patient__last_name")
    readonly_fields = ("digital_signature", "current_dispensations", "last_dispensed_at", "created_at", "updated_at")
    inlines = [DispensationInline]
