# apps/appointments/admin.py
from django.contrib import admin
from .models import Appointment


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ("id", "patient", "doctor", "appointment_date", "status", "fee", "is_paid", "is_confirmed")
    list_filter = ("status", "is_paid", "is_confirmed", "doctor")
    search_fields = ("reason", "patient__first_name", "patient__last_name", "patient__document_id")
    date_hierarchy = "appointment_date"
