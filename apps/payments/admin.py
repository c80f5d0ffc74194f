from django.contrib import admin

from .models import Payment, PaymentRefund


class PaymentRefundInline(admin.TabularInline):
    model = PaymentRefund
    extra = 0


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "transaction_id", "patient", "amount", "currency", "status", "payment_method", "payment_date")
    list_filter = ("status", "payment_method", "payment_type")
    search_fields = ("transaction_id", "patient__last_name", "patient__document_id")
    inlines = [PaymentRefundInline]
