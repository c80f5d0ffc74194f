# apps/payments/serializers.py
from decimal import Decimal

from rest_framework import serializers

from .models import Payment, PaymentRefund


class PaymentRefundSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentRefund
        fields = ["id", "amount", "reason", "refunded_at"]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)
    appointment_date = serializers.DateTimeField(source="appointment.appointment_date", read_only=True)
    refunds = PaymentRefundSerializer(many=True, read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id", "appointment_id", "appointment_date", "patient_id", "patient_name",
            "amount", "currency", "status", "payment_method", "payment_type",
            "transaction_id", "payment_gateway", "notes", "payment_date", "due_date",
            "refunds", "created_at", "updated_at",
        ]
        read_only_fields = fields


class PaymentCreateSerializer(serializers.Serializer):
    appointment_id = serializers.IntegerField()
    # I default to the appointment fee when omitted.
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    currency = serializers.CharField(max_length=8, required=False, default="USD")
    payment_method = serializers.ChoiceField(choices=Payment.METHOD_CHOICES, required=False, default="cash")
    payment_type = serializers.ChoiceField(choices=Payment.TYPE_CHOICES, required=False, default="prepaid")
    payment_gateway = serializers.CharField(max_length=60, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    due_date = serializers.DateField(required=False, allow_null=True)


class PaymentUpdateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    currency = serializers.CharField(max_length=8, required=False)
    status = serializers.ChoiceField(choices=Payment.STATUS_CHOICES, required=False)
    payment_method = serializers.ChoiceField(choices=Payment.METHOD_CHOICES, required=False)
    payment_type = serializers.ChoiceField(choices=Payment.TYPE_CHOICES, required=False)
    payment_gateway = serializers.CharField(max_length=60, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    due_date = serializers.DateField(required=False, allow_null=True)


class RefundSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.01"))
    reason = serializers.CharField(max_length=255)


class MonthlyStatSerializer(serializers.Serializer):
    month = serializers.CharField()
    total_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    payment_count = serializers.IntegerField()


class PaymentSummarySerializer(serializers.Serializer):
    total_payments = serializers.IntegerField()
    total_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_refunded = serializers.DecimalField(max_digits=14, decimal_places=2)
    successful_payments = serializers.IntegerField()
    failed_payments = serializers.IntegerField()
    pending_payments = serializers.IntegerField()


class PaymentHistorySerializer(serializers.Serializer):
    payments = PaymentSerializer(many=True)
    summary = PaymentSummarySerializer()
    monthly_stats = MonthlyStatSerializer(many=True)
