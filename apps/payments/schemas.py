# apps/payments/schemas.py
from drf_spectacular.utils import OpenApiExample, inline_serializer
from rest_framework import serializers

SimulateResponse = inline_serializer(
    name="PaymentSimulation",
    fields={
        "ok": serializers.BooleanField(),
        "simulated": serializers.BooleanField(),
        "transaction_id": serializers.CharField(),
        "payload": serializers.DictField(),
    },
)

CreatePaymentExample = OpenApiExample(
    "Card payment for an appointment",
    value={"appointment_id": 7, "payment_method": "credit_card", "payment_gateway": "stripe"},
    description="Amount defaults to the appointment fee.",
)

RefundExample = OpenApiExample(
    "Partial refund",
    value={"amount": "20.00", "reason": "Consultation shortened"},
)
