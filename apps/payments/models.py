# apps/payments/models.py
import uuid
from decimal import Decimal

from django.db import models
from django.db.models import Q
from django.utils import timezone


def new_transaction_id(prefix: str = "TX") -> str:
    return f"{prefix}-{uuid.uuid4().hex.upper()}"


class Payment(models.Model):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (PROCESSING, "Processing"),
        (COMPLETED, "Completed"),
        (FAILED, "Failed"),
        (REFUNDED, "Refunded"),
        (CANCELLED, "Cancelled"),
    ]

    METHOD_CHOICES = [
        ("credit_card", "Credit card"),
        ("debit_card", "Debit card"),
        ("cash", "Cash"),
        ("insurance", "Insurance"),
        ("bank_transfer", "Bank transfer"),
    ]

    TYPE_CHOICES = [
        ("prepaid", "Prepaid"),
        ("postpaid", "Postpaid"),
    ]

    appointment = models.ForeignKey(
        "appointments.Appointment", on_delete=models.PROTECT, related_name="payments"
    )
    patient = models.ForeignKey(
        "patients.Patient", on_delete=models.PROTECT, related_name="payments"
    )

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=8, default="USD")
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=PENDING, db_index=True)
    payment_method = models.CharField(max_length=20, choices=METHOD_CHOICES, default="cash")
    payment_type = models.CharField(max_length=10, choices=TYPE_CHOICES, default="prepaid")

    transaction_id = models.CharField(max_length=40, unique=True, default=new_transaction_id)
    payment_gateway = models.CharField(max_length=60, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    payment_date = models.DateTimeField(null=True, blank=True)
    due_date = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [models.Index(fields=["patient", "created_at"])]
        constraints = [
            models.CheckConstraint(name="payment_amount_non_negative", condition=Q(amount__gte=0)),
        ]

    def __str__(self) -> str:
        return f"{self.transaction_id} {self.amount} {self.currency} ({self.status})"

    @property
    def refunded_amount(self) -> Decimal:
        total = self.refunds.aggregate(total=models.Sum("amount"))["total"]
        return total or Decimal("0.00")


class PaymentRefund(models.Model):
    payment = models.ForeignKey(Payment, on_delete=models.CASCADE, related_name="refunds")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    reason = models.CharField(max_length=255)
    refunded_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-refunded_at", "-id"]
        constraints = [
            models.CheckConstraint(name="refund_amount_positive", condition=Q(amount__gt=0)),
        ]

    def __str__(self) -> str:
        return f"Refund {self.amount} on {self.payment_id}"
