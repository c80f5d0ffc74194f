# apps/payments/services.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict

from django.db import transaction
from django.db.models import Count, Q, QuerySet, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone
from rest_framework.exceptions import NotFound

from apps.appointments.models import Appointment
from apps.core.exceptions import Forbidden, InvalidRequest
from apps.rbac.utils import Actor

from .models import Payment, PaymentRefund, new_transaction_id

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 200


def visible_to(actor: Actor) -> QuerySet[Payment]:
    qs = Payment.objects.select_related("patient", "appointment")
    if actor.role == "patient":
        return qs.filter(patient_id=actor.patient_id) if actor.patient_id else qs.none()
    if actor.role in {"admin", "secretary"}:
        return qs
    return qs.none()


@transaction.atomic
def create_payment(actor: Actor, data: Dict[str, Any]) -> Payment:
    """New payments always start pending with a fresh TX- transaction id."""
    appt = Appointment.objects.select_related("patient").filter(pk=data.pop("appointment_id")).first()
    if appt is None:
        raise NotFound("Appointment not found.")
    if actor.role == "patient" and appt.patient_id != actor.patient_id:
        raise Forbidden("You can only pay for your own appointments.")

    amount = data.pop("amount", None)
    payment = Payment.objects.create(
        appointment=appt,
        patient=appt.patient,
        amount=appt.fee if amount is None else amount,
        status=Payment.PENDING,
        transaction_id=new_transaction_id("TX"),
        **data,
    )
    logger.info("payment %s created for appointment %s", payment.transaction_id, appt.id)
    return payment


@transaction.atomic
def update_payment(payment: Payment, changes: Dict[str, Any]) -> Payment:
    for key, value in changes.items():
        setattr(payment, key, value)
    payment.save()
    return payment


@transaction.atomic
def process_payment(payment: Payment) -> Payment:
    """Mark the payment completed now and flag its appointment as paid."""
    if payment.status in {Payment.REFUNDED, Payment.CANCELLED}:
        raise InvalidRequest(f"A {payment.status} payment cannot be processed.")
    payment.status = Payment.COMPLETED
    payment.payment_date = timezone.now()
    payment.save(update_fields=["status", "payment_date", "updated_at"])
    Appointment.objects.filter(pk=payment.appointment_id).update(is_paid=True)
    return payment


@transaction.atomic
def refund_payment(payment: Payment, *, amount: Decimal, reason: str) -> PaymentRefund:
    payment = Payment.objects.select_for_update().get(pk=payment.pk)
    if payment.status not in {Payment.COMPLETED, Payment.REFUNDED}:
        raise InvalidRequest("Only completed payments can be refunded.")
    refundable = payment.amount - payment.refunded_amount
    if amount > refundable:
        raise InvalidRequest(f"Refund exceeds the refundable amount ({refundable}).")
    refund = PaymentRefund.objects.create(payment=payment, amount=amount, reason=reason.strip())
    payment.status = Payment.REFUNDED
    payment.save(update_fields=["status", "updated_at"])
    return refund


def simulate_payment(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Dry run for client integrations; nothing is stored."""
    return {"ok": True, "simulated": True, "transaction_id": new_transaction_id("SIM"), "payload": payload}


def payment_history(qs: QuerySet[Payment]) -> Dict[str, Any]:
    agg = qs.aggregate(
        total_payments=Count("id"),
        total_amount=Sum("amount"),
        successful_payments=Count("id", filter=Q(status=Payment.COMPLETED)),
        failed_payments=Count("id", filter=Q(status=Payment.FAILED)),
        pending_payments=Count("id", filter=Q(status=Payment.PENDING)),
    )
    refunded = PaymentRefund.objects.filter(payment__in=qs).aggregate(total=Sum("amount"))["total"]
    summary = {
        "total_payments": agg["total_payments"],
        "total_amount": agg["total_amount"] or Decimal("0.00"),
        "total_refunded": refunded or Decimal("0.00"),
        "successful_payments": agg["successful_payments"],
        "failed_payments": agg["failed_payments"],
        "pending_payments": agg["pending_payments"],
    }
    monthly = (
        qs.order_by()
        .annotate(month=TruncMonth("created_at"))
        .values("month")
        .annotate(total_amount=Sum("amount"), payment_count=Count("id"))
        .order_by("-month")
    )
    monthly_stats = [
        {
            "month": row["month"].strftime("%Y-%m"),
            "total_amount": row["total_amount"] or Decimal("0.00"),
            "payment_count": row["payment_count"],
        }
        for row in monthly
    ]
    return {
        "payments": list(qs[:HISTORY_LIMIT]),
        "summary": summary,
        "monthly_stats": monthly_stats,
    }
