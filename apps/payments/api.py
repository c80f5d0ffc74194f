# apps/payments/api.py
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from drf_spectacular.utils import (
    extend_schema,
    extend_schema_view,
    OpenApiParameter,
)
from drf_spectacular.types import OpenApiTypes

from apps.audit.utils import log_event
from apps.core.params import optional_int
from apps.rbac.permissions import roles_required
from apps.rbac.utils import actor_for

from .schemas import CreatePaymentExample, RefundExample, SimulateResponse
from .serializers import (
    PaymentCreateSerializer,
    PaymentHistorySerializer,
    PaymentSerializer,
    PaymentUpdateSerializer,
    RefundSerializer,
)
from .services import (
    create_payment,
    payment_history,
    process_payment,
    refund_payment,
    simulate_payment,
    update_payment,
    visible_to,
)

PATIENT_FILTER = OpenApiParameter(name="patient_id", required=False, type=OpenApiTypes.INT)


@extend_schema_view(
    list=extend_schema(
        summary="List payments (paginated)",
        description="Patients only see their own payments.",
        parameters=[PATIENT_FILTER],
    ),
    retrieve=extend_schema(summary="Get payment"),
    create=extend_schema(
        summary="Create payment",
        description="Starts as `pending` with a `TX-` transaction id.",
        request=PaymentCreateSerializer,
        examples=[CreatePaymentExample],
        responses={201: PaymentSerializer},
    ),
    partial_update=extend_schema(
        summary="Update payment (admin/secretary, partial)",
        request=PaymentUpdateSerializer,
        responses={200: PaymentSerializer},
    ),
)
class PaymentViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """
    I record appointment payments, refunds and the billing history.
    """
    schema_tags = ["Payments"]
    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated, roles_required("secretary", "patient")]
    filter_backends = []
    http_method_names = ["get", "post", "patch", "head", "options"]

    STAFF_ACTIONS = {"partial_update", "refund", "process"}

    def get_permissions(self):
        if self.action in self.STAFF_ACTIONS:
            return [IsAuthenticated(), roles_required("secretary")()]
        if self.action == "simulate":
            return [IsAuthenticated()]
        return super().get_permissions()

    def get_queryset(self):
        qs = visible_to(actor_for(self.request.user)).prefetch_related("refunds")
        patient_id = optional_int(self.request.query_params.get("patient_id"))
        if patient_id and self.action in {"list", "history"}:
            qs = qs.filter(patient_id=patient_id)
        return qs

    def create(self, request, *args, **kwargs):
        ser = PaymentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        payment = create_payment(actor_for(request.user), dict(ser.validated_data))
        log_event(request, "payment.create", "Payment", payment.id, detail={"transaction_id": payment.transaction_id})
        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        payment = self.get_object()
        ser = PaymentUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        update_payment(payment, dict(ser.validated_data))
        log_event(request, "payment.update", "Payment", payment.id, detail={"fields": sorted(ser.validated_data)})
        return Response(PaymentSerializer(payment).data)

    @extend_schema(
        methods=["POST"],
        summary="Simulate a payment",
        description="Echoes the payload with a `SIM-` transaction id. Nothing is stored.",
        request=OpenApiTypes.OBJECT,
        responses={200: SimulateResponse},
    )
    @action(detail=False, methods=["post"], url_path="simulate")
    def simulate(self, request):
        payload = request.data if isinstance(request.data, dict) else {}
        return Response(simulate_payment(dict(payload)))

    @extend_schema(
        methods=["GET"],
        summary="Payment history with summary and monthly stats",
        parameters=[PATIENT_FILTER],
        responses={200: PaymentHistorySerializer},
    )
    @action(detail=False, methods=["get"], url_path="history")
    def history(self, request):
        return Response(PaymentHistorySerializer(payment_history(self.get_queryset())).data)

    @extend_schema(
        methods=["POST"],
        summary="Refund payment (admin/secretary)",
        description="Amount cannot exceed what is left to refund. The payment becomes `refunded`.",
        request=RefundSerializer,
        examples=[RefundExample],
        responses={200: PaymentSerializer},
    )
    @action(detail=True, methods=["post"], url_path="refund")
    def refund(self, request, pk=None):
        payment = self.get_object()
        ser = RefundSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        refund = refund_payment(payment, **ser.validated_data)
        log_event(request, "payment.refund", "Payment", payment.id, detail={"amount": str(refund.amount)})
        return Response(PaymentSerializer(self.get_queryset().get(pk=payment.pk)).data)

    @extend_schema(
        methods=["POST"],
        summary="Process payment (admin/secretary)",
        description="Marks the payment completed with the current time and the appointment as paid.",
        request=None,
        responses={200: PaymentSerializer},
    )
    @action(detail=True, methods=["post"], url_path="process")
    def process(self, request, pk=None):
        payment = process_payment(self.get_object())
        log_event(request, "payment.process", "Payment", payment.id)
        return Response(PaymentSerializer(payment).data)
