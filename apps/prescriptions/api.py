# apps/prescriptions/api.py
from django.http import HttpResponse
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
from apps.core.pagination import PagedResults
from apps.core.params import local_today, optional_int
from apps.rbac.permissions import roles_required
from apps.rbac.utils import actor_for

from . import services
from .models import Dispensation, Prescription
from .pdf import prescription_pdf_bytes
from .schemas import (
    ByDocumentResponse,
    CreateContinuousExample,
    CreatePrescriptionExample,
    ErrorResponse,
    PatchPrescriptionExample,
    PatientReportExample,
    PharmacyDispenseExample,
    StaffDispenseExample,
)
from .serializers import (
    DispensationSerializer,
    DispenseSerializer,
    PrescriptionCreateSerializer,
    PrescriptionSerializer,
    PrescriptionUpdateSerializer,
)

STATUS_PARAM = OpenApiParameter(
    name="status",
    description="Projected label: active, used/dispensed, expired, cancelled, paused.",
    required=False,
    type=OpenApiTypes.STR,
)


@extend_schema_view(
    list=extend_schema(
        summary="List prescriptions (paginated)",
        description=(
            "Doctors and patients only see their own prescriptions. Pharmacies must pass "
            "`patient_document_id`. Newest first."
        ),
        parameters=[
            OpenApiParameter(name="patient_id", required=False, type=OpenApiTypes.INT),
            OpenApiParameter(name="doctor_id", required=False, type=OpenApiTypes.INT),
            OpenApiParameter(
                name="patient_document_id",
                description="Matches as typed or with '-' and spaces removed.",
                required=False,
                type=OpenApiTypes.STR,
            ),
            STATUS_PARAM,
            OpenApiParameter(name="medication_name", description="Substring match", required=False, type=OpenApiTypes.STR),
        ],
    ),
    retrieve=extend_schema(
        summary="Get prescription",
        description="Scoped like the list. Emits `rx.view` audit.",
    ),
)
class PrescriptionViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    I expose the prescription lifecycle: prescribing, structured edits,
    dispensing (pharmacy, staff or patient self-report), ledger and PDF.
    Prescriptions are never deleted; cancel them through PATCH.
    """
    schema_tags = ["Prescriptions"]
    serializer_class = PrescriptionSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = PagedResults
    filter_backends = []

    # ---- helpers ----
    @property
    def actor(self):
        if not hasattr(self, "_actor"):
            self._actor = actor_for(self.request.user)
        return self._actor

    def get_permissions(self):
        if self.action in {"create", "partial_update"}:
            return [IsAuthenticated(), roles_required("doctor", "admin")()]
        if self.action == "by_document":
            return [IsAuthenticated(), roles_required("pharmacy", "admin", "secretary")()]
        return super().get_permissions()

    def get_queryset(self):
        return services.visible_to(self.actor)

    def get_serializer_context(self):
        ctx = super().get_serializer_context()
        ctx["viewer_role"] = self.actor.role
        ctx["today"] = local_today()
        return ctx

    def _present(self, rx_id: int, code=status.HTTP_200_OK) -> Response:
        rx = services.base_queryset().get(pk=rx_id)
        return Response(self.get_serializer(rx).data, status=code)

    # ---- list with manual filters ----
    def list(self, request, *args, **kwargs):
        qp = request.query_params
        qs = services.search(
            self.actor,
            patient_id=optional_int(qp.get("patient_id")),
            doctor_id=optional_int(qp.get("doctor_id")),
            patient_document_id=qp.get("patient_document_id", ""),
            status=qp.get("status", ""),
            medication_name=qp.get("medication_name", ""),
        )
        page = self.paginate_queryset(qs)
        return self.get_paginated_response(self.get_serializer(page, many=True).data)

    # ---- retrieve ----
    def retrieve(self, request, *args, **kwargs):
        obj = self.get_object()
        log_event(request, "rx.view", "Prescription", obj.id)
        return Response(self.get_serializer(obj).data)

    # ---- create ----
    @extend_schema(
        summary="Create prescription (doctor, admin)",
        description=(
            "Doctors always prescribe as themselves; admins pass `doctor_id`. Defaults: one dispensation, "
            "valid for 30 days. Unknown patient/doctor → 404."
        ),
        request=PrescriptionCreateSerializer,
        examples=[CreatePrescriptionExample, CreateContinuousExample],
        responses={201: PrescriptionSerializer, 403: ErrorResponse, 404: ErrorResponse},
    )
    def create(self, request, *args, **kwargs):
        ser = PrescriptionCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        rx = services.create_prescription(self.actor, **ser.validated_data)
        log_event(request, "rx.create", "Prescription", rx.id, detail={"patient_id": rx.patient_id})
        return self._present(rx.id, status.HTTP_201_CREATED)

    # ---- structured partial update ----
    @extend_schema(
        summary="Update prescription (partial)",
        description=(
            "Doctors edit their own prescriptions, admins any. Setting `is_continuous=false` clears the refill "
            "fields. An expiration before the last recorded dispensation is refused with **409**."
        ),
        request=PrescriptionUpdateSerializer,
        examples=[PatchPrescriptionExample],
        responses={200: PrescriptionSerializer, 403: ErrorResponse, 404: ErrorResponse, 409: ErrorResponse},
    )
    def partial_update(self, request, pk=None, *args, **kwargs):
        ser = PrescriptionUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        rx = services.update_prescription(int(pk), actor=self.actor, changes=dict(ser.validated_data))
        log_event(request, "rx.update", "Prescription", rx.id, detail={"fields": sorted(ser.validated_data)})
        return self._present(rx.id)

    # ---- dispense ----
    @extend_schema(
        methods=["POST"],
        summary="Dispense a prescription",
        description=(
            "Pharmacy accounts send `quantity`; admins/secretaries send `pharmacy_id` + `quantity`; patients send "
            "`current_dispensations` for their own prescription. Business-rule failures return **400** with a "
            "`code` of `invalid_state`, `expired`, `exhausted_dispensations` or `refill_not_due`."
        ),
        request=DispenseSerializer,
        examples=[PharmacyDispenseExample, StaffDispenseExample, PatientReportExample],
        responses={
            201: DispensationSerializer,
            200: PrescriptionSerializer,
            400: ErrorResponse,
            403: ErrorResponse,
            404: ErrorResponse,
            409: ErrorResponse,
        },
    )
    @action(detail=True, methods=["post"], url_path="dispense")
    def dispense(self, request, pk=None):
        ser = DispenseSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        vd = ser.validated_data
        result = services.dispense(
            int(pk),
            actor=self.actor,
            quantity=vd.get("quantity"),
            pharmacy_id=vd.get("pharmacy_id"),
            current_dispensations=vd.get("current_dispensations"),
            unit=vd.get("unit", "unit"),
            notes=vd.get("notes", ""),
        )
        if isinstance(result, Dispensation):
            log_event(
                request, "rx.dispense", "Prescription", pk,
                detail={"dispensation_number": result.dispensation_number, "pharmacy_id": result.pharmacy_id},
            )
            return Response(DispensationSerializer(result).data, status=status.HTTP_201_CREATED)

        log_event(
            request, "rx.self_report", "Prescription", pk,
            detail={"current_dispensations": result.current_dispensations},
        )
        return self._present(result.id)

    # ---- ledger ----
    @extend_schema(
        methods=["GET"],
        summary="Dispensation ledger",
        description="Every recorded dispensation of this prescription, oldest first.",
        responses={200: DispensationSerializer(many=True)},
    )
    @action(detail=True, methods=["get"], url_path="dispensations")
    def dispensations(self, request, pk=None):
        rx = self.get_object()
        rows = rx.dispensations.select_related("pharmacy").order_by("dispensation_number", "id")
        return Response(DispensationSerializer(rows, many=True).data)

    # ---- by patient document ----
    @extend_schema(
        methods=["GET"],
        summary="Prescriptions by patient document (pharmacy, admin, secretary)",
        parameters=[STATUS_PARAM],
        responses={200: ByDocumentResponse},
    )
    @action(detail=False, methods=["get"], url_path=r"by-document/(?P<document_id>[^/]+)")
    def by_document(self, request, document_id=None):
        qs = services.search(
            self.actor,
            patient_document_id=document_id,
            status=request.query_params.get("status", ""),
        )
        page = self.paginate_queryset(qs)
        response = self.get_paginated_response(self.get_serializer(page, many=True).data)
        response.data["document_id"] = document_id
        return response

    # ---- printable ----
    @extend_schema(
        methods=["GET"],
        summary="Download prescription PDF",
        responses={(200, "application/pdf"): OpenApiTypes.BINARY},
    )
    @action(detail=True, methods=["get"], url_path="pdf")
    def pdf(self, request, pk=None):
        rx: Prescription = self.get_object()
        data = prescription_pdf_bytes(rx, viewer_role=self.actor.role, today=local_today())
        resp = HttpResponse(data, content_type="application/pdf")
        resp["Content-Disposition"] = f'inline; filename="prescription-{rx.id}.pdf"'
        log_event(request, "rx.pdf", "Prescription", rx.id)
        return resp
