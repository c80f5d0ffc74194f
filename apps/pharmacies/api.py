# apps/pharmacies/api.py
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
from apps.core.params import parse_bool
from apps.prescriptions.models import Prescription
from apps.prescriptions.services import dispense_blocker
from apps.rbac.permissions import roles_required

from .models import Pharmacy
from .schemas import CreatePharmacyAccountExample, PharmacyStatsResponse, ValidatePrescriptionResponse
from .serializers import (
    PharmacyAccountCreateSerializer,
    PharmacySerializer,
    PharmacyUpdateSerializer,
    ValidatePrescriptionSerializer,
)
from .services import (
    create_pharmacy_account,
    deactivate_pharmacy,
    pharmacy_stats,
    update_pharmacy,
    verify_pharmacy,
)


@extend_schema_view(
    list=extend_schema(
        summary="List pharmacies (paginated)",
        parameters=[
            OpenApiParameter(name="city", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="is_active", required=False, type=OpenApiTypes.BOOL),
            OpenApiParameter(name="q", description="Search name/license/city", required=False, type=OpenApiTypes.STR),
        ],
    ),
    retrieve=extend_schema(summary="Get pharmacy"),
    destroy=extend_schema(
        summary="Deactivate pharmacy (admin)",
        description="Soft delete: the pharmacy and its login are deactivated.",
        responses={204: None},
    ),
)
class PharmacyViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """
    I manage pharmacy accounts: onboarding, edits, verification, soft delete and stats.
    """
    schema_tags = ["Pharmacies"]
    queryset = Pharmacy.objects.select_related("user", "verified_by").all()
    serializer_class = PharmacySerializer
    permission_classes = [IsAuthenticated]
    search_fields = ["name", "license_number", "city"]
    ordering_fields = ["name", "city", "created_at"]
    ordering = ["name", "id"]

    ADMIN_ACTIONS = {"create_account", "partial_update", "destroy", "verify"}

    def get_permissions(self):
        if self.action in self.ADMIN_ACTIONS:
            return [IsAuthenticated(), roles_required("admin")()]
        return super().get_permissions()

    def get_queryset(self):
        qs = super().get_queryset()
        if self.action != "list":
            return qs
        city = self.request.query_params.get("city", "").strip()
        if city:
            qs = qs.filter(city__iexact=city)
        is_active = parse_bool(self.request.query_params.get("is_active"))
        if is_active is not None:
            qs = qs.filter(is_active=is_active)
        return qs

    # ---- onboarding ----
    @extend_schema(
        methods=["POST"],
        summary="Create pharmacy account (admin)",
        description="Creates the login (role `pharmacy`) and the pharmacy profile. License numbers are unique, case-insensitively.",
        request=PharmacyAccountCreateSerializer,
        examples=[CreatePharmacyAccountExample],
        responses={201: PharmacySerializer},
    )
    @action(detail=False, methods=["post"], url_path="create-account")
    def create_account(self, request):
        ser = PharmacyAccountCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)
        email = data.pop("email")
        password = data.pop("password")
        pharmacy = create_pharmacy_account(email=email, password=password, data=data)
        log_event(request, "pharmacy.create", "Pharmacy", pharmacy.id)
        return Response(PharmacySerializer(pharmacy).data, status=status.HTTP_201_CREATED)

    # ---- edits ----
    @extend_schema(
        summary="Update pharmacy (admin, partial)",
        request=PharmacyUpdateSerializer,
        responses={200: PharmacySerializer},
    )
    def partial_update(self, request, *args, **kwargs):
        pharmacy = self.get_object()
        ser = PharmacyUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        update_pharmacy(pharmacy, dict(ser.validated_data))
        log_event(request, "pharmacy.update", "Pharmacy", pharmacy.id, detail={"fields": sorted(ser.validated_data)})
        return Response(PharmacySerializer(pharmacy).data)

    def perform_destroy(self, instance):
        deactivate_pharmacy(instance)
        log_event(self.request, "pharmacy.deactivate", "Pharmacy", instance.id)

    # ---- verification ----
    @extend_schema(methods=["POST"], summary="Verify pharmacy (admin)", request=None, responses={200: PharmacySerializer})
    @action(detail=True, methods=["post"], url_path="verify")
    def verify(self, request, pk=None):
        pharmacy = verify_pharmacy(self.get_object(), by=request.user)
        log_event(request, "pharmacy.verify", "Pharmacy", pharmacy.id)
        return Response(PharmacySerializer(pharmacy).data)

    # ---- stats ----
    @extend_schema(methods=["GET"], summary="Pharmacy dispensation stats", responses={200: PharmacyStatsResponse})
    @action(detail=True, methods=["get"], url_path="stats")
    def stats(self, request, pk=None):
        return Response(pharmacy_stats(self.get_object()))

    # ---- prescription check ----
    @extend_schema(
        methods=["POST"],
        summary="Validate a prescription before dispensing",
        description="`valid` says whether the prescription exists; `reason` names the failing rule when it is not dispensable today.",
        request=ValidatePrescriptionSerializer,
        responses={200: ValidatePrescriptionResponse},
    )
    @action(detail=False, methods=["post"], url_path="validate-prescription")
    def validate_prescription(self, request):
        ser = ValidatePrescriptionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        rx_id = ser.validated_data["prescription_id"]
        rx = Prescription.objects.filter(pk=rx_id).first()
        if rx is None:
            return Response({"prescription_id": rx_id, "valid": False, "dispensable": False, "reason": "not_found"})
        reason = dispense_blocker(rx)
        return Response({"prescription_id": rx_id, "valid": True, "dispensable": reason is None, "reason": reason})
