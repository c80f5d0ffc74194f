# apps/doctors/api.py
from django.db.models import ProtectedError
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from drf_spectacular.utils import (
    extend_schema,
    extend_schema_view,
    OpenApiParameter,
)
from drf_spectacular.types import OpenApiTypes

from apps.audit.utils import log_event
from apps.core.pagination import CatalogPages
from apps.core.params import optional_int, parse_bool
from apps.rbac.permissions import roles_required

from .models import Doctor, Specialty
from .schemas import CreateSpecialtyExample, SpecialtyInUse409, StampUploadResponse
from .serializers import DoctorSerializer, SpecialtySerializer, StampUploadSerializer
from .services import asset_urls, save_doctor_stamp


@extend_schema_view(
    list=extend_schema(summary="List specialties", description="Public catalogue; no authentication needed."),
    retrieve=extend_schema(summary="Get specialty"),
    create=extend_schema(summary="Create specialty (admin)", examples=[CreateSpecialtyExample]),
    partial_update=extend_schema(summary="Update specialty (admin, partial)"),
    destroy=extend_schema(
        summary="Delete specialty (admin)",
        description="Refused with **409** while doctors still reference the specialty.",
        responses={204: None, 409: SpecialtyInUse409},
    ),
)
class SpecialtyViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """
    I serve the specialty catalogue. Reads are public, writes are admin-only.
    """
    schema_tags = ["Doctors"]
    queryset = Specialty.objects.all()
    serializer_class = SpecialtySerializer
    pagination_class = None
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_permissions(self):
        if self.action in {"list", "retrieve"}:
            return [AllowAny()]
        return [IsAuthenticated(), roles_required("admin")()]

    def get_queryset(self):
        qs = super().get_queryset()
        if not parse_bool(self.request.query_params.get("include_inactive"), False):
            qs = qs.filter(is_active=True)
        return qs

    def perform_create(self, serializer):
        obj = serializer.save()
        log_event(self.request, "specialty.create", "Specialty", obj.id)

    def perform_update(self, serializer):
        obj = serializer.save()
        log_event(self.request, "specialty.update", "Specialty", obj.id)

    def destroy(self, request, *args, **kwargs):
        obj = self.get_object()
        try:
            obj.delete()
        except ProtectedError:
            return Response(
                {
                    "detail": "Specialty is assigned to doctors; deactivate it instead.",
                    "code": "conflict",
                    "doctor_count": obj.doctors.count(),
                },
                status=status.HTTP_409_CONFLICT,
            )
        log_event(request, "specialty.delete", "Specialty", kwargs.get("pk"))
        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema_view(
    list=extend_schema(
        summary="List doctors (paginated)",
        parameters=[
            OpenApiParameter(name="specialty_id", required=False, type=OpenApiTypes.INT),
            OpenApiParameter(
                name="is_active",
                description="Filter on the doctor's account (default true).",
                required=False,
                type=OpenApiTypes.BOOL,
            ),
            OpenApiParameter(name="q", description="Search by name or license", required=False, type=OpenApiTypes.STR),
        ],
    ),
    retrieve=extend_schema(summary="Get doctor"),
)
class DoctorViewSet(viewsets.ReadOnlyModelViewSet):
    """
    I list doctors for booking and prescription headers, and accept stamp uploads from admins.
    """
    schema_tags = ["Doctors"]
    queryset = Doctor.objects.with_related().all()
    serializer_class = DoctorSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = CatalogPages
    search_fields = ["first_name", "last_name", "license_number"]
    ordering_fields = ["last_name", "consultation_fee", "created_at"]
    ordering = ["last_name", "first_name", "id"]

    def get_queryset(self):
        qs = super().get_queryset()
        if self.action != "list":
            return qs
        specialty_id = optional_int(self.request.query_params.get("specialty_id"))
        if specialty_id:
            qs = qs.filter(specialty_id=specialty_id)
        is_active = parse_bool(self.request.query_params.get("is_active"), True)
        if is_active is not None:
            qs = qs.filter(user__is_active=is_active)
        return qs

    @extend_schema(
        methods=["POST"],
        summary="Upload doctor stamp (admin)",
        description="Multipart `file` (png, jpg, jpeg or webp, up to 10 MB). Stored as the doctor's seal.",
        request={"multipart/form-data": StampUploadSerializer},
        responses={200: StampUploadResponse},
    )
    @action(
        detail=True,
        methods=["post"],
        url_path="stamp",
        parser_classes=[MultiPartParser, FormParser],
        permission_classes=[IsAuthenticated, roles_required("admin")],
    )
    def stamp(self, request, pk=None):
        doctor = self.get_object()
        ser = StampUploadSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        save_doctor_stamp(doctor, ser.validated_data["file"])
        doctor.refresh_from_db()
        log_event(request, "doctor.stamp", "Doctor", doctor.id)
        return Response({"doctor_id": doctor.id, "stamp_url": asset_urls(doctor, request)["stamp_url"]})
