# apps/dashboard/api.py
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.exceptions import NotFound

from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from apps.core.exceptions import InvalidRequest
from apps.core.params import optional_int
from apps.doctors.models import Doctor
from apps.rbac.permissions import roles_required
from apps.rbac.utils import actor_for

from .services import admin_overview, doctor_overview, secretary_overview


@extend_schema(
    tags=["Dashboard"],
    summary="Admin dashboard",
    description="User counts by role, appointment counts by status, revenue totals and the latest audit events.",
    responses={200: OpenApiTypes.OBJECT},
)
class AdminDashboardView(APIView):
    permission_classes = [IsAuthenticated, roles_required("admin")]

    def get(self, request):
        return Response(admin_overview())


@extend_schema(
    tags=["Dashboard"],
    summary="Secretary dashboard",
    description="Today's appointments and those still waiting for confirmation.",
    responses={200: OpenApiTypes.OBJECT},
)
class SecretaryDashboardView(APIView):
    permission_classes = [IsAuthenticated, roles_required("secretary")]

    def get(self, request):
        return Response(secretary_overview())


@extend_schema(
    tags=["Dashboard"],
    summary="Doctor dashboard",
    description="Stats and schedule for the calling doctor. Admins pick a doctor with `doctor_id`.",
    parameters=[OpenApiParameter(name="doctor_id", required=False, type=OpenApiTypes.INT)],
    responses={200: OpenApiTypes.OBJECT},
)
class DoctorDashboardView(APIView):
    permission_classes = [IsAuthenticated, roles_required("doctor")]

    def get(self, request):
        actor = actor_for(request.user)
        doctor_id = actor.doctor_id
        if actor.role == "admin":
            doctor_id = optional_int(request.query_params.get("doctor_id")) or doctor_id
        if not doctor_id:
            raise InvalidRequest("Could not determine the doctor; pass doctor_id.")
        doctor = Doctor.objects.with_related().filter(pk=doctor_id).first()
        if doctor is None:
            raise NotFound("Doctor not found.")
        return Response(doctor_overview(doctor))
