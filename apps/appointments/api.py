# apps/appointments/api.py
from rest_framework import mixins, status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from drf_spectacular.utils import (
    extend_schema,
    extend_schema_view,
    OpenApiParameter,
)
from drf_spectacular.types import OpenApiTypes

from apps.audit.utils import log_event
from apps.rbac.permissions import roles_required
from apps.rbac.utils import actor_for

from .serializers import (
    AppointmentCreateSerializer,
    AppointmentSerializer,
    AppointmentUpdateSerializer,
)
from .services import (
    book_appointment,
    cancel_appointment,
    conflicting_appointments,
    ensure_can_edit,
    filter_appointments,
    notify_patient,
    update_appointment,
    visible_to,
)
from .schemas import (
    AppointmentConflicts409Serializer,
    ConfirmAppointmentExample,
    CreateAppointmentExample,
)


def _conflict_response(conflicts, detail: str) -> Response:
    return Response(
        {
            "detail": detail,
            "code": "conflict",
            "conflicts": [
                {
                    "id": c.id,
                    "patient_id": c.patient_id,
                    "doctor_id": c.doctor_id,
                    "appointment_date": c.appointment_date,
                    "status": c.status,
                }
                for c in conflicts[:10]
            ],
            "hint": "Pick another time or cancel the conflicting appointment.",
        },
        status=status.HTTP_409_CONFLICT,
    )


@extend_schema_view(
    list=extend_schema(
        summary="List appointments (paginated)",
        description="Patients see their own, doctors see theirs. Filters: `doctor_id`, `patient_id`, `status`, `date_from`, `date_to`.",
        parameters=[
            OpenApiParameter(name="doctor_id", required=False, type=OpenApiTypes.INT),
            OpenApiParameter(name="patient_id", required=False, type=OpenApiTypes.INT),
            OpenApiParameter(name="status", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="date_from", required=False, type=OpenApiTypes.DATETIME),
            OpenApiParameter(name="date_to", required=False, type=OpenApiTypes.DATETIME),
            OpenApiParameter(name="page", required=False, type=OpenApiTypes.INT),
            OpenApiParameter(name="page_size", required=False, type=OpenApiTypes.INT),
        ],
    ),
    retrieve=extend_schema(
        summary="Get appointment",
        description="Fetch one appointment by id. Emits `appt.view` audit.",
        responses={200: AppointmentSerializer},
    ),
    create=extend_schema(
        summary="Create appointment (conflict-aware)",
        description="Rejects a second active appointment for the same doctor at the same time with **409** and a conflicts list.",
        request=AppointmentCreateSerializer,
        examples=[CreateAppointmentExample],
        responses={201: AppointmentSerializer, 409: AppointmentConflicts409Serializer},
    ),
    partial_update=extend_schema(
        summary="Update appointment (partial)",
        description="Admin and secretary; doctors only on their own appointments.",
        request=AppointmentUpdateSerializer,
        examples=[ConfirmAppointmentExample],
        responses={200: AppointmentSerializer, 409: AppointmentConflicts409Serializer},
    ),
    destroy=extend_schema(
        summary="Cancel appointment",
        description="Soft delete: sets status to cancelled and notifies the patient.",
        responses={200: AppointmentSerializer},
    ),
)
class AppointmentViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    I manage appointments with same-slot checks, role scoping and patient emails.
    """
    schema_tags = ["Appointments"]
    serializer_class = AppointmentSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = []

    ROLES_BY_ACTION = {
        "create": ("secretary", "patient"),
        "partial_update": ("secretary", "doctor"),
        "destroy": ("secretary", "doctor"),
    }

    def get_permissions(self):
        roles = self.ROLES_BY_ACTION.get(self.action)
        if roles:
            return [IsAuthenticated(), roles_required(*roles)()]
        return super().get_permissions()

    def get_queryset(self):
        qs = visible_to(actor_for(self.request.user))
        if self.action == "list":
            qs = filter_appointments(qs, self.request.query_params)
        return qs.order_by("-appointment_date", "id")

    # ---- retrieve ----
    def retrieve(self, request, *args, **kwargs):
        obj = self.get_object()
        log_event(request, "appt.view", "Appointment", obj.id)
        return Response(AppointmentSerializer(obj).data)

    # ---- create with conflict checks ----
    def create(self, request, *args, **kwargs):
        ser = AppointmentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        vd = ser.validated_data

        conflicts = list(conflicting_appointments(doctor_id=vd["doctor_id"], when=vd["appointment_date"]))
        if conflicts:
            return _conflict_response(conflicts, "The doctor already has an appointment at that time.")

        obj = book_appointment(actor_for(request.user), dict(vd))
        log_event(request, "appt.create", "Appointment", obj.id)
        notify_patient(obj, "created")
        return Response(AppointmentSerializer(obj).data, status=status.HTTP_201_CREATED)

    # ---- partial update ----
    def partial_update(self, request, *args, **kwargs):
        obj = self.get_object()
        ensure_can_edit(actor_for(request.user), obj)
        ser = AppointmentUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        vd = ser.validated_data

        if "appointment_date" in vd:
            conflicts = list(
                conflicting_appointments(doctor_id=obj.doctor_id, when=vd["appointment_date"], exclude_id=obj.id)
            )
            if conflicts:
                return _conflict_response(conflicts, "New time conflicts with an existing appointment.")

        was_cancelled = obj.is_cancelled()
        update_appointment(obj, dict(vd))
        log_event(request, "appt.update", "Appointment", obj.id, detail={"fields": sorted(vd)})
        if obj.is_cancelled() and not was_cancelled:
            notify_patient(obj, "cancelled")
        return Response(AppointmentSerializer(obj).data)

    # ---- cancel ----
    def destroy(self, request, *args, **kwargs):
        obj = self.get_object()
        ensure_can_edit(actor_for(request.user), obj)
        was_cancelled = obj.is_cancelled()
        cancel_appointment(obj)
        log_event(request, "appt.cancel", "Appointment", obj.id)
        if not was_cancelled:
            notify_patient(obj, "cancelled")
        return Response(AppointmentSerializer(obj).data)
