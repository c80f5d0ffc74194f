# apps/patients/api.py
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
from apps.core.exceptions import Forbidden
from apps.core.pagination import SmallPages
from apps.core.params import optional_int
from apps.rbac.permissions import roles_required
from apps.rbac.utils import actor_for

from .models import Patient
from .schemas import CreateHistoryExample, UpdateHistoryExample
from .serializers import (
    MedicalHistorySerializer,
    MedicalHistoryUpdateSerializer,
    PatientDetailSerializer,
    PatientSerializer,
)
from .services import (
    add_history_entry,
    can_view_patient,
    history_for_doctor,
    search_patients,
    update_history_entry,
)


@extend_schema_view(
    list=extend_schema(
        summary="Search & list patients (paginated)",
        description="Admin, secretary and doctor only. `document_id` accepts ids typed with dashes or spaces.",
        parameters=[
            OpenApiParameter(name="document_id", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="q", description="Search names, document id, phone", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="page", required=False, type=OpenApiTypes.INT),
            OpenApiParameter(name="page_size", required=False, type=OpenApiTypes.INT),
        ],
    ),
    retrieve=extend_schema(
        summary="Get patient",
        description="Includes medical history. Patients may read their own record. Emits `patient.view` audit.",
        responses={200: PatientDetailSerializer},
    ),
)
class PatientViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    I expose the patient directory to clinic staff and the patient's own record to the patient.
    """
    schema_tags = ["Patients"]
    queryset = Patient.objects.select_related("user").prefetch_related("medical_history__doctor")
    serializer_class = PatientSerializer
    permission_classes = [IsAuthenticated]
    # Searching is done by the service so the multi-term name search applies.
    filter_backends = []

    def get_permissions(self):
        if self.action == "list":
            return [IsAuthenticated(), roles_required("secretary", "doctor")()]
        return super().get_permissions()

    def get_serializer_class(self):
        if self.action == "retrieve":
            return PatientDetailSerializer
        return PatientSerializer

    def get_queryset(self):
        if self.action != "list":
            return super().get_queryset()
        params = self.request.query_params
        return search_patients(
            document_id=params.get("document_id", "").strip(),
            q=params.get("q", "").strip(),
        )

    def retrieve(self, request, *args, **kwargs):
        patient = self.get_object()
        if not can_view_patient(actor_for(request.user), patient):
            raise Forbidden("You can only view your own patient record.")
        log_event(request, "patient.view", "Patient", patient.id)
        return Response(self.get_serializer(patient).data)


@extend_schema_view(
    list=extend_schema(
        summary="List medical history (doctor)",
        description="Only entries of patients who have at least one appointment with the calling doctor.",
        parameters=[
            OpenApiParameter(name="patient_id", required=False, type=OpenApiTypes.INT),
            OpenApiParameter(name="document_id", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="search", description="Condition, diagnosis, treatment or patient name", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="page", required=False, type=OpenApiTypes.INT),
            OpenApiParameter(name="page_size", description="Default 10, max 200", required=False, type=OpenApiTypes.INT),
        ],
    ),
    retrieve=extend_schema(summary="Get medical history entry (doctor)"),
    create=extend_schema(
        summary="Add medical history entry (doctor)",
        examples=[CreateHistoryExample],
        responses={201: MedicalHistorySerializer},
    ),
    partial_update=extend_schema(
        summary="Update medical history entry (doctor, partial)",
        request=MedicalHistoryUpdateSerializer,
        examples=[UpdateHistoryExample],
        responses={200: MedicalHistorySerializer},
    ),
)
class MedicalHistoryViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    schema_tags = ["Medical history"]
    serializer_class = MedicalHistorySerializer
    permission_classes = [IsAuthenticated, roles_required("doctor")]
    pagination_class = SmallPages
    filter_backends = []
    http_method_names = ["get", "post", "patch", "head", "options"]

    def get_queryset(self):
        params = self.request.query_params
        if self.action != "list":
            return history_for_doctor(actor_for(self.request.user))
        return history_for_doctor(
            actor_for(self.request.user),
            patient_id=optional_int(params.get("patient_id")),
            document_id=params.get("document_id", "").strip(),
            search=params.get("search", "").strip(),
        )

    def get_serializer_class(self):
        if self.action == "partial_update":
            return MedicalHistoryUpdateSerializer
        return MedicalHistorySerializer

    def create(self, request, *args, **kwargs):
        ser = self.get_serializer(data=request.data)
        ser.is_valid(raise_exception=True)
        entry = add_history_entry(actor_for(request.user), dict(ser.validated_data))
        log_event(request, "medical_history.create", "MedicalHistory", entry.id, detail={"patient_id": entry.patient_id})
        return Response(MedicalHistorySerializer(entry).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        entry = self.get_object()
        ser = self.get_serializer(entry, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        update_history_entry(entry, dict(ser.validated_data))
        log_event(request, "medical_history.update", "MedicalHistory", entry.id)
        return Response(MedicalHistorySerializer(entry).data)
