# apps/patients/services.py
from __future__ import annotations

from typing import Any, Dict, Optional

from django.db import transaction
from django.db.models import Q, QuerySet
from apps.appointments.models import Appointment
from apps.core.exceptions import Forbidden
from apps.rbac.utils import Actor

from .models import MedicalHistory, Patient


# ---- Patient directory ----

def search_patients(*, document_id: str = "", q: str = "") -> QuerySet[Patient]:
    qs = Patient.objects.select_related("user")
    if document_id:
        qs = qs.by_document(document_id)
    if q:
        qs = qs.name_search(q)
    return qs


def can_view_patient(actor: Actor, patient: Patient) -> bool:
    if actor.role in {"admin", "secretary", "doctor"}:
        return True
    return actor.role == "patient" and actor.patient_id == patient.pk


# ---- Medical history (doctor-scoped) ----

def doctor_patient_ids(doctor_id: int) -> QuerySet:
    """Patients with at least one appointment with this doctor."""
    return (
        Appointment.objects.filter(doctor_id=doctor_id)
        .values_list("patient_id", flat=True)
        .distinct()
    )


def _require_doctor(actor: Actor) -> int:
    if not actor.doctor_id:
        raise Forbidden("A doctor profile is required to access medical history.")
    return actor.doctor_id


def history_for_doctor(
    actor: Actor,
    *,
    patient_id: Optional[int] = None,
    document_id: str = "",
    search: str = "",
) -> QuerySet[MedicalHistory]:
    doctor_id = _require_doctor(actor)
    qs = MedicalHistory.objects.select_related("patient", "doctor").filter(
        patient_id__in=doctor_patient_ids(doctor_id)
    )
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if document_id:
        qs = qs.filter(patient__in=Patient.objects.matching_document(document_id))
    if search:
        cond = Q()
        for term in search.split():
            cond &= (
                Q(condition__icontains=term)
                | Q(diagnosis__icontains=term)
                | Q(treatment__icontains=term)
                | Q(patient__first_name__icontains=term)
                | Q(patient__last_name__icontains=term)
            )
        qs = qs.filter(cond)
    return qs


@transaction.atomic
def add_history_entry(actor: Actor, data: Dict[str, Any]) -> MedicalHistory:
    doctor_id = _require_doctor(actor)
    return MedicalHistory.objects.create(doctor_id=doctor_id, **data)


@transaction.atomic
def update_history_entry(entry: MedicalHistory, changes: Dict[str, Any]) -> MedicalHistory:
    for key, value in changes.items():
        setattr(entry, key, value)
    entry.save()
    return entry
