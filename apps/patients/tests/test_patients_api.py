from datetime import date, timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

from apps.appointments.models import Appointment
from apps.audit.models import AuditEvent
from apps.patients.models import MedicalHistory, Patient, normalize_document


def book(patient, doctor, **kw):
    kw.setdefault("appointment_date", timezone.now() + timedelta(days=1))
    kw.setdefault("reason", "Check-up")
    return Appointment.objects.create(patient=patient, doctor=doctor, **kw)


def test_normalize_document():
    assert normalize_document(" 12-345 678 ") == "12345678"
    assert normalize_document("") == ""


@pytest.mark.django_db
def test_document_lookup_matches_raw_or_normalized(make_patient):
    plain = make_patient(document_id="12345678")
    typed = make_patient(document_id="AB-77")
    assert list(Patient.objects.by_document("12-345-678")) == [plain]
    assert list(Patient.objects.by_document("AB-77")) == [typed]
    assert not Patient.objects.by_document("AB77").exists()
    assert not Patient.objects.by_document("   ").exists()


@pytest.mark.django_db
def test_name_search_needs_every_term(make_patient):
    ana = make_patient(first_name="Ana", last_name="Gomez")
    make_patient(first_name="Ana", last_name="Perez")
    assert list(Patient.objects.name_search("ana gom")) == [ana]


def test_age_on_birthday_boundary():
    p = Patient(date_of_birth=date(2006, 6, 15))
    assert p.age_on(date(2024, 6, 14)) == 17
    assert p.age_on(date(2024, 6, 15)) == 18
    assert Patient().age_on(date(2024, 1, 1)) is None


@pytest.mark.django_db
def test_staff_search_patients(client_for, secretary, make_patient):
    target = make_patient(document_id="99001122")
    make_patient()
    res = client_for(secretary).get(reverse("patients_api:patient-list"), {"document_id": "9900 1122"})
    assert res.status_code == 200
    body = res.json()
    assert body["total_count"] == 1
    assert body["items"][0]["id"] == target.pk


@pytest.mark.django_db
def test_patients_cannot_list_directory(client_for, patient):
    assert client_for(patient.user).get(reverse("patients_api:patient-list")).status_code == 403


@pytest.mark.django_db
def test_patient_reads_only_own_record(client_for, patient, make_patient):
    client = client_for(patient.user)
    own = client.get(reverse("patients_api:patient-detail", kwargs={"pk": patient.pk}))
    assert own.status_code == 200
    assert own.json()["medical_history"] == []
    assert AuditEvent.objects.filter(action="patient.view", object_id=str(patient.pk)).exists()

    other = make_patient()
    res = client.get(reverse("patients_api:patient-detail", kwargs={"pk": other.pk}))
    assert res.status_code == 403
    assert res.json()["code"] == "forbidden"


@pytest.mark.django_db
def test_pharmacy_cannot_read_patients(client_for, pharmacy, patient):
    res = client_for(pharmacy.user).get(reverse("patients_api:patient-detail", kwargs={"pk": patient.pk}))
    assert res.status_code == 403


# ---- medical history ----

@pytest.mark.django_db
def test_history_is_limited_to_doctors_patients(client_for, doctor, make_patient):
    seen = make_patient()
    unseen = make_patient()
    book(seen, doctor)
    MedicalHistory.objects.create(patient=seen, condition="Hypertension")
    MedicalHistory.objects.create(patient=unseen, condition="Asthma")

    res = client_for(doctor.user).get(reverse("patients_api:medical-history-list"))
    assert res.status_code == 200
    body = res.json()
    assert body["page_size"] == 10
    assert [item["condition"] for item in body["items"]] == ["Hypertension"]


@pytest.mark.django_db
def test_history_search_and_document_filters(client_for, doctor, make_patient):
    p = make_patient(document_id="44556677", last_name="Rojas")
    book(p, doctor)
    MedicalHistory.objects.create(patient=p, condition="Type 2 diabetes", treatment="Metformin")
    MedicalHistory.objects.create(patient=p, condition="Migraine")
    client = client_for(doctor.user)
    url = reverse("patients_api:medical-history-list")

    res = client.get(url, {"search": "metformin rojas"})
    assert [item["condition"] for item in res.json()["items"]] == ["Type 2 diabetes"]

    res = client.get(url, {"document_id": "4455-6677"})
    assert res.json()["total_count"] == 2


@pytest.mark.django_db
def test_doctor_adds_and_updates_history(client_for, doctor, patient):
    book(patient, doctor)
    client = client_for(doctor.user)
    res = client.post(
        reverse("patients_api:medical-history-list"),
        {"patient": patient.pk, "condition": " Asthma ", "diagnosis_date": "2024-02-01"},
        format="json",
    )
    assert res.status_code == 201, res.content
    body = res.json()
    assert body["condition"] == "Asthma"
    assert body["doctor"] == doctor.pk

    res = client.patch(
        reverse("patients_api:medical-history-detail", kwargs={"pk": body["id"]}),
        {"treatment": "Salbutamol", "notes": None},
        format="json",
    )
    assert res.status_code == 200, res.content
    entry = MedicalHistory.objects.get(pk=body["id"])
    assert entry.treatment == "Salbutamol"
    assert entry.notes == ""


@pytest.mark.django_db
def test_history_create_validates_input(client_for, doctor, patient):
    client = client_for(doctor.user)
    url = reverse("patients_api:medical-history-list")
    assert client.post(url, {"patient": patient.pk, "condition": "  "}, format="json").status_code == 400
    assert client.post(url, {"patient": 999999, "condition": "Flu"}, format="json").status_code == 400


@pytest.mark.django_db
def test_history_is_doctor_only(client_for, secretary):
    assert client_for(secretary).get(reverse("patients_api:medical-history-list")).status_code == 403


@pytest.mark.django_db
def test_history_entry_outside_scope_is_404(client_for, doctor, make_doctor, patient):
    other = make_doctor()
    book(patient, other)
    entry = MedicalHistory.objects.create(patient=patient, doctor=other, condition="Gastritis")
    res = client_for(doctor.user).get(reverse("patients_api:medical-history-detail", kwargs={"pk": entry.pk}))
    assert res.status_code == 404
