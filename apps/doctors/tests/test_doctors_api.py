import io

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from PIL import Image

from apps.doctors.models import DoctorAsset, Specialty
from apps.doctors.services import resolve_specialty


def png_upload(name="stamp.png"):
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), color=(20, 60, 160)).save(buf, format="PNG")
    return SimpleUploadedFile(name, buf.getvalue(), content_type="image/png")


@pytest.mark.django_db
def test_specialties_are_public(api_client, specialty):
    Specialty.objects.create(name="Dermatology", is_active=False)
    res = api_client.get(reverse("doctors_api:specialty-list"))
    assert res.status_code == 200
    assert [s["name"] for s in res.json()] == ["General Medicine"]


@pytest.mark.django_db
def test_only_admin_creates_specialties(client_for, admin_user, secretary):
    url = reverse("doctors_api:specialty-list")
    assert client_for(secretary).post(url, {"name": "Neurology"}, format="json").status_code == 403
    res = client_for(admin_user).post(url, {"name": "Neurology"}, format="json")
    assert res.status_code == 201
    assert Specialty.objects.filter(name="Neurology").exists()


@pytest.mark.django_db
def test_specialty_in_use_cannot_be_deleted(client_for, admin_user, doctor):
    url = reverse("doctors_api:specialty-detail", kwargs={"pk": doctor.specialty_id})
    res = client_for(admin_user).delete(url)
    assert res.status_code == 409
    assert res.json()["doctor_count"] == 1
    assert Specialty.objects.filter(pk=doctor.specialty_id).exists()


@pytest.mark.django_db
def test_unused_specialty_is_deleted(client_for, admin_user):
    spec = Specialty.objects.create(name="Pediatrics")
    res = client_for(admin_user).delete(reverse("doctors_api:specialty-detail", kwargs={"pk": spec.pk}))
    assert res.status_code == 204


@pytest.mark.django_db
def test_resolve_specialty_by_name_is_case_insensitive(specialty):
    assert resolve_specialty(specialty_name="general medicine") == specialty
    created = resolve_specialty(specialty_name="Oncology")
    assert created.pk != specialty.pk


@pytest.mark.django_db
def test_doctor_list_filters(client_for, make_doctor, patient):
    active = make_doctor()
    retired = make_doctor()
    retired.user.is_active = False
    retired.user.save()
    other_spec = Specialty.objects.create(name="Cardiology")
    cardio = make_doctor(specialty=other_spec)
    client = client_for(patient.user)
    url = reverse("doctors_api:doctor-list")

    ids = {d["id"] for d in client.get(url).json()["items"]}
    assert ids == {active.pk, cardio.pk}

    ids = {d["id"] for d in client.get(url, {"specialty_id": other_spec.pk}).json()["items"]}
    assert ids == {cardio.pk}

    ids = {d["id"] for d in client.get(url, {"is_active": "false"}).json()["items"]}
    assert ids == {retired.pk}


@pytest.mark.django_db
def test_doctor_payload_has_asset_urls(client_for, doctor, patient):
    res = client_for(patient.user).get(reverse("doctors_api:doctor-detail", kwargs={"pk": doctor.pk}))
    body = res.json()
    assert body["license_number"] == doctor.license_number
    assert body["specialty"] == "General Medicine"
    assert body["stamp_url"] is None


@pytest.mark.django_db
def test_admin_uploads_stamp(client_for, admin_user, doctor, settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path
    res = client_for(admin_user).post(
        reverse("doctors_api:doctor-stamp", kwargs={"pk": doctor.pk}),
        {"file": png_upload()},
        format="multipart",
    )
    assert res.status_code == 200, res.content
    assert res.json()["stamp_url"].endswith(".png")
    assert DoctorAsset.objects.get(doctor=doctor).seal


@pytest.mark.django_db
def test_stamp_rejects_other_extensions(client_for, admin_user, doctor, settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path
    res = client_for(admin_user).post(
        reverse("doctors_api:doctor-stamp", kwargs={"pk": doctor.pk}),
        {"file": png_upload("stamp.gif")},
        format="multipart",
    )
    assert res.status_code == 400
    assert "file" in res.json()


@pytest.mark.django_db
def test_stamp_is_admin_only(client_for, doctor, settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path
    res = client_for(doctor.user).post(
        reverse("doctors_api:doctor-stamp", kwargs={"pk": doctor.pk}),
        {"file": png_upload()},
        format="multipart",
    )
    assert res.status_code == 403
