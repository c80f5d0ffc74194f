import pytest
from django.contrib.auth import get_user_model
from django.urls import reverse

from apps.doctors.models import Doctor, Specialty
from apps.pharmacies.models import Pharmacy

PASSWORD = "Clinic-pass-2024!"

USERS_URL = "accounts_api:user-list"


@pytest.mark.django_db
def test_only_admins_manage_users(client_for, secretary):
    res = client_for(secretary).get(reverse(USERS_URL))
    assert res.status_code == 403


@pytest.mark.django_db
def test_superuser_passes_admin_gate(client_for):
    root = get_user_model().objects.create_superuser("root", "root@clinic.test", PASSWORD)
    assert root.role == "admin"
    assert client_for(root).get(reverse(USERS_URL)).status_code == 200


@pytest.mark.django_db
def test_list_filters_by_role(client_for, admin_user, make_user):
    make_user("doctor")
    make_user("secretary")
    res = client_for(admin_user).get(reverse(USERS_URL), {"role": "secretary"})
    assert res.status_code == 200
    body = res.json()
    assert body["page_size"] == 50
    assert {item["role"] for item in body["items"]} == {"secretary"}


@pytest.mark.django_db
def test_create_doctor_with_new_specialty(client_for, admin_user):
    payload = {
        "email": "New.Doc@Clinic.test",
        "password": PASSWORD,
        "first_name": "Maria",
        "last_name": "Lopez",
        "role": "doctor",
        "doctor": {
            "document_id": "CC-1001",
            "license_number": "RM-5566",
            "specialty_name": "Cardiology",
            "consultation_fee": "80.00",
        },
    }
    res = client_for(admin_user).post(reverse(USERS_URL), payload, format="json")
    assert res.status_code == 201, res.content
    body = res.json()
    assert body["email"] == "new.doc@clinic.test"

    doctor = Doctor.objects.get(pk=body["doctor_id"])
    assert doctor.specialty.name == "Cardiology"
    assert doctor.first_name == "Maria"
    assert Specialty.objects.filter(name="Cardiology").count() == 1


@pytest.mark.django_db
def test_create_doctor_requires_profile(client_for, admin_user):
    payload = {"email": "doc@clinic.test", "password": PASSWORD, "role": "doctor"}
    res = client_for(admin_user).post(reverse(USERS_URL), payload, format="json")
    assert res.status_code == 400
    assert "doctor" in res.json()


@pytest.mark.django_db
def test_create_doctor_requires_a_specialty(client_for, admin_user):
    payload = {
        "email": "doc@clinic.test",
        "password": PASSWORD,
        "role": "doctor",
        "doctor": {"document_id": "CC-2", "license_number": "RM-2"},
    }
    res = client_for(admin_user).post(reverse(USERS_URL), payload, format="json")
    assert res.status_code == 400


@pytest.mark.django_db
def test_create_doctor_duplicate_license(client_for, admin_user, doctor):
    payload = {
        "email": "other.doc@clinic.test",
        "password": PASSWORD,
        "role": "doctor",
        "doctor": {
            "document_id": "CC-7777",
            "license_number": doctor.license_number.lower(),
            "specialty_id": doctor.specialty_id,
        },
    }
    res = client_for(admin_user).post(reverse(USERS_URL), payload, format="json")
    assert res.status_code == 400
    assert "license_number" in res.json()["doctor"]
    assert not get_user_model().objects.filter(email="other.doc@clinic.test").exists()


@pytest.mark.django_db
def test_create_pharmacy_user(client_for, admin_user):
    payload = {
        "email": "drugs@clinic.test",
        "password": PASSWORD,
        "role": "pharmacy",
        "pharmacy": {
            "name": "Drogueria Norte",
            "license_number": "PH-9001",
            "address": "Cra 7 # 80-10",
            "city": "Bogota",
            "phone": "555-0300",
        },
    }
    res = client_for(admin_user).post(reverse(USERS_URL), payload, format="json")
    assert res.status_code == 201, res.content
    pharmacy = Pharmacy.objects.get(pk=res.json()["pharmacy_id"])
    assert pharmacy.user.role == "pharmacy"
    assert pharmacy.email == "drugs@clinic.test"


@pytest.mark.django_db
def test_patch_email_moves_username_and_deactivates(client_for, admin_user, make_user):
    user = make_user("secretary")
    res = client_for(admin_user).patch(
        reverse("accounts_api:user-detail", kwargs={"pk": user.pk}),
        {"email": "front.desk@clinic.test", "is_active": False},
        format="json",
    )
    assert res.status_code == 200, res.content
    user.refresh_from_db()
    assert user.username == "front.desk@clinic.test"
    assert user.is_active is False


@pytest.mark.django_db
def test_patch_doctor_profile_partially(client_for, admin_user, doctor):
    res = client_for(admin_user).patch(
        reverse("accounts_api:user-detail", kwargs={"pk": doctor.user_id}),
        {"doctor": {"phone": "555-9999"}},
        format="json",
    )
    assert res.status_code == 200, res.content
    doctor.refresh_from_db()
    assert doctor.phone == "555-9999"


@pytest.mark.django_db
def test_patch_rejects_taken_email(client_for, admin_user, make_user):
    first = make_user("secretary")
    second = make_user("secretary")
    res = client_for(admin_user).patch(
        reverse("accounts_api:user-detail", kwargs={"pk": second.pk}),
        {"email": first.email},
        format="json",
    )
    assert res.status_code == 400
    assert "email" in res.json()


@pytest.mark.django_db
def test_put_is_not_allowed(client_for, admin_user, make_user):
    user = make_user("secretary")
    res = client_for(admin_user).put(
        reverse("accounts_api:user-detail", kwargs={"pk": user.pk}), {"email": "a@b.co"}, format="json"
    )
    assert res.status_code == 405
