from datetime import timedelta
from decimal import Decimal

import pytest
from django.urls import reverse
from django.utils import timezone

from apps.pharmacies.models import Pharmacy
from apps.prescriptions import services as rx_services
from apps.prescriptions.models import Prescription
from apps.rbac.utils import actor_for

PASSWORD = "Clinic-pass-2024!"


def account_payload(**kw):
    data = {
        "email": "Norte@Pharma.test",
        "password": PASSWORD,
        "name": "Drogueria Norte",
        "license_number": "LIC-001",
        "address": "Cra 15 # 90-12",
        "city": "Bogota",
        "phone": "555-0400",
        "pharmacist_name": "Camilo Diaz",
    }
    data.update(kw)
    return data


@pytest.fixture
def rx(patient, doctor):
    today = timezone.localdate()
    return Prescription.objects.create(
        patient=patient,
        doctor=doctor,
        medication_name="Omeprazole",
        dosage="20 mg",
        frequency="daily",
        issue_date=today,
        expiration_date=today + timedelta(days=30),
    )


@pytest.mark.django_db
def test_admin_creates_pharmacy_account(client_for, admin_user):
    res = client_for(admin_user).post(
        reverse("pharmacies_api:pharmacy-create-account"), account_payload(), format="json"
    )
    assert res.status_code == 201, res.content
    pharmacy = Pharmacy.objects.get(pk=res.json()["id"])
    assert pharmacy.user.email == "norte@pharma.test"
    assert pharmacy.user.role == "pharmacy"
    assert pharmacy.user.check_password(PASSWORD)


@pytest.mark.django_db
def test_license_is_unique_ignoring_case(client_for, admin_user, make_pharmacy):
    make_pharmacy(license_number="LIC-001")
    res = client_for(admin_user).post(
        reverse("pharmacies_api:pharmacy-create-account"),
        account_payload(license_number="lic-001"),
        format="json",
    )
    assert res.status_code == 400
    assert "license_number" in res.json()


@pytest.mark.django_db
def test_non_admin_cannot_onboard(client_for, secretary):
    res = client_for(secretary).post(
        reverse("pharmacies_api:pharmacy-create-account"), account_payload(), format="json"
    )
    assert res.status_code == 403


@pytest.mark.django_db
def test_list_filters_by_city(client_for, patient, make_pharmacy):
    make_pharmacy(city="Medellin")
    bogota = make_pharmacy(city="Bogota")
    res = client_for(patient.user).get(reverse("pharmacies_api:pharmacy-list"), {"city": "bogota"})
    assert res.status_code == 200
    assert [p["id"] for p in res.json()["items"]] == [bogota.pk]


@pytest.mark.django_db
def test_delete_deactivates_pharmacy_and_login(client_for, admin_user, pharmacy):
    res = client_for(admin_user).delete(reverse("pharmacies_api:pharmacy-detail", kwargs={"pk": pharmacy.pk}))
    assert res.status_code == 204
    pharmacy.refresh_from_db()
    pharmacy.user.refresh_from_db()
    assert pharmacy.is_active is False
    assert pharmacy.user.is_active is False


@pytest.mark.django_db
def test_patch_reactivates_login(client_for, admin_user, pharmacy):
    pharmacy.is_active = False
    pharmacy.save()
    pharmacy.user.is_active = False
    pharmacy.user.save()

    res = client_for(admin_user).patch(
        reverse("pharmacies_api:pharmacy-detail", kwargs={"pk": pharmacy.pk}),
        {"is_active": True, "operating_hours": "Mon-Sat 8-20"},
        format="json",
    )
    assert res.status_code == 200, res.content
    assert res.json()["operating_hours"] == "Mon-Sat 8-20"
    pharmacy.user.refresh_from_db()
    assert pharmacy.user.is_active is True


@pytest.mark.django_db
def test_verify_records_who(client_for, admin_user, pharmacy):
    res = client_for(admin_user).post(reverse("pharmacies_api:pharmacy-verify", kwargs={"pk": pharmacy.pk}))
    assert res.status_code == 200
    body = res.json()
    assert body["is_verified"] is True
    assert body["verified_by"] == admin_user.pk


@pytest.mark.django_db
def test_stats_count_dispensations(client_for, pharmacy, rx):
    rx_services.dispense(rx.pk, actor=actor_for(pharmacy.user), quantity=Decimal("14"))
    res = client_for(pharmacy.user).get(reverse("pharmacies_api:pharmacy-stats", kwargs={"pk": pharmacy.pk}))
    assert res.status_code == 200
    body = res.json()
    assert body["total_dispensations"] == 1
    assert body["prescriptions_served"] == 1
    assert body["last_dispensed_at"] is not None


@pytest.mark.django_db
def test_validate_prescription(client_for, pharmacy, rx):
    client = client_for(pharmacy.user)
    url = reverse("pharmacies_api:pharmacy-validate-prescription")

    res = client.post(url, {"prescription_id": rx.pk}, format="json")
    assert res.json() == {"prescription_id": rx.pk, "valid": True, "dispensable": True, "reason": None}

    rx_services.dispense(rx.pk, actor=actor_for(pharmacy.user), quantity=Decimal("14"))
    res = client.post(url, {"prescription_id": rx.pk}, format="json")
    assert res.json()["dispensable"] is False
    assert res.json()["reason"] == "exhausted_dispensations"

    res = client.post(url, {"prescription_id": 987654}, format="json")
    assert res.json() == {"prescription_id": 987654, "valid": False, "dispensable": False, "reason": "not_found"}
