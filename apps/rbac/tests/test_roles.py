from types import SimpleNamespace

import pytest
from django.contrib.auth.models import AnonymousUser

from apps.rbac.permissions import roles_required
from apps.rbac.utils import actor_for, has_role, user_roles


def fake_request(role="", *, superuser=False, authenticated=True):
    user = SimpleNamespace(is_authenticated=authenticated, is_superuser=superuser, role=role)
    return SimpleNamespace(user=user)


def test_roles_required_matches_any_role_ignoring_case():
    perm = roles_required("Doctor", "secretary")()
    assert perm.has_permission(fake_request(" doctor "), None)
    assert perm.has_permission(fake_request("SECRETARY"), None)
    assert not perm.has_permission(fake_request("patient"), None)


def test_admin_and_superuser_always_pass():
    perm = roles_required("pharmacy")()
    assert perm.has_permission(fake_request("admin"), None)
    assert perm.has_permission(fake_request("patient", superuser=True), None)


def test_anonymous_is_rejected():
    perm = roles_required("patient")()
    assert not perm.has_permission(SimpleNamespace(user=AnonymousUser()), None)


def test_no_roles_configured_allows():
    assert roles_required()().has_permission(fake_request("patient"), None)


def test_helpers_mirror_the_permission():
    doctor = SimpleNamespace(is_authenticated=True, is_superuser=False, role="Doctor")
    root = SimpleNamespace(is_authenticated=True, is_superuser=True, role="secretary")

    assert user_roles(doctor) == {"doctor"}
    assert user_roles(root) == {"secretary", "admin"}
    assert user_roles(AnonymousUser()) == set()

    assert has_role(doctor, "doctor")
    assert not has_role(doctor, "pharmacy")
    assert has_role(root, "pharmacy")


@pytest.mark.django_db
def test_actor_for_resolves_profiles(patient, doctor, pharmacy, secretary):
    a = actor_for(patient.user)
    assert (a.role, a.patient_id, a.doctor_id) == ("patient", patient.id, None)

    a = actor_for(doctor.user)
    assert (a.role, a.doctor_id) == ("doctor", doctor.id)

    a = actor_for(pharmacy.user)
    assert (a.role, a.pharmacy_id) == ("pharmacy", pharmacy.id)

    a = actor_for(secretary)
    assert a.is_staff_role
    assert a.patient_id is None and a.doctor_id is None


@pytest.mark.django_db
def test_superuser_acts_as_admin(make_user):
    root = make_user("patient", is_superuser=True, is_staff=True)
    actor = actor_for(root)
    assert actor.role == "admin"
    assert actor.patient_id is None
    assert actor.is_staff_role


@pytest.mark.django_db
def test_login_without_profile_has_no_ids(make_user):
    actor = actor_for(make_user("doctor"))
    assert actor.role == "doctor"
    assert actor.doctor_id is None


def test_anonymous_actor():
    actor = actor_for(AnonymousUser())
    assert actor.user_id is None
    assert actor.role == ""
