# apps/rbac/utils.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Set

from django.apps import apps

from apps.rbac.permissions import _norm


@dataclass(frozen=True)
class Actor:
    """
    Who is calling, as the domain services see it: the role plus the
    profile ids that scope "my own records".
    """
    user_id: Optional[int]
    role: str
    patient_id: Optional[int] = None
    doctor_id: Optional[int] = None
    pharmacy_id: Optional[int] = None

    @property
    def is_staff_role(self) -> bool:
        return self.role in {"admin", "secretary"}


def user_roles(user) -> Set[str]:
    """Normalized role set for a user (one role per account, superusers count as admin)."""
    if not getattr(user, "is_authenticated", False):
        return set()
    roles = {_norm(getattr(user, "role", ""))} - {""}
    if getattr(user, "is_superuser", False):
        roles.add("admin")
    return roles


def has_role(user, *roles: Iterable[str], allow_superuser: bool = True) -> bool:
    """
    Plain helper mirroring HasRole for use inside services and views.
        if has_role(request.user, "admin", "secretary"):
            ...
    """
    if not getattr(user, "is_authenticated", False):
        return False
    if allow_superuser and getattr(user, "is_superuser", False):
        return True

    required = {_norm(r) for r in roles if isinstance(r, str) and r.strip()}
    if not required:
        return True

    roles_set = user_roles(user)
    if "admin" in roles_set:
        return True
    return bool(roles_set & required)


def _profile_id(label: str, user) -> Optional[int]:
    Model = apps.get_model(label)
    return Model.objects.filter(user_id=user.pk).values_list("id", flat=True).first()


def actor_for(user) -> Actor:
    """
    I resolve the identity context for a request user. Profiles are looked up
    by user id so a missing profile simply yields None.
    """
    if not getattr(user, "is_authenticated", False):
        return Actor(user_id=None, role="")

    role = "admin" if getattr(user, "is_superuser", False) else _norm(getattr(user, "role", ""))
    return Actor(
        user_id=user.pk,
        role=role,
        patient_id=_profile_id("patients.Patient", user) if role == "patient" else None,
        doctor_id=_profile_id("doctors.Doctor", user) if role in {"doctor", "admin"} else None,
        pharmacy_id=_profile_id("pharmacies.Pharmacy", user) if role == "pharmacy" else None,
    )
