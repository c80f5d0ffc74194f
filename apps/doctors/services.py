# apps/doctors/services.py
from __future__ import annotations

import os
from typing import Dict, Optional

from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist
from django.db import transaction
from rest_framework.exceptions import NotFound, ValidationError

from .models import Doctor, DoctorAsset, Specialty

STAMP_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}


def _file_url(field, request=None) -> Optional[str]:
    if not field:
        return None
    url = field.url
    if request is not None and url.startswith("/"):
        return request.build_absolute_uri(url)
    return url


def asset_urls(doctor: Doctor, request=None) -> Dict[str, Optional[str]]:
    """Signature/seal URLs for a doctor; the stamp is the uploaded seal."""
    try:
        assets = doctor.assets
    except ObjectDoesNotExist:
        return {"signature_url": None, "seal_url": None, "stamp_url": None}
    seal = _file_url(assets.seal, request)
    return {
        "signature_url": _file_url(assets.signature, request),
        "seal_url": seal,
        "stamp_url": seal,
    }


def resolve_specialty(*, specialty_id: Optional[int] = None, specialty_name: str = "") -> Specialty:
    """
    Pick a specialty by id, else by name (case-insensitive). An unknown
    name creates the specialty so admins can onboard doctors in one call.
    """
    if specialty_id:
        try:
            return Specialty.objects.get(pk=specialty_id)
        except Specialty.DoesNotExist:
            raise NotFound(f"Specialty {specialty_id} does not exist.")
    name = (specialty_name or "").strip()
    if not name:
        raise ValidationError({"specialty_id": ["Provide specialty_id or specialty_name."]})
    existing = Specialty.objects.filter(name__iexact=name).first()
    return existing or Specialty.objects.create(name=name)


@transaction.atomic
def save_doctor_stamp(doctor: Doctor, upload) -> DoctorAsset:
    ext = os.path.splitext(upload.name or "")[1].lower()
    if ext not in STAMP_EXTENSIONS:
        raise ValidationError({"file": [f"Unsupported file type '{ext or '?'}'. Use png, jpg, jpeg or webp."]})
    limit = getattr(settings, "DOCTOR_STAMP_MAX_BYTES", 10 * 1024 * 1024)
    if upload.size > limit:
        raise ValidationError({"file": [f"File exceeds {limit // (1024 * 1024)} MB."]})

    assets, _ = DoctorAsset.objects.select_for_update().get_or_create(doctor=doctor)
    assets.seal.save(f"stamp_{doctor.pk}{ext}", upload, save=False)
    assets.save()
    return assets
