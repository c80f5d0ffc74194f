# apps/core/params.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime


def to_int(value, default: int, *, min_value: int = 1, max_value: int | None = 100) -> int:
    """Parse integers from query params safely."""
    try:
        i = int(value)
    except (TypeError, ValueError):
        return default
    if i < min_value:
        return default
    if max_value is not None and i > max_value:
        i = max_value
    return i


def optional_int(value) -> Optional[int]:
    """Return an int for id-like query params, or None when absent/garbage."""
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def parse_bool(value, default: Optional[bool] = None) -> Optional[bool]:
    if value is None or value == "":
        return default
    raw = str(value).strip().lower()
    if raw in {"1", "true", "yes", "on"}:
        return True
    if raw in {"0", "false", "no", "off"}:
        return False
    return default


def parse_when(value) -> Optional[datetime]:
    """Accept an ISO datetime or a bare date (midnight local) and make it aware."""
    if not value:
        return None
    dt = parse_datetime(value)
    if dt is None:
        d = parse_date(value)
        if d is None:
            return None
        dt = datetime(d.year, d.month, d.day)
    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt)
    return dt


def local_today() -> date:
    return timezone.localdate()
