from datetime import datetime

import pytest
from django.utils import timezone

from apps.core.params import optional_int, parse_bool, parse_when, to_int


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, 20),
        ("", 20),
        ("abc", 20),
        ("0", 20),
        ("-3", 20),
        ("7", 7),
        ("500", 100),
    ],
)
def test_to_int(raw, expected):
    assert to_int(raw, 20) == expected


def test_to_int_without_ceiling():
    assert to_int("5000", 1, max_value=None) == 5000


def test_optional_int():
    assert optional_int(None) is None
    assert optional_int("") is None
    assert optional_int("x1") is None
    assert optional_int("42") == 42


@pytest.mark.parametrize("raw", ["1", "true", "Yes", " on "])
def test_parse_bool_truthy(raw):
    assert parse_bool(raw) is True


@pytest.mark.parametrize("raw", ["0", "false", "NO", "off"])
def test_parse_bool_falsy(raw):
    assert parse_bool(raw) is False


def test_parse_bool_falls_back_to_default():
    assert parse_bool(None, True) is True
    assert parse_bool("maybe", False) is False
    assert parse_bool("maybe") is None


def test_parse_when_accepts_dates_and_datetimes():
    d = parse_when("2030-05-10")
    assert timezone.is_aware(d)
    assert timezone.localtime(d).replace(tzinfo=None) == datetime(2030, 5, 10)

    dt = parse_when("2030-05-10T09:00:00-05:00")
    assert dt.utcoffset().total_seconds() == -5 * 3600

    naive = parse_when("2030-05-10T09:00:00")
    assert timezone.is_aware(naive)


def test_parse_when_garbage():
    assert parse_when("") is None
    assert parse_when(None) is None
    assert parse_when("next tuesday") is None
