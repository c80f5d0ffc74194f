from rest_framework import serializers
from rest_framework.exceptions import NotFound

from apps.core.exceptions import Conflict, Forbidden, InvalidRequest, api_exception_handler


def handle(exc):
    return api_exception_handler(exc, {"view": None})


def test_single_detail_errors_get_a_code():
    res = handle(InvalidRequest())
    assert res.status_code == 400
    assert res.data["code"] == "invalid_request"

    res = handle(Conflict("Expiration precedes the last fill."))
    assert res.status_code == 409
    assert res.data == {"detail": "Expiration precedes the last fill.", "code": "conflict"}

    assert handle(Forbidden()).status_code == 403
    assert handle(Forbidden()).data["code"] == "forbidden"
    assert handle(NotFound("Doctor not found.")).data["code"] == "not_found"


def test_field_errors_are_left_alone():
    res = handle(serializers.ValidationError({"email": ["Enter a valid email address."]}))
    assert res.status_code == 400
    assert "code" not in res.data
    assert res.data["email"] == ["Enter a valid email address."]


def test_unknown_errors_become_500(settings):
    settings.DEBUG = False
    res = handle(RuntimeError("boom"))
    assert res.status_code == 500
    assert res.data == {"detail": "Internal server error.", "code": "server_error"}


def test_debug_exposes_the_error(settings):
    settings.DEBUG = True
    res = handle(KeyError("missing"))
    assert res.data["type"] == "KeyError"
    assert "missing" in res.data["detail"]
