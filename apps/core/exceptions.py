# apps/core/exceptions.py
from __future__ import annotations

import logging

from django.conf import settings
from rest_framework import status
from rest_framework.exceptions import APIException, PermissionDenied
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class InvalidRequest(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "The request payload does not match any supported operation."
    default_code = "invalid_request"


class Forbidden(PermissionDenied):
    default_detail = "You are not allowed to act on this resource."
    default_code = "forbidden"


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The resource was modified concurrently. Retry the request."
    default_code = "conflict"


def api_exception_handler(exc, context):
    """
    I wrap DRF's handler:
    - single-detail errors get a machine-readable `code` next to `detail`
    - anything DRF does not know becomes a logged 500 instead of an HTML page
    """
    response = exception_handler(exc, context)
    if response is not None:
        if isinstance(exc, APIException) and isinstance(response.data, dict) and set(response.data) == {"detail"}:
            codes = exc.get_codes()
            if isinstance(codes, str):
                response.data["code"] = codes
        return response

    view = context.get("view")
    logger.exception("Unhandled error in %s", view.__class__.__name__ if view else "unknown view")
    body = {"detail": "Internal server error.", "code": "server_error"}
    if settings.DEBUG:
        body["detail"] = str(exc)
        body["type"] = exc.__class__.__name__
    return Response(body, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
