# apps/prescriptions/exceptions.py
# Business-rule failures raised by the dispense/update paths. They are DRF
# exceptions so views can let them propagate untouched.
from rest_framework import status
from rest_framework.exceptions import APIException

from apps.core.exceptions import Conflict, Forbidden, InvalidRequest  # noqa: F401


class DispenseRejected(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "The prescription cannot be dispensed."
    default_code = "dispense_rejected"


class InvalidState(DispenseRejected):
    default_detail = "Only active prescriptions can be dispensed."
    default_code = "invalid_state"


class Expired(DispenseRejected):
    default_detail = "The prescription has expired."
    default_code = "expired"


class ExhaustedDispensations(DispenseRejected):
    default_detail = "All allowed dispensations have already been used."
    default_code = "exhausted_dispensations"


class RefillNotDue(DispenseRejected):
    default_detail = "The next refill is not due yet."
    default_code = "refill_not_due"
