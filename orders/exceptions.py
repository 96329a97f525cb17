"""Orders error taxonomy.

All errors are DRF APIExceptions so views can simply let them propagate and
the configured exception handler renders them as {"detail": ...} payloads.
"""

from rest_framework import status
from rest_framework.exceptions import APIException


class NotFound(APIException):
    """An order or item reference could not be resolved."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Order not found."
    default_code = "not_found"


class InvalidInput(APIException):
    """Missing or malformed input. Detail is keyed by the offending field."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input."
    default_code = "invalid_input"


class InvalidTransition(APIException):
    """A named lifecycle operation was attempted from the wrong status."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Order is not in the required status."
    default_code = "invalid_transition"


class PersistenceFailure(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Failed to store the order. Please retry."
    default_code = "persistence_failure"


class UpstreamFailure(APIException):
    """The product grouping service was unavailable or answered garbage."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Product grouping service is unavailable."
    default_code = "upstream_failure"
