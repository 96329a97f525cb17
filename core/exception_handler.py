"""DRF exception handler.

Store failures are logged with their traceback and replaced by a generic
PersistenceFailure so database details never reach the client. Every other
error goes through DRF's default handling.
"""

import logging

from django.db import DatabaseError
from rest_framework.views import exception_handler

from orders.exceptions import PersistenceFailure

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    request = context.get("request")
    path = getattr(request, "path", None)
    method = getattr(request, "method", None)

    if isinstance(exc, DatabaseError):
        logger.error(
            "persistence_failure",
            extra={
                "path": path,
                "method": method,
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
            exc_info=exc,
        )
        exc = PersistenceFailure()

    response = exception_handler(exc, context)
    if response is not None:
        logger.info(
            "request_failed",
            extra={
                "path": path,
                "method": method,
                "status": response.status_code,
                "error_type": type(exc).__name__,
            },
        )
    return response
