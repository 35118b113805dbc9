"""
DRF exception handler for application errors.

Registered as REST_FRAMEWORK["EXCEPTION_HANDLER"]. Service-layer errors
(core.exceptions.BaseApplicationError and subclasses) become responses with
the error's http_status and its to_dict() envelope. Serializer validation
errors use the same envelope with code VALIDATION_ERROR. Everything else
falls through to DRF's default handler.
"""

from __future__ import annotations

import logging

from django.db import DatabaseError
from rest_framework import exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from core.exceptions import BaseApplicationError, StorageError, ValidationError

logger = logging.getLogger(__name__)


def application_exception_handler(exc, context):
    if isinstance(exc, DatabaseError):
        logger.error(
            "Unhandled database error in API view",
            extra={"view": context.get("view").__class__.__name__},
            exc_info=exc,
        )
        exc = StorageError("The operation could not be stored. Please retry.")

    if isinstance(exc, exceptions.ValidationError):
        detail = exc.detail if isinstance(exc.detail, dict) else {"non_field_errors": exc.detail}
        exc = ValidationError("Invalid request data", details=detail)

    if isinstance(exc, BaseApplicationError):
        if exc.http_status >= 500:
            logger.warning(
                f"Request failed with {exc.error_code}",
                extra={"error_code": exc.error_code},
            )
        return Response(exc.to_dict(), status=exc.http_status)

    return drf_exception_handler(exc, context)
