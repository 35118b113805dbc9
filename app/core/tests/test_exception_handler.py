"""
Tests for the DRF exception handler and the error taxonomy.
"""

import pytest
from django.db import DatabaseError
from rest_framework import exceptions

from core.exception_handler import application_exception_handler
from core.exceptions import (
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    ValidationError,
)


@pytest.mark.parametrize(
    ("exc_class", "status", "code"),
    [
        (ValidationError, 400, "VALIDATION_ERROR"),
        (PermissionDeniedError, 403, "PERMISSION_DENIED"),
        (NotFoundError, 404, "NOT_FOUND"),
        (ConflictError, 409, "CONFLICT"),
        (ExternalServiceError, 502, "EXTERNAL_SERVICE_ERROR"),
        (StorageError, 503, "STORAGE_ERROR"),
    ],
)
def test_application_errors_map_to_status(exc_class, status, code):
    response = application_exception_handler(exc_class("Something went wrong"), {})

    assert response.status_code == status
    assert response.data == {"error": {"code": code, "message": "Something went wrong"}}


def test_details_are_included_when_present():
    exc = ConflictError(
        "Insufficient balance",
        error_code="INSUFFICIENT_BALANCE",
        details={"available_cents": 3500},
    )

    response = application_exception_handler(exc, {})

    assert response.data["error"]["details"] == {"available_cents": 3500}


def test_drf_validation_error_uses_envelope():
    exc = exceptions.ValidationError({"product_id": ["Must be a valid UUID."]})

    response = application_exception_handler(exc, {})

    assert response.status_code == 400
    assert response.data["error"]["code"] == "VALIDATION_ERROR"
    assert response.data["error"]["details"] == {"product_id": ["Must be a valid UUID."]}


def test_drf_list_validation_error_is_wrapped():
    response = application_exception_handler(exceptions.ValidationError(["Bad input"]), {})

    assert response.data["error"]["details"] == {"non_field_errors": ["Bad input"]}


def test_database_error_becomes_storage_error():
    response = application_exception_handler(DatabaseError("locked"), {"view": object()})

    assert response.status_code == 503
    assert response.data["error"]["code"] == "STORAGE_ERROR"


def test_other_errors_fall_through_to_drf():
    response = application_exception_handler(exceptions.NotAuthenticated(), {})

    assert response.status_code == 401
    assert "detail" in response.data


def test_string_form_includes_code():
    assert str(NotFoundError("Order missing", error_code="ORDER_NOT_FOUND")) == (
        "[ORDER_NOT_FOUND] Order missing"
    )
