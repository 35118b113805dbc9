"""
Base exception classes for application-wide error handling.

Every error raised by the settlement services carries a stable,
machine-readable error code and a human-readable message. The DRF
exception handler in core.exception_handler turns them into responses.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Malformed or missing input (400)
    ├── NotFoundError - Referenced record does not exist (404)
    ├── PermissionDeniedError - Caller lacks the role or party relation (403)
    ├── ConflictError - Operation illegal in the current state (409)
    ├── RateLimitError - Caller exceeded a rate limit (429)
    ├── ExternalServiceError - Payment gateway or other collaborator failed (502)
    └── StorageError - Persistence I/O failure, safe to retry (503)

Usage:
    from core.exceptions import ConflictError, ValidationError

    raise ValidationError("Reason is required", error_code="REASON_REQUIRED")

    raise ConflictError(
        "Order already has an unresolved dispute",
        error_code="DISPUTE_EXISTS",
        details={"order_id": str(order.id)},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, current status, limits)
        http_status: Status code used when the error reaches the API layer
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to the API error envelope.

        Example:
            {
                "error": {
                    "code": "INSUFFICIENT_BALANCE",
                    "message": "Requested amount exceeds available balance",
                    "details": {"available_cents": 3500}
                }
            }
        """
        error: dict[str, Any] = {
            "code": self.error_code,
            "message": self.message,
        }
        if self.details:
            error["details"] = self.details
        return {"error": error}

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input is malformed or missing.

    Examples: a dispute without a reason, a stream shorter than the
    minimum duration, a payout below the minimum amount. Nothing is
    mutated before this error is raised.
    """

    default_error_code: str = "VALIDATION_ERROR"
    http_status: int = 400


class NotFoundError(BaseApplicationError):
    """Raised when a referenced order, escrow, dispute, product or track does not exist."""

    default_error_code: str = "NOT_FOUND"
    http_status: int = 404


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the caller is not allowed to perform an operation.

    Covers both role checks (e.g. only admins resolve disputes) and party
    checks (e.g. only the order's buyer confirms receipt).
    """

    default_error_code: str = "PERMISSION_DENIED"
    http_status: int = 403


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with the current record state.

    Use for:
    - Double disputes on the same order
    - Disputes against escrows whose funds are already final
    - Payout requests exceeding the available balance
    - Optimistic locking failures and lock contention
    """

    default_error_code: str = "CONFLICT"
    http_status: int = 409


class RateLimitError(BaseApplicationError):
    """Raised when a caller exceeds a rate limit."""

    default_error_code: str = "RATE_LIMIT_EXCEEDED"
    http_status: int = 429


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external collaborator call fails.

    Log the original error for debugging but keep provider internals out
    of the message returned to clients.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    http_status: int = 502


class StorageError(BaseApplicationError):
    """
    Raised when the database fails underneath a service operation.

    State-transition guards make the operations idempotent, so callers may
    retry the whole operation.
    """

    default_error_code: str = "STORAGE_ERROR"
    http_status: int = 503
