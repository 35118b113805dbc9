"""
Settlement-specific exceptions.

Exception Hierarchy:
    core.exceptions.ConflictError
    ├── InvalidStateTransitionError - FSM transition not in the allowed graph
    ├── EscrowFinalizedError - Funds already released or refunded
    ├── DisputeAlreadyOpenError - Order already has an unresolved dispute
    ├── InsufficientBalanceError - Payout exceeds the available balance
    ├── StaleRecordError - Optimistic locking conflict
    └── LockAcquisitionError - Distributed lock timeout

    core.exceptions.ValidationError
    └── WebhookVerificationError - Unsigned, badly signed or malformed event

    core.exceptions.ExternalServiceError
    └── GatewayError - Payment gateway call failed
        └── GatewayUnavailableError - Transient failure (retryable)

Usage:
    from payments.exceptions import InvalidStateTransitionError

    raise InvalidStateTransitionError(
        "Cannot release escrow in 'refunded' state",
        details={"current_state": "refunded", "transition": "release"},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import ConflictError, ExternalServiceError, ValidationError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# State Exceptions
# =============================================================================


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a state machine transition is not allowed.

    Wraps django-fsm's TransitionNotAllowed with the standard error
    format. details carries current_state and transition.
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


class EscrowFinalizedError(ConflictError):
    """
    Raised when an operation needs a held escrow but its funds are final.

    Example: disputing an order whose escrow was already released.
    """

    default_error_code: str = "ESCROW_FINALIZED"


class DisputeAlreadyOpenError(ConflictError):
    default_error_code: str = "DISPUTE_EXISTS"


class InsufficientBalanceError(ConflictError):
    """Raised when a payout request exceeds the seller's available balance."""

    default_error_code: str = "INSUFFICIENT_BALANCE"


# =============================================================================
# Concurrency Control Exceptions
# =============================================================================


class StaleRecordError(ConflictError):
    """
    Raised when optimistic locking detects a concurrent modification.

    details carries pk, expected_version and current_version. The caller
    should reload and retry or abort.
    """

    default_error_code: str = "STALE_RECORD"


class LockAcquisitionError(ConflictError):
    """
    Raised when a distributed lock cannot be acquired within its timeout.

    details carries the lock key and timeout.
    """

    default_error_code: str = "LOCK_ACQUISITION_FAILED"


# =============================================================================
# Gateway Exceptions
# =============================================================================


class WebhookVerificationError(ValidationError):
    """Raised for gateway events that fail signature or shape checks."""

    default_error_code: str = "WEBHOOK_VERIFICATION_FAILED"


class GatewayError(ExternalServiceError):
    """
    Base exception for payment gateway failures.

    Attributes:
        gateway_code: The provider's own error code, when it sent one
        is_retryable: Whether the call may be retried with backoff
    """

    default_error_code: str = "GATEWAY_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        gateway_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if gateway_code:
            details["gateway_code"] = gateway_code
        super().__init__(message, error_code=error_code, details=details)
        self.gateway_code = gateway_code


class GatewayUnavailableError(GatewayError):
    default_error_code: str = "GATEWAY_UNAVAILABLE"
    is_retryable: bool = True


__all__ = [
    "InvalidStateTransitionError",
    "EscrowFinalizedError",
    "DisputeAlreadyOpenError",
    "InsufficientBalanceError",
    "StaleRecordError",
    "LockAcquisitionError",
    "WebhookVerificationError",
    "GatewayError",
    "GatewayUnavailableError",
]
