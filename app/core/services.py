"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Result wrapper for callers that must record, not raise,
  a failure (webhook handlers, Celery tasks)
- BaseService: Base class with logging, transactions and input checks

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views handle HTTP concerns, models handle data, services handle logic.
    Settlement services raise core.exceptions errors; the API layer maps
    them to responses through core.exception_handler.

Usage:
    from core.services import BaseService

    class OrderService(BaseService):
        @classmethod
        def create_order(cls, actor, product_id):
            with cls.atomic():
                order = Order.objects.create(...)
                Escrow.objects.create(order=order, ...)

            cls.get_logger().info("Order created", extra={"order_id": str(order.id)})
            return order
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import DatabaseError, transaction

from core.exceptions import BaseApplicationError, StorageError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code

    Usage:
        result = dispatch_webhook(webhook_event)
        if not result:
            webhook_event.mark_failed(result.error)
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def ok(cls, data: T) -> ServiceResult[T]:
        """Alias for success(), use whichever reads better in context."""
        return cls(success=True, data=data)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result.

        Example:
            return ServiceResult.failure("Order not found", "ORDER_NOT_FOUND")
        """
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def from_exception(cls, exc: Exception) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors keep their own error code; anything else is
        coded by its class name.
        """
        if isinstance(exc, BaseApplicationError):
            return cls(success=False, error=exc.message, error_code=exc.error_code)
        return cls(
            success=False,
            error=str(exc),
            error_code=exc.__class__.__name__.upper(),
        )

    def to_response(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {
            "success": False,
            "error": {"code": self.error_code, "message": self.error},
        }

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Services are stateless: every operation is a classmethod that takes
    the acting principal and the ids it operates on.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named after the concrete service class."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Run a block inside a database transaction.

        Database failures are re-raised as StorageError so callers see the
        application error taxonomy; application errors pass through and
        roll the transaction back.
        """
        try:
            with transaction.atomic():
                yield
        except DatabaseError as exc:
            cls.get_logger().error(
                "Database error in service transaction",
                extra={"error": str(exc)},
                exc_info=True,
            )
            raise StorageError(
                "The operation could not be stored. Please retry.",
                details={"reason": exc.__class__.__name__},
            ) from exc

    @classmethod
    def validate_required(cls, **kwargs: Any) -> None:
        """
        Raise ValidationError if any keyword value is None or blank.

        Example:
            cls.validate_required(reason=reason, description=description)
        """
        missing = {
            name: ["This field is required."]
            for name, value in kwargs.items()
            if value is None or (isinstance(value, str) and not value.strip())
        }
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(sorted(missing))}",
                error_code="REQUIRED_FIELDS_MISSING",
                details=missing,
            )
