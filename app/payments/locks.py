"""
Concurrency control utilities for settlement operations.

Three mechanisms, used together:

1. **Row locks** (lock_for_update)
   - select_for_update() inside the caller's transaction
   - Every Order/Escrow/Dispute/Payout transition re-reads its rows here
     and re-checks the expected pre-state before writing

2. **Optimistic Locking** (assert_version)
   - Clients may send the version of the Order or Escrow they last saw
     with confirm, dispute and resolve; a mismatch is a StaleRecordError
     instead of acting on a record that changed underneath them

3. **Distributed Locks** (DistributedLock)
   - Redis-based mutual exclusion across processes
   - Per-seller payout requests, so two workers cannot both pass the
     balance check

Usage:
    from payments.locks import DistributedLock, assert_version, lock_for_update

    with transaction.atomic():
        escrow = lock_for_update(Escrow, escrow_id)
        assert_version(escrow, expected_version)

    with DistributedLock(f"payout:seller:{seller_id}", ttl=30):
        PayoutService.request_payout(...)
"""

from __future__ import annotations

import time
import uuid as uuid_module
from typing import TYPE_CHECKING, TypeVar

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models
from django_redis import get_redis_connection

from core.exceptions import NotFoundError
from payments.exceptions import LockAcquisitionError, StaleRecordError

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis

T = TypeVar("T", bound=models.Model)


# =============================================================================
# Distributed Locks
# =============================================================================


class DistributedLock:
    """
    Redis-based distributed lock with TTL.

    Features:
        - TTL prevents deadlocks from crashed processes
        - Token-based ownership so only the holder can release
        - Blocking mode with a bounded wait
        - Context manager support

    Args:
        key: Lock identifier (prefixed with "lock:")
        ttl: Lock TTL in seconds
        blocking: If True, acquire() waits up to ``timeout`` seconds
        timeout: Maximum wait in seconds (blocking mode only)

    Example:
        try:
            with DistributedLock("payout:seller:42", ttl=30, timeout=5.0):
                create_payout()
        except LockAcquisitionError:
            # Another request for the same seller is in flight
            ...
    """

    # Atomic check-and-delete so a lock that expired and was re-acquired
    # by someone else is not released by us
    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    POLL_INTERVAL_SECONDS = 0.05

    def __init__(
        self,
        key: str,
        ttl: int = 30,
        blocking: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.key = f"lock:{key}"
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self._token: str | None = None
        self._redis: Redis | None = None

    def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    def acquire(self) -> bool:
        """
        Acquire the lock.

        Raises:
            LockAcquisitionError: Lock held elsewhere (non-blocking) or not
                acquired within the timeout (blocking)
        """
        token = str(uuid_module.uuid4())
        redis = self._get_redis()

        if self.blocking:
            deadline = time.monotonic() + self.timeout
            while time.monotonic() < deadline:
                if redis.set(self.key, token, nx=True, ex=self.ttl):
                    self._token = token
                    return True
                time.sleep(self.POLL_INTERVAL_SECONDS)

            raise LockAcquisitionError(
                f"Failed to acquire lock '{self.key}' within {self.timeout}s",
                details={"key": self.key, "timeout": self.timeout},
            )

        if not redis.set(self.key, token, nx=True, ex=self.ttl):
            raise LockAcquisitionError(
                f"Lock '{self.key}' is already held",
                details={"key": self.key},
            )
        self._token = token
        return True

    def release(self) -> bool:
        """
        Release the lock if we hold it. Safe to call more than once.

        Returns:
            True if the lock was released, False if we did not hold it
        """
        if self._token is None:
            return False

        result = self._get_redis().eval(self.RELEASE_SCRIPT, 1, self.key, self._token)
        self._token = None
        return bool(result)

    @property
    def is_held(self) -> bool:
        return self._token is not None

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        self.release()
        return False


# =============================================================================
# Row Locks
# =============================================================================


def lock_for_update(model_class: type[T], pk: Any, **filters: Any) -> T:
    """
    Load and row-lock a record inside the caller's transaction.

    Args:
        model_class: Django model class
        pk: Primary key of the record
        **filters: Extra lookups (e.g. order_id=...) combined with pk

    Raises:
        NotFoundError: With error code ``<MODEL>_NOT_FOUND``

    Note:
        Must be called inside transaction.atomic(); the lock is held until
        the transaction ends. select_for_update() is a no-op on SQLite,
        which serializes writers at the database level instead.
    """
    model_name = model_class.__name__
    try:
        return model_class.objects.select_for_update().get(pk=pk, **filters)
    except (model_class.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFoundError(
            f"{model_name} {pk} not found",
            error_code=f"{model_name.upper()}_NOT_FOUND",
            details={"id": str(pk)},
        )


# =============================================================================
# Optimistic Locking
# =============================================================================


def assert_version(instance: models.Model, expected_version: int | None) -> None:
    """
    Verify a row-locked record is still at the version the client last read.

    Call after lock_for_update() so no writer can bump the version between
    the check and the caller's save. An expected_version of None skips the
    check for callers that did not send one.

    Args:
        instance: Locked record with a ``version`` field
            (core.model_mixins.VersionedMixin)
        expected_version: Version the client last read, or None

    Raises:
        StaleRecordError: If the record was modified since it was read
    """
    if expected_version is None or instance.version == expected_version:
        return

    model_name = instance.__class__.__name__
    raise StaleRecordError(
        f"{model_name} {instance.pk} has been modified "
        f"(expected version {expected_version}, current {instance.version})",
        details={
            "pk": str(instance.pk),
            "expected_version": expected_version,
            "current_version": instance.version,
        },
    )


__all__ = [
    "DistributedLock",
    "assert_version",
    "lock_for_update",
]
