"""
Payout service: seller withdrawals against released escrow funds.

Balance:
    available = sum(released escrows) - sum(payouts not failed)

Requested and processing payouts count against the balance, so a second
request cannot spend money the first one already claimed. A failed payout
stops counting and its amount becomes available again.

Concurrency:
    request_payout holds a Redis DistributedLock keyed by seller and a
    select_for_update() on the seller's User row while it reads the
    balance and inserts the payout. Two concurrent requests for the same
    seller are serialized; the second sees the first one's payout.

Usage:
    from payments.services import PayoutService

    payout = PayoutService.request_payout(
        actor=artist_principal,
        amount_cents=3500,
        bank_account={"account_number": "0012345678", "bank_name": "National Bank"},
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Sum

from authentication.roles import Capability, require_capability
from core.exceptions import NotFoundError, ValidationError
from core.services import BaseService
from notifications.services import NotificationService

from payments.exceptions import InsufficientBalanceError
from payments.locks import DistributedLock, lock_for_update
from payments.models import AuditLogEntry, Escrow, Payout
from payments.money import format_money
from payments.state_machines import (
    COMMITTED_PAYOUT_STATUSES,
    AuditAction,
    EscrowStatus,
    PayoutMethod,
    PayoutStatus,
)
from payments.state_machines.transitions import run_transition

if TYPE_CHECKING:
    from typing import Any

    from django.db.models import QuerySet

    from authentication.roles import Principal


logger = logging.getLogger(__name__)

# Seconds a payout lock may be held before Redis expires it
PAYOUT_LOCK_TTL = 30


def mask_bank_account(bank_account: dict[str, Any] | None) -> dict[str, str]:
    """
    Reduce a destination account to what may be stored.

    Accepts either a full ``account_number`` or an already masked
    ``last4``, plus ``bank_name``.

    Raises:
        ValidationError: Missing account number or bank name
    """
    bank_account = bank_account or {}
    if not isinstance(bank_account, dict):
        raise ValidationError(
            "Bank account must be an object",
            error_code="INVALID_BANK_ACCOUNT",
        )

    number = str(bank_account.get("account_number") or bank_account.get("last4") or "")
    digits = "".join(ch for ch in number if ch.isalnum())
    bank_name = str(bank_account.get("bank_name") or "").strip()

    errors = {}
    if len(digits) < 4:
        errors["account_number"] = ["Account number must have at least 4 characters."]
    if not bank_name:
        errors["bank_name"] = ["This field is required."]
    if errors:
        raise ValidationError(
            "Invalid bank account details",
            error_code="INVALID_BANK_ACCOUNT",
            details=errors,
        )

    return {"last4": digits[-4:], "bank_name": bank_name}


class PayoutService(BaseService):
    """Balance queries, payout requests and payout fulfillment states."""

    # =========================================================================
    # Balance
    # =========================================================================

    @classmethod
    def get_available_balance(cls, seller_id: int) -> int:
        """Released escrow funds not yet claimed by a payout, floored at 0."""
        released = (
            Escrow.objects.filter(seller_id=seller_id, status=EscrowStatus.RELEASED).aggregate(
                total=Sum("amount_cents")
            )["total"]
            or 0
        )
        committed = (
            Payout.objects.filter(
                artist_id=seller_id,
                status__in=COMMITTED_PAYOUT_STATUSES,
            ).aggregate(total=Sum("amount_cents"))["total"]
            or 0
        )
        return max(released - committed, 0)

    @classmethod
    def get_balance_summary(cls, seller_id: int) -> dict[str, int | str]:
        """
        Balance breakdown for the seller dashboard.

        Returns:
            dict with available, pending (held escrows), in_flight
            (requested + processing payouts), paid_out (completed
            payouts) and currency
        """
        pending = (
            Escrow.objects.filter(seller_id=seller_id, status=EscrowStatus.HELD).aggregate(
                total=Sum("amount_cents")
            )["total"]
            or 0
        )
        payouts = Payout.objects.filter(artist_id=seller_id)
        in_flight = (
            payouts.filter(
                status__in=[PayoutStatus.REQUESTED, PayoutStatus.PROCESSING]
            ).aggregate(total=Sum("amount_cents"))["total"]
            or 0
        )
        paid_out = (
            payouts.filter(status=PayoutStatus.COMPLETED).aggregate(total=Sum("amount_cents"))[
                "total"
            ]
            or 0
        )
        return {
            "available": cls.get_available_balance(seller_id),
            "pending": pending,
            "in_flight": in_flight,
            "paid_out": paid_out,
            "currency": settings.MARKETPLACE_DEFAULT_CURRENCY,
        }

    # =========================================================================
    # Requests
    # =========================================================================

    @classmethod
    def request_payout(
        cls,
        actor: Principal,
        amount_cents: int,
        bank_account: dict[str, Any] | None,
        method: str = PayoutMethod.BANK_TRANSFER,
    ) -> Payout:
        """
        Create a payout request against the actor's available balance.

        Raises:
            PermissionDeniedError: Actor lacks REQUEST_PAYOUT
            ValidationError: Amount not an integer or below the minimum,
                bad bank account or unknown method
            InsufficientBalanceError: Amount exceeds the available balance
            LockAcquisitionError: Another request for this seller is in
                flight and did not finish within the lock timeout
        """
        require_capability(actor, Capability.REQUEST_PAYOUT)

        if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
            raise ValidationError(
                "Amount must be a whole number of cents",
                error_code="INVALID_AMOUNT",
                details={"amount_cents": ["A valid integer is required."]},
            )
        minimum = settings.PAYOUT_MINIMUM_AMOUNT_CENTS
        if amount_cents < minimum:
            raise ValidationError(
                f"Minimum payout is {format_money(minimum, settings.MARKETPLACE_DEFAULT_CURRENCY)}",
                error_code="PAYOUT_BELOW_MINIMUM",
                details={"amount_cents": amount_cents, "minimum_cents": minimum},
            )
        if method not in PayoutMethod.values:
            raise ValidationError(
                "Unsupported payout method",
                error_code="INVALID_PAYOUT_METHOD",
                details={"method": [f"'{method}' is not a valid choice."]},
            )
        masked_account = mask_bank_account(bank_account)

        with DistributedLock(
            f"payout:seller:{actor.user_id}",
            ttl=PAYOUT_LOCK_TTL,
            timeout=settings.PAYOUT_LOCK_TIMEOUT_SECONDS,
        ):
            with cls.atomic():
                cls._lock_seller(actor.user_id)

                available = cls.get_available_balance(actor.user_id)
                if amount_cents > available:
                    raise InsufficientBalanceError(
                        "Insufficient balance for this payout",
                        details={"requested_cents": amount_cents, "available_cents": available},
                    )

                payout = Payout.objects.create(
                    artist_id=actor.user_id,
                    amount_cents=amount_cents,
                    currency=settings.MARKETPLACE_DEFAULT_CURRENCY,
                    method=method,
                    bank_account=masked_account,
                )

                NotificationService.notify_on_commit(
                    actor.user_id,
                    "Payout Requested",
                    f"Your payout of {format_money(amount_cents, payout.currency)} "
                    f"to {masked_account['bank_name']} ****{masked_account['last4']} is being processed.",
                    payout.id,
                )
                NotificationService.notify_many_on_commit(
                    NotificationService.admin_user_ids(),
                    "New Payout Request",
                    f"Payout {payout.id} of {format_money(amount_cents, payout.currency)} awaits processing.",
                    payout.id,
                )

        logger.info(
            "Payout requested",
            extra={
                "payout_id": str(payout.id),
                "seller_id": actor.user_id,
                "amount_cents": amount_cents,
                "available_cents": available,
            },
        )
        return payout

    @classmethod
    def _lock_seller(cls, seller_id: int) -> None:
        user_model = get_user_model()
        try:
            user_model.objects.select_for_update().only("id").get(pk=seller_id)
        except user_model.DoesNotExist:
            raise NotFoundError(
                f"User {seller_id} not found",
                error_code="USER_NOT_FOUND",
                details={"id": seller_id},
            )

    @classmethod
    def list_payouts(cls, actor: Principal) -> QuerySet[Payout]:
        return Payout.objects.filter(artist_id=actor.user_id).order_by("-created_at")

    # =========================================================================
    # Fulfillment (staff)
    # =========================================================================

    @classmethod
    def mark_processing(cls, actor: Principal, payout_id) -> Payout:
        """requested -> processing."""
        return cls._advance(actor, payout_id, "process", PayoutStatus.PROCESSING)

    @classmethod
    def complete_payout(cls, actor: Principal, payout_id) -> Payout:
        """processing -> completed."""
        return cls._advance(actor, payout_id, "complete", PayoutStatus.COMPLETED)

    @classmethod
    def fail_payout(cls, actor: Principal, payout_id, reason: str) -> Payout:
        """
        requested/processing -> failed. The amount returns to the
        available balance.
        """
        cls.validate_required(reason=reason)
        return cls._advance(actor, payout_id, "fail", PayoutStatus.FAILED, reason.strip())

    @classmethod
    def _advance(
        cls,
        actor: Principal,
        payout_id,
        transition_name: str,
        target: str,
        *args: Any,
    ) -> Payout:
        """
        Apply one fulfillment transition. Already at target is a no-op.

        Raises:
            PermissionDeniedError: Actor lacks MANAGE_PAYOUTS
            NotFoundError: Unknown payout
            InvalidStateTransitionError: Transition not allowed from the
                current state
        """
        require_capability(actor, Capability.MANAGE_PAYOUTS)

        with cls.atomic():
            payout = lock_for_update(Payout, payout_id)
            if payout.status == target:
                return payout

            previous = payout.status
            run_transition(payout, transition_name, *args)
            payout.save()

            AuditLogEntry.record(
                actor.user_id,
                AuditAction.PAYOUT_STATUS_CHANGE,
                payout,
                previous_status=previous,
                new_status=payout.status,
                reason=payout.failure_reason,
            )
            cls._notify_status(payout)

        logger.info(
            "Payout status changed",
            extra={
                "payout_id": str(payout.id),
                "from_status": previous,
                "to_status": payout.status,
                "admin_id": actor.user_id,
            },
        )
        return payout

    @classmethod
    def _notify_status(cls, payout: Payout) -> None:
        amount = format_money(payout.amount_cents, payout.currency)
        if payout.status == PayoutStatus.PROCESSING:
            title, message = "Payout Processing", f"Your payout of {amount} is being transferred."
        elif payout.status == PayoutStatus.COMPLETED:
            title, message = "Payout Completed", f"Your payout of {amount} has been sent."
        else:
            title = "Payout Failed"
            message = (
                f"Your payout of {amount} failed: {payout.failure_reason}. "
                "The amount is available again."
            )
        NotificationService.notify_on_commit(payout.artist_id, title, message, payout.id)
