"""
Escrow service: settlement of held funds.

Every method that changes an escrow locks the Order row first and the
Escrow row second, always in that order, then re-checks the pre-state
before transitioning.

Usage:
    from payments.services import EscrowService

    result = EscrowService.resolve_dispute(
        actor=admin_principal,
        escrow_id=escrow.id,
        resolution=DisputeResolution.PAY_SELLER,
        notes="Delivery confirmed by download logs",
    )
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Q

from authentication.roles import Capability, require_capability
from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.services import BaseService
from notifications.services import NotificationService

from payments.locks import assert_version, lock_for_update
from payments.models import AuditLogEntry, Dispute, Escrow, Order
from payments.money import format_money
from payments.state_machines import (
    ACTIVE_DISPUTE_STATUSES,
    AuditAction,
    DisputeResolution,
    DisputeWinner,
    EscrowStatus,
)
from payments.state_machines.transitions import run_transition

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from authentication.roles import Principal


logger = logging.getLogger(__name__)


@dataclass
class SettlementResult:
    """
    Records touched by a settlement.

    Attributes:
        order: The settled order
        escrow: Its escrow in the final state
        dispute: The resolved dispute, when settlement came from one
    """

    order: Order
    escrow: Escrow
    dispute: Dispute | None = None


class EscrowService(BaseService):
    """Transitions of Escrow records and admin settlement."""

    # =========================================================================
    # Locking
    # =========================================================================

    @classmethod
    def lock_for_order(cls, order: Order) -> Escrow:
        """Row-lock the escrow of an already locked order."""
        try:
            return Escrow.objects.select_for_update().get(order_id=order.pk)
        except Escrow.DoesNotExist:
            raise NotFoundError(
                f"Escrow for order {order.pk} not found",
                error_code="ESCROW_NOT_FOUND",
                details={"order_id": str(order.pk)},
            )

    @classmethod
    def lock_with_order(cls, escrow_id) -> tuple[Order, Escrow]:
        """Row-lock an escrow and its order, order first."""
        try:
            order_id = Escrow.objects.values_list("order_id", flat=True).get(pk=escrow_id)
        except (Escrow.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError(
                f"Escrow {escrow_id} not found",
                error_code="ESCROW_NOT_FOUND",
                details={"id": str(escrow_id)},
            )
        order = lock_for_update(Order, order_id)
        escrow = lock_for_update(Escrow, escrow_id)
        return order, escrow

    # =========================================================================
    # Primitive Transitions
    # =========================================================================

    @classmethod
    def release(cls, escrow_id) -> Escrow:
        """
        Move funds to the seller (held or disputed -> released).

        Does not touch the Order or any Dispute; callers that settle an
        order use confirm/resolve/admin_release instead.

        Raises:
            NotFoundError: Unknown escrow
            InvalidStateTransitionError: Escrow is already final
        """
        with cls.atomic():
            escrow = lock_for_update(Escrow, escrow_id)
            run_transition(escrow, "release")
            escrow.save()

        logger.info(
            "Escrow released",
            extra={"escrow_id": str(escrow.id), "seller_id": escrow.seller_id},
        )
        return escrow

    @classmethod
    def refund(cls, escrow_id, reason: str) -> Escrow:
        """
        Return funds to the buyer (held or disputed -> refunded).

        Raises:
            NotFoundError: Unknown escrow
            InvalidStateTransitionError: Escrow is already final
        """
        with cls.atomic():
            escrow = lock_for_update(Escrow, escrow_id)
            run_transition(escrow, "refund", reason)
            escrow.save()

        logger.info(
            "Escrow refunded",
            extra={"escrow_id": str(escrow.id), "buyer_id": escrow.buyer_id, "reason": reason},
        )
        return escrow

    # =========================================================================
    # Dispute Resolution
    # =========================================================================

    @classmethod
    def resolve_dispute(
        cls,
        actor: Principal,
        escrow_id,
        resolution: str,
        notes: str = "",
        expected_version: int | None = None,
    ) -> SettlementResult:
        """
        Settle a disputed escrow in favor of one party.

        refund_buyer refunds the escrow and the order; pay_seller releases
        the escrow and completes the order. The active dispute is resolved
        with the notes, the winner and the acting admin. expected_version,
        when given, is the escrow version the admin last saw.

        Raises:
            PermissionDeniedError: Actor lacks RESOLVE_DISPUTE
            ValidationError: Unknown resolution
            NotFoundError: Unknown escrow
            ConflictError: Escrow not disputed or no active dispute
                (this includes resolving the same dispute twice)
            StaleRecordError: Escrow changed since expected_version
        """
        require_capability(actor, Capability.RESOLVE_DISPUTE)
        if resolution not in DisputeResolution.values:
            raise ValidationError(
                'Invalid resolution. Must be "refund_buyer" or "pay_seller"',
                error_code="INVALID_RESOLUTION",
                details={"resolution": [f"'{resolution}' is not a valid choice."]},
            )
        notes = (notes or "").strip()

        with cls.atomic():
            order, escrow = cls.lock_with_order(escrow_id)

            if escrow.status != EscrowStatus.DISPUTED:
                raise ConflictError(
                    "Escrow must be in disputed status",
                    error_code="ESCROW_NOT_DISPUTED",
                    details={"escrow_id": str(escrow.id), "current_state": escrow.status},
                )
            assert_version(escrow, expected_version)

            dispute = (
                Dispute.objects.select_for_update()
                .filter(order=order, status__in=ACTIVE_DISPUTE_STATUSES)
                .first()
            )
            if dispute is None:
                raise ConflictError(
                    "No open dispute for this escrow",
                    error_code="DISPUTE_NOT_ACTIVE",
                    details={"escrow_id": str(escrow.id)},
                )

            if resolution == DisputeResolution.REFUND_BUYER:
                winner = DisputeWinner.BUYER
                run_transition(escrow, "refund", (notes or "Dispute resolved in buyer's favor")[:255])
                run_transition(order, "refund")
            else:
                winner = DisputeWinner.SELLER
                run_transition(escrow, "release")
                run_transition(order, "complete")

            escrow.save()
            order.save()

            run_transition(dispute, "resolve", winner=winner, notes=notes, resolved_by_id=actor.user_id)
            dispute.save()

            AuditLogEntry.record(
                actor.user_id,
                AuditAction.DISPUTE_RESOLUTION,
                dispute,
                resolution=resolution,
                winner=winner,
                escrow_id=str(escrow.id),
                amount_cents=escrow.amount_cents,
                notes=notes,
            )
            cls._notify_resolution(escrow, resolution, notes)

        logger.info(
            "Dispute resolved",
            extra={
                "dispute_id": str(dispute.id),
                "escrow_id": str(escrow.id),
                "resolution": resolution,
                "admin_id": actor.user_id,
            },
        )
        return SettlementResult(order=order, escrow=escrow, dispute=dispute)

    @classmethod
    def _notify_resolution(cls, escrow: Escrow, resolution: str, notes: str) -> None:
        amount = format_money(escrow.amount_cents, escrow.currency)
        order_id = escrow.order_id
        suffix = f" {notes}" if notes else ""

        if resolution == DisputeResolution.REFUND_BUYER:
            NotificationService.notify_on_commit(
                escrow.buyer_id,
                "Dispute Resolved - Refunded",
                f"Your dispute has been resolved. {amount} has been refunded.{suffix}",
                escrow.id,
            )
            NotificationService.notify_on_commit(
                escrow.seller_id,
                "Dispute Resolved - Buyer Refunded",
                f"Dispute for order {order_id} resolved. Buyer was refunded.{suffix}",
                escrow.id,
            )
        else:
            NotificationService.notify_on_commit(
                escrow.seller_id,
                "Dispute Resolved - Payment Released",
                f"Your dispute has been resolved in your favor. {amount} released.{suffix}",
                escrow.id,
            )
            NotificationService.notify_on_commit(
                escrow.buyer_id,
                "Dispute Resolved - Against You",
                f"Your dispute for order {order_id} was not upheld. Seller received payment.{suffix}",
                escrow.id,
            )

    # =========================================================================
    # Admin Settlement
    # =========================================================================

    @classmethod
    def admin_release(cls, actor: Principal, escrow_id) -> SettlementResult:
        """
        Release a held escrow outside the dispute flow and complete the order.

        Raises:
            PermissionDeniedError: Actor lacks ADMIN_SETTLE
            NotFoundError: Unknown escrow
            ConflictError: Escrow is not held (disputed escrows go through
                resolve_dispute)
            InvalidStateTransitionError: Order was never paid
        """
        require_capability(actor, Capability.ADMIN_SETTLE)

        with cls.atomic():
            order, escrow = cls.lock_with_order(escrow_id)
            cls._require_held(escrow)
            run_transition(escrow, "release")
            run_transition(order, "complete")
            escrow.save()
            order.save()

            AuditLogEntry.record(
                actor.user_id,
                AuditAction.ESCROW_RELEASE,
                escrow,
                order_id=str(order.id),
                amount_cents=escrow.amount_cents,
            )
            amount = format_money(escrow.amount_cents, escrow.currency)
            NotificationService.notify_on_commit(
                escrow.seller_id,
                "Escrow Released",
                f"{amount} for order {order.id} has been released to you.",
                escrow.id,
            )
            NotificationService.notify_on_commit(
                escrow.buyer_id,
                "Escrow Released",
                f"Payment for order {order.id} was released to the seller.",
                escrow.id,
            )

        logger.info(
            "Escrow released by admin",
            extra={"escrow_id": str(escrow.id), "admin_id": actor.user_id},
        )
        return SettlementResult(order=order, escrow=escrow)

    @classmethod
    def admin_refund(cls, actor: Principal, escrow_id, reason: str) -> SettlementResult:
        """
        Refund a held escrow outside the dispute flow and refund the order.

        Raises:
            PermissionDeniedError: Actor lacks ADMIN_SETTLE
            ValidationError: Missing reason
            NotFoundError: Unknown escrow
            ConflictError: Escrow is not held
        """
        require_capability(actor, Capability.ADMIN_SETTLE)
        cls.validate_required(reason=reason)

        with cls.atomic():
            order, escrow = cls.lock_with_order(escrow_id)
            cls._require_held(escrow)
            run_transition(escrow, "refund", reason.strip()[:255])
            run_transition(order, "refund")
            escrow.save()
            order.save()

            AuditLogEntry.record(
                actor.user_id,
                AuditAction.ESCROW_REFUND,
                escrow,
                order_id=str(order.id),
                amount_cents=escrow.amount_cents,
                reason=escrow.refund_reason,
            )
            amount = format_money(escrow.amount_cents, escrow.currency)
            NotificationService.notify_on_commit(
                escrow.buyer_id,
                "Escrow Refunded",
                f"{amount} for order {order.id} has been refunded. Reason: {escrow.refund_reason}",
                escrow.id,
            )
            NotificationService.notify_on_commit(
                escrow.seller_id,
                "Escrow Refunded",
                f"Order {order.id} was refunded to the buyer. Reason: {escrow.refund_reason}",
                escrow.id,
            )

        logger.info(
            "Escrow refunded by admin",
            extra={"escrow_id": str(escrow.id), "admin_id": actor.user_id},
        )
        return SettlementResult(order=order, escrow=escrow)

    @staticmethod
    def _require_held(escrow: Escrow) -> None:
        if escrow.status != EscrowStatus.HELD:
            raise ConflictError(
                f"Cannot settle escrow with status: {escrow.status}",
                error_code="ESCROW_NOT_HELD",
                details={"escrow_id": str(escrow.id), "current_state": escrow.status},
            )

    # =========================================================================
    # Queries
    # =========================================================================

    @classmethod
    def list_escrows(cls, actor: Principal) -> QuerySet[Escrow]:
        """All escrows for admins, otherwise those where the actor is a party."""
        queryset = Escrow.objects.select_related("order", "order__product")
        if actor.can(Capability.VIEW_ALL_ESCROWS):
            return queryset
        return queryset.filter(Q(buyer_id=actor.user_id) | Q(seller_id=actor.user_id))
