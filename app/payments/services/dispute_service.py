"""
Dispute service: opening and reviewing disputes.

Opening a dispute freezes the order's escrow (held -> disputed) and moves
the order to disputed. Resolution lives in EscrowService.resolve_dispute
because it settles the escrow.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from authentication.roles import Capability, require_capability
from core.exceptions import NotFoundError, PermissionDeniedError
from core.services import BaseService
from notifications.services import NotificationService

from payments.exceptions import DisputeAlreadyOpenError, EscrowFinalizedError
from payments.locks import assert_version, lock_for_update
from payments.models import AuditLogEntry, Dispute, Order
from payments.services.escrow_service import EscrowService
from payments.state_machines import (
    ACTIVE_DISPUTE_STATUSES,
    AuditAction,
    DisputeStatus,
    OrderStatus,
)
from payments.state_machines.transitions import run_transition

if TYPE_CHECKING:
    from authentication.roles import Principal


logger = logging.getLogger(__name__)

CHARGEBACK_REASON = "chargeback"


class DisputeService(BaseService):
    """Open and review disputes on marketplace orders."""

    @classmethod
    def open_dispute(
        cls,
        actor: Principal,
        order_id,
        reason: str,
        description: str,
        expected_version: int | None = None,
    ) -> Dispute:
        """
        Open a dispute on an order as its buyer or seller.

        Args:
            expected_version: Order version the caller last saw; None
                skips the optimistic check

        Raises:
            ValidationError: Missing reason or description
            NotFoundError: Unknown order
            PermissionDeniedError: Actor is neither buyer nor seller
            StaleRecordError: Order changed since expected_version
            DisputeAlreadyOpenError: An unresolved dispute already exists
            EscrowFinalizedError: Funds were already released or refunded
        """
        cls.validate_required(reason=reason, description=description)

        with cls.atomic():
            order = lock_for_update(Order, order_id)
            if not order.is_party(actor.user_id):
                raise PermissionDeniedError(
                    "Only the buyer or seller can dispute this order",
                    error_code="NOT_ORDER_PARTY",
                    details={"order_id": str(order.id)},
                )
            assert_version(order, expected_version)
            dispute = cls._open_locked(
                order,
                initiated_by_id=actor.user_id,
                reason=reason.strip(),
                description=description.strip(),
            )

        return dispute

    @classmethod
    def open_chargeback_dispute(cls, charge_ref: str, description: str = "") -> Dispute | None:
        """
        Open a dispute for a gateway chargeback on behalf of the buyer.

        Returns:
            The new Dispute, or None when the order is already disputed

        Raises:
            NotFoundError: No order carries this charge reference
            EscrowFinalizedError: Funds were already released or refunded
        """
        cls.validate_required(charge_ref=charge_ref)

        with cls.atomic():
            try:
                order = Order.objects.select_for_update().get(payment_reference=charge_ref)
            except Order.DoesNotExist:
                raise NotFoundError(
                    f"No order for charge {charge_ref}",
                    error_code="ORDER_NOT_FOUND",
                    details={"payment_reference": charge_ref},
                )

            if order.status == OrderStatus.DISPUTED:
                logger.info(
                    "Chargeback for already disputed order acknowledged",
                    extra={"order_id": str(order.id), "charge_ref": charge_ref},
                )
                return None

            dispute = cls._open_locked(
                order,
                initiated_by_id=order.buyer_id,
                reason=CHARGEBACK_REASON,
                description=description or f"Chargeback opened at the payment gateway for {charge_ref}",
            )

        return dispute

    @classmethod
    def _open_locked(
        cls,
        order: Order,
        initiated_by_id: int,
        reason: str,
        description: str,
    ) -> Dispute:
        """Open a dispute on an order the caller has already row-locked."""
        active = Dispute.objects.filter(order=order, status__in=ACTIVE_DISPUTE_STATUSES).first()
        if active is not None:
            raise DisputeAlreadyOpenError(
                "This order already has an unresolved dispute",
                details={"order_id": str(order.id), "dispute_id": str(active.id)},
            )

        escrow = EscrowService.lock_for_order(order)
        if escrow.is_final:
            raise EscrowFinalizedError(
                f"Cannot dispute escrow with status: {escrow.status}",
                details={"escrow_id": str(escrow.id), "current_state": escrow.status},
            )

        run_transition(escrow, "dispute")
        run_transition(order, "mark_disputed")
        escrow.save()
        order.save()

        dispute = Dispute.objects.create(
            order=order,
            initiated_by_id=initiated_by_id,
            reason=reason,
            description=description,
        )

        other_party_id = order.seller_id if initiated_by_id == order.buyer_id else order.buyer_id
        NotificationService.notify_on_commit(
            other_party_id,
            "Order Dispute",
            f"A dispute was opened for order {order.id}. Admin will review.",
            escrow.id,
        )
        NotificationService.notify_many_on_commit(
            NotificationService.admin_user_ids(),
            "Escrow Dispute",
            f"Dispute raised for order {order.id}. Reason: {reason}",
            escrow.id,
        )

        logger.info(
            "Dispute opened",
            extra={
                "dispute_id": str(dispute.id),
                "order_id": str(order.id),
                "initiated_by": initiated_by_id,
            },
        )
        return dispute

    @classmethod
    def mark_under_review(cls, actor: Principal, dispute_id) -> Dispute:
        """
        Move an open dispute to under_review. Idempotent for disputes
        already under review.

        Raises:
            PermissionDeniedError: Actor lacks RESOLVE_DISPUTE
            NotFoundError: Unknown dispute
            InvalidStateTransitionError: Dispute is resolved or closed
        """
        require_capability(actor, Capability.RESOLVE_DISPUTE)

        with cls.atomic():
            dispute = lock_for_update(Dispute, dispute_id)
            if dispute.status == DisputeStatus.UNDER_REVIEW:
                return dispute

            run_transition(dispute, "start_review")
            dispute.save()

            AuditLogEntry.record(
                actor.user_id,
                AuditAction.DISPUTE_REVIEW,
                dispute,
                order_id=str(dispute.order_id),
            )
            NotificationService.notify_on_commit(
                dispute.initiated_by_id,
                "Dispute Under Review",
                f"Your dispute for order {dispute.order_id} is being reviewed.",
                dispute.id,
            )

        return dispute
