"""
Order service: marketplace purchase workflow.

Flow:
    1. create_order: Order(pending_payment) + Escrow(held), one transaction
    2. on_payment_succeeded (gateway webhook): order -> processing
    3. confirm_receipt (buyer): order -> completed, escrow -> released

Gateway callbacks check the order's pre-state under a row lock, so a
redelivered event finds the work already done and returns without change.

Usage:
    from payments.services import OrderService

    order = OrderService.create_order(actor=buyer_principal, product_id=product.id)
    OrderService.on_payment_succeeded(order.id, charge_ref="ch_123")
    OrderService.confirm_receipt(actor=buyer_principal, order_id=order.id)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Q

from authentication.roles import Capability, require_capability
from catalog.models import Product
from core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from core.services import BaseService
from notifications.services import NotificationService

from payments.adapters import get_payment_gateway
from payments.locks import assert_version, lock_for_update
from payments.models import Dispute, Escrow, Order
from payments.money import format_money
from payments.services.escrow_service import EscrowService
from payments.state_machines import ACTIVE_DISPUTE_STATUSES, OrderStatus
from payments.state_machines.transitions import run_transition

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from authentication.roles import Principal
    from payments.adapters import ChargeStatus, PaymentGateway


logger = logging.getLogger(__name__)

PAYMENT_FAILED_REASON = "Payment failed"
DISPUTE_CLOSED_PAYMENT_FAILED = "Closed without a ruling: the order's payment failed"

ORDER_ROLES = ("buyer", "seller")


class OrderService(BaseService):
    """Create orders and move them through payment and confirmation."""

    # =========================================================================
    # Creation
    # =========================================================================

    @classmethod
    def create_order(cls, actor: Principal, product_id) -> Order:
        """
        Create an order and its held escrow for one product.

        Raises:
            PermissionDeniedError: Actor lacks PLACE_ORDER
            ValidationError: Missing product id, own product, or unpriced product
            NotFoundError: Product does not exist or is inactive
        """
        require_capability(actor, Capability.PLACE_ORDER)
        cls.validate_required(product_id=product_id)

        try:
            product = Product.objects.get(pk=product_id, is_active=True)
        except (Product.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError(
                "Product not found",
                error_code="PRODUCT_NOT_FOUND",
                details={"product_id": str(product_id)},
            )

        if product.seller_id == actor.user_id:
            raise ValidationError(
                "You cannot buy your own product",
                error_code="SELF_PURCHASE",
                details={"product_id": str(product.id)},
            )
        if not product.price_cents:
            raise ValidationError(
                "This product has no price",
                error_code="PRODUCT_NOT_PRICED",
                details={"product_id": str(product.id)},
            )

        with cls.atomic():
            order = Order.objects.create(
                buyer_id=actor.user_id,
                seller_id=product.seller_id,
                product=product,
                price_cents=product.price_cents,
                currency=product.currency,
            )
            Escrow.objects.create(
                order=order,
                buyer_id=order.buyer_id,
                seller_id=order.seller_id,
                amount_cents=order.price_cents,
                currency=order.currency,
            )
            NotificationService.notify_on_commit(
                order.seller_id,
                "New Order",
                f"You have a new order for {product.title} "
                f"({format_money(order.price_cents, order.currency)}).",
                order.id,
            )

        logger.info(
            "Order created",
            extra={
                "order_id": str(order.id),
                "buyer_id": order.buyer_id,
                "seller_id": order.seller_id,
                "amount_cents": order.price_cents,
            },
        )
        return order

    # =========================================================================
    # Gateway Callbacks
    # =========================================================================

    @classmethod
    def on_payment_succeeded(cls, order_id, charge_ref: str) -> Order:
        """
        Record a successful charge (pending_payment -> processing).

        Orders already past pending_payment are returned unchanged, except
        refunded ones: a charge on a refunded order needs manual review.
        The escrow stays held until the buyer confirms receipt.

        Raises:
            ValidationError: Missing order id or charge reference
            NotFoundError: Unknown order
            ConflictError: The order was already refunded
        """
        cls.validate_required(order_id=order_id, charge_ref=charge_ref)

        with cls.atomic():
            order = lock_for_update(Order, order_id)
            if order.status == OrderStatus.REFUNDED:
                raise ConflictError(
                    "Payment succeeded for an order that was already refunded",
                    error_code="ORDER_ALREADY_REFUNDED",
                    details={"order_id": str(order.id), "charge_ref": charge_ref},
                )
            if order.status != OrderStatus.PENDING_PAYMENT:
                logger.info(
                    "Payment success for order past pending_payment acknowledged",
                    extra={"order_id": str(order.id), "status": order.status},
                )
                return order

            run_transition(order, "mark_paid", charge_ref)
            order.save()

        logger.info(
            "Order payment succeeded",
            extra={"order_id": str(order.id), "charge_ref": charge_ref},
        )
        return order

    @classmethod
    def on_payment_failed(cls, order_id) -> Order:
        """
        Refund an order whose charge failed (order and escrow -> refunded).

        An active dispute on the order is closed without a ruling in the
        same transaction.

        Raises:
            NotFoundError: Unknown order
            InvalidStateTransitionError: Order was already completed
        """
        cls.validate_required(order_id=order_id)

        with cls.atomic():
            order = lock_for_update(Order, order_id)
            if order.status == OrderStatus.REFUNDED:
                logger.info(
                    "Payment failure for refunded order acknowledged",
                    extra={"order_id": str(order.id)},
                )
                return order

            escrow = EscrowService.lock_for_order(order)
            run_transition(escrow, "refund", PAYMENT_FAILED_REASON)
            run_transition(order, "refund")
            escrow.save()
            order.save()

            dispute = (
                Dispute.objects.select_for_update()
                .filter(order=order, status__in=ACTIVE_DISPUTE_STATUSES)
                .first()
            )
            if dispute is not None:
                run_transition(dispute, "close", DISPUTE_CLOSED_PAYMENT_FAILED)
                dispute.save()
                NotificationService.notify_on_commit(
                    dispute.initiated_by_id,
                    "Dispute Closed",
                    f"Your dispute for order {order.id} was closed because the payment failed.",
                    dispute.id,
                )

            NotificationService.notify_on_commit(
                order.buyer_id,
                "Payment Failed",
                f"Payment for order {order.id} failed. The order has been cancelled.",
                order.id,
            )

        logger.info("Order payment failed", extra={"order_id": str(order.id)})
        return order

    @classmethod
    def verify_payment(cls, order: Order, gateway: PaymentGateway | None = None) -> ChargeStatus:
        """
        Ask the payment gateway whether the order's charge went through.

        Raises:
            ConflictError: The order has no charge reference yet
            GatewayError: The gateway rejected the lookup
        """
        if not order.payment_reference:
            raise ConflictError(
                "Order has no recorded payment",
                error_code="ORDER_NOT_PAID",
                details={"order_id": str(order.id)},
            )
        gateway = gateway or get_payment_gateway()
        return gateway.retrieve_charge_status(order.payment_reference)

    # =========================================================================
    # Buyer Actions
    # =========================================================================

    @classmethod
    def confirm_receipt(cls, actor: Principal, order_id, expected_version: int | None = None) -> Order:
        """
        Buyer confirms delivery: order -> completed, escrow -> released.

        Confirming a completed order again returns it unchanged.

        Args:
            expected_version: Order version the buyer last saw; None skips
                the optimistic check

        Raises:
            NotFoundError: Unknown order
            PermissionDeniedError: Actor is not the buyer
            ConflictError: Order is not in processing state
            StaleRecordError: Order changed since expected_version
        """
        with cls.atomic():
            order = lock_for_update(Order, order_id)
            if order.buyer_id != actor.user_id:
                raise PermissionDeniedError(
                    "Only the buyer can confirm this order",
                    error_code="NOT_ORDER_BUYER",
                    details={"order_id": str(order.id)},
                )
            if order.status == OrderStatus.COMPLETED:
                return order
            if order.status != OrderStatus.PROCESSING:
                raise ConflictError(
                    f"Cannot confirm order with status: {order.status}",
                    error_code="ORDER_NOT_CONFIRMABLE",
                    details={"order_id": str(order.id), "current_state": order.status},
                )
            assert_version(order, expected_version)

            escrow = EscrowService.lock_for_order(order)
            run_transition(escrow, "release")
            run_transition(order, "complete", confirmed_by=Order.CONFIRMED_BY_BUYER)
            escrow.save()
            order.save()

            NotificationService.notify_on_commit(
                order.seller_id,
                "Order Confirmed",
                f"The buyer confirmed order {order.id}. "
                f"{format_money(escrow.amount_cents, escrow.currency)} has been released to you.",
                order.id,
            )

        logger.info(
            "Order confirmed by buyer",
            extra={"order_id": str(order.id), "escrow_id": str(escrow.id)},
        )
        return order

    # =========================================================================
    # Queries
    # =========================================================================

    @classmethod
    def list_orders(cls, actor: Principal, role: str | None = None) -> QuerySet[Order]:
        """
        The actor's orders, newest first.

        Args:
            role: "buyer" or "seller" to narrow the list; None for both
        """
        queryset = Order.objects.select_related("product", "escrow").order_by("-created_at")
        if role == "buyer":
            return queryset.filter(buyer_id=actor.user_id)
        if role == "seller":
            return queryset.filter(seller_id=actor.user_id)
        if role:
            raise ValidationError(
                "role must be 'buyer' or 'seller'",
                details={"role": [f"'{role}' is not a valid choice."]},
            )
        return queryset.filter(Q(buyer_id=actor.user_id) | Q(seller_id=actor.user_id))

    @classmethod
    def get_order(cls, actor: Principal, order_id) -> Order:
        """
        One order with its escrow and disputes.

        Raises:
            NotFoundError: Unknown order
            PermissionDeniedError: Actor is not a party and not an admin
        """
        try:
            order = (
                Order.objects.select_related("product", "escrow")
                .prefetch_related("disputes")
                .get(pk=order_id)
            )
        except (Order.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError(
                f"Order {order_id} not found",
                error_code="ORDER_NOT_FOUND",
                details={"id": str(order_id)},
            )

        if not order.is_party(actor.user_id) and not actor.can(Capability.VIEW_ALL_ESCROWS):
            raise PermissionDeniedError(
                "You do not have access to this order",
                details={"order_id": str(order.id)},
            )
        return order
