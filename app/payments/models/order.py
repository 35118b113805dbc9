"""
Order model for marketplace purchases.

An Order is one buyer-seller transaction for a digital product. It is
created together with its Escrow by OrderService.create_order() and moves
through the gateway and buyer-confirmation flow.

Usage:
    from payments.models import Order
    from payments.state_machines import OrderStatus

    order = Order.objects.create(
        buyer=buyer,
        seller=product.seller,
        product=product,
        price_cents=product.price_cents,
        currency=product.currency,
    )

    order.mark_paid(charge_ref="ch_123")  # pending_payment -> processing
    order.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel

from payments.state_machines import OrderStatus


class Order(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
    """
    A marketplace purchase.

    State Flow:
        PENDING_PAYMENT -> PROCESSING -> COMPLETED

    Branches:
        PENDING_PAYMENT/PROCESSING -> DISPUTED -> COMPLETED | REFUNDED
        PENDING_PAYMENT/PROCESSING -> REFUNDED

    Fields:
        buyer: User paying for the product
        seller: Product owner receiving the funds
        product: Purchased catalog product
        price_cents: Price at purchase time, in minor units
        currency: ISO 4217 currency code
        status: Current FSM state
        payment_reference: Gateway charge id once payment succeeded
        confirmed_at/confirmed_by: Set when the buyer confirms receipt
    """

    CONFIRMED_BY_BUYER = "buyer"

    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="purchases",
        help_text="User paying for the product",
    )

    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="sales",
        help_text="Product owner receiving the funds",
    )

    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="orders",
        help_text="Purchased product",
    )

    price_cents = models.PositiveBigIntegerField(
        help_text="Price at purchase time in smallest currency unit",
    )

    currency = models.CharField(
        max_length=3,
        default="USD",
        help_text="ISO 4217 currency code",
    )

    status = FSMField(
        default=OrderStatus.PENDING_PAYMENT,
        choices=OrderStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current order state",
    )

    payment_reference = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text="Gateway charge id (ch_xxx)",
    )

    confirmed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the buyer confirmed receipt",
    )

    confirmed_by = models.CharField(
        max_length=20,
        blank=True,
        default="",
        help_text="Party that confirmed receipt",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Order"
        verbose_name_plural = "Orders"
        indexes = [
            models.Index(fields=["buyer", "status"], name="order_buyer_status_idx"),
            models.Index(fields=["seller", "status"], name="order_seller_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price_cents__gt=0),
                name="order_price_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Order({self.id}, {self.status}, {self.price_cents} {self.currency})"

    def is_party(self, user_id: int) -> bool:
        return user_id in (self.buyer_id, self.seller_id)

    # ==========================================================================
    # State Transitions
    # ==========================================================================

    @transition(
        field=status,
        source=OrderStatus.PENDING_PAYMENT,
        target=OrderStatus.PROCESSING,
    )
    def mark_paid(self, charge_ref: str):
        """Record a successful gateway charge."""
        self.payment_reference = charge_ref

    @transition(
        field=status,
        source=[OrderStatus.PROCESSING, OrderStatus.DISPUTED],
        target=OrderStatus.COMPLETED,
    )
    def complete(self, confirmed_by: str = ""):
        if confirmed_by:
            self.confirmed_by = confirmed_by
            self.confirmed_at = timezone.now()

    @transition(
        field=status,
        source=[OrderStatus.PENDING_PAYMENT, OrderStatus.PROCESSING],
        target=OrderStatus.DISPUTED,
    )
    def mark_disputed(self):
        pass

    @transition(
        field=status,
        source=[
            OrderStatus.PENDING_PAYMENT,
            OrderStatus.PROCESSING,
            OrderStatus.DISPUTED,
        ],
        target=OrderStatus.REFUNDED,
    )
    def refund(self):
        pass
