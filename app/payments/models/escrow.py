"""
Escrow model: funds held against an Order until settlement.

Transition graph (django-fsm, protected field):

    HELD -> RELEASED
    HELD -> REFUNDED
    HELD -> DISPUTED -> RELEASED | REFUNDED

RELEASED and REFUNDED are terminal. Any other move raises
TransitionNotAllowed, which payments.state_machines.transitions converts
into InvalidStateTransitionError.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.exceptions import ValidationError
from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel

from payments.state_machines import EscrowStatus


class Escrow(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
    """
    An amount held for a buyer pending settlement of one Order.

    Fields:
        order: The Order this escrow secures (one-to-one)
        buyer/seller: Copied from the order for balance queries
        amount_cents: Held amount; immutable after creation
        currency: ISO 4217 currency code
        status: Current FSM state
        released_at: When funds went to the seller
        refunded_at/refund_reason: When and why funds went back to the buyer

    Note:
        Released escrows are the basis of the seller's payout balance
        (PayoutService.get_available_balance).
    """

    TERMINAL_STATUSES = (EscrowStatus.RELEASED, EscrowStatus.REFUNDED)

    order = models.OneToOneField(
        "payments.Order",
        on_delete=models.PROTECT,
        related_name="escrow",
        help_text="Order this escrow secures",
    )

    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="escrows_as_buyer",
        help_text="User whose funds are held",
    )

    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="escrows_as_seller",
        help_text="User who receives the funds on release",
    )

    amount_cents = models.PositiveBigIntegerField(
        help_text="Held amount in smallest currency unit",
    )

    currency = models.CharField(
        max_length=3,
        default="USD",
        help_text="ISO 4217 currency code",
    )

    status = FSMField(
        default=EscrowStatus.HELD,
        choices=EscrowStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current escrow state",
    )

    released_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    refund_reason = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Escrow"
        verbose_name_plural = "Escrows"
        indexes = [
            models.Index(fields=["seller", "status"], name="escrow_seller_status_idx"),
            models.Index(fields=["buyer", "status"], name="escrow_buyer_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount_cents__gt=0),
                name="escrow_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Escrow({self.id}, {self.status}, {self.amount_cents} {self.currency})"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_amount_cents = instance.__dict__.get("amount_cents")
        return instance

    def save(self, *args, **kwargs):
        loaded = getattr(self, "_loaded_amount_cents", None)
        if not self._state.adding and loaded is not None and loaded != self.amount_cents:
            raise ValidationError(
                "Escrow amount cannot change after creation",
                error_code="ESCROW_AMOUNT_IMMUTABLE",
                details={"escrow_id": str(self.id), "amount_cents": loaded},
            )
        super().save(*args, **kwargs)
        self._loaded_amount_cents = self.amount_cents

    @property
    def is_final(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    # ==========================================================================
    # State Transitions
    # ==========================================================================

    @transition(
        field=status,
        source=[EscrowStatus.HELD, EscrowStatus.DISPUTED],
        target=EscrowStatus.RELEASED,
    )
    def release(self):
        """Pay the held amount to the seller."""
        self.released_at = timezone.now()

    @transition(
        field=status,
        source=[EscrowStatus.HELD, EscrowStatus.DISPUTED],
        target=EscrowStatus.REFUNDED,
    )
    def refund(self, reason: str = ""):
        """Return the held amount to the buyer."""
        self.refunded_at = timezone.now()
        self.refund_reason = reason

    @transition(
        field=status,
        source=EscrowStatus.HELD,
        target=EscrowStatus.DISPUTED,
    )
    def dispute(self):
        """Freeze the funds until an admin resolves the dispute."""
