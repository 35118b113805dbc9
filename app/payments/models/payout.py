"""
Payout model for seller withdrawals.

A Payout records a seller's intent to withdraw released escrow funds. The
actual transfer happens outside this system; staff move the payout through
PROCESSING to COMPLETED or FAILED as the transfer progresses.

Usage:
    from payments.models import Payout

    payout = Payout.objects.create(
        artist=seller,
        amount_cents=3500,
        bank_account={"last4": "6789", "bank_name": "National Bank"},
    )

    payout.process()  # requested -> processing
    payout.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel

from payments.state_machines import PayoutMethod, PayoutStatus


class Payout(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
    """
    A withdrawal request against a seller's released balance.

    State Flow:
        REQUESTED -> PROCESSING -> COMPLETED
        REQUESTED/PROCESSING -> FAILED

    Fields:
        artist: Seller withdrawing funds
        amount_cents: Requested amount in smallest currency unit
        currency: ISO 4217 currency code
        status: Current FSM state
        method: Transfer channel
        bank_account: Masked destination ({"last4", "bank_name"})
        requested_at: When the request was made
        processed_at: When the payout reached a terminal state
        failure_reason: Why the transfer failed

    Note:
        A FAILED payout no longer counts against the available balance.
    """

    artist = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payouts",
        help_text="Seller withdrawing funds",
    )

    amount_cents = models.PositiveBigIntegerField(
        help_text="Payout amount in smallest currency unit",
    )

    currency = models.CharField(max_length=3, default="USD")

    status = FSMField(
        default=PayoutStatus.REQUESTED,
        choices=PayoutStatus.choices,
        db_index=True,
        protected=True,
    )

    method = models.CharField(
        max_length=20,
        choices=PayoutMethod.choices,
        default=PayoutMethod.BANK_TRANSFER,
    )

    bank_account = models.JSONField(
        default=dict,
        blank=True,
        help_text="Masked destination account (last4, bank_name)",
    )

    requested_at = models.DateTimeField(default=timezone.now)
    processed_at = models.DateTimeField(null=True, blank=True)
    failure_reason = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payout"
        verbose_name_plural = "Payouts"
        indexes = [
            models.Index(fields=["artist", "status"], name="payout_artist_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount_cents__gt=0),
                name="payout_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Payout({self.id}, {self.status}, {self.amount_cents} {self.currency})"

    # ==========================================================================
    # State Transitions
    # ==========================================================================

    @transition(
        field=status,
        source=PayoutStatus.REQUESTED,
        target=PayoutStatus.PROCESSING,
    )
    def process(self):
        pass

    @transition(
        field=status,
        source=PayoutStatus.PROCESSING,
        target=PayoutStatus.COMPLETED,
    )
    def complete(self):
        self.processed_at = timezone.now()

    @transition(
        field=status,
        source=[PayoutStatus.REQUESTED, PayoutStatus.PROCESSING],
        target=PayoutStatus.FAILED,
    )
    def fail(self, reason: str = ""):
        self.processed_at = timezone.now()
        self.failure_reason = reason
