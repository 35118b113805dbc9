"""
Dispute model for buyer/seller adjudication requests.

At most one dispute per order may be active (open or under review). The
DisputeService checks this under a row lock on the Order; the partial
unique constraint below backs it at the database level.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.state_machines import (
    ACTIVE_DISPUTE_STATUSES,
    DisputeStatus,
    DisputeWinner,
)


class Dispute(UUIDPrimaryKeyMixin, BaseModel):
    """
    One adjudication of an Order.

    State Flow:
        OPEN -> UNDER_REVIEW -> RESOLVED
        OPEN -> RESOLVED
        OPEN/UNDER_REVIEW -> CLOSED (charge failed while disputed)

    Fields:
        order: Disputed order
        initiated_by: Buyer or seller who opened the dispute
        reason: Short reason (e.g. "item not delivered", "chargeback")
        description: Free text from the initiator
        status: Current FSM state
        resolution: Admin notes recorded at resolution
        winner: Party that received the funds
        resolved_at/resolved_by: When and by which admin
    """

    order = models.ForeignKey(
        "payments.Order",
        on_delete=models.PROTECT,
        related_name="disputes",
        help_text="Disputed order",
    )

    initiated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="disputes_opened",
        help_text="Party that opened the dispute",
    )

    reason = models.CharField(max_length=255)
    description = models.TextField()

    status = FSMField(
        default=DisputeStatus.OPEN,
        choices=DisputeStatus.choices,
        db_index=True,
        protected=True,
    )

    resolution = models.TextField(blank=True, default="")

    winner = models.CharField(
        max_length=10,
        choices=DisputeWinner.choices,
        blank=True,
        default="",
    )

    resolved_at = models.DateTimeField(null=True, blank=True)

    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="disputes_resolved",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Dispute"
        verbose_name_plural = "Disputes"
        constraints = [
            models.UniqueConstraint(
                fields=["order"],
                condition=models.Q(status__in=ACTIVE_DISPUTE_STATUSES),
                name="dispute_one_active_per_order",
            ),
        ]

    def __str__(self) -> str:
        return f"Dispute({self.id}, {self.status})"

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_DISPUTE_STATUSES

    @transition(
        field=status,
        source=DisputeStatus.OPEN,
        target=DisputeStatus.UNDER_REVIEW,
    )
    def start_review(self):
        pass

    @transition(
        field=status,
        source=list(ACTIVE_DISPUTE_STATUSES),
        target=DisputeStatus.RESOLVED,
    )
    def resolve(self, winner: str, notes: str, resolved_by_id: int):
        self.winner = winner
        self.resolution = notes
        self.resolved_by_id = resolved_by_id
        self.resolved_at = timezone.now()

    @transition(
        field=status,
        source=list(ACTIVE_DISPUTE_STATUSES),
        target=DisputeStatus.CLOSED,
    )
    def close(self, notes: str):
        """Close without a ruling; no winner is recorded."""
        self.resolution = notes
        self.resolved_at = timezone.now()
