"""
State enums for marketplace settlement models.

These are Django TextChoices used as django-fsm field choices.

State Machines Overview:

Order States:
    pending_payment → processing → completed (happy path)
    pending_payment/processing → disputed → completed | refunded
    pending_payment/processing → refunded (payment failed, admin refund)

Escrow States:
    held → released | refunded | disputed
    disputed → released | refunded
    released and refunded are terminal

Dispute States:
    open → under_review → resolved
    open → resolved

Payout States:
    requested → processing → completed
    requested/processing → failed
"""

from django.db import models


class OrderStatus(models.TextChoices):
    """
    States for a marketplace Order.

    Terminal states: COMPLETED, REFUNDED
    """

    PENDING_PAYMENT = "pending_payment", "Pending Payment"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    DISPUTED = "disputed", "Disputed"
    REFUNDED = "refunded", "Refunded"


class EscrowStatus(models.TextChoices):
    """
    States for an Escrow hold.

    Terminal states: RELEASED, REFUNDED. DISPUTED may only move to a
    terminal state, never back to HELD.
    """

    HELD = "held", "Held"
    RELEASED = "released", "Released"
    REFUNDED = "refunded", "Refunded"
    DISPUTED = "disputed", "Disputed"


class DisputeStatus(models.TextChoices):
    """
    States for a Dispute.

    RESOLVED and CLOSED are final. CLOSED marks a dispute ended without a
    ruling, when the charge behind the disputed order failed.
    """

    OPEN = "open", "Open"
    UNDER_REVIEW = "under_review", "Under Review"
    RESOLVED = "resolved", "Resolved"
    CLOSED = "closed", "Closed"


class DisputeResolution(models.TextChoices):
    """Admin ruling on a dispute."""

    REFUND_BUYER = "refund_buyer", "Refund Buyer"
    PAY_SELLER = "pay_seller", "Pay Seller"


class DisputeWinner(models.TextChoices):
    BUYER = "buyer", "Buyer"
    SELLER = "seller", "Seller"


class PayoutStatus(models.TextChoices):
    """
    States for a seller Payout.

    Terminal states: COMPLETED, FAILED
    """

    REQUESTED = "requested", "Requested"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class PayoutMethod(models.TextChoices):
    BANK_TRANSFER = "bank_transfer", "Bank Transfer"
    AIRTEL_MONEY = "airtel_money", "Airtel Money"
    TNM_MPAMBA = "tnm_mpamba", "TNM Mpamba"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED (can retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


class AuditAction(models.TextChoices):
    DISPUTE_RESOLUTION = "dispute_resolution", "Dispute Resolution"
    DISPUTE_REVIEW = "dispute_review", "Dispute Review"
    ESCROW_RELEASE = "escrow_release", "Escrow Release"
    ESCROW_REFUND = "escrow_refund", "Escrow Refund"
    PAYOUT_STATUS_CHANGE = "payout_status_change", "Payout Status Change"


# Non-final dispute statuses; at most one per order
ACTIVE_DISPUTE_STATUSES = (DisputeStatus.OPEN, DisputeStatus.UNDER_REVIEW)

# Payouts that count against the available balance
COMMITTED_PAYOUT_STATUSES = (
    PayoutStatus.REQUESTED,
    PayoutStatus.PROCESSING,
    PayoutStatus.COMPLETED,
)
