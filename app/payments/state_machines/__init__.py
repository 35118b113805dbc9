"""
State machine enums for settlement models.
"""

from payments.state_machines.states import (
    ACTIVE_DISPUTE_STATUSES,
    COMMITTED_PAYOUT_STATUSES,
    AuditAction,
    DisputeResolution,
    DisputeStatus,
    DisputeWinner,
    EscrowStatus,
    OrderStatus,
    PayoutMethod,
    PayoutStatus,
    WebhookEventStatus,
)

__all__ = [
    "ACTIVE_DISPUTE_STATUSES",
    "COMMITTED_PAYOUT_STATUSES",
    "AuditAction",
    "DisputeResolution",
    "DisputeStatus",
    "DisputeWinner",
    "EscrowStatus",
    "OrderStatus",
    "PayoutMethod",
    "PayoutStatus",
    "WebhookEventStatus",
]
