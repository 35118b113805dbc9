"""
Settlement models.

- Order: One buyer-seller marketplace transaction
- Escrow: Funds held against an Order until released or refunded
- Dispute: Buyer/seller adjudication request on an Order
- Payout: Seller withdrawal against released escrow funds
- WebhookEvent: Gateway event log for idempotent processing
- AuditLogEntry: Admin settlement actions
"""

from payments.models.audit import AuditLogEntry
from payments.models.dispute import Dispute
from payments.models.escrow import Escrow
from payments.models.order import Order
from payments.models.payout import Payout
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "AuditLogEntry",
    "Dispute",
    "Escrow",
    "Order",
    "Payout",
    "WebhookEvent",
]
