"""
Settlement services.

This module provides:
- OrderService: Order creation, gateway callbacks, buyer confirmation
- DisputeService: Opening and reviewing disputes
- EscrowService: Escrow transitions, dispute resolution, admin settlement
- PayoutService: Balances, payout requests and fulfillment states

Every state-changing method takes the acting Principal first, checks its
capability, and raises core.exceptions errors on failure.

Usage:
    from payments.services import OrderService

    order = OrderService.create_order(actor=principal, product_id=product_id)
"""

from payments.services.dispute_service import DisputeService
from payments.services.escrow_service import EscrowService, SettlementResult
from payments.services.order_service import OrderService
from payments.services.payout_service import PayoutService, mask_bank_account

__all__ = [
    "DisputeService",
    "EscrowService",
    "OrderService",
    "PayoutService",
    "SettlementResult",
    "mask_bank_account",
]
