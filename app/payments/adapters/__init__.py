"""
Payment gateway adapters.

All provider calls go through an adapter implementing PaymentGateway.

Usage:
    from payments.adapters import get_payment_gateway

    status = get_payment_gateway().retrieve_charge_status("ch_123")
"""

from payments.adapters.gateway import ChargeStatus, PaymentGateway, get_payment_gateway
from payments.adapters.stripe_adapter import StripeAdapter

__all__ = [
    "ChargeStatus",
    "PaymentGateway",
    "StripeAdapter",
    "get_payment_gateway",
]
