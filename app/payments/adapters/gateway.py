"""
Payment gateway interface consumed by the settlement core.

The core never talks to a provider SDK directly. Webhook verification and
charge lookups go through an object satisfying PaymentGateway; the default
is payments.adapters.StripeAdapter, and tests pass a mock.

Usage:
    from payments.adapters import get_payment_gateway

    gateway = get_payment_gateway()
    event = gateway.verify_webhook(request.body, signature)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from django.conf import settings
from django.utils.module_loading import import_string

if TYPE_CHECKING:
    from typing import Any


@dataclass(frozen=True)
class ChargeStatus:
    """
    Result of asking the gateway about a charge.

    Attributes:
        charge_id: Gateway charge id
        status: Provider status string ("succeeded", "pending", "failed")
        paid: True only when the provider confirms the money was captured
        amount_cents: Charged amount in smallest currency unit
        currency: ISO 4217 currency code (uppercase)
    """

    charge_id: str
    status: str
    paid: bool
    amount_cents: int
    currency: str
    metadata: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class PaymentGateway(Protocol):
    """Interface every payment gateway adapter implements."""

    def verify_webhook(self, payload: bytes, signature: str) -> dict[str, Any]:
        """
        Verify a webhook signature and return the parsed event.

        Raises:
            WebhookVerificationError: Bad signature or unparseable payload
        """
        ...

    def retrieve_charge_status(self, charge_id: str) -> ChargeStatus:
        """
        Look up a charge at the provider.

        Raises:
            GatewayError: The provider rejected the lookup
            GatewayUnavailableError: The provider could not be reached
        """
        ...


def get_payment_gateway() -> PaymentGateway:
    """Instantiate the gateway named by settings.PAYMENT_GATEWAY_CLASS."""
    return import_string(settings.PAYMENT_GATEWAY_CLASS)()
