"""
Stripe implementation of the PaymentGateway interface.

All Stripe calls go through this adapter so errors are translated into
payments.exceptions and every call is logged with timing.

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)

Usage:
    from payments.adapters import StripeAdapter

    adapter = StripeAdapter()
    event = adapter.verify_webhook(request.body, request.headers["Stripe-Signature"])
    charge = adapter.retrieve_charge_status("ch_123")
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

import stripe
from django.conf import settings

from payments.adapters.gateway import ChargeStatus
from payments.exceptions import (
    GatewayError,
    GatewayUnavailableError,
    WebhookVerificationError,
)

if TYPE_CHECKING:
    from typing import Any, NoReturn


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    Holds no state besides configuration read from settings, so one
    instance can be shared across threads and Celery workers.
    """

    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.STRIPE_SECRET_KEY
        self.webhook_secret = (
            webhook_secret if webhook_secret is not None else settings.STRIPE_WEBHOOK_SECRET
        )

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_webhook(self, payload: bytes, signature: str) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header value

        Returns:
            Parsed event as a plain dict

        Raises:
            WebhookVerificationError: Missing secret, bad signature or
                malformed payload
        """
        if not signature:
            raise WebhookVerificationError(
                "Missing webhook signature",
                details={"reason": "missing_signature"},
            )
        if not self.webhook_secret:
            self.get_logger().error("STRIPE_WEBHOOK_SECRET is not configured")
            raise WebhookVerificationError(
                "Webhook secret is not configured",
                details={"reason": "missing_secret"},
            )

        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise WebhookVerificationError(
                "Invalid webhook signature",
                details={"reason": "invalid_signature", "error": str(e)},
            ) from e
        except ValueError as e:
            raise WebhookVerificationError(
                "Malformed webhook payload",
                details={"reason": "malformed_payload", "error": str(e)},
            ) from e

        return event.to_dict()

    # =========================================================================
    # Charges
    # =========================================================================

    def retrieve_charge_status(self, charge_id: str) -> ChargeStatus:
        """
        Retrieve a Charge by id.

        Raises:
            GatewayError: Charge not found or request rejected
            GatewayUnavailableError: Network or Stripe server failure
        """
        logger = self.get_logger()
        log_context = {"operation": "retrieve_charge", "charge_id": charge_id}
        start_time = time.monotonic()

        try:
            charge = stripe.Charge.retrieve(
                charge_id,
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            self._handle_stripe_error(e, log_context, (time.monotonic() - start_time) * 1000)

        logger.debug(
            "Stripe operation completed",
            extra={
                **log_context,
                "status": charge.status,
                "duration_ms": (time.monotonic() - start_time) * 1000,
            },
        )

        return ChargeStatus(
            charge_id=charge.id,
            status=charge.status,
            paid=bool(charge.paid) and charge.status == "succeeded",
            amount_cents=charge.amount,
            currency=str(charge.currency).upper(),
            metadata=dict(charge.metadata or {}),
        )

    # =========================================================================
    # Error Handling
    # =========================================================================

    def _handle_stripe_error(
        self,
        error: stripe.StripeError,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> NoReturn:
        """Translate a Stripe SDK error into a gateway exception."""
        logger = self.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, (stripe.APIConnectionError, stripe.RateLimitError)):
            logger.warning("Stripe temporarily unavailable", extra=log_context, exc_info=True)
            raise GatewayUnavailableError(
                "Payment gateway is temporarily unavailable. Please retry.",
                gateway_code=error.code or type(error).__name__,
            ) from error

        if isinstance(error, stripe.AuthenticationError):
            logger.critical("Stripe authentication failed - check API key", extra=log_context)
            raise GatewayError(
                "Payment gateway authentication failed",
                gateway_code="authentication_error",
            ) from error

        if isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            raise GatewayError(str(error), gateway_code=error.code) from error

        logger.error(
            f"Unexpected error from Stripe: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise GatewayUnavailableError(
            f"Unexpected payment gateway error: {error}",
            gateway_code="api_error",
        ) from error
