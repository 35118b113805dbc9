"""
Tests for Stripe adapter.

Tests cover:
- Webhook signature verification and its failure reasons
- Charge status retrieval
- Error translation for each Stripe exception type

The Stripe SDK entry points are patched; no network calls are made.
"""

from unittest.mock import MagicMock

import pytest
import stripe

from payments.adapters import ChargeStatus, PaymentGateway, StripeAdapter, get_payment_gateway
from payments.exceptions import (
    GatewayError,
    GatewayUnavailableError,
    WebhookVerificationError,
)


@pytest.fixture
def adapter():
    return StripeAdapter(api_key="sk_test_123", webhook_secret="whsec_test_123")


@pytest.fixture
def mock_construct_event(mocker):
    return mocker.patch("payments.adapters.stripe_adapter.stripe.Webhook.construct_event")


@pytest.fixture
def mock_charge_retrieve(mocker):
    return mocker.patch("payments.adapters.stripe_adapter.stripe.Charge.retrieve")


def make_charge(**overrides):
    charge = MagicMock()
    charge.id = overrides.get("id", "ch_123")
    charge.status = overrides.get("status", "succeeded")
    charge.paid = overrides.get("paid", True)
    charge.amount = overrides.get("amount", 5000)
    charge.currency = overrides.get("currency", "usd")
    charge.metadata = overrides.get("metadata", {"order_id": "abc"})
    return charge


# =============================================================================
# Factory
# =============================================================================


def test_get_payment_gateway_returns_stripe_adapter(settings):
    settings.STRIPE_SECRET_KEY = "sk_test_settings"
    settings.STRIPE_WEBHOOK_SECRET = "whsec_settings"

    gateway = get_payment_gateway()

    assert isinstance(gateway, StripeAdapter)
    assert isinstance(gateway, PaymentGateway)
    assert gateway.api_key == "sk_test_settings"
    assert gateway.webhook_secret == "whsec_settings"


# =============================================================================
# Webhook Verification
# =============================================================================


class TestVerifyWebhook:
    def test_returns_event_dict(self, adapter, mock_construct_event):
        event = MagicMock()
        event.to_dict.return_value = {"id": "evt_1", "type": "charge.succeeded"}
        mock_construct_event.return_value = event

        result = adapter.verify_webhook(b'{"id": "evt_1"}', "t=1,v1=abc")

        assert result == {"id": "evt_1", "type": "charge.succeeded"}
        mock_construct_event.assert_called_once_with(b'{"id": "evt_1"}', "t=1,v1=abc", "whsec_test_123")

    def test_missing_signature(self, adapter, mock_construct_event):
        with pytest.raises(WebhookVerificationError) as exc_info:
            adapter.verify_webhook(b"{}", "")

        assert exc_info.value.details["reason"] == "missing_signature"
        mock_construct_event.assert_not_called()

    def test_missing_secret(self, mock_construct_event):
        adapter = StripeAdapter(api_key="sk_test_123", webhook_secret="")

        with pytest.raises(WebhookVerificationError) as exc_info:
            adapter.verify_webhook(b"{}", "t=1,v1=abc")

        assert exc_info.value.details["reason"] == "missing_secret"

    def test_invalid_signature(self, adapter, mock_construct_event):
        mock_construct_event.side_effect = stripe.SignatureVerificationError(
            "Unable to verify webhook signature.", "bad_signature"
        )

        with pytest.raises(WebhookVerificationError) as exc_info:
            adapter.verify_webhook(b"{}", "bad_signature")

        assert exc_info.value.details["reason"] == "invalid_signature"
        assert exc_info.value.http_status == 400

    def test_malformed_payload(self, adapter, mock_construct_event):
        mock_construct_event.side_effect = ValueError("Invalid JSON")

        with pytest.raises(WebhookVerificationError) as exc_info:
            adapter.verify_webhook(b"not json", "t=1,v1=abc")

        assert exc_info.value.details["reason"] == "malformed_payload"


# =============================================================================
# Charge Status
# =============================================================================


class TestRetrieveChargeStatus:
    def test_paid_charge(self, adapter, mock_charge_retrieve):
        mock_charge_retrieve.return_value = make_charge()

        status = adapter.retrieve_charge_status("ch_123")

        assert status == ChargeStatus(
            charge_id="ch_123",
            status="succeeded",
            paid=True,
            amount_cents=5000,
            currency="USD",
            metadata={"order_id": "abc"},
        )
        mock_charge_retrieve.assert_called_once_with("ch_123", api_key="sk_test_123")

    def test_failed_charge_is_not_paid(self, adapter, mock_charge_retrieve):
        mock_charge_retrieve.return_value = make_charge(status="failed", paid=False)

        assert adapter.retrieve_charge_status("ch_123").paid is False

    def test_pending_charge_is_not_paid(self, adapter, mock_charge_retrieve):
        mock_charge_retrieve.return_value = make_charge(status="pending", paid=True)

        assert adapter.retrieve_charge_status("ch_123").paid is False


# =============================================================================
# Error Translation
# =============================================================================


class TestErrorTranslation:
    def test_invalid_request_error(self, adapter, mock_charge_retrieve):
        mock_charge_retrieve.side_effect = stripe.InvalidRequestError(
            message="No such charge: 'ch_missing'",
            param="id",
            code="resource_missing",
        )

        with pytest.raises(GatewayError) as exc_info:
            adapter.retrieve_charge_status("ch_missing")

        assert not isinstance(exc_info.value, GatewayUnavailableError)
        assert exc_info.value.gateway_code == "resource_missing"
        assert exc_info.value.is_retryable is False

    @pytest.mark.parametrize(
        "error",
        [
            stripe.RateLimitError(message="Too many requests hit the API too quickly."),
            stripe.APIConnectionError(message="Could not connect to Stripe."),
        ],
    )
    def test_transient_errors_are_retryable(self, adapter, mock_charge_retrieve, error):
        mock_charge_retrieve.side_effect = error

        with pytest.raises(GatewayUnavailableError) as exc_info:
            adapter.retrieve_charge_status("ch_123")

        assert exc_info.value.is_retryable is True
        assert exc_info.value.http_status == 502

    def test_authentication_error(self, adapter, mock_charge_retrieve):
        mock_charge_retrieve.side_effect = stripe.AuthenticationError(
            message="Invalid API Key provided."
        )

        with pytest.raises(GatewayError) as exc_info:
            adapter.retrieve_charge_status("ch_123")

        assert exc_info.value.gateway_code == "authentication_error"

    def test_api_error(self, adapter, mock_charge_retrieve):
        mock_charge_retrieve.side_effect = stripe.APIError(
            message="Something went wrong on Stripe's end."
        )

        with pytest.raises(GatewayUnavailableError) as exc_info:
            adapter.retrieve_charge_status("ch_123")

        assert exc_info.value.gateway_code == "api_error"
