"""
Tests for the gateway webhook view.

Tests cover:
- Signature verification through the PaymentGateway adapter
- Webhook event creation and idempotency
- Task queuing and broker outages
"""

import json
from unittest.mock import patch

import pytest
from django.test import RequestFactory
from kombu.exceptions import OperationalError

from payments.exceptions import WebhookVerificationError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.tests.factories import WebhookEventFactory, charge_event_payload
from payments.webhooks.views import gateway_webhook

WEBHOOK_PATH = "/api/v1/payments/webhooks/gateway/"


# =============================================================================
# Setup
# =============================================================================


@pytest.fixture
def rf():
    return RequestFactory()


@pytest.fixture
def mock_gateway():
    with patch("payments.webhooks.views.get_payment_gateway") as mock_get:
        yield mock_get.return_value


@pytest.fixture
def mock_delay():
    with patch("payments.tasks.process_webhook_event.delay") as mock:
        yield mock


def make_webhook_request(rf, payload: dict, signature: str = "t=1,v1=test_sig"):
    headers = {"HTTP_STRIPE_SIGNATURE": signature} if signature else {}
    return rf.post(
        WEBHOOK_PATH,
        data=json.dumps(payload),
        content_type="application/json",
        **headers,
    )


# =============================================================================
# Signature Verification Tests
# =============================================================================


class TestGatewayWebhookSignature:
    def test_missing_signature_returns_400(self, rf, db, mock_gateway):
        response = gateway_webhook(make_webhook_request(rf, {"id": "evt_1"}, signature=""))

        assert response.status_code == 400
        assert b"Missing signature" in response.content
        mock_gateway.verify_webhook.assert_not_called()

    def test_invalid_signature_returns_400(self, rf, db, mock_gateway, mock_delay):
        mock_gateway.verify_webhook.side_effect = WebhookVerificationError(
            "Invalid webhook signature", details={"reason": "invalid_signature"}
        )

        response = gateway_webhook(make_webhook_request(rf, {"id": "evt_1"}))

        assert response.status_code == 400
        assert b"Invalid signature" in response.content
        assert not WebhookEvent.objects.exists()
        mock_delay.assert_not_called()

    def test_event_without_object_returns_400(self, rf, db, mock_gateway):
        mock_gateway.verify_webhook.return_value = {"id": "evt_1", "type": "charge.succeeded"}

        response = gateway_webhook(make_webhook_request(rf, {}))

        assert response.status_code == 400
        assert b"Invalid event" in response.content

    def test_get_is_not_allowed(self, rf, db):
        response = gateway_webhook(rf.get(WEBHOOK_PATH))

        assert response.status_code == 405


# =============================================================================
# Event Creation Tests
# =============================================================================


class TestGatewayWebhookEventCreation:
    def test_stores_and_queues_new_event(self, rf, db, mock_gateway, mock_delay):
        payload = charge_event_payload("charge.succeeded", order_id="abc")
        mock_gateway.verify_webhook.return_value = payload

        response = gateway_webhook(make_webhook_request(rf, payload))

        assert response.status_code == 200
        assert b"Accepted" in response.content
        event = WebhookEvent.objects.get(gateway_event_id=payload["id"])
        assert event.event_type == "charge.succeeded"
        assert event.status == WebhookEventStatus.PENDING
        assert event.payload == payload
        mock_delay.assert_called_once_with(str(event.id))

    def test_passes_raw_body_and_signature_to_gateway(self, rf, db, mock_gateway, mock_delay):
        payload = charge_event_payload("charge.failed", order_id="abc")
        mock_gateway.verify_webhook.return_value = payload
        request = make_webhook_request(rf, payload, signature="t=9,v1=sig")

        gateway_webhook(request)

        mock_gateway.verify_webhook.assert_called_once_with(request.body, "t=9,v1=sig")

    def test_processed_duplicate_is_not_queued(self, rf, db, mock_gateway, mock_delay):
        payload = charge_event_payload("charge.succeeded", order_id="abc")
        WebhookEventFactory(
            gateway_event_id=payload["id"],
            payload=payload,
            status=WebhookEventStatus.PROCESSED,
        )
        mock_gateway.verify_webhook.return_value = payload

        response = gateway_webhook(make_webhook_request(rf, payload))

        assert response.status_code == 200
        assert b"Already processed" in response.content
        assert WebhookEvent.objects.count() == 1
        mock_delay.assert_not_called()

    def test_unprocessed_duplicate_is_queued_again(self, rf, db, mock_gateway, mock_delay):
        payload = charge_event_payload("charge.succeeded", order_id="abc")
        existing = WebhookEventFactory(
            gateway_event_id=payload["id"],
            payload=payload,
            status=WebhookEventStatus.FAILED,
        )
        mock_gateway.verify_webhook.return_value = payload

        response = gateway_webhook(make_webhook_request(rf, payload))

        assert response.status_code == 200
        assert WebhookEvent.objects.count() == 1
        mock_delay.assert_called_once_with(str(existing.id))

    def test_broker_outage_still_acknowledges(self, rf, db, mock_gateway, mock_delay):
        payload = charge_event_payload("charge.succeeded", order_id="abc")
        mock_gateway.verify_webhook.return_value = payload
        mock_delay.side_effect = OperationalError("broker unreachable")

        response = gateway_webhook(make_webhook_request(rf, payload))

        assert response.status_code == 200
        assert WebhookEvent.objects.get(gateway_event_id=payload["id"]).status == (
            WebhookEventStatus.PENDING
        )


@pytest.mark.django_db
def test_webhook_url_is_routed(client, mock_gateway, mock_delay):
    payload = charge_event_payload("charge.succeeded", order_id="abc")
    mock_gateway.verify_webhook.return_value = payload

    response = client.post(
        WEBHOOK_PATH,
        data=json.dumps(payload),
        content_type="application/json",
        HTTP_STRIPE_SIGNATURE="t=1,v1=sig",
    )

    assert response.status_code == 200
