"""
Pytest fixtures for webhook tests.

Provides orders in the states gateway events act on and WebhookEvent
records carrying charge payloads.
"""

import pytest

from catalog.tests.factories import ProductFactory
from payments.models import Escrow
from payments.tests.factories import (
    WebhookEventFactory,
    charge_event_payload,
    dispute_event_payload,
    make_order,
)


@pytest.fixture
def product(artist):
    return ProductFactory(seller=artist, price_cents=5000)


@pytest.fixture
def pending_order(buyer, product):
    order, _ = make_order(buyer, product)
    return order


@pytest.fixture
def paid_order(buyer, product):
    order, _ = make_order(buyer, product, charge_ref="ch_webhook_123")
    return order


@pytest.fixture
def escrow(paid_order):
    return Escrow.objects.get(order=paid_order)


@pytest.fixture
def make_event(db):
    """Store a WebhookEvent for a gateway event body."""

    def _make_event(payload, **kwargs):
        return WebhookEventFactory(
            gateway_event_id=payload["id"],
            event_type=payload["type"],
            payload=payload,
            **kwargs,
        )

    return _make_event


@pytest.fixture
def charge_succeeded_event(make_event, pending_order):
    return make_event(
        charge_event_payload("charge.succeeded", order_id=pending_order.id, charge_id="ch_webhook_123")
    )


@pytest.fixture
def charge_failed_event(make_event, pending_order):
    return make_event(charge_event_payload("charge.failed", order_id=pending_order.id))


@pytest.fixture
def dispute_created_event(make_event, paid_order):
    return make_event(dispute_event_payload("ch_webhook_123"))
