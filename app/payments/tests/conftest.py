"""
Pytest fixtures for settlement tests.

Fixtures provide orders and escrows in each state of the settlement
workflow. Records reach a state through their transitions, the same way
the services move them.

Usage:
    def test_confirm(paid_order, buyer_principal):
        OrderService.confirm_receipt(buyer_principal, paid_order.id)
"""

import pytest

from catalog.tests.factories import ProductFactory
from payments.models import Escrow
from payments.tests.factories import make_order, open_dispute_on


# =============================================================================
# Redis
# =============================================================================


@pytest.fixture(autouse=True)
def mock_redis(mocker):
    """
    Replace the Redis connection used by DistributedLock.

    Locks are always granted and released unless a test reconfigures the
    mock.
    """
    client = mocker.MagicMock()
    client.set.return_value = True
    client.eval.return_value = 1
    mocker.patch("payments.locks.get_redis_connection", return_value=client)
    return client


# =============================================================================
# Catalog
# =============================================================================


@pytest.fixture
def product(artist):
    """Active $50.00 product sold by the artist."""
    return ProductFactory(seller=artist, price_cents=5000, title="Trap Beat Pack")


# =============================================================================
# Order & Escrow States
# =============================================================================


@pytest.fixture
def pending_order(buyer, product):
    """Order awaiting payment with a held escrow."""
    order, _ = make_order(buyer, product)
    return order


@pytest.fixture
def paid_order(buyer, product):
    """Order in processing after a successful charge, escrow still held."""
    order, _ = make_order(buyer, product, charge_ref="ch_paid_123")
    return order


@pytest.fixture
def escrow(paid_order):
    """Held escrow of the paid order."""
    return Escrow.objects.get(order=paid_order)


@pytest.fixture
def open_dispute(paid_order, escrow, buyer):
    """Dispute opened by the buyer on the paid order."""
    return open_dispute_on(paid_order, escrow, buyer)


@pytest.fixture
def disputed_escrow(open_dispute):
    return Escrow.objects.get(order_id=open_dispute.order_id)
