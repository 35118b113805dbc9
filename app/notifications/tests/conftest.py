"""
Fixtures for notification tests.
"""

import pytest

from notifications.models import Notification


@pytest.fixture
def unread_notification(buyer):
    return Notification.objects.create(
        recipient=buyer,
        title="New Order",
        message="You have a new order",
        related_id="order-1",
    )
