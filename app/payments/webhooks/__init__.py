"""
Webhook handling for payment gateway events.

Webhooks are verified, stored idempotently, and processed asynchronously
via Celery tasks.

Usage:
    # In urls.py
    from payments.webhooks.views import gateway_webhook

    urlpatterns = [
        path("webhooks/gateway/", gateway_webhook, name="gateway_webhook"),
    ]
"""

from payments.webhooks.handlers import dispatch_webhook, register_handler
from payments.webhooks.views import gateway_webhook

__all__ = [
    "dispatch_webhook",
    "gateway_webhook",
    "register_handler",
]
