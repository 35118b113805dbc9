"""
Payments app configuration.

This app provides the settlement core:
- Orders and escrow holds for marketplace purchases
- Disputes and admin resolution
- Seller payouts against released funds
- Payment gateway webhook processing
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

    def ready(self):
        # Registers the gateway event handlers
        from payments.webhooks import handlers  # noqa: F401
