"""
Payments app: the marketplace settlement core.

This app handles:
- Orders and their escrow holds
- Disputes and admin resolution
- Seller payouts against released escrow funds
- Payment gateway webhooks (signature check, idempotent storage, Celery processing)

Related apps:
    - authentication: User model, roles and capabilities
    - catalog: Products being sold
    - notifications: Notifications emitted after each settlement step

Usage:
    from payments.services import OrderService

    order = OrderService.create_order(actor=principal, product_id=product.id)
"""
