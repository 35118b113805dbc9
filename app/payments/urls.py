"""
URL configuration for the settlement API.

Routes (included at /api/v1/ by config/urls.py):
    marketplace/orders/            - OrderViewSet
    escrow/                        - EscrowViewSet
    disputes/                      - DisputeViewSet
    payouts/                       - PayoutViewSet
    payments/webhooks/gateway/     - Gateway webhook endpoint (POST, unauthenticated)
"""

from django.urls import path
from rest_framework.routers import SimpleRouter

from payments.views import DisputeViewSet, EscrowViewSet, OrderViewSet, PayoutViewSet
from payments.webhooks.views import gateway_webhook

router = SimpleRouter()
router.register(r"marketplace/orders", OrderViewSet, basename="order")
router.register(r"escrow", EscrowViewSet, basename="escrow")
router.register(r"disputes", DisputeViewSet, basename="dispute")
router.register(r"payouts", PayoutViewSet, basename="payout")

app_name = "payments"

urlpatterns = [
    path("payments/webhooks/gateway/", gateway_webhook, name="gateway_webhook"),
    *router.urls,
]
