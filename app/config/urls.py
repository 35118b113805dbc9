"""
URL configuration for the Django application.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/marketplace/orders/    - Orders, confirmation and disputes
    /api/v1/escrow/                - Escrow listing and admin settlement
    /api/v1/disputes/{id}/review/  - Admin dispute review
    /api/v1/payouts/               - Payout requests, balance and fulfillment
    /api/v1/payments/webhooks/gateway/ - Payment gateway webhook (POST)
    /api/v1/streams/               - Stream logging and revenue reports
    /api/v1/notifications/         - Notification inbox

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Marketplace settlement (orders, escrow, disputes, payouts, webhooks)
    path("", include("payments.urls")),
    # Stream attribution
    path("", include("streaming.urls")),
    # Notifications
    path("notifications/", include("notifications.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Marketplace Settlement Admin"
admin.site.site_title = "Settlement Admin"
admin.site.index_title = "Orders, escrow and payouts"
