"""
URL configuration for the beach bar settlement backend.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/stripe-connect/        - Connected account actions (?action=...)
    /api/v1/account-management/    - Account disconnect / bulk teardown
    /api/v1/payments/              - Payment endpoints
        intents/                   - Create split or standard PaymentIntent
        confirm/                   - Refresh payment status from Stripe
    /api/v1/subscriptions/         - Subscription endpoints
        checkout/                  - Create subscription checkout session
        bookings/                  - Record a booking against the tier limit
        limits/                    - Current booking usage and limit
    /api/v1/subscription-webhook/  - Stripe billing webhook (POST, signed)
    /api/v1/connect-webhook/       - Stripe connect webhook (POST, signed)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

api_v1_patterns = [
    path("", include("payments.urls")),
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

admin.site.site_header = "Beach Bar Settlement Admin"
admin.site.site_title = "Settlement Admin"
admin.site.index_title = "Payments and connected accounts"
