"""
URL configuration for the payments app.

All routes are prefixed with /api/v1/ when included in the main URLconf.

Usage:
    # In config/urls.py
    path("api/v1/", include("payments.urls")),
"""

from django.urls import path

from payments import views
from payments.webhooks.views import connect_webhook, subscription_webhook

app_name = "payments"

urlpatterns = [
    # Stripe Connect
    path("stripe-connect/", views.StripeConnectView.as_view(), name="stripe_connect"),
    path(
        "account-management/",
        views.AccountManagementView.as_view(),
        name="account_management",
    ),
    # Payments
    path("payments/intents/", views.PaymentIntentView.as_view(), name="payment_intents"),
    path("payments/confirm/", views.ConfirmPaymentView.as_view(), name="payment_confirm"),
    # Subscriptions
    path(
        "subscriptions/checkout/",
        views.SubscriptionCheckoutView.as_view(),
        name="subscription_checkout",
    ),
    path(
        "subscriptions/bookings/",
        views.BookingRecordView.as_view(),
        name="subscription_bookings",
    ),
    path(
        "subscriptions/limits/",
        views.BookingLimitsView.as_view(),
        name="subscription_limits",
    ),
    # Webhook endpoints
    path("subscription-webhook/", subscription_webhook, name="subscription_webhook"),
    path("connect-webhook/", connect_webhook, name="connect_webhook"),
]
