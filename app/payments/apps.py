"""
Payments app configuration.

This app provides the settlement layer of the platform:
- Split payments between the platform and bars
- Stripe Connect accounts for bar owners
- Subscription reconciliation from Stripe billing webhooks
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
