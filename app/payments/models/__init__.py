"""
Payment domain models.

This module contains all payment-related models:
- Subscription: Local record of a Stripe subscription, keyed by its Stripe id
- WebhookEvent: Stripe webhook event tracking for idempotent processing
"""

from payments.models.subscription import Subscription
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "Subscription",
    "WebhookEvent",
]
