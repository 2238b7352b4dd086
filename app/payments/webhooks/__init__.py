"""
Webhook handling for Stripe events.

Billing events drive the local Subscription records; Connect events keep
bars' cached account status current. Both are verified, stored idempotently
as WebhookEvent rows, and applied synchronously.

Usage:
    # In urls.py
    from payments.webhooks import connect_webhook, subscription_webhook
"""

from payments.webhooks.events import decode_billing_event
from payments.webhooks.handlers import (
    SubscriptionReconciler,
    process_webhook_event,
    register_handler,
)
from payments.webhooks.views import connect_webhook, subscription_webhook

__all__ = [
    "SubscriptionReconciler",
    "connect_webhook",
    "decode_billing_event",
    "process_webhook_event",
    "register_handler",
    "subscription_webhook",
]
