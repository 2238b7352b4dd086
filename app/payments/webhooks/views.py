"""
Webhook endpoint views for Stripe.

Two endpoints, each with its own signing secret:
- subscription_webhook: billing events for bar owner subscriptions
- connect_webhook: connected account events

Each view:
1. Verifies the webhook signature before reading anything else
2. Creates/retrieves the WebhookEvent record (idempotent)
3. Applies the event and returns its outcome to Stripe

Events are applied inside the request so that a handler failure returns
500 and Stripe redelivers the event.

Usage:
    # In urls.py
    from payments.webhooks.views import connect_webhook, subscription_webhook

    urlpatterns = [
        path("subscription-webhook/", subscription_webhook),
        path("connect-webhook/", connect_webhook),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.adapters import StripeAdapter
from payments.config import StripeConfig
from payments.exceptions import ConfigurationError, SignatureVerificationError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.webhooks.handlers import process_webhook_event


logger = logging.getLogger(__name__)


def _receive(request: HttpRequest, endpoint: str) -> JsonResponse:
    payload = request.body
    signature = request.headers.get("Stripe-Signature", "")

    try:
        config = StripeConfig.from_settings()
        event_data = StripeAdapter(config).verify_webhook_signature(
            payload,
            signature,
            config.webhook_secret(endpoint),
        )
    except SignatureVerificationError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"endpoint": endpoint, "error": e.message},
        )
        return JsonResponse({"error": e.message}, status=400)
    except ConfigurationError as e:
        logger.error(
            "Webhook endpoint is not configured",
            extra={"endpoint": endpoint, "error": e.message},
        )
        return JsonResponse({"error": "Webhook not configured"}, status=500)

    stripe_event_id = event_data.get("id")
    event_type = event_data.get("type")

    if not stripe_event_id or not event_type:
        logger.warning("Webhook missing required fields", extra={"endpoint": endpoint})
        return JsonResponse({"error": "Invalid event"}, status=400)

    logger.info(
        f"Received Stripe webhook: {event_type}",
        extra={
            "stripe_event_id": stripe_event_id,
            "event_type": event_type,
            "endpoint": endpoint,
        },
    )

    webhook_event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=stripe_event_id,
        defaults={
            "endpoint": endpoint,
            "event_type": event_type,
            "payload": event_data,
            "status": WebhookEventStatus.PENDING,
        },
    )

    if not created and webhook_event.is_processed:
        logger.info(
            "Webhook already processed, returning success",
            extra={"stripe_event_id": stripe_event_id},
        )
        return JsonResponse({"received": True})

    try:
        result = process_webhook_event(webhook_event)
    except Exception:
        return JsonResponse({"error": "Webhook processing failed"}, status=500)

    if not result.success:
        return JsonResponse({"error": result.error}, status=500)

    return JsonResponse({"received": True})


@csrf_exempt
@require_POST
def subscription_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive subscription and invoice events.

    Returns:
        - 200 {"received": true}: Event applied, duplicate or unsupported
        - 400: Missing or invalid signature
        - 500: Applying the event failed; Stripe will redeliver
    """
    return _receive(request, WebhookEvent.Endpoint.SUBSCRIPTION)


@csrf_exempt
@require_POST
def connect_webhook(request: HttpRequest) -> JsonResponse:
    """Receive connected account events (account.updated)."""
    return _receive(request, WebhookEvent.Endpoint.CONNECT)
