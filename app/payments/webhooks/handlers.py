"""
Webhook event handlers for Stripe events.

Billing events (subscription and invoice) are decoded into typed events and
applied by ``SubscriptionReconciler``. Connect events go through a small
handler registry keyed by Stripe event type.

``process_webhook_event`` is the single entry point used by the webhook
views: it routes a stored ``WebhookEvent`` to the right handler and records
the outcome on it.

Usage:
    from payments.webhooks.handlers import process_webhook_event

    result = process_webhook_event(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from django_fsm import TransitionNotAllowed

from core.services import BaseService, ServiceResult

from payments.adapters import AccountResult
from payments.exceptions import UnsupportedEventError
from payments.models import Subscription, WebhookEvent
from payments.services.connect_accounts import BarConnectStatusService
from payments.state_machines import SubscriptionStatus, SubscriptionTier
from payments.webhooks.events import (
    BillingEvent,
    PaymentFailed,
    PaymentSucceeded,
    SubscriptionCreated,
    SubscriptionDeleted,
    SubscriptionUpdated,
    decode_billing_event,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Subscription Reconciler
# =============================================================================


class SubscriptionReconciler(BaseService):
    """
    Applies billing events to local Subscription records.

    Every handler is an idempotent upsert keyed by the Stripe subscription
    id. Events older than the newest one already applied to a record are
    discarded, and a cancelled subscription never changes status again.

    Usage:
        result = SubscriptionReconciler().apply(decode_billing_event(payload))
    """

    def apply(self, event: BillingEvent) -> ServiceResult:
        handlers: dict[type, Callable[[BillingEvent], ServiceResult]] = {
            SubscriptionCreated: self._on_created,
            SubscriptionUpdated: self._on_updated,
            SubscriptionDeleted: self._on_deleted,
            PaymentSucceeded: self._on_payment_succeeded,
            PaymentFailed: self._on_payment_failed,
        }
        handler = handlers.get(type(event))
        if handler is None:
            raise UnsupportedEventError(
                f"No handler for {type(event).__name__}",
                event_type=type(event).__name__,
            )
        return handler(event)

    def _on_created(self, event: SubscriptionCreated) -> ServiceResult:
        log = self.get_logger()
        snapshot = event.subscription
        user_id = snapshot.metadata.get("userId")
        tier = snapshot.metadata.get("tier")

        if not user_id or tier not in SubscriptionTier.values:
            log.error(
                "Subscription created without userId or valid tier metadata",
                extra={
                    "event_id": event.event_id,
                    "subscription_id": snapshot.subscription_id,
                    "tier": tier,
                },
            )
            return ServiceResult.success(None)

        subscription, created = Subscription.objects.get_or_create(
            subscription_id=snapshot.subscription_id,
            defaults={
                "user_id": user_id,
                "tier": tier,
                "stripe_customer_id": snapshot.customer_id,
                "current_period_start": snapshot.current_period_start,
                "current_period_end": snapshot.current_period_end,
                "bookings_used": 0,
                "last_event_at": event.occurred_at,
            },
        )
        if not created:
            log.info(
                "Subscription already exists, ignoring replayed create",
                extra={"event_id": event.event_id, "subscription_id": subscription.pk},
            )
            return ServiceResult.success(subscription)

        log.info(
            "Subscription created",
            extra={"subscription_id": subscription.pk, "user_id": user_id, "tier": tier},
        )
        return ServiceResult.success(subscription)

    def _on_updated(self, event: SubscriptionUpdated) -> ServiceResult:
        snapshot = event.subscription
        target = SubscriptionStatus.from_provider(snapshot.provider_status)

        def update(subscription: Subscription) -> None:
            subscription.current_period_start = snapshot.current_period_start
            subscription.current_period_end = snapshot.current_period_end
            if snapshot.customer_id:
                subscription.stripe_customer_id = snapshot.customer_id

        return self._transition(event, snapshot.subscription_id, target, update)

    def _on_deleted(self, event: SubscriptionDeleted) -> ServiceResult:
        deleted, _ = Subscription.objects.filter(pk=event.subscription_id).delete()
        self.get_logger().info(
            "Subscription deleted" if deleted else "Subscription to delete not found",
            extra={"event_id": event.event_id, "subscription_id": event.subscription_id},
        )
        return ServiceResult.success(None)

    def _on_payment_succeeded(self, event: PaymentSucceeded) -> ServiceResult:
        if not event.subscription_id:
            return ServiceResult.success(None)

        def reset_usage(subscription: Subscription) -> None:
            subscription.bookings_used = 0

        return self._transition(
            event, event.subscription_id, SubscriptionStatus.ACTIVE, reset_usage
        )

    def _on_payment_failed(self, event: PaymentFailed) -> ServiceResult:
        if not event.subscription_id:
            return ServiceResult.success(None)
        return self._transition(event, event.subscription_id, SubscriptionStatus.PAST_DUE)

    def _transition(
        self,
        event: BillingEvent,
        subscription_id: str,
        target: str,
        update: Callable[[Subscription], None] | None = None,
    ) -> ServiceResult:
        """Lock the record, check ordering, move to ``target`` and save."""
        log = self.get_logger()
        context = {
            "event_id": event.event_id,
            "event": type(event).__name__,
            "subscription_id": subscription_id,
        }

        with self.atomic():
            subscription = (
                Subscription.objects.select_for_update()
                .filter(pk=subscription_id)
                .first()
            )
            if subscription is None:
                log.warning("Subscription not found, discarding event", extra=context)
                return ServiceResult.success(None)

            if not subscription.accepts_event_at(event.occurred_at):
                log.info(
                    "Stale event, newer state already applied",
                    extra={**context, "last_event_at": subscription.last_event_at.isoformat()},
                )
                return ServiceResult.success(subscription)

            if subscription.status != target:
                try:
                    subscription.apply_status(target)
                except TransitionNotAllowed:
                    log.warning(
                        "Subscription status change not allowed, discarding event",
                        extra={
                            **context,
                            "current_state": subscription.status,
                            "target_state": str(target),
                        },
                    )
                    return ServiceResult.success(subscription)

            if update is not None:
                update(subscription)
            subscription.last_event_at = event.occurred_at
            subscription.save()

        log.info(
            "Subscription reconciled",
            extra={**context, "status": subscription.status},
        )
        return ServiceResult.success(subscription)


# =============================================================================
# Connect Handler Registry
# =============================================================================


# Maps Connect event type strings to handler functions
CONNECT_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a Connect webhook handler.

    Usage:
        @register_handler("account.updated")
        def handle_account_updated(webhook_event: WebhookEvent) -> ServiceResult:
            ...
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        CONNECT_HANDLERS[event_type] = func
        return func

    return decorator


@register_handler("account.updated")
def handle_account_updated(webhook_event: WebhookEvent) -> ServiceResult:
    """Refresh the cached connect status of every bar using the account."""
    data_object = webhook_event.payload.get("data", {}).get("object", {})
    account_id = data_object.get("id")

    if not account_id:
        logger.error(
            "account.updated: Could not extract account_id",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.failure(
            "Could not extract account_id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    account = AccountResult(
        id=account_id,
        charges_enabled=bool(data_object.get("charges_enabled")),
        payouts_enabled=bool(data_object.get("payouts_enabled")),
        details_submitted=bool(data_object.get("details_submitted")),
        livemode=bool(data_object.get("livemode")),
        requirements=data_object.get("requirements") or {},
        metadata=data_object.get("metadata") or {},
    )
    updated = BarConnectStatusService.sync_from_account(account)
    return ServiceResult.success(updated)


# =============================================================================
# Entry Point
# =============================================================================


def _dispatch(webhook_event: WebhookEvent) -> ServiceResult | None:
    """Run the handler; None means the event type is not handled."""
    if webhook_event.endpoint == WebhookEvent.Endpoint.CONNECT:
        handler = CONNECT_HANDLERS.get(webhook_event.event_type)
        return handler(webhook_event) if handler else None

    try:
        event = decode_billing_event(webhook_event.payload)
    except UnsupportedEventError:
        return None
    return SubscriptionReconciler().apply(event)


def process_webhook_event(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Apply a stored webhook event and record the outcome.

    Unhandled event types are marked ignored. A failed result or an
    exception marks the event failed; exceptions are re-raised so the
    caller can ask Stripe to redeliver.
    """
    context = {
        "stripe_event_id": webhook_event.stripe_event_id,
        "event_type": webhook_event.event_type,
        "endpoint": webhook_event.endpoint,
    }

    webhook_event.mark_processing()
    webhook_event.save(update_fields=["status", "attempt_count", "updated_at"])

    try:
        result = _dispatch(webhook_event)
    except Exception as e:
        logger.error("Webhook handler raised", extra=context, exc_info=True)
        webhook_event.mark_failed(f"{type(e).__name__}: {e}")
        webhook_event.save(update_fields=["status", "error_message", "updated_at"])
        raise

    if result is None:
        logger.info("Unsupported webhook event type, ignoring", extra=context)
        webhook_event.mark_ignored(f"No handler for {webhook_event.event_type}")
        webhook_event.save(
            update_fields=["status", "processed_at", "error_message", "updated_at"]
        )
        return ServiceResult.success(None)

    if not result.success:
        logger.error(
            "Webhook handler failed",
            extra={**context, "error": result.error, "error_code": result.error_code},
        )
        webhook_event.mark_failed(result.error or "Handler failed")
        webhook_event.save(update_fields=["status", "error_message", "updated_at"])
        return result

    webhook_event.mark_processed()
    webhook_event.save(update_fields=["status", "processed_at", "error_message", "updated_at"])
    logger.info("Webhook processed", extra=context)
    return result
