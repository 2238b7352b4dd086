"""
Celery tasks for payment processing.

This module provides async tasks for:
- Tearing down a user's connected accounts out of band
- Periodic refresh of bars' cached connect status
- Reprocessing failed webhook events
- Periodic cleanup of old processed events

Usage:
    from payments.tasks import teardown_user_connect_accounts

    # Queue teardown when a user deletes their profile
    teardown_user_connect_accounts.delay(str(user.pk))
"""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from payments.adapters import StripeAdapter
from payments.config import StripeConfig
from payments.exceptions import ProviderError
from payments.models import WebhookEvent
from payments.services import (
    BarConnectStatusService,
    BulkAccountTeardown,
    ConnectAccountService,
)
from payments.state_machines import WebhookEventStatus
from payments.webhooks.handlers import process_webhook_event

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_WEBHOOK_ATTEMPTS = 5
WEBHOOK_RETRY_BATCH_SIZE = 100


def _account_service() -> ConnectAccountService:
    config = StripeConfig.from_settings()
    return ConnectAccountService(StripeAdapter(config), config)


# =============================================================================
# Connected Account Tasks
# =============================================================================


@shared_task
def teardown_user_connect_accounts(user_id: str) -> dict:
    """
    Delete every connected account linked to the user's bars.

    Returns:
        The teardown report
    """
    teardown = BulkAccountTeardown(
        _account_service(),
        max_workers=getattr(settings, "CONNECT_TEARDOWN_MAX_WORKERS", 5),
    )
    report = teardown.teardown_all_accounts_for_user(user_id)
    return report.to_dict()


@shared_task
def sync_bar_connect_statuses() -> dict:
    """
    Refresh the cached connect status of all linked bars from Stripe.

    Scheduled hourly via celery-beat; webhooks keep the cache current in
    between. One account failing does not stop the others.

    Returns:
        Dict with counts of synced and failed accounts
    """
    from bars.models import Bar

    account_ids = (
        Bar.objects.exclude(connect_account_id__isnull=True)
        .exclude(connect_account_id="")
        .values_list("connect_account_id", flat=True)
        .distinct()
    )

    adapter = StripeAdapter(StripeConfig.from_settings())
    synced_count = 0
    failed_count = 0
    for account_id in account_ids:
        try:
            account = adapter.retrieve_account(account_id)
        except ProviderError as e:
            failed_count += 1
            logger.warning(
                f"Failed to refresh connected account: {e.message}",
                extra={"account_id": account_id, "error_code": e.error_code},
            )
            continue
        BarConnectStatusService.sync_from_account(account)
        synced_count += 1

    logger.info(
        f"Synced {synced_count} connected accounts",
        extra={"synced_count": synced_count, "failed_count": failed_count},
    )
    return {"synced_count": synced_count, "failed_count": failed_count}


# =============================================================================
# Webhook Maintenance Tasks
# =============================================================================


@shared_task
def retry_failed_webhooks() -> dict:
    """
    Periodic task to reprocess failed webhook events.

    Stripe redelivers failed events on its own schedule; this picks them up
    sooner. Events that failed MAX_WEBHOOK_ATTEMPTS times are left for an
    operator.

    Returns:
        Dict with counts of retried and still failing events
    """
    failed_webhooks = WebhookEvent.objects.filter(
        status=WebhookEventStatus.FAILED,
        attempt_count__lt=MAX_WEBHOOK_ATTEMPTS,
    ).order_by("created_at")[:WEBHOOK_RETRY_BATCH_SIZE]

    retried_count = 0
    still_failing = 0
    for webhook in failed_webhooks:
        retried_count += 1
        try:
            result = process_webhook_event(webhook)
        except Exception as e:
            still_failing += 1
            logger.error(
                f"Webhook retry failed: {type(e).__name__}",
                extra={
                    "webhook_event_id": str(webhook.id),
                    "stripe_event_id": webhook.stripe_event_id,
                    "attempt_count": webhook.attempt_count,
                },
            )
            continue
        if not result.success:
            still_failing += 1

    logger.info(
        f"Retried {retried_count} failed webhooks",
        extra={"retried_count": retried_count, "still_failing": still_failing},
    )
    return {"retried_count": retried_count, "still_failing": still_failing}


@shared_task
def cleanup_old_webhooks(days: int = 90) -> dict:
    """
    Periodic task to clean up old processed webhook events.

    Failed events are kept for debugging.

    Args:
        days: Delete processed or ignored events older than this many days

    Returns:
        Dict with count of webhooks deleted
    """
    cutoff = timezone.now() - timedelta(days=days)

    deleted_count, _ = WebhookEvent.objects.filter(
        status__in=[WebhookEventStatus.PROCESSED, WebhookEventStatus.IGNORED],
        processed_at__lt=cutoff,
    ).delete()

    if deleted_count > 0:
        logger.info(
            f"Deleted {deleted_count} old webhook events",
            extra={
                "deleted_count": deleted_count,
                "cutoff_date": cutoff.isoformat(),
            },
        )

    return {"deleted_count": deleted_count}
