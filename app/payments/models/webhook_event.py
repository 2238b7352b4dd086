"""
WebhookEvent model for Stripe webhook event tracking.

Every verified webhook delivery is stored here before it is applied.
The unique stripe_event_id makes redeliveries detectable, and the stored
payload gives operators an audit trail of what Stripe told us and when.

Usage:
    from payments.models import WebhookEvent

    event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id="evt_1234567890",
        defaults={
            "endpoint": WebhookEvent.Endpoint.SUBSCRIPTION,
            "event_type": "customer.subscription.updated",
            "payload": verified_payload,
        },
    )
    if event.is_processed:
        return  # redelivery
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import WebhookEventStatus


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Tracks Stripe webhook events for idempotent processing.

    Processing Flow:
        1. Webhook arrives, verify Stripe signature
        2. Insert/get WebhookEvent with stripe_event_id
        3. If exists and PROCESSED -> acknowledge (duplicate)
        4. Set status to PROCESSING and apply the event
        5. Set status to PROCESSED, IGNORED or FAILED

    A FAILED event is reprocessed when Stripe redelivers it.

    Fields:
        stripe_event_id: Unique Stripe Event ID (evt_xxx)
        endpoint: Which webhook endpoint received it
        event_type: Type of webhook event
        payload: Full verified JSON payload from Stripe
        status: Processing status
        processed_at: When event was successfully processed
        error_message: Error details if processing failed
        attempt_count: Number of processing attempts
    """

    class Endpoint(models.TextChoices):
        SUBSCRIPTION = "subscription", "Subscription"
        CONNECT = "connect", "Connect"

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
    )

    endpoint = models.CharField(
        max_length=20,
        choices=Endpoint.choices,
        default=Endpoint.SUBSCRIPTION,
        help_text="Webhook endpoint that received the event",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Stripe event type (e.g., 'invoice.payment_succeeded')",
    )

    payload = models.JSONField(
        help_text="Full webhook payload from Stripe (JSON)",
    )

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
        help_text="Current processing status",
    )

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When event was successfully processed",
    )

    error_message = models.TextField(
        null=True,
        blank=True,
        help_text="Error message if processing failed",
    )

    attempt_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of processing attempts",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "created_at"], name="payments_we_status_3b8a21_idx"),
            models.Index(fields=["event_type", "created_at"], name="payments_we_event_t_7d2c94_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.stripe_event_id}, {self.event_type})"

    @property
    def is_processed(self) -> bool:
        """Processed or deliberately ignored; either way, nothing left to do."""
        return self.status in (WebhookEventStatus.PROCESSED, WebhookEventStatus.IGNORED)

    @property
    def is_failed(self) -> bool:
        return self.status == WebhookEventStatus.FAILED

    # ==========================================================================
    # Helper Methods
    # ==========================================================================
    # These do not save - caller must save after calling.

    def mark_processing(self) -> None:
        self.status = WebhookEventStatus.PROCESSING
        self.attempt_count += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_ignored(self, reason: str) -> None:
        self.status = WebhookEventStatus.IGNORED
        self.processed_at = timezone.now()
        self.error_message = reason

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message

    def get_object_id(self) -> str | None:
        """
        Extract the primary object ID from the webhook payload.

        Returns:
            payload.data.object.id if present, None otherwise
        """
        try:
            return self.payload.get("data", {}).get("object", {}).get("id")
        except (AttributeError, TypeError):
            return None
