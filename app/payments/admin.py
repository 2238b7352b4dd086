"""
Payment admin configuration.

Subscriptions and webhook events are read-mostly: their state is driven by
Stripe, so status fields are read-only here.
"""

from django.contrib import admin

from payments.models import Subscription, WebhookEvent

__all__ = [
    "SubscriptionAdmin",
    "WebhookEventAdmin",
]


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    """
    Admin configuration for Subscription.

    Status changes only through billing webhooks.
    """

    list_display = [
        "subscription_id",
        "user_id",
        "tier",
        "status",
        "bookings_used",
        "current_period_end",
        "last_event_at",
    ]
    list_filter = ["status", "tier"]
    search_fields = ["subscription_id", "user_id", "stripe_customer_id"]
    readonly_fields = [
        "subscription_id",
        "status",
        "last_event_at",
        "cancelled_at",
        "version",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("subscription_id", "user_id", "tier", "status"),
            },
        ),
        (
            "Billing",
            {
                "fields": (
                    "stripe_customer_id",
                    "current_period_start",
                    "current_period_end",
                    "bookings_used",
                ),
            },
        ),
        (
            "Reconciliation",
            {
                "fields": ("last_event_at", "cancelled_at", "version"),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
                "classes": ("collapse",),
            },
        ),
    )


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Webhook events are immutable once received.
    """

    list_display = [
        "id",
        "stripe_event_id",
        "endpoint",
        "event_type",
        "status",
        "attempt_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "endpoint", "event_type", "created_at"]
    search_fields = ["id", "stripe_event_id", "event_type"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "stripe_event_id",
        "endpoint",
        "event_type",
        "payload",
        "processed_at",
        "attempt_count",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "stripe_event_id", "endpoint", "event_type", "status"),
            },
        ),
        (
            "Processing",
            {
                "fields": ("processed_at", "attempt_count", "error_message"),
            },
        ),
        (
            "Payload",
            {
                "fields": ("payload",),
                "classes": ("collapse",),
            },
        ),
    )
