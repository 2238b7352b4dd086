"""
State enums for payment models and value objects.

These are Django TextChoices for database storage and admin integration.

State Machines Overview:

Subscription States (driven only by Stripe billing events):
    active ⇄ past_due
    active/past_due/inactive → cancelled (terminal)
    active/past_due → inactive (unrecognized provider status)

SplitPayment States (monotonic):
    requires_confirmation → processing → succeeded | failed | canceled

Connect Account Status (derived, never stored as a source of truth):
    pending → restricted → active
"""

from django.db import models


class SubscriptionStatus(models.TextChoices):
    """
    States for the Subscription model lifecycle.

    Terminal states: CANCELLED
    """

    ACTIVE = "active", "Active"
    PAST_DUE = "past_due", "Past Due"
    INACTIVE = "inactive", "Inactive"
    CANCELLED = "cancelled", "Cancelled"

    @classmethod
    def from_provider(cls, provider_status: str | None) -> "SubscriptionStatus":
        """
        Map Stripe's subscription status vocabulary to ours.

        active -> active, canceled -> cancelled, past_due -> past_due,
        anything else -> inactive.
        """
        return {
            "active": cls.ACTIVE,
            "canceled": cls.CANCELLED,
            "past_due": cls.PAST_DUE,
        }.get(provider_status or "", cls.INACTIVE)


class SubscriptionTier(models.TextChoices):
    """Subscription plans offered to bar owners."""

    STARTER = "starter", "Starter"
    PROFESSIONAL = "professional", "Professional"
    PREMIUM = "premium", "Premium"

    @property
    def booking_limit(self) -> int:
        """Bookings allowed per billing period."""
        return TIER_BOOKING_LIMITS[self.value]


TIER_BOOKING_LIMITS = {
    SubscriptionTier.STARTER.value: 100,
    SubscriptionTier.PROFESSIONAL.value: 300,
    SubscriptionTier.PREMIUM.value: 700,
}


class SplitPaymentStatus(models.TextChoices):
    """
    States of a split payment as tracked by the orchestrator.

    Terminal states: SUCCEEDED, CANCELED. A FAILED attempt can still be
    retried by the payer with another payment method.
    """

    REQUIRES_CONFIRMATION = "requires_confirmation", "Requires Confirmation"
    PROCESSING = "processing", "Processing"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"
    CANCELED = "canceled", "Canceled"

    @classmethod
    def from_provider(
        cls, provider_status: str, has_payment_error: bool = False
    ) -> "SplitPaymentStatus":
        """
        Map a PaymentIntent status onto the split payment lifecycle.

        Stripe reports ``requires_payment_method`` both for a fresh intent
        and for one whose charge was declined; only the latter carries a
        ``last_payment_error``.
        """
        if provider_status == "succeeded":
            return cls.SUCCEEDED
        if provider_status == "processing":
            return cls.PROCESSING
        if provider_status == "canceled":
            return cls.CANCELED
        if provider_status == "requires_payment_method" and has_payment_error:
            return cls.FAILED
        return cls.REQUIRES_CONFIRMATION


SPLIT_PAYMENT_TRANSITIONS = {
    SplitPaymentStatus.REQUIRES_CONFIRMATION: frozenset(
        {
            SplitPaymentStatus.PROCESSING,
            SplitPaymentStatus.SUCCEEDED,
            SplitPaymentStatus.FAILED,
            SplitPaymentStatus.CANCELED,
        }
    ),
    SplitPaymentStatus.PROCESSING: frozenset(
        {
            SplitPaymentStatus.SUCCEEDED,
            SplitPaymentStatus.FAILED,
            SplitPaymentStatus.CANCELED,
        }
    ),
    SplitPaymentStatus.FAILED: frozenset(
        {
            SplitPaymentStatus.REQUIRES_CONFIRMATION,
            SplitPaymentStatus.PROCESSING,
            SplitPaymentStatus.SUCCEEDED,
            SplitPaymentStatus.CANCELED,
        }
    ),
    SplitPaymentStatus.SUCCEEDED: frozenset(),
    SplitPaymentStatus.CANCELED: frozenset(),
}


class ConnectAccountStatus(models.TextChoices):
    """Readiness of a connected account, derived from Stripe's flags."""

    PENDING = "pending", "Pending"
    RESTRICTED = "restricted", "Restricted"
    ACTIVE = "active", "Active"


class DeletionReason(models.TextChoices):
    """Outcome classification of a connected account deletion."""

    DELETED = "deleted", "Deleted"
    ALREADY_DELETED = "already_deleted", "Already Deleted"
    NON_ZERO_BALANCE = "non_zero_balance", "Non-zero Balance"
    UNKNOWN = "unknown", "Unknown"


class WebhookEventStatus(models.TextChoices):
    """
    Processing states for WebhookEvent.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED
        PENDING → IGNORED (unsupported event type)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"
    IGNORED = "ignored", "Ignored"
