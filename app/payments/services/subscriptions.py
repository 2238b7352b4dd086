"""
Subscription checkout and booking usage.

Subscription state itself is only written by the billing webhook; these
services start a checkout for a new plan and track how many bookings the
owner has used in the current period.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django.db.models import F

from core.exceptions import NotFoundError
from core.services import BaseService

from payments.exceptions import ConfigurationError, ValidationError
from payments.models import Subscription
from payments.state_machines import SubscriptionStatus, SubscriptionTier

if TYPE_CHECKING:
    from payments.adapters import StripeAdapter
    from payments.config import StripeConfig


class SubscriptionCheckoutService(BaseService):
    """Starts Stripe Checkout for a subscription plan."""

    def __init__(self, adapter: StripeAdapter, config: StripeConfig):
        self.adapter = adapter
        self.config = config

    def create_checkout_session(
        self,
        user_id: str,
        email: str | None,
        tier: str,
        success_url: str | None = None,
        cancel_url: str | None = None,
        customer_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Create a subscription checkout session.

        Returns:
            {"session_id": ..., "checkout_url": ...}

        Raises:
            ValidationError: Unknown tier
            ConfigurationError: No price configured for the tier
        """
        if tier not in SubscriptionTier.values:
            raise ValidationError(
                "Invalid subscription tier",
                details={"tier": [f"Must be one of: {', '.join(SubscriptionTier.values)}"]},
            )

        price_id = self.config.price_ids.get(tier)
        if not price_id:
            raise ConfigurationError(
                f"No Stripe price configured for tier '{tier}'",
                details={"tier": tier},
            )

        dashboard = f"{self.config.frontend_url}/dashboard"
        session = self.adapter.create_subscription_checkout_session(
            price_id=price_id,
            metadata={"userId": user_id, "tier": tier},
            success_url=success_url or f"{dashboard}?subscription=success",
            cancel_url=cancel_url or f"{dashboard}?subscription=cancelled",
            customer_id=customer_id,
            customer_email=email,
        )

        self.get_logger().info(
            "Subscription checkout session created",
            extra={"user_id": user_id, "tier": tier, "session_id": session.id},
        )
        return {"session_id": session.id, "checkout_url": session.url}


class BookingUsageService(BaseService):
    """Booking allowance of a user's active subscription."""

    @staticmethod
    def _active_subscription(user_id: str) -> Subscription | None:
        return (
            Subscription.objects.filter(user_id=user_id, status=SubscriptionStatus.ACTIVE)
            .order_by("-created_at")
            .first()
        )

    @classmethod
    def record_booking(cls, user_id: str) -> int:
        """
        Count one booking against the active subscription.

        Returns:
            Bookings used in the current period after the increment

        Raises:
            NotFoundError: No active subscription
            ValidationError: The tier's booking limit is already reached
        """
        subscription = cls._active_subscription(user_id)
        if subscription is None:
            raise NotFoundError(
                "No active subscription found",
                details={"user_id": user_id},
            )

        # Conditional update so concurrent bookings cannot exceed the limit
        updated = Subscription.objects.filter(
            pk=subscription.pk,
            bookings_used__lt=subscription.booking_limit,
        ).update(bookings_used=F("bookings_used") + 1)
        if not updated:
            raise ValidationError(
                "Booking limit reached for the current billing period",
                details={"limit": subscription.booking_limit},
            )

        bookings_used = (
            Subscription.objects.filter(pk=subscription.pk)
            .values_list("bookings_used", flat=True)
            .get()
        )
        cls.get_logger().info(
            "Booking recorded",
            extra={
                "user_id": user_id,
                "subscription_id": subscription.pk,
                "bookings_used": bookings_used,
            },
        )
        return bookings_used

    @classmethod
    def booking_limits(cls, user_id: str) -> dict[str, Any]:
        """Tier, limit and remaining bookings; can_book is False without a plan."""
        subscription = cls._active_subscription(user_id)
        if subscription is None:
            return {
                "tier": None,
                "limit": 0,
                "current_usage": 0,
                "remaining": 0,
                "can_book": False,
            }
        return {
            "tier": subscription.tier,
            "limit": subscription.booking_limit,
            "current_usage": subscription.bookings_used,
            "remaining": subscription.bookings_remaining,
            "can_book": subscription.bookings_remaining > 0,
        }
