"""
Tests for subscription checkout and booking usage.
"""

import pytest

from core.exceptions import NotFoundError
from payments.adapters import CheckoutSessionResult
from payments.config import StripeConfig
from payments.exceptions import ConfigurationError, ValidationError
from payments.models import Subscription
from payments.services import BookingUsageService, SubscriptionCheckoutService
from payments.state_machines import SubscriptionStatus, SubscriptionTier
from payments.tests.factories import SubscriptionFactory


# =============================================================================
# Checkout
# =============================================================================


class TestSubscriptionCheckout:
    @pytest.fixture
    def service(self, fake_adapter, stripe_config):
        fake_adapter.create_subscription_checkout_session.return_value = CheckoutSessionResult(
            id="cs_test123", url="https://checkout.stripe.com/c/pay/cs_test123"
        )
        return SubscriptionCheckoutService(fake_adapter, stripe_config)

    def test_creates_session_for_tier(self, service, fake_adapter):
        result = service.create_checkout_session(
            user_id="1", email="owner@example.com", tier="professional"
        )

        assert result == {
            "session_id": "cs_test123",
            "checkout_url": "https://checkout.stripe.com/c/pay/cs_test123",
        }
        fake_adapter.create_subscription_checkout_session.assert_called_once_with(
            price_id="price_professional",
            metadata={"userId": "1", "tier": "professional"},
            success_url="https://ebar.example.com/dashboard?subscription=success",
            cancel_url="https://ebar.example.com/dashboard?subscription=cancelled",
            customer_id=None,
            customer_email="owner@example.com",
        )

    def test_custom_urls_and_customer(self, service, fake_adapter):
        service.create_checkout_session(
            user_id="1",
            email=None,
            tier="starter",
            success_url="https://app.example.com/ok",
            cancel_url="https://app.example.com/no",
            customer_id="cus_existing",
        )

        kwargs = fake_adapter.create_subscription_checkout_session.call_args.kwargs
        assert kwargs["success_url"] == "https://app.example.com/ok"
        assert kwargs["cancel_url"] == "https://app.example.com/no"
        assert kwargs["customer_id"] == "cus_existing"

    def test_invalid_tier(self, service, fake_adapter):
        with pytest.raises(ValidationError, match="Invalid subscription tier"):
            service.create_checkout_session(user_id="1", email=None, tier="enterprise")

        fake_adapter.create_subscription_checkout_session.assert_not_called()

    def test_unconfigured_price(self, fake_adapter):
        config = StripeConfig(secret_key="sk_test", frontend_url="https://x", price_ids={})

        with pytest.raises(ConfigurationError, match="premium"):
            SubscriptionCheckoutService(fake_adapter, config).create_checkout_session(
                user_id="1", email=None, tier="premium"
            )


# =============================================================================
# Booking usage
# =============================================================================


@pytest.mark.django_db
class TestBookingUsage:
    def test_record_booking_increments(self):
        subscription = SubscriptionFactory(user_id="user_1", bookings_used=4)

        assert BookingUsageService.record_booking("user_1") == 5
        assert Subscription.objects.get(pk=subscription.pk).bookings_used == 5

    def test_record_booking_at_limit(self):
        subscription = SubscriptionFactory(
            user_id="user_1", tier=SubscriptionTier.STARTER, bookings_used=100
        )

        with pytest.raises(ValidationError, match="Booking limit reached"):
            BookingUsageService.record_booking("user_1")

        assert Subscription.objects.get(pk=subscription.pk).bookings_used == 100

    def test_record_booking_without_subscription(self):
        with pytest.raises(NotFoundError):
            BookingUsageService.record_booking("user_nobody")

    def test_past_due_subscription_cannot_book(self):
        SubscriptionFactory(user_id="user_1", status=SubscriptionStatus.PAST_DUE)

        with pytest.raises(NotFoundError):
            BookingUsageService.record_booking("user_1")

    def test_booking_limits(self):
        SubscriptionFactory(
            user_id="user_1", tier=SubscriptionTier.PROFESSIONAL, bookings_used=120
        )

        assert BookingUsageService.booking_limits("user_1") == {
            "tier": "professional",
            "limit": 300,
            "current_usage": 120,
            "remaining": 180,
            "can_book": True,
        }

    def test_booking_limits_exhausted(self):
        SubscriptionFactory(user_id="user_1", tier=SubscriptionTier.PREMIUM, bookings_used=700)

        limits = BookingUsageService.booking_limits("user_1")

        assert limits["remaining"] == 0
        assert limits["can_book"] is False

    def test_booking_limits_without_subscription(self):
        assert BookingUsageService.booking_limits("user_nobody") == {
            "tier": None,
            "limit": 0,
            "current_usage": 0,
            "remaining": 0,
            "can_book": False,
        }
