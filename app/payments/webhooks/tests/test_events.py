"""Tests for decoding Stripe billing payloads into typed events."""

from datetime import datetime, timezone

import pytest

from payments.exceptions import UnsupportedEventError, ValidationError
from payments.webhooks.events import (
    PaymentFailed,
    PaymentSucceeded,
    SubscriptionCreated,
    SubscriptionDeleted,
    SubscriptionUpdated,
    decode_billing_event,
)


T0 = 1700000000


class TestDecodeBillingEvent:
    def test_subscription_created(self, stripe_event, subscription_object):
        event = decode_billing_event(
            stripe_event("customer.subscription.created", subscription_object())
        )

        assert isinstance(event, SubscriptionCreated)
        assert event.event_id == "evt_test123"
        assert event.occurred_at == datetime.fromtimestamp(T0, tz=timezone.utc)
        assert event.subscription.subscription_id == "sub_test123"
        assert event.subscription.metadata == {"userId": "user_1", "tier": "starter"}
        assert event.subscription.current_period_start == datetime.fromtimestamp(
            T0, tz=timezone.utc
        )

    def test_subscription_updated(self, stripe_event, subscription_object):
        event = decode_billing_event(
            stripe_event("customer.subscription.updated", subscription_object(status="past_due"))
        )

        assert isinstance(event, SubscriptionUpdated)
        assert event.subscription.provider_status == "past_due"
        assert event.subscription.customer_id == "cus_test123"

    def test_period_read_from_items(self, stripe_event, subscription_object):
        obj = subscription_object()
        obj.pop("current_period_start")
        obj.pop("current_period_end")
        obj["items"] = {
            "data": [{"current_period_start": T0 + 10, "current_period_end": T0 + 20}]
        }

        event = decode_billing_event(stripe_event("customer.subscription.updated", obj))

        assert event.subscription.current_period_start.timestamp() == T0 + 10
        assert event.subscription.current_period_end.timestamp() == T0 + 20

    def test_subscription_deleted(self, stripe_event, subscription_object):
        event = decode_billing_event(
            stripe_event("customer.subscription.deleted", subscription_object())
        )

        assert isinstance(event, SubscriptionDeleted)
        assert event.subscription_id == "sub_test123"

    def test_payment_succeeded(self, stripe_event, invoice_object):
        event = decode_billing_event(stripe_event("invoice.payment_succeeded", invoice_object()))

        assert isinstance(event, PaymentSucceeded)
        assert event.invoice_id == "in_test123"
        assert event.subscription_id == "sub_test123"

    def test_payment_failed_nested_subscription(self, stripe_event, invoice_object):
        invoice = invoice_object(
            subscription=None,
            parent={"subscription_details": {"subscription": "sub_nested"}},
        )

        event = decode_billing_event(stripe_event("invoice.payment_failed", invoice))

        assert isinstance(event, PaymentFailed)
        assert event.subscription_id == "sub_nested"

    def test_expanded_subscription_on_invoice(self, stripe_event, invoice_object):
        invoice = invoice_object(subscription={"id": "sub_expanded", "object": "subscription"})

        event = decode_billing_event(stripe_event("invoice.payment_succeeded", invoice))

        assert event.subscription_id == "sub_expanded"

    def test_invoice_without_subscription(self, stripe_event, invoice_object):
        event = decode_billing_event(
            stripe_event("invoice.payment_succeeded", invoice_object(subscription=None))
        )

        assert event.subscription_id is None

    def test_unsupported_type(self, stripe_event):
        with pytest.raises(UnsupportedEventError):
            decode_billing_event(stripe_event("charge.refunded", {"id": "ch_1"}))

    def test_missing_created(self, stripe_event, subscription_object):
        payload = stripe_event("customer.subscription.updated", subscription_object())
        del payload["created"]

        with pytest.raises(ValidationError):
            decode_billing_event(payload)

    def test_subscription_without_id(self, stripe_event):
        with pytest.raises(ValidationError):
            decode_billing_event(stripe_event("customer.subscription.updated", {"status": "active"}))

    def test_events_are_immutable(self, stripe_event, invoice_object):
        event = decode_billing_event(stripe_event("invoice.payment_failed", invoice_object()))

        with pytest.raises(AttributeError):
            event.subscription_id = "sub_other"
