"""
Typed billing events decoded from verified Stripe webhook payloads.

Each supported event type decodes into one frozen dataclass; handlers
receive these instead of raw dicts, so the payload shape is read in a
single place.

Usage:
    from payments.webhooks.events import decode_billing_event

    event = decode_billing_event(verified_payload)
    if isinstance(event, PaymentFailed):
        ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_timezone
from typing import Any, Union

from payments.exceptions import UnsupportedEventError, ValidationError


def _to_datetime(timestamp: int | None) -> datetime | None:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(int(timestamp), tz=dt_timezone.utc)


@dataclass(frozen=True)
class SubscriptionSnapshot:
    """The subscription fields the reconciler reads."""

    subscription_id: str
    provider_status: str | None
    customer_id: str
    current_period_start: datetime | None
    current_period_end: datetime | None
    metadata: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_object(cls, obj: dict[str, Any]) -> SubscriptionSnapshot:
        if not obj.get("id"):
            raise ValidationError("Subscription object has no id")

        # Newer API versions report the period on the subscription items
        period_source = obj
        if obj.get("current_period_start") is None:
            items = (obj.get("items") or {}).get("data") or []
            if items:
                period_source = items[0]

        return cls(
            subscription_id=obj["id"],
            provider_status=obj.get("status"),
            customer_id=obj.get("customer") or "",
            current_period_start=_to_datetime(period_source.get("current_period_start")),
            current_period_end=_to_datetime(period_source.get("current_period_end")),
            metadata={str(k): str(v) for k, v in (obj.get("metadata") or {}).items()},
        )


@dataclass(frozen=True)
class BillingEvent:
    event_id: str
    occurred_at: datetime


@dataclass(frozen=True)
class SubscriptionCreated(BillingEvent):
    subscription: SubscriptionSnapshot


@dataclass(frozen=True)
class SubscriptionUpdated(BillingEvent):
    subscription: SubscriptionSnapshot


@dataclass(frozen=True)
class SubscriptionDeleted(BillingEvent):
    subscription_id: str


@dataclass(frozen=True)
class PaymentSucceeded(BillingEvent):
    invoice_id: str
    subscription_id: str | None


@dataclass(frozen=True)
class PaymentFailed(BillingEvent):
    invoice_id: str
    subscription_id: str | None


BillingEventType = Union[
    SubscriptionCreated,
    SubscriptionUpdated,
    SubscriptionDeleted,
    PaymentSucceeded,
    PaymentFailed,
]


def _invoice_subscription_id(invoice: dict[str, Any]) -> str | None:
    subscription = invoice.get("subscription")
    if subscription is None:
        # Newer API versions nest it under the invoice parent
        details = (invoice.get("parent") or {}).get("subscription_details") or {}
        subscription = details.get("subscription")
    if isinstance(subscription, dict):
        return subscription.get("id")
    return subscription or None


def decode_billing_event(payload: dict[str, Any]) -> BillingEventType:
    """
    Decode a verified Stripe event.

    Raises:
        UnsupportedEventError: Event type is not a billing event we handle
        ValidationError: Required fields are missing
    """
    event_type = payload.get("type")
    event_id = payload.get("id")
    obj = (payload.get("data") or {}).get("object") or {}

    if event_type not in SUPPORTED_EVENT_TYPES:
        raise UnsupportedEventError(
            f"Unsupported event type: {event_type}",
            event_type=event_type,
        )
    if not event_id or payload.get("created") is None:
        raise ValidationError(
            "Webhook event is missing id or created",
            details={"event_type": event_type},
        )

    common = {"event_id": event_id, "occurred_at": _to_datetime(payload["created"])}

    if event_type == "customer.subscription.created":
        return SubscriptionCreated(subscription=SubscriptionSnapshot.from_object(obj), **common)
    if event_type == "customer.subscription.updated":
        return SubscriptionUpdated(subscription=SubscriptionSnapshot.from_object(obj), **common)
    if event_type == "customer.subscription.deleted":
        if not obj.get("id"):
            raise ValidationError("Subscription object has no id")
        return SubscriptionDeleted(subscription_id=obj["id"], **common)
    if event_type == "invoice.payment_succeeded":
        return PaymentSucceeded(
            invoice_id=obj.get("id", ""),
            subscription_id=_invoice_subscription_id(obj),
            **common,
        )
    return PaymentFailed(
        invoice_id=obj.get("id", ""),
        subscription_id=_invoice_subscription_id(obj),
        **common,
    )


SUPPORTED_EVENT_TYPES = frozenset(
    {
        "customer.subscription.created",
        "customer.subscription.updated",
        "customer.subscription.deleted",
        "invoice.payment_succeeded",
        "invoice.payment_failed",
    }
)
