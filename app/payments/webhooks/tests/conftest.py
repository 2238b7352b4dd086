"""
Pytest fixtures for webhook tests.

Provides builders for Stripe subscription and invoice objects; wrap them
in an event with the ``stripe_event`` fixture.
"""

from typing import Any

import pytest


# Event creation times used across tests (2023-11-14T22:13:20Z and later)
T0 = 1700000000
T1 = T0 + 60
T2 = T0 + 120


@pytest.fixture
def subscription_object():
    """Create a Stripe Subscription object dict."""

    def _create(
        id: str = "sub_test123",
        status: str = "active",
        customer: str = "cus_test123",
        user_id: str | None = "user_1",
        tier: str | None = "starter",
        period_start: int = T0,
        period_end: int = T0 + 30 * 86400,
        **extra: Any,
    ) -> dict[str, Any]:
        metadata = {}
        if user_id is not None:
            metadata["userId"] = user_id
        if tier is not None:
            metadata["tier"] = tier
        return {
            "id": id,
            "object": "subscription",
            "status": status,
            "customer": customer,
            "current_period_start": period_start,
            "current_period_end": period_end,
            "metadata": metadata,
            **extra,
        }

    return _create


@pytest.fixture
def invoice_object():
    """Create a Stripe Invoice object dict."""

    def _create(
        id: str = "in_test123",
        subscription: str | None = "sub_test123",
        **extra: Any,
    ) -> dict[str, Any]:
        return {
            "id": id,
            "object": "invoice",
            "subscription": subscription,
            "amount_paid": 2900,
            **extra,
        }

    return _create
