"""
Pytest fixtures shared by all payments tests.

Sections:
    - Mock Stripe Objects (SDK responses for adapter tests)
    - Adapter Fixtures (real adapter over a mock client, or a mock adapter)
    - Result Factories (adapter return values for service tests)
    - Stripe Error Fixtures
    - Webhook Helpers
"""

import json
from typing import Any
from unittest.mock import MagicMock

import pytest
import stripe

from payments.adapters import AccountResult, BalanceResult, StripeAdapter
from payments.tests.stripe_mocks import MockStripeObject, sign_payload


# =============================================================================
# Mock Stripe Objects
# =============================================================================


@pytest.fixture
def mock_account():
    """Create a mock Account response."""

    def _create(
        id: str = "acct_test123",
        charges_enabled: bool = False,
        payouts_enabled: bool = False,
        details_submitted: bool = False,
        livemode: bool = False,
        requirements: dict | None = None,
        metadata: dict | None = None,
        **extra: Any,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "account",
                "type": "express",
                "country": "US",
                "email": "owner@example.com",
                "default_currency": "usd",
                "created": 1700000000,
                "charges_enabled": charges_enabled,
                "payouts_enabled": payouts_enabled,
                "details_submitted": details_submitted,
                "livemode": livemode,
                "business_profile": {"name": "Sunset Shack"},
                "requirements": requirements or {},
                "metadata": metadata or {"ownerId": "1", "platform": "ebar"},
                **extra,
            }
        )

    return _create


@pytest.fixture
def mock_payment_intent():
    """Create a mock PaymentIntent response."""

    def _create(
        id: str = "pi_test123456",
        status: str = "requires_payment_method",
        amount: int = 5000,
        currency: str = "usd",
        application_fee_amount: int | None = None,
        destination: str | None = None,
        metadata: dict | None = None,
        last_payment_error: str | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "payment_intent",
                "status": status,
                "amount": amount,
                "currency": currency,
                "client_secret": f"{id}_secret_abc123",
                "application_fee_amount": application_fee_amount,
                "transfer_data": {"destination": destination} if destination else None,
                "metadata": metadata or {},
                "last_payment_error": (
                    {"message": last_payment_error} if last_payment_error else None
                ),
            }
        )

    return _create


# =============================================================================
# Adapter Fixtures
# =============================================================================


@pytest.fixture
def stripe_client():
    """Mock StripeClient; resources are reached through client.v1.*"""
    return MagicMock()


@pytest.fixture
def adapter(stripe_config, stripe_client):
    """Real StripeAdapter over a mock client."""
    return StripeAdapter(stripe_config, client=stripe_client)


@pytest.fixture
def fake_adapter():
    """Mock adapter for service tests."""
    return MagicMock(spec=StripeAdapter)


# =============================================================================
# Result Factories
# =============================================================================


@pytest.fixture
def account_result():
    """Create an AccountResult as returned by the adapter."""

    def _create(
        id: str = "acct_test123",
        charges_enabled: bool = True,
        payouts_enabled: bool = True,
        details_submitted: bool = True,
        livemode: bool = False,
        **kwargs: Any,
    ) -> AccountResult:
        return AccountResult(
            id=id,
            charges_enabled=charges_enabled,
            payouts_enabled=payouts_enabled,
            details_submitted=details_submitted,
            livemode=livemode,
            **kwargs,
        )

    return _create


@pytest.fixture
def balance_result():
    """Create a BalanceResult with one usd entry per side."""

    def _create(available: int = 0, pending: int = 0) -> BalanceResult:
        return BalanceResult(
            available=[{"amount": available, "currency": "usd"}],
            pending=[{"amount": pending, "currency": "usd"}],
        )

    return _create


# =============================================================================
# Stripe Error Fixtures
# =============================================================================


@pytest.fixture
def invalid_request_error():
    """Create a Stripe InvalidRequestError."""

    def _create(
        message: str = "No such account: 'acct_missing'",
        param: str | None = "account",
        code: str | None = "resource_missing",
    ) -> stripe.InvalidRequestError:
        return stripe.InvalidRequestError(message=message, param=param, code=code)

    return _create


@pytest.fixture
def card_error():
    """Create a Stripe CardError."""
    return stripe.CardError(
        message="Your card was declined.",
        param=None,
        code="card_declined",
    )


# =============================================================================
# Webhook Helpers
# =============================================================================


@pytest.fixture
def stripe_event():
    """Create a Stripe event payload dict."""

    def _create(
        event_type: str,
        obj: dict[str, Any],
        event_id: str = "evt_test123",
        created: int = 1700000000,
    ) -> dict[str, Any]:
        return {
            "id": event_id,
            "object": "event",
            "type": event_type,
            "created": created,
            "data": {"object": obj},
        }

    return _create


@pytest.fixture
def post_webhook(client):
    """POST a signed event to a webhook endpoint; returns the response."""

    def _post(url: str, event: dict[str, Any], secret: str, signature: str | None = None):
        body = json.dumps(event).encode()
        return client.post(
            url,
            data=body,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=signature if signature is not None else sign_payload(body, secret),
        )

    return _post
