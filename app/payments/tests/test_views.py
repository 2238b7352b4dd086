"""
Tests for the payments API views.

StripeAdapter is patched where the views import it, so every request runs
the real services against a mock adapter.
"""

from unittest.mock import patch

import pytest
from django.urls import reverse

from bars.models import Bar
from bars.tests.factories import BarFactory
from payments.adapters import (
    AccountResult,
    BalanceResult,
    CheckoutSessionResult,
    PaymentIntentResult,
)
from payments.exceptions import ProviderError, ProviderTimeoutError
from payments.models import Subscription
from payments.state_machines import ConnectAccountStatus, SubscriptionTier
from payments.tests.factories import SubscriptionFactory


@pytest.fixture
def adapter(stripe_settings):
    """The adapter instance the views construct."""
    with patch("payments.views.StripeAdapter", autospec=True) as adapter_class:
        yield adapter_class.return_value


def connect_url(action=None, **params):
    url = reverse("payments:stripe_connect")
    query = {"action": action, **params} if action else params
    if query:
        url += "?" + "&".join(f"{key}={value}" for key, value in query.items())
    return url


def intent(id="pi_test123", status="requires_payment_method", amount=5000, fee=None):
    return PaymentIntentResult(
        id=id,
        status=status,
        amount_cents=amount,
        currency="usd",
        client_secret=f"{id}_secret_abc",
        application_fee_amount=fee,
        destination_account_id="acct_owned" if fee is not None else None,
    )


# =============================================================================
# Authentication
# =============================================================================


@pytest.mark.django_db
class TestAuthentication:
    @pytest.mark.parametrize(
        "name,method",
        [
            ("payments:stripe_connect", "get"),
            ("payments:account_management", "post"),
            ("payments:payment_intents", "post"),
            ("payments:subscription_checkout", "post"),
            ("payments:subscription_limits", "get"),
        ],
    )
    def test_requires_authentication(self, api_client, name, method):
        response = getattr(api_client, method)(reverse(name))

        assert response.status_code == 401


# =============================================================================
# Stripe Connect
# =============================================================================


@pytest.mark.django_db
class TestStripeConnectView:
    def test_unknown_action(self, authenticated_client, adapter):
        response = authenticated_client.get(connect_url("explode"))

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid action"

    def test_missing_action(self, authenticated_client, adapter):
        response = authenticated_client.post(connect_url())

        assert response.status_code == 400

    def test_post_action_via_get(self, authenticated_client, adapter):
        response = authenticated_client.get(connect_url("create-account"))

        assert response.status_code == 405

    def test_get_action_via_post(self, authenticated_client, adapter):
        response = authenticated_client.post(connect_url("get-account"))

        assert response.status_code == 405

    def test_create_account_links_bar(self, authenticated_client, adapter, user):
        bar = BarFactory(owner_id=str(user.pk))
        adapter.create_account.return_value = AccountResult(id="acct_new")
        adapter.create_account_link.return_value = "https://connect.stripe.com/setup/e/abc"

        response = authenticated_client.post(
            connect_url("create-account"),
            {"email": "owner@example.com", "businessName": "Sunset Shack", "barId": str(bar.pk)},
            format="json",
        )

        assert response.status_code == 201
        assert response.json() == {
            "accountId": "acct_new",
            "onboardingUrl": "https://connect.stripe.com/setup/e/abc",
        }
        bar.refresh_from_db()
        assert bar.connect_account_id == "acct_new"
        assert bar.connect_account_status == ConnectAccountStatus.PENDING
        params = adapter.create_account.call_args.args[0]
        assert params.owner_id == str(user.pk)

    def test_create_account_missing_fields(self, authenticated_client, adapter):
        response = authenticated_client.post(
            connect_url("create-account"), {"email": "owner@example.com"}, format="json"
        )

        assert response.status_code == 400
        adapter.create_account.assert_not_called()

    def test_create_account_for_foreign_bar(self, authenticated_client, adapter):
        bar = BarFactory(owner_id="someone_else")

        response = authenticated_client.post(
            connect_url("create-account"),
            {"email": "owner@example.com", "businessName": "Sunset Shack", "barId": str(bar.pk)},
            format="json",
        )

        assert response.status_code == 404
        adapter.create_account.assert_not_called()

    def test_get_account_syncs_bar(self, authenticated_client, adapter, user):
        bar = BarFactory(owner_id=str(user.pk), connect_account_id="acct_owned")
        adapter.retrieve_account.return_value = AccountResult(
            id="acct_owned",
            charges_enabled=True,
            payouts_enabled=True,
            details_submitted=True,
            metadata={"ownerId": str(user.pk), "platform": "ebar"},
        )
        adapter.retrieve_balance.return_value = BalanceResult(
            available=[{"amount": 1500, "currency": "usd"}],
            pending=[{"amount": 0, "currency": "usd"}],
        )

        response = authenticated_client.get(connect_url("get-account", accountId="acct_owned"))

        assert response.status_code == 200
        data = response.json()
        assert data["accountId"] == "acct_owned"
        assert data["isOnboarded"] is True
        assert data["status"] == "active"
        assert data["chargesEnabled"] is True
        assert data["payoutsEnabled"] is True
        assert data["currentlyDue"] == []
        assert data["pastDue"] == []
        assert data["paymentSetupComplete"] is True
        assert data["availableBalance"] == 1500
        bar.refresh_from_db()
        assert bar.connect_account_status == ConnectAccountStatus.ACTIVE
        assert bar.payment_setup_complete

    def test_get_account_lists_outstanding_requirements(self, authenticated_client, adapter):
        adapter.retrieve_account.return_value = AccountResult(
            id="acct_owned",
            charges_enabled=False,
            payouts_enabled=False,
            details_submitted=True,
            requirements={
                "currently_due": ["external_account"],
                "eventually_due": ["individual.id_number"],
                "past_due": [],
                "pending_verification": ["individual.verification.document"],
                "disabled_reason": "requirements.past_due",
            },
        )
        adapter.retrieve_balance.return_value = BalanceResult(available=[], pending=[])

        response = authenticated_client.get(connect_url("get-account", accountId="acct_owned"))

        data = response.json()
        assert data["isOnboarded"] is False
        assert data["status"] == "restricted"
        assert data["currentlyDue"] == ["external_account"]
        assert data["eventuallyDue"] == ["individual.id_number"]
        assert data["pendingVerification"] == ["individual.verification.document"]
        assert data["disabledReason"] == "requirements.past_due"

    def test_get_account_requires_account_id(self, authenticated_client, adapter):
        response = authenticated_client.get(connect_url("get-account"))

        assert response.status_code == 400
        assert "accountId" in response.json()["details"]

    def test_get_account_provider_error(self, authenticated_client, adapter):
        adapter.retrieve_account.side_effect = ProviderError(
            "No such account", reason=ProviderError.RESOURCE_MISSING
        )

        response = authenticated_client.get(connect_url("get-account", accountId="acct_gone"))

        assert response.status_code == 502
        assert response.json()["details"]["reason"] == "resource_missing"

    def test_account_link(self, authenticated_client, adapter):
        adapter.create_account_link.return_value = "https://connect.stripe.com/setup/e/xyz"

        response = authenticated_client.post(
            connect_url("create-account-link"), {"accountId": "acct_owned"}, format="json"
        )

        assert response.status_code == 200
        assert response.json() == {
            "accountId": "acct_owned",
            "onboardingUrl": "https://connect.stripe.com/setup/e/xyz",
        }

    def test_login_link(self, authenticated_client, adapter):
        adapter.create_login_link.return_value = "https://connect.stripe.com/express/abc"

        response = authenticated_client.post(
            connect_url("login-link"), {"accountId": "acct_owned"}, format="json"
        )

        assert response.json() == {"url": "https://connect.stripe.com/express/abc"}

    def test_debug_account(self, authenticated_client, adapter):
        adapter.retrieve_account.return_value = AccountResult(
            id="acct_owned", requirements={"past_due": ["external_account"]}
        )

        response = authenticated_client.get(connect_url("debug-account", accountId="acct_owned"))

        assert response.status_code == 200
        assert response.json()["recommendations"][0]["priority"] == "URGENT"

    def test_payment_stats(self, authenticated_client, adapter):
        adapter.retrieve_balance.return_value = BalanceResult()
        adapter.list_charges.return_value = [
            {"id": "ch_1", "amount": 5000, "application_fee_amount": 150, "status": "succeeded"}
        ]
        adapter.list_payouts.return_value = []

        response = authenticated_client.get(connect_url("payment-stats", accountId="acct_owned"))

        assert response.status_code == 200
        assert response.json()["netEarnings"] == 4850


# =============================================================================
# Account management
# =============================================================================


@pytest.mark.django_db
class TestAccountManagementView:
    url = "/api/v1/account-management/"

    def test_disconnect_single(self, authenticated_client, adapter, owned_bar):
        adapter.retrieve_account.return_value = AccountResult(id="acct_owned")

        response = authenticated_client.post(
            self.url, {"action": "disconnect-single", "accountId": "acct_owned"}, format="json"
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Stripe account disconnected successfully",
            "deletedAccountId": "acct_owned",
        }
        adapter.delete_account.assert_called_once_with("acct_owned")
        owned_bar.refresh_from_db()
        assert owned_bar.connect_account_id is None

    def test_disconnect_with_balance(self, authenticated_client, adapter, owned_bar):
        adapter.retrieve_account.return_value = AccountResult(id="acct_owned", livemode=True)
        adapter.retrieve_balance.return_value = BalanceResult(
            available=[{"amount": 900, "currency": "usd"}]
        )

        response = authenticated_client.post(
            self.url, {"action": "disconnect-single", "accountId": "acct_owned"}, format="json"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["reason"] == "non_zero_balance"
        adapter.delete_account.assert_not_called()
        owned_bar.refresh_from_db()
        assert owned_bar.connect_account_id == "acct_owned"

    def test_disconnect_provider_failure(self, authenticated_client, adapter, owned_bar):
        adapter.retrieve_account.return_value = AccountResult(id="acct_owned")
        adapter.delete_account.side_effect = ProviderError("Stripe is down")

        response = authenticated_client.post(
            self.url, {"action": "disconnect-single", "accountId": "acct_owned"}, format="json"
        )

        assert response.status_code == 502
        data = response.json()
        assert data["success"] is False
        assert data["reason"] == "unknown"
        owned_bar.refresh_from_db()
        assert owned_bar.connect_account_id == "acct_owned"

    def test_disconnect_requires_account_id(self, authenticated_client, adapter):
        response = authenticated_client.post(
            self.url, {"action": "disconnect-single"}, format="json"
        )

        assert response.status_code == 400

    def test_disconnect_foreign_account(self, authenticated_client, adapter):
        BarFactory(owner_id="someone_else", connect_account_id="acct_theirs")

        response = authenticated_client.post(
            self.url, {"action": "disconnect-single", "accountId": "acct_theirs"}, format="json"
        )

        assert response.status_code == 404
        adapter.delete_account.assert_not_called()

    def test_invalid_action(self, authenticated_client, adapter):
        response = authenticated_client.post(self.url, {"action": "nuke"}, format="json")

        assert response.status_code == 400

    def test_delete_user_accounts(self, authenticated_client, adapter, user):
        BarFactory(owner_id=str(user.pk), connect_account_id="acct_a")
        BarFactory(owner_id=str(user.pk), connect_account_id="acct_b")
        adapter.retrieve_account.side_effect = lambda account_id: AccountResult(id=account_id)

        response = authenticated_client.post(
            self.url, {"action": "delete-user-accounts"}, format="json"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["deletedCount"] == 2
        assert not Bar.objects.exclude(connect_account_id__isnull=True).exists()

    def test_delete_user_accounts_accepts_own_user_id(self, authenticated_client, adapter, user):
        BarFactory(owner_id=str(user.pk), connect_account_id="acct_a")
        adapter.retrieve_account.return_value = AccountResult(id="acct_a")

        response = authenticated_client.post(
            self.url,
            {"action": "delete-user-accounts", "userId": str(user.pk)},
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["deletedCount"] == 1

    def test_delete_user_accounts_rejects_other_user(self, authenticated_client, adapter):
        BarFactory(owner_id="someone_else", connect_account_id="acct_theirs")

        response = authenticated_client.post(
            self.url,
            {"action": "delete-user-accounts", "userId": "someone_else"},
            format="json",
        )

        assert response.status_code == 403
        adapter.delete_account.assert_not_called()
        assert Bar.objects.get(owner_id="someone_else").connect_account_id == "acct_theirs"

    def test_delete_user_accounts_none(self, authenticated_client, adapter):
        response = authenticated_client.post(
            self.url, {"action": "delete-user-accounts"}, format="json"
        )

        assert response.json() == {
            "success": True,
            "message": "No Stripe Connect accounts found",
            "deletedCount": 0,
        }


# =============================================================================
# Payments
# =============================================================================


@pytest.mark.django_db
class TestPaymentIntentView:
    url = "/api/v1/payments/intents/"

    def test_split_payment(self, authenticated_client, adapter, user):
        adapter.retrieve_account.return_value = AccountResult(
            id="acct_owned", charges_enabled=True
        )
        adapter.create_payment_intent.return_value = intent(fee=150)

        response = authenticated_client.post(
            self.url,
            {"amount": 5000, "barAccountId": "acct_owned", "bookingId": "bk_1"},
            format="json",
        )

        assert response.status_code == 201
        data = response.json()
        assert data["platformFee"] == 150
        assert data["ownerAmount"] == 4850
        assert data["clientSecret"] == "pi_test123_secret_abc"
        params = adapter.create_payment_intent.call_args.args[0]
        assert params.idempotency_key == "booking-payment:bk_1:5000"
        assert params.metadata["customer_id"] == str(user.pk)
        assert params.metadata["booking_id"] == "bk_1"

    def test_fee_rate_from_settings(self, authenticated_client, adapter, settings):
        settings.PLATFORM_FEE_BASIS_POINTS = 500
        adapter.retrieve_account.return_value = AccountResult(
            id="acct_owned", charges_enabled=True
        )
        adapter.create_payment_intent.return_value = intent(fee=500, amount=10000)

        response = authenticated_client.post(
            self.url, {"amount": 10000, "barAccountId": "acct_owned"}, format="json"
        )

        assert response.json()["platformFee"] == 500

    def test_account_not_ready(self, authenticated_client, adapter):
        adapter.retrieve_account.return_value = AccountResult(id="acct_owned")

        response = authenticated_client.post(
            self.url, {"amount": 5000, "barAccountId": "acct_owned"}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "ACCOUNT_NOT_READY"
        adapter.create_payment_intent.assert_not_called()

    @pytest.mark.parametrize("amount", [0, -5, "abc"])
    def test_invalid_amount(self, authenticated_client, adapter, amount):
        response = authenticated_client.post(self.url, {"amount": amount}, format="json")

        assert response.status_code == 400
        adapter.create_payment_intent.assert_not_called()

    def test_provider_timeout(self, authenticated_client, adapter):
        adapter.create_payment_intent.side_effect = ProviderTimeoutError("Stripe timed out")

        response = authenticated_client.post(self.url, {"amount": 5000}, format="json")

        assert response.status_code == 504
        assert response.json()["error_code"] == "PROVIDER_TIMEOUT"


@pytest.mark.django_db
class TestConfirmPaymentView:
    url = "/api/v1/payments/confirm/"

    def test_confirm(self, authenticated_client, adapter):
        adapter.retrieve_payment_intent.return_value = intent(status="succeeded", fee=150)

        response = authenticated_client.post(
            self.url, {"paymentIntentId": "pi_test123"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["status"] == "succeeded"
        assert response.json()["merchantNet"] == 4850

    def test_requires_payment_intent_id(self, authenticated_client, adapter):
        response = authenticated_client.post(self.url, {}, format="json")

        assert response.status_code == 400


# =============================================================================
# Subscriptions
# =============================================================================


@pytest.mark.django_db
class TestSubscriptionViews:
    def test_checkout(self, authenticated_client, adapter):
        adapter.create_subscription_checkout_session.return_value = CheckoutSessionResult(
            id="cs_test123", url="https://checkout.stripe.com/c/pay/cs_test123"
        )

        response = authenticated_client.post(
            "/api/v1/subscriptions/checkout/", {"tier": "premium"}, format="json"
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "checkoutUrl": "https://checkout.stripe.com/c/pay/cs_test123",
            "sessionId": "cs_test123",
        }
        kwargs = adapter.create_subscription_checkout_session.call_args.kwargs
        assert kwargs["price_id"] == "price_premium"
        assert kwargs["customer_email"] == "owner@example.com"

    def test_checkout_invalid_tier(self, authenticated_client, adapter):
        response = authenticated_client.post(
            "/api/v1/subscriptions/checkout/", {"tier": "gold"}, format="json"
        )

        assert response.status_code == 400

    def test_record_booking(self, authenticated_client, active_subscription):
        response = authenticated_client.post("/api/v1/subscriptions/bookings/")

        assert response.status_code == 200
        assert response.json() == {"success": True, "bookingsUsed": 1}

    def test_record_booking_without_subscription(self, authenticated_client):
        response = authenticated_client.post("/api/v1/subscriptions/bookings/")

        assert response.status_code == 404

    def test_record_booking_limit_reached(self, authenticated_client, user):
        subscription = SubscriptionFactory(
            user_id=str(user.pk), tier=SubscriptionTier.STARTER, bookings_used=100
        )

        response = authenticated_client.post("/api/v1/subscriptions/bookings/")

        assert response.status_code == 400
        assert Subscription.objects.get(pk=subscription.pk).bookings_used == 100

    def test_limits(self, authenticated_client, active_subscription):
        response = authenticated_client.get("/api/v1/subscriptions/limits/")

        assert response.json() == {
            "tier": "starter",
            "limit": 100,
            "currentUsage": 0,
            "remaining": 100,
            "canBook": True,
        }

    def test_limits_without_subscription(self, authenticated_client):
        response = authenticated_client.get("/api/v1/subscriptions/limits/")

        assert response.json()["canBook"] is False
        assert response.json()["tier"] is None
