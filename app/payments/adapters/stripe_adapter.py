"""
Stripe API adapter for settlement operations.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions. All Stripe calls should go through this
adapter to ensure consistent error handling, timeouts, idempotency,
and observability.

Features:
- One StripeClient per adapter instance, built from an injected StripeConfig
- Client-side timeout on every call, no SDK-level retries by default
- Automatic error translation to payments.exceptions
- Structured logging with timing metrics
- Idempotency support for safe caller retries

Usage:
    from payments.adapters import StripeAdapter, CreatePaymentIntentParams
    from payments.config import StripeConfig

    adapter = StripeAdapter(StripeConfig.from_settings())
    result = adapter.create_payment_intent(
        CreatePaymentIntentParams(
            amount_cents=5000,
            currency="usd",
            application_fee_amount=150,
            destination_account_id="acct_123",
            idempotency_key="booking:bk_1:5000",
        )
    )
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import stripe

from payments.exceptions import (
    ConfigurationError,
    ProviderError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    SignatureVerificationError,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from payments.config import StripeConfig


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreatePaymentIntentParams:
    """
    Parameters for creating a Stripe PaymentIntent.

    Attributes:
        amount_cents: Payment amount in smallest currency unit (e.g., cents)
        currency: ISO 4217 currency code
        idempotency_key: Optional key making caller retries safe
        metadata: Key-value pairs to attach to the PaymentIntent
        application_fee_amount: Platform fee withheld on a split payment
        destination_account_id: Connected account receiving the net amount
    """

    amount_cents: int
    currency: str
    idempotency_key: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    application_fee_amount: int | None = None
    destination_account_id: str | None = None

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.currency:
            raise ValueError("currency is required")
        if self.application_fee_amount is not None and not self.destination_account_id:
            raise ValueError("application_fee_amount requires a destination account")


@dataclass
class PaymentIntentResult:
    """
    Result from Stripe PaymentIntent operations.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: Current status (requires_payment_method, succeeded, etc.)
        amount_cents: Amount in cents
        currency: Currency code
        client_secret: Secret for client-side confirmation
        application_fee_amount: Platform fee, if a split payment
        destination_account_id: Transfer destination, if a split payment
        last_payment_error: Decline message of the latest failed attempt
        metadata: Attached metadata
        raw_response: Full Stripe response dict (for debugging)
    """

    id: str
    status: str
    amount_cents: int
    currency: str
    client_secret: str | None = None
    application_fee_amount: int | None = None
    destination_account_id: str | None = None
    last_payment_error: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class CreateAccountParams:
    """
    Parameters for creating an Express connected account.

    Attributes:
        email: Merchant contact email
        business_name: Public business name shown on statements
        owner_id: Platform user owning the account (stored in metadata)
        bar_id: Bar the account is created for, if any (stored in metadata)
        country: Two-letter country code
        product_description: Business description for the profile
    """

    email: str
    business_name: str
    owner_id: str
    bar_id: str | None = None
    country: str = "US"
    product_description: str = "Beach bar services and rentals"

    def __post_init__(self) -> None:
        if not self.email:
            raise ValueError("email is required")
        if not self.business_name:
            raise ValueError("business_name is required")
        if not self.owner_id:
            raise ValueError("owner_id is required")


@dataclass
class AccountResult:
    """
    Result from Stripe Account operations.

    Attributes:
        id: Account ID (acct_xxx)
        charges_enabled: Whether the account can accept charges
        payouts_enabled: Whether the account can receive payouts
        details_submitted: Whether onboarding details were submitted
        livemode: Live (True) or test mode account
        email: Account email
        business_name: Business profile name
        country: Account country
        default_currency: Default settlement currency
        created: Creation timestamp (unix seconds)
        requirements: Outstanding requirements (currently_due, past_due, ...)
        metadata: Attached metadata
        raw_response: Full Stripe response dict (for diagnostics)
    """

    id: str
    charges_enabled: bool = False
    payouts_enabled: bool = False
    details_submitted: bool = False
    livemode: bool = False
    email: str | None = None
    business_name: str | None = None
    country: str | None = None
    default_currency: str | None = None
    created: int | None = None
    requirements: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class BalanceResult:
    """
    Balance of a connected account.

    Attributes:
        available: Per-currency entries ({"amount", "currency"}) available for payout
        pending: Per-currency entries not yet available
    """

    available: list[dict[str, Any]] = field(default_factory=list)
    pending: list[dict[str, Any]] = field(default_factory=list)

    @property
    def available_cents(self) -> int:
        return sum(entry["amount"] for entry in self.available)

    @property
    def pending_cents(self) -> int:
        return sum(entry["amount"] for entry in self.pending)

    @property
    def total_cents(self) -> int:
        return self.available_cents + self.pending_cents


@dataclass
class CheckoutSessionResult:
    """Result from Stripe Checkout Session creation."""

    id: str
    url: str | None = None


def _as_dict(value: Any) -> dict[str, Any]:
    """Convert a StripeObject (or None) into a plain dict."""
    if value is None:
        return {}
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return dict(value)


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    Each instance wraps its own StripeClient configured from a StripeConfig.
    Instances hold no mutable state after construction and are safe to share
    across threads (the bulk teardown fans out on one adapter).

    Usage:
        adapter = StripeAdapter(config)
        account = adapter.retrieve_account("acct_123")

        # Tests inject a fake client
        adapter = StripeAdapter(config, client=MagicMock())
    """

    def __init__(self, config: StripeConfig, client: stripe.StripeClient | None = None):
        self.config = config
        self._client = client or stripe.StripeClient(
            config.secret_key,
            http_client=stripe.RequestsClient(timeout=config.timeout_seconds),
            max_network_retries=config.max_network_retries,
        )

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    def _execute(self, log_context: dict[str, Any], call: Callable[[], Any]) -> Any:
        """
        Run one Stripe call with timing logs and error translation.

        Args:
            log_context: Structured logging context, must include "operation"
            call: Zero-argument callable performing the SDK request

        Returns:
            Whatever the SDK call returned
        """
        logger = self.get_logger()
        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            response = call()
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self._handle_stripe_error(e, log_context, duration_ms)
            raise  # Never reached, but satisfies type checker

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe operation completed",
            extra={**log_context, "duration_ms": duration_ms},
        )
        return response

    # =========================================================================
    # Payment Intents
    # =========================================================================

    def create_payment_intent(
        self,
        params: CreatePaymentIntentParams,
    ) -> PaymentIntentResult:
        """
        Create a Stripe PaymentIntent.

        A split payment sets ``application_fee_amount`` and
        ``transfer_data.destination`` on the same request, so the fee and the
        merchant transfer are recorded by Stripe in one atomic operation.

        Raises:
            ProviderError: Invalid request, card error or unknown failure
            ProviderUnavailableError: Stripe unreachable or 5xx
            ProviderTimeoutError: Request exceeded the client timeout
        """
        request: dict[str, Any] = {
            "amount": params.amount_cents,
            "currency": params.currency,
            "metadata": params.metadata,
            "automatic_payment_methods": {"enabled": True},
        }
        if params.destination_account_id:
            request["transfer_data"] = {"destination": params.destination_account_id}
            if params.application_fee_amount is not None:
                request["application_fee_amount"] = params.application_fee_amount

        options = {}
        if params.idempotency_key:
            options["idempotency_key"] = params.idempotency_key

        log_context = {
            "operation": "create_payment_intent",
            "amount_cents": params.amount_cents,
            "currency": params.currency,
            "destination_account_id": params.destination_account_id,
            "application_fee_amount": params.application_fee_amount,
            "idempotency_key": params.idempotency_key,
        }
        intent = self._execute(
            log_context,
            lambda: self._client.v1.payment_intents.create(params=request, options=options),
        )
        return self._to_payment_intent_result(intent)

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentResult:
        """Retrieve a PaymentIntent by id."""
        intent = self._execute(
            {"operation": "retrieve_payment_intent", "payment_intent_id": payment_intent_id},
            lambda: self._client.v1.payment_intents.retrieve(payment_intent_id),
        )
        return self._to_payment_intent_result(intent)

    @staticmethod
    def _to_payment_intent_result(intent: Any) -> PaymentIntentResult:
        transfer_data = _as_dict(intent.transfer_data)
        return PaymentIntentResult(
            id=intent.id,
            status=intent.status,
            amount_cents=intent.amount,
            currency=intent.currency,
            client_secret=intent.client_secret,
            application_fee_amount=intent.application_fee_amount,
            destination_account_id=transfer_data.get("destination"),
            last_payment_error=_as_dict(intent.last_payment_error).get("message"),
            metadata=_as_dict(intent.metadata),
            raw_response=_as_dict(intent),
        )

    # =========================================================================
    # Connected Accounts
    # =========================================================================

    def create_account(self, params: CreateAccountParams) -> AccountResult:
        """
        Create an Express connected account with card payments and transfers.

        Raises:
            ProviderError: Stripe rejected the request
        """
        request = {
            "type": "express",
            "country": params.country,
            "email": params.email,
            "capabilities": {
                "card_payments": {"requested": True},
                "transfers": {"requested": True},
            },
            "business_profile": {
                "name": params.business_name,
                "product_description": params.product_description,
            },
            "metadata": {
                "ownerId": params.owner_id,
                "platform": "ebar",
            },
        }
        if params.bar_id:
            request["metadata"]["barId"] = params.bar_id
        account = self._execute(
            {"operation": "create_account", "owner_id": params.owner_id},
            lambda: self._client.v1.accounts.create(params=request),
        )
        return self._to_account_result(account)

    def retrieve_account(self, account_id: str) -> AccountResult:
        """
        Retrieve a connected account.

        Raises:
            ProviderError: reason ``resource_missing`` if the account is gone
        """
        account = self._execute(
            {"operation": "retrieve_account", "account_id": account_id},
            lambda: self._client.v1.accounts.retrieve(account_id),
        )
        return self._to_account_result(account)

    def delete_account(self, account_id: str) -> bool:
        """
        Delete a connected account.

        Returns:
            The ``deleted`` flag reported by Stripe

        Raises:
            ProviderError: reason ``resource_missing``, ``non_zero_balance``
                or ``unknown``
        """
        deleted = self._execute(
            {"operation": "delete_account", "account_id": account_id},
            lambda: self._client.v1.accounts.delete(account_id),
        )
        return bool(deleted.deleted)

    def retrieve_balance(self, account_id: str) -> BalanceResult:
        """Retrieve the balance held by a connected account."""
        balance = self._execute(
            {"operation": "retrieve_balance", "account_id": account_id},
            lambda: self._client.v1.balance.retrieve(
                options={"stripe_account": account_id}
            ),
        )
        return BalanceResult(
            available=[
                {"amount": entry["amount"], "currency": entry["currency"]}
                for entry in balance.available or []
            ],
            pending=[
                {"amount": entry["amount"], "currency": entry["currency"]}
                for entry in balance.pending or []
            ],
        )

    def create_account_link(
        self,
        account_id: str,
        refresh_url: str,
        return_url: str,
    ) -> str:
        """Create an onboarding link and return its URL."""
        link = self._execute(
            {"operation": "create_account_link", "account_id": account_id},
            lambda: self._client.v1.account_links.create(
                params={
                    "account": account_id,
                    "refresh_url": refresh_url,
                    "return_url": return_url,
                    "type": "account_onboarding",
                }
            ),
        )
        return link.url

    def create_login_link(self, account_id: str) -> str:
        """Create an Express dashboard login link and return its URL."""
        link = self._execute(
            {"operation": "create_login_link", "account_id": account_id},
            lambda: self._client.v1.accounts.login_links.create(account_id),
        )
        return link.url

    def list_charges(
        self,
        account_id: str,
        created_since: int,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """List charges on a connected account created at or after a timestamp."""
        charges = self._execute(
            {"operation": "list_charges", "account_id": account_id},
            lambda: self._client.v1.charges.list(
                params={"limit": limit, "created": {"gte": created_since}},
                options={"stripe_account": account_id},
            ),
        )
        return [_as_dict(charge) for charge in charges.data]

    def list_payouts(self, account_id: str, limit: int = 50) -> list[dict[str, Any]]:
        """List payouts of a connected account, newest first."""
        payouts = self._execute(
            {"operation": "list_payouts", "account_id": account_id},
            lambda: self._client.v1.payouts.list(
                params={"limit": limit},
                options={"stripe_account": account_id},
            ),
        )
        return [_as_dict(payout) for payout in payouts.data]

    @staticmethod
    def _to_account_result(account: Any) -> AccountResult:
        business_profile = _as_dict(account.business_profile)
        return AccountResult(
            id=account.id,
            charges_enabled=bool(account.charges_enabled),
            payouts_enabled=bool(account.payouts_enabled),
            details_submitted=bool(account.details_submitted),
            livemode=bool(account.livemode),
            email=account.email,
            business_name=business_profile.get("name"),
            country=account.country,
            default_currency=account.default_currency,
            created=account.created,
            requirements=_as_dict(account.requirements),
            metadata=_as_dict(account.metadata),
            raw_response=_as_dict(account),
        )

    # =========================================================================
    # Billing
    # =========================================================================

    def create_subscription_checkout_session(
        self,
        price_id: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        customer_id: str | None = None,
        customer_email: str | None = None,
    ) -> CheckoutSessionResult:
        """
        Create a subscription-mode Checkout Session.

        The same metadata is set on the session and on the subscription it
        creates, so subscription webhook events carry it.
        """
        request: dict[str, Any] = {
            "mode": "subscription",
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "subscription_data": {"metadata": metadata},
        }
        if customer_id:
            request["customer"] = customer_id
        elif customer_email:
            request["customer_email"] = customer_email

        session = self._execute(
            {"operation": "create_checkout_session", "price_id": price_id},
            lambda: self._client.v1.checkout.sessions.create(params=request),
        )
        return CheckoutSessionResult(id=session.id, url=session.url)

    # =========================================================================
    # Webhooks
    # =========================================================================

    def verify_webhook_signature(
        self,
        payload: bytes,
        signature: str,
        secret: str,
    ) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw webhook payload bytes
            signature: Stripe-Signature header value
            secret: Signing secret of the receiving endpoint

        Returns:
            Parsed event data dict

        Raises:
            SignatureVerificationError: Missing or invalid signature, or
                a payload that is not a valid event
        """
        if not signature:
            raise SignatureVerificationError("Missing Stripe-Signature header")
        try:
            event = self._client.construct_event(payload, signature, secret)
        except stripe.SignatureVerificationError as e:
            raise SignatureVerificationError(
                "Invalid webhook signature",
                details={"error": str(e)},
            ) from e
        except ValueError as e:
            raise SignatureVerificationError(
                "Invalid webhook payload",
                details={"error": str(e)},
            ) from e
        return _as_dict(event)

    # =========================================================================
    # Error Handling
    # =========================================================================

    def _handle_stripe_error(
        self,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to payments exceptions.

        Raises:
            ProviderError: Invalid request (reason classified), card error,
                unknown failure
            ProviderUnavailableError: Rate limited, unreachable, 5xx
            ProviderTimeoutError: Client timeout exceeded
            ConfigurationError: Authentication failed (bad secret key)
        """
        logger = self.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": getattr(error, "decline_code", None)},
            )
            raise ProviderError(
                str(error.user_message or error),
                error_code="CARD_DECLINED",
                stripe_code=error.code,
            ) from error

        elif isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            raise ProviderError(
                str(error.user_message or error),
                reason=self._classify_invalid_request(error),
                stripe_code=error.code,
            ) from error

        elif isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise ProviderUnavailableError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            ) from error

        elif isinstance(error, stripe.APIConnectionError):
            if self._is_timeout(error, duration_ms):
                logger.error("Stripe request timed out", extra=log_context)
                raise ProviderTimeoutError(
                    f"Stripe did not respond within {self.config.timeout_seconds}s",
                    stripe_code="timeout",
                ) from error
            logger.error("Connection error to Stripe", extra=log_context, exc_info=True)
            raise ProviderUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise ConfigurationError(
                "Stripe authentication failed - check STRIPE_SECRET_KEY",
                details={"stripe_code": "authentication_error"},
            ) from error

        elif isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise ProviderUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            ) from error

        elif isinstance(error, stripe.StripeError):
            logger.error(
                f"Stripe error: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise ProviderError(
                str(error.user_message or error),
                stripe_code=error.code,
            ) from error

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise ProviderError(
                f"Unexpected Stripe error: {error}",
                stripe_code="unknown_error",
            ) from error

    @staticmethod
    def _classify_invalid_request(error: stripe.InvalidRequestError) -> str:
        if error.code == "resource_missing":
            return ProviderError.RESOURCE_MISSING
        if "balance" in str(error).lower():
            return ProviderError.NON_ZERO_BALANCE
        return ProviderError.UNKNOWN

    def _is_timeout(self, error: stripe.APIConnectionError, duration_ms: float) -> bool:
        message = str(error).lower()
        if "timed out" in message or "timeout" in message:
            return True
        return duration_ms >= self.config.timeout_seconds * 1000
