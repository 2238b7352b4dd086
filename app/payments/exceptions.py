"""
Payment-specific exceptions for settlement operations.

Stripe SDK errors are translated into this hierarchy in exactly one place,
the Stripe adapter; everything above the adapter only sees these types.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── ValidationError - Malformed caller input (400)
    ├── ConfigurationError - Missing platform configuration (500)
    ├── AccountNotReadyError - Connected account cannot take charges (400)
    ├── SignatureVerificationError - Webhook signature rejected (400)
    ├── UnsupportedEventError - Event type outside the handled set (400)
    ├── InvalidStateTransitionError - Non-monotonic status change (409)
    └── ProviderError - Stripe call failed (502)
        ├── ProviderUnavailableError - Stripe unreachable or 5xx (502)
        └── ProviderTimeoutError - Client timeout exceeded (504)

Usage:
    from payments.exceptions import AccountNotReadyError

    if not account.charges_enabled:
        raise AccountNotReadyError(
            "Connected account cannot accept charges yet",
            details={"account_id": account.account_id},
        )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import status

from core.exceptions import BaseApplicationError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    Example:
        try:
            orchestrator.create_payment(request)
        except PaymentError as e:
            logger.error(f"Payment operation failed: {e}")
            return Response(e.to_dict(), status=e.http_status)
    """

    default_error_code: str = "PAYMENT_ERROR"


class ValidationError(PaymentError):
    """
    Raised when caller input is malformed or missing.

    Use for:
    - Non-integer or negative amounts
    - Missing account ids, emails or business names
    - Out-of-range fee rates

    Example:
        if gross_amount < 0:
            raise ValidationError(
                "Amount must not be negative",
                details={"gross_amount": gross_amount},
            )
    """

    default_error_code: str = "VALIDATION_ERROR"
    http_status: int = status.HTTP_400_BAD_REQUEST


class ConfigurationError(PaymentError):
    """
    Raised when required platform configuration is missing.

    Fails fast with a distinguishable code instead of a generic 500 so
    operators can tell a deploy problem from a provider outage.
    """

    default_error_code: str = "CONFIGURATION_ERROR"
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR


class AccountNotReadyError(PaymentError):
    """
    Raised when a destination account cannot accept charges.

    The merchant must finish onboarding; the caller should send them
    through a fresh account link.
    """

    default_error_code: str = "ACCOUNT_NOT_READY"
    http_status: int = status.HTTP_400_BAD_REQUEST


class SignatureVerificationError(PaymentError):
    """Raised when a webhook payload fails signature verification."""

    default_error_code: str = "INVALID_SIGNATURE"
    http_status: int = status.HTTP_400_BAD_REQUEST


class UnsupportedEventError(PaymentError):
    """Raised when a webhook event type has no handler."""

    default_error_code: str = "UNSUPPORTED_EVENT"
    http_status: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        event_type: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if event_type:
            details["event_type"] = event_type
        super().__init__(message, details=details)
        self.event_type = event_type


class InvalidStateTransitionError(PaymentError):
    """
    Raised when a status change would move a record backwards.

    Example:
        raise InvalidStateTransitionError(
            "Cannot move payment from 'succeeded' to 'processing'",
            details={"current_state": "succeeded", "target_state": "processing"},
        )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"
    http_status: int = status.HTTP_409_CONFLICT


# =============================================================================
# Provider (Stripe) Exceptions
# =============================================================================


class ProviderError(PaymentError):
    """
    Raised when a Stripe call fails.

    Attributes:
        reason: Classified failure reason used by account deletion:
            - resource_missing: the object does not exist on Stripe
            - non_zero_balance: live account still holds funds
            - unknown: anything else
        stripe_code: Stripe's own error code, if any
        is_retryable: Whether the caller may retry with backoff

    Example:
        try:
            adapter.delete_account(account_id)
        except ProviderError as e:
            if e.reason == ProviderError.RESOURCE_MISSING:
                ...
    """

    RESOURCE_MISSING = "resource_missing"
    NON_ZERO_BALANCE = "non_zero_balance"
    UNKNOWN = "unknown"

    default_error_code: str = "PROVIDER_ERROR"
    http_status: int = status.HTTP_502_BAD_GATEWAY
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        reason: str = UNKNOWN,
        error_code: str | None = None,
        stripe_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        details["reason"] = reason
        if stripe_code:
            details["stripe_code"] = stripe_code
        super().__init__(message, error_code=error_code, details=details)
        self.reason = reason
        self.stripe_code = stripe_code


class ProviderUnavailableError(ProviderError):
    """Stripe could not be reached, rate limited us, or returned a 5xx."""

    default_error_code: str = "PROVIDER_UNAVAILABLE"
    is_retryable: bool = True


class ProviderTimeoutError(ProviderError):
    """
    Stripe did not answer within the client timeout.

    The outcome of the call is unknown; retry with the same idempotency key.
    """

    default_error_code: str = "PROVIDER_TIMEOUT"
    http_status: int = status.HTTP_504_GATEWAY_TIMEOUT
    is_retryable: bool = True
