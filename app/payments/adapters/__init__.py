"""
Payment adapters for external services.

All Stripe API calls go through StripeAdapter to ensure consistent error
handling, timeouts, idempotency, and observability.

Usage:
    from payments.adapters import StripeAdapter
    from payments.config import StripeConfig

    adapter = StripeAdapter(StripeConfig.from_settings())
    account = adapter.retrieve_account("acct_123")
"""

from payments.adapters.stripe_adapter import (
    AccountResult,
    BalanceResult,
    CheckoutSessionResult,
    CreateAccountParams,
    CreatePaymentIntentParams,
    PaymentIntentResult,
    StripeAdapter,
)

__all__ = [
    "AccountResult",
    "BalanceResult",
    "CheckoutSessionResult",
    "CreateAccountParams",
    "CreatePaymentIntentParams",
    "PaymentIntentResult",
    "StripeAdapter",
]
