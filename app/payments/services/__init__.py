"""
Payment services.

This module provides:
- SplitPaymentOrchestrator: Creates split and standard PaymentIntents
- ConnectAccountService: Connected account lifecycle for bar owners
- BarConnectStatusService: Keeps cached bar connect status current
- BulkAccountTeardown: Deletes all of a user's connected accounts
- SubscriptionCheckoutService: Starts subscription checkout
- BookingUsageService: Tracks bookings against the plan limit

Usage:
    from payments.services import CheckoutRequest, SplitPaymentOrchestrator

    outcome = SplitPaymentOrchestrator(adapter).create_payment(
        CheckoutRequest(gross_amount=5000, destination_account_id="acct_123")
    )
"""

from payments.services.account_teardown import BulkAccountTeardown, BulkTeardownReport
from payments.services.connect_accounts import (
    BarConnectStatusService,
    ConnectAccount,
    ConnectAccountService,
    DeletionResult,
    derive_account_status,
)
from payments.services.payment_orchestrator import (
    CheckoutRequest,
    PaymentIntentOutcome,
    SplitPayment,
    SplitPaymentOrchestrator,
    build_idempotency_key,
)
from payments.services.subscriptions import (
    BookingUsageService,
    SubscriptionCheckoutService,
)

__all__ = [
    "BarConnectStatusService",
    "BookingUsageService",
    "BulkAccountTeardown",
    "BulkTeardownReport",
    "CheckoutRequest",
    "ConnectAccount",
    "ConnectAccountService",
    "DeletionResult",
    "PaymentIntentOutcome",
    "SplitPayment",
    "SplitPaymentOrchestrator",
    "SubscriptionCheckoutService",
    "build_idempotency_key",
    "derive_account_status",
]
