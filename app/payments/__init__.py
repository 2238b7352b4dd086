"""
Payments app for Stripe integration.

This app handles:
- Platform fee calculation and split PaymentIntents
- Connected account lifecycle and bulk teardown
- Subscription state driven by Stripe billing webhooks
- Booking usage against subscription tier limits

Related apps:
    - bars: Bars whose owners receive split payments

Usage:
    from payments.services import CheckoutRequest, SplitPaymentOrchestrator

    outcome = SplitPaymentOrchestrator(adapter).create_payment(
        CheckoutRequest(gross_amount=5000, destination_account_id="acct_123")
    )
"""
