"""
State machine enums and helpers for payment models.

This module defines the state enums used by payment models with django-fsm.
"""

from payments.state_machines.states import (
    SPLIT_PAYMENT_TRANSITIONS,
    TIER_BOOKING_LIMITS,
    ConnectAccountStatus,
    DeletionReason,
    SplitPaymentStatus,
    SubscriptionStatus,
    SubscriptionTier,
    WebhookEventStatus,
)

__all__ = [
    "SPLIT_PAYMENT_TRANSITIONS",
    "TIER_BOOKING_LIMITS",
    "ConnectAccountStatus",
    "DeletionReason",
    "SplitPaymentStatus",
    "SubscriptionStatus",
    "SubscriptionTier",
    "WebhookEventStatus",
]
