"""
Subscription model for bar owner plans.

A Subscription mirrors a Stripe subscription. It is keyed by the Stripe
subscription id, so replaying an event always lands on the same row, and
its status only ever changes in response to Stripe billing events.

Usage:
    from payments.models import Subscription

    subscription = Subscription.objects.select_for_update().get(pk="sub_123")
    if subscription.accepts_event_at(event.occurred_at):
        subscription.apply_status(SubscriptionStatus.PAST_DUE)
        subscription.save()
"""

from __future__ import annotations

from datetime import datetime

from django.db import models
from django.db.models import F
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel

from payments.state_machines import SubscriptionStatus, SubscriptionTier

NON_TERMINAL_STATUSES = [
    SubscriptionStatus.ACTIVE,
    SubscriptionStatus.PAST_DUE,
    SubscriptionStatus.INACTIVE,
]


class Subscription(BaseModel):
    """
    Local record of a Stripe subscription.

    Uses django-fsm for status management; CANCELLED is terminal and any
    transition out of it raises ``django_fsm.TransitionNotAllowed``.

    State Flow:
        ACTIVE <-> PAST_DUE (payment failed / payment succeeded)
        ACTIVE/PAST_DUE -> INACTIVE (unrecognized provider status)
        ACTIVE/PAST_DUE/INACTIVE -> CANCELLED

    Fields:
        subscription_id: Stripe Subscription ID (sub_xxx), primary key
        user_id: Identity-provider id of the subscribing bar owner
        tier: Plan tier; determines the booking limit
        status: Current FSM status
        stripe_customer_id: Stripe Customer ID (cus_xxx)
        current_period_start/end: Current billing period
        bookings_used: Bookings made in the current period
        last_event_at: Creation time of the newest applied Stripe event
        cancelled_at: When the subscription was cancelled
        version: Incremented on each save
    """

    subscription_id = models.CharField(
        max_length=255,
        primary_key=True,
        help_text="Stripe Subscription ID (sub_xxx)",
    )

    user_id = models.CharField(
        max_length=255,
        db_index=True,
        help_text="Identity-provider id of the subscribing user",
    )

    tier = models.CharField(
        max_length=20,
        choices=SubscriptionTier.choices,
        help_text="Subscription tier",
    )

    status = FSMField(
        default=SubscriptionStatus.ACTIVE,
        choices=SubscriptionStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current status (managed by FSM, driven by Stripe events)",
    )

    stripe_customer_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Stripe Customer ID (cus_xxx)",
    )

    current_period_start = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Start of current billing period",
    )

    current_period_end = models.DateTimeField(
        null=True,
        blank=True,
        help_text="End of current billing period",
    )

    bookings_used = models.PositiveIntegerField(
        default=0,
        help_text="Bookings used in the current billing period",
    )

    last_event_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Creation time of the newest Stripe event applied to this record",
    )

    cancelled_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When subscription was cancelled",
    )

    version = models.PositiveIntegerField(
        default=1,
        help_text="Incremented on each save",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Subscription"
        verbose_name_plural = "Subscriptions"
        indexes = [
            models.Index(fields=["user_id", "status"], name="payments_su_user_id_5c1f0e_idx"),
        ]

    def __str__(self) -> str:
        return f"Subscription({self.subscription_id}, {self.tier}, {self.status})"

    def save(self, *args, **kwargs):
        """Save with version auto-increment."""
        is_update = not self._state.adding and not kwargs.get("force_insert", False)
        if is_update:
            self.version = F("version") + 1
            update_fields = kwargs.get("update_fields")
            if update_fields is not None:
                kwargs["update_fields"] = {*update_fields, "version", "updated_at"}
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(field=status, source=NON_TERMINAL_STATUSES, target=SubscriptionStatus.ACTIVE)
    def activate(self):
        """Transition: ACTIVE/PAST_DUE/INACTIVE -> ACTIVE"""

    @transition(field=status, source=NON_TERMINAL_STATUSES, target=SubscriptionStatus.PAST_DUE)
    def mark_past_due(self):
        """Transition: ACTIVE/PAST_DUE/INACTIVE -> PAST_DUE"""

    @transition(field=status, source=NON_TERMINAL_STATUSES, target=SubscriptionStatus.INACTIVE)
    def deactivate(self):
        """Transition: ACTIVE/PAST_DUE/INACTIVE -> INACTIVE"""

    @transition(field=status, source=NON_TERMINAL_STATUSES, target=SubscriptionStatus.CANCELLED)
    def cancel(self):
        """Transition: ACTIVE/PAST_DUE/INACTIVE -> CANCELLED (terminal)"""
        self.cancelled_at = timezone.now()

    def apply_status(self, status: str) -> None:
        """
        Move to ``status`` through the matching FSM transition.

        Raises:
            django_fsm.TransitionNotAllowed: If the record is cancelled
        """
        transitions = {
            SubscriptionStatus.ACTIVE: self.activate,
            SubscriptionStatus.PAST_DUE: self.mark_past_due,
            SubscriptionStatus.INACTIVE: self.deactivate,
            SubscriptionStatus.CANCELLED: self.cancel,
        }
        transitions[SubscriptionStatus(status)]()

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def accepts_event_at(self, occurred_at: datetime) -> bool:
        """True unless a newer event has already been applied."""
        return self.last_event_at is None or occurred_at >= self.last_event_at

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE

    @property
    def is_cancelled(self) -> bool:
        return self.status == SubscriptionStatus.CANCELLED

    @property
    def booking_limit(self) -> int:
        return SubscriptionTier(self.tier).booking_limit

    @property
    def bookings_remaining(self) -> int:
        return max(self.booking_limit - self.bookings_used, 0)
