"""
Bar model.

A Bar is a beach bar listed on the platform. Its owner is identified by the
identity provider's user id. The connect fields cache the state of the
owner's Stripe connected account; Stripe stays the source of truth and the
cache is refreshed from ``account.updated`` webhooks and the periodic sync.

Usage:
    from bars.models import Bar

    bar = Bar.objects.create(owner_id=str(user.pk), name="Sunset Shack")
    bar.link_connect_account("acct_123")
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import ConnectAccountStatus


class Bar(UUIDPrimaryKeyMixin, BaseModel):
    """
    A beach bar and its payment setup.

    Fields:
        owner_id: Identity-provider id of the owning user
        name: Display name
        connect_account_id: Stripe connected account (acct_xxx), if linked
        connect_account_status: Cached derived account status
        payment_setup_complete: True once the account is fully active
    """

    owner_id = models.CharField(
        max_length=255,
        db_index=True,
        help_text="Identity-provider id of the owning user",
    )

    name = models.CharField(
        max_length=200,
        help_text="Display name of the bar",
    )

    connect_account_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Stripe connected account ID (acct_xxx)",
    )

    connect_account_status = models.CharField(
        max_length=20,
        choices=ConnectAccountStatus.choices,
        default=ConnectAccountStatus.PENDING,
        help_text="Cached connected account status",
    )

    payment_setup_complete = models.BooleanField(
        default=False,
        help_text="Whether the bar can receive split payments",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Bar"
        verbose_name_plural = "Bars"

    def __str__(self) -> str:
        return f"Bar({self.name}, owner={self.owner_id})"

    def link_connect_account(self, account_id: str) -> None:
        """Attach a freshly created account; it starts out pending."""
        self.connect_account_id = account_id
        self.connect_account_status = ConnectAccountStatus.PENDING
        self.payment_setup_complete = False
        self.save(
            update_fields=[
                "connect_account_id",
                "connect_account_status",
                "payment_setup_complete",
                "updated_at",
            ]
        )
