"""
Connected account lifecycle for bar owners.

Bar owners receive their share of split payments through Stripe Express
connected accounts. This module creates those accounts, reports their
readiness, produces onboarding and dashboard links, deletes them, and
explains what a stuck account still needs.

Account status is always derived from Stripe's flags through
``derive_account_status``; nothing here treats a cached value as truth.

Usage:
    from payments.services import ConnectAccountService

    service = ConnectAccountService(adapter, config)
    created = service.create_account(
        email="owner@example.com",
        business_name="Sunset Shack",
        owner_id="user-1",
        bar_id=str(bar.id),
    )
    account = service.get_account_status(created["account_id"])
    account.status  # 'pending' until onboarding is complete
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

from django.utils import timezone

from core.services import BaseService

from payments.adapters import CreateAccountParams
from payments.exceptions import ProviderError, ValidationError
from payments.state_machines import ConnectAccountStatus, DeletionReason

if TYPE_CHECKING:
    from payments.adapters import AccountResult, StripeAdapter
    from payments.config import StripeConfig


logger = logging.getLogger(__name__)

STATS_WINDOW_DAYS = 30
RECENT_TRANSACTIONS_LIMIT = 10
DEFAULT_TRANSACTION_DESCRIPTION = "Beach bar booking"

# Failures the owner can resolve later; they do not fail a bulk teardown
BENIGN_DELETION_REASONS = (DeletionReason.NON_ZERO_BALANCE, DeletionReason.ALREADY_DELETED)


def derive_account_status(
    charges_enabled: bool,
    payouts_enabled: bool,
    details_submitted: bool,
) -> str:
    """
    Readiness of a connected account.

    active: can take charges and receive payouts, details submitted
    restricted: details submitted but Stripe has not enabled everything
    pending: onboarding not finished
    """
    if charges_enabled and payouts_enabled and details_submitted:
        return ConnectAccountStatus.ACTIVE
    if details_submitted:
        return ConnectAccountStatus.RESTRICTED
    return ConnectAccountStatus.PENDING


def _iso(timestamp: int | None) -> str | None:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=dt_timezone.utc).isoformat()


@dataclass
class ConnectAccount:
    """Read-through view of a connected account."""

    account_id: str
    owner_id: str | None
    bar_id: str | None
    livemode: bool
    charges_enabled: bool
    payouts_enabled: bool
    details_submitted: bool
    requirements: dict[str, Any] = field(default_factory=dict)
    available_balance: int = 0
    pending_balance: int = 0
    status: str = ConnectAccountStatus.PENDING

    @classmethod
    def from_provider(
        cls,
        account: AccountResult,
        available_balance: int = 0,
        pending_balance: int = 0,
    ) -> ConnectAccount:
        return cls(
            account_id=account.id,
            owner_id=account.metadata.get("ownerId"),
            bar_id=account.metadata.get("barId"),
            livemode=account.livemode,
            charges_enabled=account.charges_enabled,
            payouts_enabled=account.payouts_enabled,
            details_submitted=account.details_submitted,
            requirements=account.requirements,
            available_balance=available_balance,
            pending_balance=pending_balance,
            status=derive_account_status(
                account.charges_enabled,
                account.payouts_enabled,
                account.details_submitted,
            ),
        )

    @property
    def is_onboarded(self) -> bool:
        return self.status == ConnectAccountStatus.ACTIVE

    @property
    def payment_setup_complete(self) -> bool:
        """Bars may take split payments once the account is onboarded."""
        return self.is_onboarded

    def to_dict(self) -> dict[str, Any]:
        requirements = self.requirements or {}
        return {
            "accountId": self.account_id,
            "isOnboarded": self.is_onboarded,
            "ownerId": self.owner_id,
            "barId": self.bar_id,
            "livemode": self.livemode,
            "chargesEnabled": self.charges_enabled,
            "payoutsEnabled": self.payouts_enabled,
            "detailsSubmitted": self.details_submitted,
            "requirements": requirements,
            "currentlyDue": requirements.get("currently_due") or [],
            "eventuallyDue": requirements.get("eventually_due") or [],
            "pastDue": requirements.get("past_due") or [],
            "pendingVerification": requirements.get("pending_verification") or [],
            "disabledReason": requirements.get("disabled_reason"),
            "availableBalance": self.available_balance,
            "pendingBalance": self.pending_balance,
            "status": str(self.status),
            "paymentSetupComplete": self.payment_setup_complete,
        }


@dataclass
class DeletionResult:
    """
    Outcome of deleting one connected account.

    ``already_deleted`` counts as a success: the account is gone either way.
    """

    account_id: str
    success: bool
    reason: str
    message: str

    @property
    def is_benign_failure(self) -> bool:
        return not self.success and self.reason in BENIGN_DELETION_REASONS

    def to_dict(self) -> dict[str, Any]:
        return {
            "accountId": self.account_id,
            "success": self.success,
            "reason": str(self.reason),
            "message": self.message,
        }


class ConnectAccountService(BaseService):
    """
    Operations on bar owners' Stripe connected accounts.

    Provider errors propagate from every operation except ``delete_account``,
    which folds them into its ``DeletionResult``.
    """

    def __init__(self, adapter: StripeAdapter, config: StripeConfig):
        self.adapter = adapter
        self.config = config

    # =========================================================================
    # Creation and links
    # =========================================================================

    def create_account(
        self,
        email: str,
        business_name: str,
        owner_id: str,
        bar_id: str | None = None,
    ) -> dict[str, str]:
        """
        Create an Express account and its first onboarding link.

        Returns:
            {"account_id": ..., "onboarding_url": ...}

        Raises:
            ValidationError: email, business name or owner missing
        """
        missing = {
            name: ["This field is required."]
            for name, value in (
                ("email", email),
                ("businessName", business_name),
                ("ownerId", owner_id),
            )
            if not value
        }
        if missing:
            raise ValidationError(
                "Missing required fields: email, businessName",
                details=missing,
            )

        account = self.adapter.create_account(
            CreateAccountParams(
                email=email,
                business_name=business_name,
                owner_id=owner_id,
                bar_id=bar_id,
            )
        )
        onboarding_url = self.create_account_link(account.id, bar_id=bar_id)

        self.get_logger().info(
            "Connected account created",
            extra={"account_id": account.id, "owner_id": owner_id, "bar_id": bar_id},
        )
        return {"account_id": account.id, "onboarding_url": onboarding_url}

    def create_account_link(self, account_id: str, bar_id: str | None = None) -> str:
        """Onboarding link that returns the owner to the dashboard."""
        if not account_id:
            raise ValidationError(
                "Account ID is required",
                details={"accountId": ["This field is required."]},
            )
        return self.adapter.create_account_link(
            account_id,
            refresh_url=self._dashboard_url("refresh", account_id, bar_id),
            return_url=self._dashboard_url("success", account_id, bar_id),
        )

    def create_login_link(self, account_id: str) -> str:
        """Express dashboard link for an onboarded owner."""
        if not account_id:
            raise ValidationError(
                "Account ID is required",
                details={"accountId": ["This field is required."]},
            )
        return self.adapter.create_login_link(account_id)

    def _dashboard_url(self, outcome: str, account_id: str, bar_id: str | None) -> str:
        query = {"account": account_id}
        if bar_id:
            query["barId"] = bar_id
        return f"{self.config.frontend_url}/dashboard/connect/{outcome}?{urlencode(query)}"

    # =========================================================================
    # Status
    # =========================================================================

    def get_account_status(self, account_id: str) -> ConnectAccount:
        """
        Current state of an account, read from Stripe.

        Raises:
            ValidationError: account_id missing
            ProviderError: reason ``resource_missing`` for unknown accounts
        """
        if not account_id:
            raise ValidationError(
                "Account ID is required",
                details={"accountId": ["This field is required."]},
            )
        account = self.adapter.retrieve_account(account_id)
        balance = self.adapter.retrieve_balance(account_id)
        return ConnectAccount.from_provider(
            account,
            available_balance=balance.available_cents,
            pending_balance=balance.pending_cents,
        )

    # =========================================================================
    # Deletion
    # =========================================================================

    def delete_account(self, account_id: str) -> DeletionResult:
        """
        Delete a connected account.

        Never raises for provider errors. A live account still holding funds
        is left alone so the owner can pay it out first.
        """
        log = self.get_logger()

        try:
            account = self.adapter.retrieve_account(account_id)
        except ProviderError as e:
            if e.reason == ProviderError.RESOURCE_MISSING:
                log.info("Account already deleted", extra={"account_id": account_id})
                return DeletionResult(
                    account_id=account_id,
                    success=True,
                    reason=DeletionReason.ALREADY_DELETED,
                    message="Account was already deleted",
                )
            return self._unknown_failure(account_id, e)

        if account.livemode:
            try:
                balance = self.adapter.retrieve_balance(account_id)
            except ProviderError as e:
                return self._unknown_failure(account_id, e)
            if balance.total_cents > 0:
                log.warning(
                    "Account has remaining balance, not deleting",
                    extra={"account_id": account_id, "balance": balance.total_cents},
                )
                return DeletionResult(
                    account_id=account_id,
                    success=False,
                    reason=DeletionReason.NON_ZERO_BALANCE,
                    message=(
                        f"Account has a remaining balance of {balance.total_cents}. "
                        "Pay out the balance before deleting the account."
                    ),
                )

        try:
            self.adapter.delete_account(account_id)
        except ProviderError as e:
            if e.reason == ProviderError.RESOURCE_MISSING:
                return DeletionResult(
                    account_id=account_id,
                    success=True,
                    reason=DeletionReason.ALREADY_DELETED,
                    message="Account was already deleted",
                )
            if e.reason == ProviderError.NON_ZERO_BALANCE:
                return DeletionResult(
                    account_id=account_id,
                    success=False,
                    reason=DeletionReason.NON_ZERO_BALANCE,
                    message=e.message,
                )
            return self._unknown_failure(account_id, e)

        log.info("Connected account deleted", extra={"account_id": account_id})
        return DeletionResult(
            account_id=account_id,
            success=True,
            reason=DeletionReason.DELETED,
            message="Account deleted",
        )

    def _unknown_failure(self, account_id: str, error: ProviderError) -> DeletionResult:
        self.get_logger().error(
            "Failed to delete connected account",
            extra={
                "account_id": account_id,
                "error_code": error.error_code,
                "error": error.message,
            },
        )
        return DeletionResult(
            account_id=account_id,
            success=False,
            reason=DeletionReason.UNKNOWN,
            message=error.message,
        )

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def debug_account(self, account_id: str) -> dict[str, Any]:
        """
        Explain what an account still needs, for support staff.

        Advisory only: nothing is changed.
        """
        if not account_id:
            raise ValidationError(
                "Account ID is required",
                details={"accountId": ["This field is required."]},
            )

        account = self.adapter.retrieve_account(account_id)
        raw = account.raw_response
        requirements = account.requirements or {}
        capabilities = raw.get("capabilities") or {}
        business_profile = raw.get("business_profile") or {}
        individual = raw.get("individual") or {}
        external_accounts = (raw.get("external_accounts") or {}).get("data") or []

        analysis = {
            "account_id": account.id,
            "created": _iso(account.created),
            "country": account.country,
            "type": raw.get("type"),
            "business_type": raw.get("business_type"),
            "details_submitted": account.details_submitted,
            "charges_enabled": account.charges_enabled,
            "payouts_enabled": account.payouts_enabled,
            "currently_due": requirements.get("currently_due") or [],
            "eventually_due": requirements.get("eventually_due") or [],
            "past_due": requirements.get("past_due") or [],
            "pending_verification": requirements.get("pending_verification") or [],
            "disabled_reason": requirements.get("disabled_reason"),
            "restrictions": requirements.get("errors") or [],
            "card_payments": capabilities.get("card_payments"),
            "transfers": capabilities.get("transfers"),
            "business_profile": {
                "name": business_profile.get("name"),
                "url": business_profile.get("url"),
                "mcc": business_profile.get("mcc"),
                "product_description": business_profile.get("product_description"),
            },
            "individual_verification": individual.get("verification"),
            "external_accounts_count": len(external_accounts),
            "has_bank_account": any(
                item.get("object") == "bank_account" for item in external_accounts
            ),
            "metadata": account.metadata,
        }

        return {
            "analysis": analysis,
            "recommendations": self._recommendations(analysis),
            "debug_info": {
                "timestamp": timezone.now().isoformat(),
                "raw_requirements": requirements,
            },
        }

    @staticmethod
    def _recommendations(analysis: dict[str, Any]) -> list[dict[str, Any]]:
        recommendations = []

        if analysis["past_due"]:
            recommendations.append(
                {
                    "priority": "URGENT",
                    "issue": "Past due requirements",
                    "items": analysis["past_due"],
                    "action": "Submit these immediately to prevent account suspension",
                }
            )
        if analysis["currently_due"]:
            recommendations.append(
                {
                    "priority": "HIGH",
                    "issue": "Currently due requirements",
                    "items": analysis["currently_due"],
                    "action": "Complete these to enable full functionality",
                }
            )
        if not analysis["charges_enabled"] and not analysis["payouts_enabled"]:
            recommendations.append(
                {
                    "priority": "HIGH",
                    "issue": "Both charges and payouts disabled",
                    "action": "Account likely needs identity verification or business documents",
                }
            )
        elif analysis["charges_enabled"] and not analysis["payouts_enabled"]:
            recommendations.append(
                {
                    "priority": "MEDIUM",
                    "issue": "Payouts disabled but charges enabled",
                    "action": (
                        "Usually means bank account verification or additional "
                        "ID documents needed"
                    ),
                }
            )
        if analysis["pending_verification"]:
            recommendations.append(
                {
                    "priority": "INFO",
                    "issue": "Documents under review",
                    "items": analysis["pending_verification"],
                    "action": (
                        "Wait 1-7 business days for Stripe review, "
                        "or contact support if longer"
                    ),
                }
            )

        return recommendations

    def payment_stats(self, account_id: str) -> dict[str, Any]:
        """
        Earnings summary for the owner dashboard, in minor units.

        Covers charges from the last 30 days and the most recent payouts.
        """
        if not account_id:
            raise ValidationError(
                "Account ID is required",
                details={"accountId": ["This field is required."]},
            )

        since = int((timezone.now() - timedelta(days=STATS_WINDOW_DAYS)).timestamp())
        balance = self.adapter.retrieve_balance(account_id)
        charges = self.adapter.list_charges(account_id, created_since=since)
        payouts = self.adapter.list_payouts(account_id)

        succeeded = [charge for charge in charges if charge.get("status") == "succeeded"]
        total_earnings = sum(charge.get("amount") or 0 for charge in succeeded)
        platform_fees = sum(
            charge.get("application_fee_amount") or 0 for charge in succeeded
        )
        completed_payouts = sum(
            payout.get("amount") or 0
            for payout in payouts
            if payout.get("status") == "paid"
        )

        return {
            "totalEarnings": total_earnings,
            "platformFees": platform_fees,
            "netEarnings": total_earnings - platform_fees,
            "pendingPayouts": balance.available_cents,
            "completedPayouts": completed_payouts,
            "recentTransactions": [
                self._transaction_summary(charge)
                for charge in charges[:RECENT_TRANSACTIONS_LIMIT]
            ],
            "balance": {
                "available": balance.available,
                "pending": balance.pending,
            },
        }

    @staticmethod
    def _transaction_summary(charge: dict[str, Any]) -> dict[str, Any]:
        amount = charge.get("amount") or 0
        fee = charge.get("application_fee_amount") or 0
        billing_details = charge.get("billing_details") or {}
        return {
            "id": charge.get("id"),
            "amount": amount,
            "platformFee": fee,
            "netAmount": amount - fee,
            "status": charge.get("status"),
            "createdAt": _iso(charge.get("created")),
            "customerEmail": billing_details.get("email") or charge.get("receipt_email"),
            "description": charge.get("description") or DEFAULT_TRANSACTION_DESCRIPTION,
        }


class BarConnectStatusService(BaseService):
    """Keeps the bars' cached connect status in line with Stripe."""

    @classmethod
    def sync_from_account(cls, account: AccountResult) -> int:
        """
        Update every bar linked to ``account``.

        Returns:
            Number of bars updated
        """
        status = derive_account_status(
            account.charges_enabled,
            account.payouts_enabled,
            account.details_submitted,
        )
        return cls.sync_status(account.id, status)

    @classmethod
    def sync_status(cls, account_id: str, status: str) -> int:
        """Store an already derived status on the account's bars."""
        from bars.models import Bar

        updated = Bar.objects.filter(connect_account_id=account_id).update(
            connect_account_status=status,
            payment_setup_complete=status == ConnectAccountStatus.ACTIVE,
            updated_at=timezone.now(),
        )
        cls.get_logger().info(
            "Bar connect status synced",
            extra={"account_id": account_id, "status": str(status), "bars": updated},
        )
        return updated

    @classmethod
    def clear_account(cls, account_id: str) -> int:
        """Unlink a removed account from its bars."""
        from bars.models import Bar

        return Bar.objects.filter(connect_account_id=account_id).update(
            connect_account_id=None,
            connect_account_status=ConnectAccountStatus.PENDING,
            payment_setup_complete=False,
            updated_at=timezone.now(),
        )
