"""
Bulk teardown of a user's connected accounts.

Used when an owner deletes their profile: every distinct connected account
linked to their bars is deleted in parallel, with a bounded number of
concurrent Stripe calls. One account failing never stops the others, and
the report lists every outcome in the order the accounts were found.

Usage:
    from payments.services import BulkAccountTeardown

    teardown = BulkAccountTeardown(ConnectAccountService(adapter, config))
    report = teardown.teardown_all_accounts_for_user(str(user.pk))
    report.to_dict()
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from core.services import BaseService

from payments.services.connect_accounts import BarConnectStatusService, DeletionResult
from payments.state_machines import DeletionReason

if TYPE_CHECKING:
    from payments.services.connect_accounts import ConnectAccountService


DEFAULT_MAX_WORKERS = 5


@dataclass
class BulkTeardownReport:
    """Aggregate outcome of a bulk teardown."""

    results: list[DeletionResult] = field(default_factory=list)

    @property
    def deleted_count(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.results if not result.success)

    @property
    def balance_issues(self) -> int:
        return self._count_reason(DeletionReason.NON_ZERO_BALANCE)

    @property
    def already_deleted(self) -> int:
        return self._count_reason(DeletionReason.ALREADY_DELETED)

    @property
    def unknown_failures(self) -> int:
        return sum(
            1
            for result in self.results
            if not result.success and result.reason == DeletionReason.UNKNOWN
        )

    @property
    def success(self) -> bool:
        failures = [result for result in self.results if not result.success]
        return all(result.is_benign_failure for result in failures)

    @property
    def message(self) -> str:
        if not self.results:
            return "No Stripe Connect accounts found"
        if self.failed_count == 0:
            return f"Successfully processed {len(self.results)} Stripe Connect accounts"
        return f"Processed {len(self.results)} accounts with some issues"

    def _count_reason(self, reason: str) -> int:
        return sum(1 for result in self.results if result.reason == reason)

    def to_dict(self) -> dict[str, Any]:
        if not self.results:
            return {"success": True, "message": self.message, "deletedCount": 0}
        return {
            "success": self.success,
            "message": self.message,
            "deletedCount": self.deleted_count,
            "failedCount": self.failed_count,
            "balanceIssues": self.balance_issues,
            "alreadyDeleted": self.already_deleted,
            "unknownFailures": self.unknown_failures,
            "results": [result.to_dict() for result in self.results],
            "summary": {
                "total": len(self.results),
                "successful": self.deleted_count,
                "failed": self.failed_count,
                "withBalanceIssues": self.balance_issues,
                "alreadyDeleted": self.already_deleted,
            },
        }


class BulkAccountTeardown(BaseService):
    """Deletes all connected accounts owned by one user."""

    def __init__(
        self,
        account_service: ConnectAccountService,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.account_service = account_service
        self.max_workers = max_workers

    def teardown_all_accounts_for_user(self, user_id: str) -> BulkTeardownReport:
        log = self.get_logger()
        account_ids = self._account_ids_for_user(user_id)

        if not account_ids:
            log.info("No connected accounts to tear down", extra={"user_id": user_id})
            return BulkTeardownReport()

        log.info(
            "Starting connected account teardown",
            extra={"user_id": user_id, "account_count": len(account_ids)},
        )

        workers = min(self.max_workers, len(account_ids))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(self._delete_one, account_ids))

        report = BulkTeardownReport(results=results)

        for result in results:
            if result.success:
                BarConnectStatusService.clear_account(result.account_id)

        log.info(
            "Connected account teardown finished",
            extra={
                "user_id": user_id,
                "deleted_count": report.deleted_count,
                "failed_count": report.failed_count,
                "balance_issues": report.balance_issues,
                "success": report.success,
            },
        )
        return report

    def _delete_one(self, account_id: str) -> DeletionResult:
        try:
            return self.account_service.delete_account(account_id)
        except Exception as e:
            self.get_logger().exception(
                "Unexpected error deleting connected account",
                extra={"account_id": account_id},
            )
            return DeletionResult(
                account_id=account_id,
                success=False,
                reason=DeletionReason.UNKNOWN,
                message=str(e),
            )

    @staticmethod
    def _account_ids_for_user(user_id: str) -> list[str]:
        from bars.models import Bar

        account_ids = (
            Bar.objects.filter(owner_id=user_id)
            .exclude(connect_account_id__isnull=True)
            .exclude(connect_account_id="")
            .order_by("created_at")
            .values_list("connect_account_id", flat=True)
        )
        # Several bars may share one account
        return list(dict.fromkeys(account_ids))
