"""
Platform fee calculation for split payments.

The fee is computed once per payment from an integer amount in minor units
and an integer rate in basis points (1 bp = 0.01%). Decimal arithmetic with
an explicit rounding mode keeps the result exact; the merchant's net is
always derived by subtraction so that ``fee + net == gross``.

Usage:
    from payments.fees import FeePolicy, compute_split

    split = compute_split(5000, FeePolicy(rate_basis_points=300))
    split.fee  # 150
    split.net  # 4850
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

from payments.exceptions import ValidationError

BASIS_POINTS_PER_UNIT = 10_000

DEFAULT_FEE_BASIS_POINTS = 300


def _is_integer(value: object) -> bool:
    # bool is an int subclass but never a valid amount
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class FeePolicy:
    """
    Platform fee rate and rounding mode.

    Attributes:
        rate_basis_points: Fee rate in basis points, 0..10000 (300 = 3%)
        rounding_mode: decimal rounding mode applied to the fee
    """

    rate_basis_points: int = DEFAULT_FEE_BASIS_POINTS
    rounding_mode: str = ROUND_HALF_UP

    def __post_init__(self) -> None:
        if not _is_integer(self.rate_basis_points):
            raise ValidationError(
                "Fee rate must be an integer number of basis points",
                details={"rate_basis_points": repr(self.rate_basis_points)},
            )
        if not 0 <= self.rate_basis_points <= BASIS_POINTS_PER_UNIT:
            raise ValidationError(
                "Fee rate must be between 0 and 10000 basis points",
                details={"rate_basis_points": self.rate_basis_points},
            )

    @classmethod
    def from_settings(cls) -> FeePolicy:
        """Build the policy from PLATFORM_FEE_BASIS_POINTS."""
        return cls(
            rate_basis_points=getattr(
                settings, "PLATFORM_FEE_BASIS_POINTS", DEFAULT_FEE_BASIS_POINTS
            )
        )


@dataclass(frozen=True)
class Split:
    """Division of a gross amount between the platform and the merchant."""

    fee: int
    net: int

    @property
    def gross(self) -> int:
        return self.fee + self.net


def compute_split(gross_amount: int, policy: FeePolicy) -> Split:
    """
    Split a gross amount into platform fee and merchant net.

    Args:
        gross_amount: Amount in minor units (cents); non-negative integer
        policy: Fee rate and rounding mode

    Returns:
        Split with ``fee + net == gross_amount``

    Raises:
        ValidationError: If gross_amount is negative or not an integer
    """
    if not _is_integer(gross_amount):
        raise ValidationError(
            "Amount must be an integer number of minor units",
            details={"gross_amount": repr(gross_amount)},
        )
    if gross_amount < 0:
        raise ValidationError(
            "Amount must not be negative",
            details={"gross_amount": gross_amount},
        )

    exact = Decimal(gross_amount) * Decimal(policy.rate_basis_points) / BASIS_POINTS_PER_UNIT
    fee = int(exact.quantize(Decimal(1), rounding=policy.rounding_mode))
    return Split(fee=fee, net=gross_amount - fee)
