"""
Tests for platform fee calculation.
"""

from decimal import ROUND_DOWN

import pytest

from payments.exceptions import ValidationError
from payments.fees import FeePolicy, compute_split


class TestFeePolicy:
    def test_default_rate_is_three_percent(self):
        assert FeePolicy().rate_basis_points == 300

    @pytest.mark.parametrize("rate", [-1, 10001])
    def test_rate_out_of_range(self, rate):
        with pytest.raises(ValidationError, match="between 0 and 10000"):
            FeePolicy(rate_basis_points=rate)

    @pytest.mark.parametrize("rate", [2.5, True, "300"])
    def test_rate_must_be_integer(self, rate):
        with pytest.raises(ValidationError, match="integer"):
            FeePolicy(rate_basis_points=rate)

    def test_from_settings(self, settings):
        settings.PLATFORM_FEE_BASIS_POINTS = 450

        assert FeePolicy.from_settings().rate_basis_points == 450

    def test_immutable(self):
        policy = FeePolicy()

        with pytest.raises(AttributeError):
            policy.rate_basis_points = 0


class TestComputeSplit:
    def test_three_percent_of_fifty_dollars(self):
        split = compute_split(5000, FeePolicy(rate_basis_points=300))

        assert split.fee == 150
        assert split.net == 4850

    def test_rounds_half_up(self):
        # 3% of 50 cents is 1.5 cents
        split = compute_split(50, FeePolicy(rate_basis_points=300))

        assert split.fee == 2
        assert split.net == 48

    def test_rounding_mode_is_configurable(self):
        split = compute_split(50, FeePolicy(rate_basis_points=300, rounding_mode=ROUND_DOWN))

        assert split.fee == 1
        assert split.net == 49

    def test_zero_amount(self):
        split = compute_split(0, FeePolicy())

        assert (split.fee, split.net) == (0, 0)

    def test_zero_and_full_rate(self):
        assert compute_split(999, FeePolicy(rate_basis_points=0)).fee == 0
        assert compute_split(999, FeePolicy(rate_basis_points=10000)).net == 0

    @pytest.mark.parametrize("gross", [1, 7, 33, 50, 101, 999, 5000, 123457, 10**12])
    @pytest.mark.parametrize("rate", [0, 1, 250, 300, 333, 5000, 9999, 10000])
    def test_fee_plus_net_equals_gross(self, gross, rate):
        split = compute_split(gross, FeePolicy(rate_basis_points=rate))

        assert split.fee + split.net == gross
        assert split.gross == gross
        assert 0 <= split.fee <= gross

    def test_deterministic(self):
        policy = FeePolicy(rate_basis_points=333)

        assert compute_split(12345, policy) == compute_split(12345, policy)

    def test_negative_amount(self):
        with pytest.raises(ValidationError, match="must not be negative"):
            compute_split(-1, FeePolicy())

    @pytest.mark.parametrize("gross", [10.5, True, "5000", None])
    def test_non_integer_amount(self, gross):
        with pytest.raises(ValidationError, match="integer"):
            compute_split(gross, FeePolicy())
