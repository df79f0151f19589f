"""
Unit tests for commission amount handling.

Tests cover:
- Purchase amount validation
- Per-layer rounding
- Totals across layers
"""

from decimal import Decimal

import pytest

from refchain.services.referral.commission_calculator import (
    calculate_layer_commission,
    normalize_amount,
)
from refchain.services.referral.config import ReferralProgramConfig
from refchain.utils.exceptions import InvalidAmount


class TestNormalizeAmount:
    """Test purchase amount validation."""

    @pytest.mark.parametrize(
        "amount,expected",
        [
            (100, Decimal("100")),
            ("100.50", Decimal("100.50")),
            (Decimal("0.01"), Decimal("0.01")),
            (12.5, Decimal("12.5")),
            ("9999999999.99999999", Decimal("9999999999.99999999")),
        ],
    )
    def test_valid_amounts(self, amount, expected):
        """Positive numbers are accepted as Decimal."""
        assert normalize_amount(amount) == expected

    @pytest.mark.parametrize(
        "amount",
        [
            0,
            -5,
            "-0.01",
            Decimal("0"),
            float("nan"),
            float("inf"),
            "NaN",
            "Infinity",
            "abc",
            None,
            True,
            "0.000000001",
            "0.000000004",
            "10000000000",
            "1E+30",
        ],
    )
    def test_invalid_amounts(self, amount):
        """Amounts outside the positive ledger range are rejected."""
        with pytest.raises(InvalidAmount) as exc_info:
            normalize_amount(amount)

        assert exc_info.value.code == "invalid_amount"

    @pytest.mark.parametrize(
        "amount,expected",
        [
            ("0.000000005", Decimal("0.00000001")),
            ("12.345678915", Decimal("12.34567892")),
            ("100.50", Decimal("100.50000000")),
        ],
    )
    def test_rounded_to_ledger_precision(self, amount, expected):
        """Amounts come back with exactly the stored precision."""
        result = normalize_amount(amount)

        assert result == expected
        assert result.as_tuple().exponent == -8


class TestLayerCommission:
    """Test per-layer commission amounts."""

    @pytest.mark.parametrize(
        "rate,expected",
        [
            (Decimal("0.12"), Decimal("12.00000000")),
            (Decimal("0.08"), Decimal("8.00000000")),
            (Decimal("0.04"), Decimal("4.00000000")),
        ],
    )
    def test_default_rates_on_100(self, rate, expected):
        """$100 pays 12/8/4."""
        assert calculate_layer_commission(Decimal("100"), rate) == expected

    def test_rounds_half_up_to_ledger_precision(self):
        """Results are quantized to 8 decimal places."""
        result = calculate_layer_commission(
            Decimal("0.000000125"), Decimal("0.12")
        )
        # 0.000000015 → 0.00000002
        assert result == Decimal("0.00000002")

    def test_small_purchase(self):
        """Fractional purchases keep exact cents."""
        assert calculate_layer_commission(
            Decimal("0.01"), Decimal("0.12")
        ) == Decimal("0.00120000")

    @pytest.mark.parametrize("amount", ["1", "99.99", "1234.56", "100000"])
    def test_total_equals_amount_times_rate_sum(self, amount):
        """Sum over all layers equals P * (0.12 + 0.08 + 0.04)."""
        config = ReferralProgramConfig()
        purchase = Decimal(amount)

        total = sum(
            calculate_layer_commission(purchase, config.rate_for(layer))
            for layer in (1, 2, 3)
        )

        assert total == purchase * Decimal("0.24")
