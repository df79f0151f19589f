"""Unit tests for ReferralProgramConfig."""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from refchain.services.referral.config import ReferralProgramConfig


class TestRates:
    """Commission rate lookups."""

    def test_default_rates(self):
        """Layer 1 → 12%, layer 2 → 8%, layer 3 → 4%."""
        config = ReferralProgramConfig()

        assert config.rate_for(1) == Decimal("0.12")
        assert config.rate_for(2) == Decimal("0.08")
        assert config.rate_for(3) == Decimal("0.04")
        assert config.max_layer == 3

    def test_layer_outside_table(self):
        """Layers without a rate return None, never zero."""
        config = ReferralProgramConfig()

        assert config.rate_for(4) is None
        assert config.rate_for(0) is None

    def test_custom_rates_coerced_to_decimal(self):
        """Floats and strings become exact decimals."""
        config = ReferralProgramConfig(commission_rates={1: 0.1, 2: "0.05"})

        assert config.rate_for(1) == Decimal("0.1")
        assert config.rate_for(2) == Decimal("0.05")

    def test_tables_are_read_only(self):
        """Config tables cannot be mutated after creation."""
        config = ReferralProgramConfig()

        with pytest.raises(TypeError):
            config.commission_rates[1] = Decimal("0.5")
        with pytest.raises(TypeError):
            config.tier_depth_limits["gold"] = 10

    def test_source_dict_changes_do_not_leak(self):
        """Mutating the dict passed in does not change the config."""
        rates = {1: Decimal("0.12")}
        config = ReferralProgramConfig(commission_rates=rates)

        rates[1] = Decimal("0.99")

        assert config.rate_for(1) == Decimal("0.12")

    @pytest.mark.parametrize(
        "rates",
        [
            {1: "-0.12"},
            {1: "0"},
            {1: "1"},
            {1: "1.5"},
            {1: "NaN"},
            {0: "0.12"},
            {-1: "0.12"},
        ],
    )
    def test_invalid_rates_rejected(self, rates):
        """Rates outside (0, 1) or layers below 1 are rejected."""
        with pytest.raises(ValueError):
            ReferralProgramConfig(commission_rates=rates)


class TestDepths:
    """Tier → depth lookups."""

    @pytest.mark.parametrize(
        "tier,expected",
        [
            ("gold", 3),
            ("silver", 2),
            ("bronze", 1),
            ("GOLD", 3),
            (" Silver ", 2),
            ("platinum", 1),
            ("", 1),
            (None, 1),
        ],
    )
    def test_depth_for_tier(self, tier, expected):
        """Known tiers map through the table, everything else gets 1."""
        assert ReferralProgramConfig().depth_for_tier(tier) == expected

    def test_custom_default_depth(self):
        """Unknown tiers use the configured default."""
        config = ReferralProgramConfig(default_depth=2)
        assert config.depth_for_tier(None) == 2

    def test_invalid_default_depth(self):
        """Default depth below 1 is rejected."""
        with pytest.raises(ValueError):
            ReferralProgramConfig(default_depth=0)

    @pytest.mark.parametrize("depth", [0, -2])
    def test_invalid_tier_depth(self, depth):
        """Tier depths below 1 are rejected."""
        with pytest.raises(ValueError):
            ReferralProgramConfig(tier_depth_limits={"gold": depth})


def test_from_settings():
    """Config is built from settings values."""
    settings = SimpleNamespace(
        commission_rates={1: Decimal("0.2")},
        tier_depth_limits={"vip": 5},
        default_chain_depth=1,
    )

    config = ReferralProgramConfig.from_settings(settings)

    assert config.rate_for(1) == Decimal("0.2")
    assert config.rate_for(2) is None
    assert config.depth_for_tier("vip") == 5
    assert config.depth_for_tier("gold") == 1
