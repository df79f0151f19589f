"""
Referral program configuration.

Rate and depth tables are passed around as one immutable value so the
calculator and tier policy never read process-wide state.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from refchain.config.constants import (
    COMMISSION_RATES,
    DEFAULT_CHAIN_DEPTH,
    TIER_DEPTH_LIMITS,
)


@dataclass(frozen=True)
class ReferralProgramConfig:
    """Commission rate table and tier → depth table."""

    commission_rates: Mapping[int, Decimal] = field(
        default_factory=lambda: MappingProxyType(dict(COMMISSION_RATES))
    )
    tier_depth_limits: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType(dict(TIER_DEPTH_LIMITS))
    )
    default_depth: int = DEFAULT_CHAIN_DEPTH

    def __post_init__(self) -> None:
        # Freeze caller-supplied dicts
        object.__setattr__(
            self,
            "commission_rates",
            MappingProxyType({
                int(layer): Decimal(str(rate))
                for layer, rate in self.commission_rates.items()
            }),
        )
        object.__setattr__(
            self,
            "tier_depth_limits",
            MappingProxyType({
                tier.strip().lower(): int(depth)
                for tier, depth in self.tier_depth_limits.items()
            }),
        )
        for layer, rate in self.commission_rates.items():
            if layer < 1:
                raise ValueError(f"Invalid commission layer: {layer}")
            if not rate.is_finite() or not Decimal("0") < rate < Decimal("1"):
                raise ValueError(
                    f"Commission rate for layer {layer} must be in (0, 1), "
                    f"got {rate}"
                )
        for tier, depth in self.tier_depth_limits.items():
            if depth < 1:
                raise ValueError(f"Depth for tier {tier!r} must be >= 1")
        if self.default_depth < 1:
            raise ValueError("default_depth must be >= 1")

    @classmethod
    def from_settings(cls, settings) -> "ReferralProgramConfig":
        """Build config from application settings."""
        return cls(
            commission_rates=settings.commission_rates,
            tier_depth_limits=settings.tier_depth_limits,
            default_depth=settings.default_chain_depth,
        )

    @property
    def max_layer(self) -> int:
        """Deepest layer that has a rate."""
        return max(self.commission_rates, default=0)

    def rate_for(self, layer: int) -> Decimal | None:
        """Commission rate for a layer, or None if the layer is not paid."""
        return self.commission_rates.get(layer)

    def depth_for_tier(self, tier: str | None) -> int:
        """Max chain depth for a tier; unknown tiers get the default."""
        if not tier:
            return self.default_depth
        return self.tier_depth_limits.get(tier.strip().lower(), self.default_depth)
