"""
Referral statistics.

Read-only aggregates over referral codes and the commission ledger.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from refchain.models.commission_ledger import CommissionLedgerEntry
from refchain.models.enums import ReferralCodeStatus
from refchain.models.referral_code import ReferralCode
from refchain.repositories.commission_ledger_repository import (
    CommissionLedgerRepository,
)
from refchain.repositories.referral_code_repository import (
    ReferralCodeRepository,
)
from refchain.services.base_service import BaseService
from refchain.services.referral.config import ReferralProgramConfig


@dataclass(frozen=True)
class ReferralStats:
    """Referral code counts for one referrer."""

    total: int
    verified: int
    pending: int  # Still active
    used: int = 0
    invalid: int = 0
    referral_code: str | None = None


@dataclass(frozen=True)
class LayerStats:
    """Earnings at one layer."""

    layer: int
    amount: Decimal
    count: int
    rate: str | None  # Current configured rate, e.g. "12%"


@dataclass(frozen=True)
class CommissionStats:
    """Commission totals for one beneficiary."""

    total_earned: Decimal
    total_commissions: int
    by_layer: list[LayerStats] = field(default_factory=list)


def format_rate(rate: Decimal | None) -> str | None:
    """Render a fractional rate as a percentage string."""
    if rate is None:
        return None
    return f"{(rate * 100).normalize():f}%"


class ReferralStatisticsManager(BaseService):
    """Provides referral and commission statistics."""

    def __init__(
        self,
        session: AsyncSession,
        config: ReferralProgramConfig | None = None,
    ) -> None:
        """Initialize statistics manager."""
        super().__init__(session)
        self.config = config or ReferralProgramConfig()
        self.code_repo = ReferralCodeRepository(session)
        self.ledger_repo = CommissionLedgerRepository(session)

    async def get_stats(self, user_id: str) -> ReferralStats:
        """
        Get referral code statistics for a referrer.

        Args:
            user_id: Referrer user ID

        Returns:
            ReferralStats with counts per status and the current code
        """
        counts = await self.code_repo.get_status_counts(user_id)
        active = await self.code_repo.get_active_for_referrer(user_id)

        return ReferralStats(
            total=sum(counts.values()),
            verified=counts[ReferralCodeStatus.VERIFIED.value],
            pending=counts[ReferralCodeStatus.ACTIVE.value],
            used=counts[ReferralCodeStatus.USED.value],
            invalid=counts[ReferralCodeStatus.INVALID.value],
            referral_code=active.code if active else None,
        )

    async def get_commission_stats(self, user_id: str) -> CommissionStats:
        """
        Get commission statistics for a beneficiary.

        Args:
            user_id: Beneficiary user ID

        Returns:
            CommissionStats with totals and a per-layer breakdown
        """
        total_earned = await self.ledger_repo.sum_ledger_amounts_for_user(user_id)
        total_commissions = await self.ledger_repo.count_ledger_entries_for_user(
            user_id
        )
        layer_stats = await self.ledger_repo.get_layer_stats(user_id)

        return CommissionStats(
            total_earned=total_earned,
            total_commissions=total_commissions,
            by_layer=[
                LayerStats(
                    layer=layer,
                    amount=stats["amount"],
                    count=stats["count"],
                    rate=format_rate(self.config.rate_for(layer)),
                )
                for layer, stats in layer_stats.items()
            ],
        )

    async def get_user_commissions(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[CommissionLedgerEntry]:
        """
        Get a beneficiary's ledger entries, newest first.

        Args:
            user_id: Beneficiary user ID
            limit: Max number of results
            offset: Number of results to skip
            start_date: Optional lower bound on created_at
            end_date: Optional upper bound on created_at

        Returns:
            List of ledger entries
        """
        return await self.ledger_repo.get_for_user(
            user_id,
            limit=limit,
            offset=offset,
            start_date=start_date,
            end_date=end_date,
        )

    async def list_codes(
        self, referrer_id: str, limit: int | None = None, offset: int | None = None
    ) -> list[ReferralCode]:
        """Get every code issued to a referrer, newest first."""
        return await self.code_repo.get_by_referrer(
            referrer_id, limit=limit, offset=offset
        )

    async def has_completed_registration(self, user_id: str) -> bool:
        """Check if a user signed up through a verified referral."""
        referral = await self.code_repo.find_most_recent_verified_for(user_id)
        return referral is not None
