"""
Tier policy.

Maps a user's tier to the maximum commission chain depth.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from refchain.repositories.user_repository import UserRepository
from refchain.services.base_service import BaseService
from refchain.services.referral.config import ReferralProgramConfig


class TierPolicy(BaseService):
    """Resolves chain depth from user tiers."""

    def __init__(
        self, session: AsyncSession, config: ReferralProgramConfig
    ) -> None:
        """Initialize tier policy."""
        super().__init__(session)
        self.config = config
        self.user_repo = UserRepository(session)

    async def max_depth(self, user_id: str) -> int:
        """
        Get max chain depth for a user.

        The tier is read on every call; tiers may change between purchases.

        Args:
            user_id: User whose tier bounds the chain

        Returns:
            Max depth (default depth for unknown users or tiers)
        """
        tier = await self.user_repo.find_user_tier(user_id)
        depth = self.config.depth_for_tier(tier)

        self.logger.debug(
            "Tier depth resolved",
            extra={"user_id": user_id, "tier": tier, "max_depth": depth},
        )
        return depth
