"""
Referral chain walking.

Reconstructs the ordered list of ancestor referrers above a user from
verified referral codes.
"""

from collections.abc import Iterator
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from refchain.repositories.referral_code_repository import (
    ReferralCodeRepository,
)
from refchain.services.base_service import BaseService


@dataclass(frozen=True)
class ChainLink:
    """One beneficiary in a referral chain."""

    user_id: str
    layer: int
    referral_code_id: int


@dataclass(frozen=True)
class ReferralChain:
    """Ancestors of a user, layer 1 (direct referrer) first."""

    links: tuple[ChainLink, ...] = ()

    def __len__(self) -> int:
        return len(self.links)

    def __iter__(self) -> Iterator[ChainLink]:
        return iter(self.links)

    def __bool__(self) -> bool:
        return bool(self.links)

    @property
    def direct_referrer_id(self) -> str | None:
        """User ID at layer 1, if any."""
        return self.links[0].user_id if self.links else None

    @property
    def user_ids(self) -> list[str]:
        """Beneficiary IDs in layer order."""
        return [link.user_id for link in self.links]


class ChainWalker(BaseService):
    """Walks verified referrals upward from a user."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize chain walker."""
        super().__init__(session)
        self.code_repo = ReferralCodeRepository(session)

    async def walk(self, referred_user_id: str, max_depth: int) -> ReferralChain:
        """
        Get the referral chain above a user.

        At each step the most recently created verified referral naming the
        current user is followed to its referrer. The walk stops at
        ``max_depth`` layers, when no verified referral exists, or when a
        user would appear twice (corrupted cyclic data).

        Args:
            referred_user_id: User to start from (the purchaser)
            max_depth: Maximum number of layers to return

        Returns:
            ReferralChain, possibly empty
        """
        links: list[ChainLink] = []
        seen = {referred_user_id}
        current_user_id = referred_user_id
        layer = 1

        while layer <= max_depth:
            referral = await self.code_repo.find_most_recent_verified_for(
                current_user_id
            )
            if referral is None:
                break

            if referral.referrer_id in seen:
                self.logger.warning(
                    "Referral cycle detected, chain truncated",
                    extra={
                        "referred_user_id": referred_user_id,
                        "referrer_id": referral.referrer_id,
                        "layer": layer,
                        "chain_ids": [link.user_id for link in links],
                    },
                )
                break

            links.append(ChainLink(
                user_id=referral.referrer_id,
                layer=layer,
                referral_code_id=referral.id,
            ))
            seen.add(referral.referrer_id)
            current_user_id = referral.referrer_id
            layer += 1

        self.logger.debug(
            "Referral chain retrieved",
            extra={
                "user_id": referred_user_id,
                "depth": max_depth,
                "chain_length": len(links),
            },
        )

        return ReferralChain(links=tuple(links))
