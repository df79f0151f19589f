"""
User repository.

Read-only access to the externally owned users table.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from refchain.models.user import User
from refchain.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """User repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user repository."""
        super().__init__(User, session)

    async def find_user_tier(self, user_id: str) -> str | None:
        """
        Get user's tier without loading the full row.

        Args:
            user_id: User ID

        Returns:
            Tier name, or None if the user or tier is missing
        """
        stmt = select(User.tier).where(User.id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
