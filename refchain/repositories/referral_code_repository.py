"""
Referral code repository.

Data access layer for ReferralCode model.
"""

from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from refchain.models.enums import ReferralCodeStatus
from refchain.models.referral_code import ReferralCode
from refchain.repositories.base import BaseRepository


class ReferralCodeRepository(BaseRepository[ReferralCode]):
    """Referral code repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral code repository."""
        super().__init__(ReferralCode, session)

    async def find_code_by_value(self, code: str) -> ReferralCode | None:
        """
        Get referral code by its public value.

        Args:
            code: Referral code string

        Returns:
            ReferralCode or None
        """
        return await self.get_by(code=code)

    async def code_exists(self, code: str) -> bool:
        """
        Check whether a code value is already taken.

        Args:
            code: Candidate code string

        Returns:
            True if any record (in any state) uses this value
        """
        return await self.exists(code=code)

    async def get_active_for_referrer(
        self, referrer_id: str
    ) -> ReferralCode | None:
        """
        Get the referrer's active code.

        Args:
            referrer_id: Referrer user ID

        Returns:
            Most recent active code or None
        """
        stmt = (
            select(ReferralCode)
            .where(
                ReferralCode.referrer_id == referrer_id,
                ReferralCode.status == ReferralCodeStatus.ACTIVE.value,
            )
            .order_by(ReferralCode.created_at.desc(), ReferralCode.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_code(self, code: str, referrer_id: str) -> ReferralCode:
        """
        Insert a new active code.

        Args:
            code: Unique code value
            referrer_id: Owning user ID

        Returns:
            Created ReferralCode

        Raises:
            IntegrityError: If the value is taken or the referrer already
                holds an active code
        """
        return await self.create(
            code=code,
            referrer_id=referrer_id,
            status=ReferralCodeStatus.ACTIVE.value,
        )

    async def conditional_update_status(
        self,
        code: str,
        expected_status: ReferralCodeStatus,
        new_status: ReferralCodeStatus,
        **fields: Any,
    ) -> ReferralCode | None:
        """
        Compare-and-swap a code's status.

        The row is updated only if its current status still equals
        ``expected_status``, so two concurrent transitions of the same code
        cannot both succeed.

        Args:
            code: Referral code string
            expected_status: Status the row must currently have
            new_status: Status to set
            **fields: Extra columns to set in the same statement

        Returns:
            Refreshed ReferralCode if the swap happened, None otherwise
        """
        stmt = (
            update(ReferralCode)
            .where(
                ReferralCode.code == code,
                ReferralCode.status == expected_status.value,
            )
            .values(status=new_status.value, **fields)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)

        if result.rowcount != 1:
            return None

        entity = await self.find_code_by_value(code)
        if entity is not None:
            await self.session.refresh(entity)
        return entity

    async def find_most_recent_verified_for(
        self, user_id: str
    ) -> ReferralCode | None:
        """
        Get the verified referral that brought ``user_id`` in.

        If several verified records name the same referred user, the most
        recently created wins.

        Args:
            user_id: Referred user ID

        Returns:
            ReferralCode or None
        """
        stmt = (
            select(ReferralCode)
            .where(
                ReferralCode.referred_id == user_id,
                ReferralCode.status == ReferralCodeStatus.VERIFIED.value,
            )
            .order_by(ReferralCode.created_at.desc(), ReferralCode.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_referrer(
        self, referrer_id: str, limit: int | None = None, offset: int | None = None
    ) -> list[ReferralCode]:
        """
        Get all codes issued to a referrer, newest first.

        Args:
            referrer_id: Referrer user ID
            limit: Max number of results
            offset: Number of results to skip

        Returns:
            List of referral codes
        """
        stmt = (
            select(ReferralCode)
            .where(ReferralCode.referrer_id == referrer_id)
            .order_by(ReferralCode.created_at.desc(), ReferralCode.id.desc())
        )
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_status_counts(self, referrer_id: str) -> dict[str, int]:
        """
        Count a referrer's codes per status in a single query.

        Args:
            referrer_id: Referrer user ID

        Returns:
            Dict mapping every status value to its count
        """
        stmt = (
            select(
                ReferralCode.status,
                func.count(ReferralCode.id).label("count"),
            )
            .where(ReferralCode.referrer_id == referrer_id)
            .group_by(ReferralCode.status)
        )

        result = await self.session.execute(stmt)
        rows = result.all()

        # Build result dict with all statuses (default to 0)
        counts = {status.value: 0 for status in ReferralCodeStatus}
        for row in rows:
            counts[row.status] = row.count

        return counts
