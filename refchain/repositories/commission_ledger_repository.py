"""
Commission ledger repository.

Data access layer for CommissionLedgerEntry model. The ledger is
append-only: entries are inserted in bulk per purchase and never changed.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from refchain.models.commission_ledger import CommissionLedgerEntry
from refchain.repositories.base import BaseRepository
from refchain.utils.exceptions import PartialLedgerWriteFailure


class CommissionLedgerRepository(BaseRepository[CommissionLedgerEntry]):
    """Commission ledger repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission ledger repository."""
        super().__init__(CommissionLedgerEntry, session)

    async def insert_ledger_entries(
        self, entries: list[dict[str, Any]]
    ) -> list[CommissionLedgerEntry]:
        """
        Insert all entries for one purchase in a single statement.

        Runs inside a savepoint so a constraint violation leaves the outer
        transaction usable.

        Args:
            entries: Ledger entry data dicts

        Returns:
            Created entries ordered by layer

        Raises:
            PartialLedgerWriteFailure: If fewer rows were written than sent
            IntegrityError: If entries for this purchase/layer already exist
        """
        async with self.session.begin_nested():
            created = await self.bulk_create(entries)

            if len(created) != len(entries):
                references = sorted({e["purchase_reference"] for e in entries})
                logger.critical(
                    "Partial commission ledger write",
                    extra={
                        "purchase_references": references,
                        "expected": len(entries),
                        "written": len(created),
                    },
                )
                raise PartialLedgerWriteFailure(
                    f"Ledger write returned {len(created)} of {len(entries)} entries",
                    purchase_references=references,
                    expected=len(entries),
                    written=len(created),
                )

        return sorted(created, key=lambda e: e.layer)

    async def find_by_purchase_reference(
        self, purchase_reference: str
    ) -> list[CommissionLedgerEntry]:
        """
        Get entries written for a purchase.

        Args:
            purchase_reference: Purchase idempotency key

        Returns:
            Entries ordered by layer
        """
        stmt = (
            select(CommissionLedgerEntry)
            .where(CommissionLedgerEntry.purchase_reference == purchase_reference)
            .order_by(CommissionLedgerEntry.layer)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_ledger_entries_for_user(self, user_id: str) -> int:
        """
        Count entries earned by a beneficiary.

        Args:
            user_id: Beneficiary user ID

        Returns:
            Number of entries
        """
        return await self.count(beneficiary_id=user_id)

    async def sum_ledger_amounts_for_user(self, user_id: str) -> Decimal:
        """
        Sum amounts earned by a beneficiary.

        Args:
            user_id: Beneficiary user ID

        Returns:
            Total earned (0 if none)
        """
        stmt = select(
            func.coalesce(func.sum(CommissionLedgerEntry.amount), Decimal("0"))
        ).where(CommissionLedgerEntry.beneficiary_id == user_id)
        result = await self.session.execute(stmt)
        return Decimal(result.scalar() or 0)

    async def get_layer_stats(
        self, user_id: str
    ) -> dict[int, dict[str, int | Decimal]]:
        """
        Get earnings grouped by layer in a single query.

        Args:
            user_id: Beneficiary user ID

        Returns:
            Dict mapping layer to {"count": n, "amount": Decimal}
        """
        stmt = (
            select(
                CommissionLedgerEntry.layer,
                func.count(CommissionLedgerEntry.id).label("count"),
                func.coalesce(
                    func.sum(CommissionLedgerEntry.amount), Decimal("0")
                ).label("amount"),
            )
            .where(CommissionLedgerEntry.beneficiary_id == user_id)
            .group_by(CommissionLedgerEntry.layer)
            .order_by(CommissionLedgerEntry.layer)
        )

        result = await self.session.execute(stmt)
        return {
            row.layer: {"count": row.count, "amount": Decimal(row.amount)}
            for row in result.all()
        }

    async def get_for_user(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[CommissionLedgerEntry]:
        """
        Get a beneficiary's entries, newest first.

        Args:
            user_id: Beneficiary user ID
            limit: Max number of results
            offset: Number of results to skip
            start_date: Only entries created at or after this moment
            end_date: Only entries created at or before this moment

        Returns:
            List of ledger entries
        """
        stmt = select(CommissionLedgerEntry).where(
            CommissionLedgerEntry.beneficiary_id == user_id
        )
        if start_date is not None:
            stmt = stmt.where(CommissionLedgerEntry.created_at >= start_date)
        if end_date is not None:
            stmt = stmt.where(CommissionLedgerEntry.created_at <= end_date)

        stmt = (
            stmt.order_by(
                CommissionLedgerEntry.created_at.desc(),
                CommissionLedgerEntry.id.desc(),
            )
            .limit(limit)
            .offset(offset)
        )

        result = await self.session.execute(stmt)
        return list(result.scalars().all())
