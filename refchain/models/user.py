"""
User model.

Users are owned by the account service; the referral core only reads
``tier`` to bound commission depth.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from refchain.models.base import Base


class User(Base):
    """Registered user (read-only for the referral core)."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    tier: Mapped[str | None] = mapped_column(
        String(20), nullable=True, comment="gold, silver, bronze"
    )
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="user"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<User(id={self.id!r}, tier={self.tier!r})>"
