"""
Referral code model.

One-time referral codes issued to referrers. Rows are never deleted;
the table doubles as the audit trail of every link ever shared.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from refchain.models.base import Base
from refchain.models.enums import ReferralCodeStatus

_ACTIVE_ONLY = text("status = 'active'")


class ReferralCode(Base):
    """
    Referral code issued to a referrer.

    Lifecycle:
    - created as ``active`` (first link request or link refresh)
    - ``active`` → ``verified`` when the referred user completes signup
    - ``active`` → ``used`` on the alternate consumption path
    - ``active`` → ``invalid`` when signup is attempted while unusable
    """

    __tablename__ = "referral_codes"
    __table_args__ = (
        # At most one active code per referrer
        Index(
            "uq_referral_codes_active_referrer",
            "referrer_id",
            unique=True,
            postgresql_where=_ACTIVE_ONLY,
            sqlite_where=_ACTIVE_ONLY,
        ),
        Index(
            "ix_referral_codes_referred_status_created",
            "referred_id",
            "status",
            "created_at",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    code: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )

    referrer_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True, comment="Owning user"
    )
    referred_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, comment="Set when the code is consumed"
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ReferralCodeStatus.ACTIVE.value,
        comment="active, verified, used, invalid",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    @property
    def is_active(self) -> bool:
        """Check if the code can still be consumed."""
        return self.status == ReferralCodeStatus.ACTIVE

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ReferralCode("
            f"id={self.id}, "
            f"code={self.code!r}, "
            f"referrer_id={self.referrer_id!r}, "
            f"referred_id={self.referred_id!r}, "
            f"status={self.status}"
            f")>"
        )
