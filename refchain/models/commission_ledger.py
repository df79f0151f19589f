"""
Commission ledger model.

Immutable record of one layer's commission for one purchase.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from refchain.models.base import Base
from refchain.models.types import MoneyType, RateType


class CommissionLedgerEntry(Base):
    """
    Commission ledger entry.

    ``amount`` is always ``purchase_amount * commission_rate`` with the
    rate fixed at creation time. Entries are never updated or deleted.
    """

    __tablename__ = "commission_ledger"
    __table_args__ = (
        UniqueConstraint(
            "purchase_reference", "layer",
            name="uq_commission_ledger_purchase_layer",
        ),
        CheckConstraint("layer >= 1", name="check_commission_layer_positive"),
        CheckConstraint("amount >= 0", name="check_commission_amount_non_negative"),
        CheckConstraint(
            "purchase_amount > 0", name="check_commission_purchase_positive"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    beneficiary_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )
    purchaser_id: Mapped[str] = mapped_column(
        String(64), nullable=False, comment="User whose purchase paid the commission"
    )
    referral_code_id: Mapped[int] = mapped_column(
        ForeignKey("referral_codes.id"),
        nullable=False,
        index=True,
        comment="Verified referral linking the beneficiary to the layer below",
    )

    layer: Mapped[int] = mapped_column(Integer, nullable=False)

    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    purchase_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)

    purchase_reference: Mapped[str] = mapped_column(
        String(128), nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<CommissionLedgerEntry("
            f"id={self.id}, "
            f"beneficiary_id={self.beneficiary_id!r}, "
            f"layer={self.layer}, "
            f"amount={self.amount}, "
            f"purchase_reference={self.purchase_reference!r}"
            f")>"
        )
