"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from refchain.models.base import Base
from refchain.models.commission_ledger import CommissionLedgerEntry
from refchain.models.enums import ReferralCodeStatus
from refchain.models.referral_code import ReferralCode
from refchain.models.user import User


__all__ = [
    "Base",
    "CommissionLedgerEntry",
    "ReferralCode",
    "ReferralCodeStatus",
    "User",
]
