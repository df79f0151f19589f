"""
Services.

Business logic layer.
"""

from refchain.services.base_service import BaseService
from refchain.services.referral_program import CodeValidation, ReferralProgram


__all__ = [
    "BaseService",
    "CodeValidation",
    "ReferralProgram",
]
