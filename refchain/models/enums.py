"""
Model enumerations.

String enums stored as plain VARCHAR columns.
"""

from enum import StrEnum


class ReferralCodeStatus(StrEnum):
    """Referral code lifecycle states.

    ``ACTIVE`` is the only initial state; every other state is terminal.
    """

    ACTIVE = "active"
    VERIFIED = "verified"  # Signup completed
    USED = "used"  # Consumed without full verification flow
    INVALID = "invalid"  # Signup attempted while not usable
