"""
Referral program constants.

Centralized business constants for referral codes and commissions.
"""

from decimal import Decimal

# ========================================================================
# REFERRAL CODE CONSTANTS
# ========================================================================

REFERRAL_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
REFERRAL_CODE_LENGTH = 10
REFERRAL_CODE_MAX_ATTEMPTS = 10  # Random attempts before composite fallback
REFERRAL_CODE_OWNER_FRAGMENT = 4  # Trailing chars of owner id in fallback codes
REFERRAL_CODE_RANDOM_BYTES = 4  # Random suffix bytes in fallback codes
REFERRAL_CODE_INSERT_ATTEMPTS = 2  # Inserts tried when a code value collides

# ========================================================================
# COMMISSION CONSTANTS
# ========================================================================

# Layer 1 → 12%, Layer 2 → 8%, Layer 3 → 4%
COMMISSION_RATES = {
    1: Decimal("0.12"),
    2: Decimal("0.08"),
    3: Decimal("0.04"),
}

# Tier → max chain depth above the purchaser
TIER_DEPTH_LIMITS = {
    "gold": 3,
    "silver": 2,
    "bronze": 1,
}
DEFAULT_CHAIN_DEPTH = 1  # Unknown or missing tier

# Ledger amounts are stored as DECIMAL(18, 8)
MONEY_QUANTUM = Decimal("0.00000001")
MAX_PURCHASE_AMOUNT = Decimal("9999999999.99999999")  # Largest DECIMAL(18, 8)

# ========================================================================
# TIMEOUTS (seconds)
# ========================================================================

STORE_TIMEOUT = 5.0
NOTIFICATION_TIMEOUT = 2.0
