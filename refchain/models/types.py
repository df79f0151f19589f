"""
Standard type definitions for database models.

Provides consistent types for monetary and rate fields across all models.
"""

from sqlalchemy import DECIMAL

# Standard money type for purchase and commission amounts
# Precision: 18 digits total, 8 after decimal point
# Range: up to 9,999,999,999.99999999
MoneyType = DECIMAL(18, 8)

# Commission rate stored as a fraction (0.1200 == 12%)
# Precision: 6 digits total, 4 after decimal point
RateType = DECIMAL(6, 4)
