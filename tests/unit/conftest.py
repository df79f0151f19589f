"""
Shared fixtures for unit tests.

This module provides common fixtures used across multiple test modules:
- Mock database session
- Referral code factory
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from refchain.models.enums import ReferralCodeStatus
from refchain.models.referral_code import ReferralCode


@pytest.fixture
def mock_session():
    """
    Mock async database session.

    ``begin_nested()`` returns an async context manager that does not
    swallow exceptions.

    Returns:
        AsyncMock: Mocked async session for database operations
    """
    session = AsyncMock()
    session.begin_nested = MagicMock()
    session.begin_nested.return_value.__aenter__ = AsyncMock()
    session.begin_nested.return_value.__aexit__ = AsyncMock(return_value=False)
    return session


@pytest.fixture
def make_referral():
    """
    Factory for transient referral code records.

    Returns:
        Callable building ReferralCode instances not bound to a session
    """
    counter = {"id": 0}

    def _make(
        referrer_id: str,
        referred_id: str | None = None,
        status: ReferralCodeStatus = ReferralCodeStatus.VERIFIED,
        code: str | None = None,
    ):
        counter["id"] += 1
        return ReferralCode(
            id=counter["id"],
            code=code or f"CODE{counter['id']:06d}",
            referrer_id=referrer_id,
            referred_id=referred_id,
            status=status.value,
        )

    return _make
