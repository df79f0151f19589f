"""
Unit tests for ChainWalker.

Tests cover:
- Layer numbering from the direct referrer upward
- Depth bound
- Cycle detection on corrupted data
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from refchain.services.referral.chain_walker import ChainWalker


@pytest.fixture
def walker_for(mock_session):
    """Build a ChainWalker over an in-memory ``referred → referral`` map."""

    def _walker(referrals: dict):
        walker = ChainWalker(mock_session)
        walker.code_repo = MagicMock()
        walker.code_repo.find_most_recent_verified_for = AsyncMock(
            side_effect=lambda user_id: referrals.get(user_id)
        )
        return walker

    return _walker


class TestChainWalker:
    """Test upward chain traversal."""

    @pytest.mark.asyncio
    async def test_full_chain(self, walker_for, make_referral):
        """A → B → C → D gives C, B, A for D."""
        referrals = {
            "D": make_referral("C", "D"),
            "C": make_referral("B", "C"),
            "B": make_referral("A", "B"),
        }

        chain = await walker_for(referrals).walk("D", max_depth=3)

        assert chain.user_ids == ["C", "B", "A"]
        assert [link.layer for link in chain] == [1, 2, 3]
        assert chain.direct_referrer_id == "C"
        assert chain.links[0].referral_code_id == referrals["D"].id

    @pytest.mark.asyncio
    async def test_depth_bound(self, walker_for, make_referral):
        """The walk stops after max_depth layers."""
        referrals = {
            "D": make_referral("C", "D"),
            "C": make_referral("B", "C"),
            "B": make_referral("A", "B"),
        }
        walker = walker_for(referrals)

        chain = await walker.walk("D", max_depth=1)

        assert chain.user_ids == ["C"]
        assert walker.code_repo.find_most_recent_verified_for.await_count == 1

    @pytest.mark.asyncio
    async def test_chain_shorter_than_depth(self, walker_for, make_referral):
        """The walk stops at the root referrer."""
        referrals = {"B": make_referral("A", "B")}

        chain = await walker_for(referrals).walk("B", max_depth=3)

        assert chain.user_ids == ["A"]
        assert len(chain) == 1

    @pytest.mark.asyncio
    async def test_no_referral(self, walker_for):
        """Users without a verified referral have an empty chain."""
        chain = await walker_for({}).walk("A", max_depth=3)

        assert not chain
        assert chain.direct_referrer_id is None

    @pytest.mark.asyncio
    async def test_cycle_is_truncated(self, walker_for, make_referral):
        """A user never appears twice; the walk stops at the repeat."""
        referrals = {
            "A": make_referral("B", "A"),
            "B": make_referral("C", "B"),
            "C": make_referral("A", "C"),
        }

        chain = await walker_for(referrals).walk("A", max_depth=10)

        assert chain.user_ids == ["B", "C"]

    @pytest.mark.asyncio
    async def test_self_loop(self, walker_for, make_referral):
        """A record pointing a user at themselves yields nothing."""
        referrals = {"A": make_referral("A", "A")}

        chain = await walker_for(referrals).walk("A", max_depth=3)

        assert chain.user_ids == []
