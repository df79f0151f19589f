"""Unit tests for ReferralNotifier."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from refchain.services.referral.notifications import (
    LoggingNotificationHook,
    NotificationHook,
    ReferralNotifier,
)


class TestReferralNotifier:
    """Test hook dispatch."""

    def test_default_hook_logs(self):
        """Without a hook, events are only logged."""
        notifier = ReferralNotifier()

        assert isinstance(notifier.hook, LoggingNotificationHook)
        assert isinstance(notifier.hook, NotificationHook)

    @pytest.mark.asyncio
    async def test_async_hook(self):
        """Coroutine hooks are awaited."""
        hook = MagicMock()
        hook.on_referral_verified = AsyncMock()
        notifier = ReferralNotifier(hook)

        result = await notifier.referral_verified("A", "B", "CODE")

        assert result.ok is True
        hook.on_referral_verified.assert_awaited_once_with("A", "B", "CODE")

    @pytest.mark.asyncio
    async def test_failing_hook(self):
        """Hook failures are reported, not raised."""
        hook = MagicMock()
        hook.on_invalid_referral.side_effect = ConnectionError("sms down")
        notifier = ReferralNotifier(hook)

        result = await notifier.invalid_referral("A", "CODE", "used")

        assert result.ok is False
        assert result.step == "notify_invalid_referral"

    @pytest.mark.asyncio
    async def test_hook_without_click_handler(self):
        """Click events are optional for hooks."""

        class VerifyOnlyHook:
            def on_referral_verified(self, referrer_id, referred_id, code):
                pass

            def on_invalid_referral(self, referrer_id, code, reason):
                pass

        result = await ReferralNotifier(VerifyOnlyHook()).link_clicked("A", "CODE")

        assert result.ok is True

    @pytest.mark.asyncio
    async def test_logging_hook(self):
        """The logging hook accepts every event."""
        notifier = ReferralNotifier(LoggingNotificationHook())

        results = [
            await notifier.referral_verified("A", "B", "CODE"),
            await notifier.invalid_referral("A", "CODE", "used"),
            await notifier.link_clicked("A", "CODE"),
        ]

        assert all(r.ok for r in results)
