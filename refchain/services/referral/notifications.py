"""
Referral notifications.

Notification delivery (email, SMS, push) is external; the core talks to it
through the ``NotificationHook`` interface and never lets a delivery
failure reach the request that triggered it.
"""

from typing import Any, Protocol, runtime_checkable

from loguru import logger

from refchain.config.constants import NOTIFICATION_TIMEOUT
from refchain.utils.best_effort import BestEffortResult, run_best_effort


@runtime_checkable
class NotificationHook(Protocol):
    """
    Receiver of referral events.

    Methods may be plain functions or coroutines.
    """

    def on_referral_verified(
        self, referrer_id: str, referred_id: str, code: str
    ) -> Any:
        """A referred user completed signup with ``code``."""

    def on_invalid_referral(
        self, referrer_id: str, code: str, reason: str
    ) -> Any:
        """A signup was attempted with a code that is not usable."""

    def on_link_clicked(self, referrer_id: str, code: str) -> Any:
        """Someone opened the referral link."""


class LoggingNotificationHook:
    """Notification hook that only writes log records."""

    def on_referral_verified(
        self, referrer_id: str, referred_id: str, code: str
    ) -> None:
        logger.info(
            "Referral verification notification",
            extra={
                "to_user": referrer_id,
                "referred_id": referred_id,
                "code": code,
            },
        )

    def on_invalid_referral(
        self, referrer_id: str, code: str, reason: str
    ) -> None:
        logger.info(
            "Invalid referral notification",
            extra={"to_user": referrer_id, "code": code, "reason": reason},
        )

    def on_link_clicked(self, referrer_id: str, code: str) -> None:
        logger.info(
            "Referral link click notification",
            extra={"to_user": referrer_id, "code": code},
        )


class ReferralNotifier:
    """Dispatches referral events to a hook inside an error boundary."""

    def __init__(
        self,
        hook: NotificationHook | None = None,
        timeout: float = NOTIFICATION_TIMEOUT,
    ) -> None:
        self.hook = hook or LoggingNotificationHook()
        self.timeout = timeout

    async def referral_verified(
        self, referrer_id: str, referred_id: str, code: str
    ) -> BestEffortResult:
        """Notify referrer about a verified signup."""
        return await run_best_effort(
            "notify_referral_verified",
            self.hook.on_referral_verified,
            referrer_id,
            referred_id,
            code,
            timeout=self.timeout,
            context={"referrer_id": referrer_id, "code": code},
        )

    async def invalid_referral(
        self, referrer_id: str, code: str, reason: str
    ) -> BestEffortResult:
        """Notify referrer that their code was rejected."""
        return await run_best_effort(
            "notify_invalid_referral",
            self.hook.on_invalid_referral,
            referrer_id,
            code,
            reason,
            timeout=self.timeout,
            context={"referrer_id": referrer_id, "code": code},
        )

    async def link_clicked(self, referrer_id: str, code: str) -> BestEffortResult:
        """Notify referrer that their link was opened."""
        on_link_clicked = getattr(self.hook, "on_link_clicked", None)
        if on_link_clicked is None:
            return BestEffortResult(step="notify_link_clicked", ok=True)

        return await run_best_effort(
            "notify_link_clicked",
            on_link_clicked,
            referrer_id,
            code,
            timeout=self.timeout,
            context={"referrer_id": referrer_id, "code": code},
        )
