"""
Referral program service.

Entry point used by request handlers. Each call runs in its own session and
transaction; notifications and link refresh run only after the transaction
that triggered them has committed, and their failures are logged, never
raised.
"""

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from refchain.config.settings import settings
from refchain.models.commission_ledger import CommissionLedgerEntry
from refchain.models.enums import ReferralCodeStatus
from refchain.models.referral_code import ReferralCode
from refchain.repositories.referral_code_repository import (
    ReferralCodeRepository,
)
from refchain.services.referral.code_generator import ReferralCodeGenerator
from refchain.services.referral.code_service import ReferralCodeService
from refchain.services.referral.commission_calculator import (
    CommissionCalculator,
    CommissionResult,
)
from refchain.services.referral.config import ReferralProgramConfig
from refchain.services.referral.notifications import (
    NotificationHook,
    ReferralNotifier,
)
from refchain.services.referral.statistics import (
    CommissionStats,
    ReferralStatisticsManager,
    ReferralStats,
)
from refchain.utils.best_effort import run_best_effort
from refchain.utils.db_guard import store_guard
from refchain.utils.exceptions import AlreadyConsumed

INACTIVE_SIGNUP_REASON = "Referral was not active during signup"


@dataclass(frozen=True)
class CodeValidation:
    """Answer to "can this code still be used?"."""

    valid: bool
    message: str
    used: bool = False
    code: str | None = None
    referrer_id: str | None = None


class ReferralProgram:
    """
    Referral link and commission operations.

    Example:
        program = ReferralProgram(session_maker)
        code = await program.generate_or_return_active_link("user-a")
        await program.verify_signup(code.code, "user-b")
        result = await program.calculate_commissions("user-b", "100.00", "order-1")
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        config: ReferralProgramConfig | None = None,
        notification_hook: NotificationHook | None = None,
        generator: ReferralCodeGenerator | None = None,
        store_timeout: float | None = None,
        notification_timeout: float | None = None,
        frontend_url: str | None = None,
    ) -> None:
        """
        Initialize referral program.

        Args:
            session_maker: Factory for per-request sessions; must use
                expire_on_commit=False so returned rows stay readable
            config: Rate and depth tables (defaults from settings)
            notification_hook: Receiver of referral events
            generator: Referral code generator (defaults from settings)
            store_timeout: Default seconds per store operation
            notification_timeout: Seconds per notification call
            frontend_url: Base URL for shareable links
        """
        self.session_maker = session_maker
        self.config = config or ReferralProgramConfig.from_settings(settings)
        self.generator = generator or ReferralCodeGenerator(
            length=settings.referral_code_length,
            max_attempts=settings.referral_code_max_attempts,
        )
        self.store_timeout = (
            store_timeout if store_timeout is not None
            else settings.store_timeout_seconds
        )
        self.notifier = ReferralNotifier(
            notification_hook,
            timeout=(
                notification_timeout if notification_timeout is not None
                else settings.notification_timeout_seconds
            ),
        )
        self.frontend_url = (frontend_url or settings.frontend_url).rstrip("/")
        self.logger = logger.bind(service=self.__class__.__name__)

    @asynccontextmanager
    async def _transaction(
        self, operation: str, timeout: float | None = None
    ) -> AsyncIterator[AsyncSession]:
        """Open a session and transaction bounded by the store timeout."""
        async with store_guard(
            operation, timeout if timeout is not None else self.store_timeout
        ):
            async with self.session_maker() as session:
                async with session.begin():
                    yield session

    def _codes(self, session: AsyncSession) -> ReferralCodeService:
        return ReferralCodeService(session, self.generator)

    def _stats(self, session: AsyncSession) -> ReferralStatisticsManager:
        return ReferralStatisticsManager(session, self.config)

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    async def generate_or_return_active_link(
        self, referrer_id: str, timeout: float | None = None
    ) -> ReferralCode:
        """
        Get the referrer's active code, creating one if needed.

        Calling this repeatedly without an intervening verification returns
        the same code.

        Args:
            referrer_id: Referrer user ID
            timeout: Store timeout override in seconds

        Returns:
            Active ReferralCode
        """
        async with self._transaction("generate_link", timeout) as session:
            return await self._codes(session).create_code(referrer_id)

    def referral_link_url(self, code: str) -> str:
        """Build the shareable URL for a code."""
        return f"{self.frontend_url}/referral/{code}"

    async def validate_code(self, code: str) -> CodeValidation:
        """
        Check whether a code can still be used for signup.

        Args:
            code: Referral code string

        Returns:
            CodeValidation (never raises for unknown or consumed codes)
        """
        async with self._transaction("validate_code") as session:
            referral = await ReferralCodeRepository(session).find_code_by_value(code)

        if referral is None:
            return CodeValidation(valid=False, message="Referral code not found")

        if referral.status in (
            ReferralCodeStatus.VERIFIED, ReferralCodeStatus.USED
        ):
            return CodeValidation(
                valid=False,
                message="This referral link has already been used",
                used=True,
                code=referral.code,
                referrer_id=referral.referrer_id,
            )

        if not referral.is_active:
            return CodeValidation(
                valid=False,
                message="This referral link is not active",
                code=referral.code,
                referrer_id=referral.referrer_id,
            )

        return CodeValidation(
            valid=True,
            message="Referral link is valid",
            code=referral.code,
            referrer_id=referral.referrer_id,
        )

    async def record_link_click(self, code: str) -> ReferralCode:
        """
        Register that a referral link was opened and notify its owner.

        Args:
            code: Referral code string

        Returns:
            The active ReferralCode

        Raises:
            NotFound: Unknown code
            AlreadyConsumed: Code is no longer active
        """
        async with self._transaction("record_link_click") as session:
            referral = await self._codes(session).find_by_code(code)

        if not referral.is_active:
            raise AlreadyConsumed(
                "This referral link is not active",
                code=code,
                referrer_id=referral.referrer_id,
                status=referral.status,
            )

        await self.notifier.link_clicked(referral.referrer_id, code)
        return referral

    async def list_codes(
        self, referrer_id: str, limit: int | None = None, offset: int | None = None
    ) -> list[ReferralCode]:
        """Get every code issued to a referrer, newest first."""
        async with self._transaction("list_codes") as session:
            return await self._stats(session).list_codes(
                referrer_id, limit=limit, offset=offset
            )

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    async def verify_signup(
        self, code: str, new_user_id: str, timeout: float | None = None
    ) -> ReferralCode:
        """
        Verify a signup made with a referral code.

        On a fresh verification the referrer is notified and given a new
        active code. Both steps are best-effort.

        Args:
            code: Referral code string
            new_user_id: ID of the user who signed up
            timeout: Store timeout override in seconds

        Returns:
            Verified ReferralCode

        Raises:
            NotFound: Unknown code
            SelfReferral: Referrer used their own code
            AlreadyConsumed: Code is not active
            StoreUnavailable: Store timed out or is unreachable
        """
        try:
            async with self._transaction("verify_signup", timeout) as session:
                transition = await self._codes(session).verify_transition(
                    code, new_user_id
                )
        except AlreadyConsumed as e:
            await self.notifier.invalid_referral(
                e.context["referrer_id"], code, INACTIVE_SIGNUP_REASON
            )
            raise

        referral = transition.referral
        if not transition.changed:
            return referral

        await self.notifier.referral_verified(
            referral.referrer_id, new_user_id, code
        )

        refresh = await run_best_effort(
            "refresh_referral_link",
            self.generate_or_return_active_link,
            referral.referrer_id,
            context={"referrer_id": referral.referrer_id, "used_code": code},
        )
        if refresh.ok:
            self.logger.info(
                "Referral link refreshed",
                extra={
                    "referrer_id": referral.referrer_id,
                    "code": refresh.value.code,
                },
            )

        return referral

    async def mark_code_used(
        self, code: str, user_id: str, timeout: float | None = None
    ) -> ReferralCode:
        """
        Consume a code without the verification flow.

        Args:
            code: Referral code string
            user_id: ID of the user who used the code
            timeout: Store timeout override in seconds

        Returns:
            ReferralCode in ``used`` state
        """
        async with self._transaction("mark_code_used", timeout) as session:
            return await self._codes(session).mark_used(code, user_id)

    async def invalidate_code(
        self,
        code: str,
        reason: str,
        referred_user_id: str | None = None,
        timeout: float | None = None,
    ) -> ReferralCode:
        """
        Invalidate an active code and notify its owner.

        Args:
            code: Referral code string
            reason: Human-readable reason
            referred_user_id: User whose attempt triggered it, if any
            timeout: Store timeout override in seconds

        Returns:
            ReferralCode in ``invalid`` state
        """
        async with self._transaction("invalidate_code", timeout) as session:
            referral = await self._codes(session).invalidate(
                code, reason, referred_user_id
            )

        await self.notifier.invalid_referral(referral.referrer_id, code, reason)
        return referral

    # ------------------------------------------------------------------
    # Commissions
    # ------------------------------------------------------------------

    async def calculate_commissions(
        self,
        purchaser_id: str,
        amount: Decimal | int | float | str,
        reference: str | None = None,
        timeout: float | None = None,
    ) -> CommissionResult:
        """
        Calculate and store commissions for a purchase.

        Args:
            purchaser_id: User who made the purchase
            amount: Purchase amount
            reference: Purchase idempotency key (generated if omitted)
            timeout: Store timeout override in seconds

        Returns:
            CommissionResult

        Raises:
            InvalidAmount, NotRegisteredViaReferral, NoReferralChain,
            ReferenceConflict, PartialLedgerWriteFailure, StoreUnavailable
        """
        if reference is None:
            reference = f"purchase-{uuid.uuid4().hex}"

        async with self._transaction("calculate_commissions", timeout) as session:
            calculator = CommissionCalculator(session, self.config)
            return await calculator.calculate(purchaser_id, amount, reference)

    async def has_completed_registration(self, user_id: str) -> bool:
        """Check if a user signed up through a verified referral."""
        async with self._transaction("has_completed_registration") as session:
            return await self._stats(session).has_completed_registration(user_id)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    async def get_stats(self, user_id: str) -> ReferralStats:
        """Get referral code counts for a referrer."""
        async with self._transaction("get_stats") as session:
            return await self._stats(session).get_stats(user_id)

    async def get_commission_stats(self, user_id: str) -> CommissionStats:
        """Get commission totals for a beneficiary."""
        async with self._transaction("get_commission_stats") as session:
            return await self._stats(session).get_commission_stats(user_id)

    async def get_user_commissions(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[CommissionLedgerEntry]:
        """Get a beneficiary's ledger entries, newest first."""
        async with self._transaction("get_user_commissions") as session:
            return await self._stats(session).get_user_commissions(
                user_id,
                limit=limit,
                offset=offset,
                start_date=start_date,
                end_date=end_date,
            )
