"""
Referral code state management.

Owns the referral code lifecycle: issuing the referrer's active code and
moving codes out of ``active`` through compare-and-swap updates.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from refchain.config.constants import REFERRAL_CODE_INSERT_ATTEMPTS
from refchain.models.enums import ReferralCodeStatus
from refchain.models.referral_code import ReferralCode
from refchain.repositories.referral_code_repository import (
    ReferralCodeRepository,
)
from refchain.services.base_service import BaseService
from refchain.services.referral.code_generator import ReferralCodeGenerator
from refchain.utils.exceptions import (
    AlreadyConsumed,
    CodeCollision,
    NotFound,
    SelfReferral,
)


@dataclass(frozen=True)
class CodeTransition:
    """Outcome of a consume attempt."""

    referral: ReferralCode
    changed: bool  # False when an earlier identical call already applied it


class ReferralCodeService(BaseService):
    """Referral code lifecycle operations."""

    def __init__(
        self,
        session: AsyncSession,
        generator: ReferralCodeGenerator | None = None,
    ) -> None:
        """Initialize referral code service."""
        super().__init__(session)
        self.code_repo = ReferralCodeRepository(session)
        self.generator = generator or ReferralCodeGenerator()

    async def create_code(self, referrer_id: str) -> ReferralCode:
        """
        Get the referrer's active code, minting one if needed.

        A concurrent request that wins the insert trips the partial unique
        index; in that case the winner's code is returned. A code value
        taken between the uniqueness check and the insert is regenerated.

        Args:
            referrer_id: Referrer user ID

        Returns:
            The referrer's active ReferralCode

        Raises:
            CodeCollision: Every generated code collided on insert
        """
        existing = await self.code_repo.get_active_for_referrer(referrer_id)
        if existing:
            return existing

        last_error = None
        for attempt in range(1, REFERRAL_CODE_INSERT_ATTEMPTS + 1):
            code = await self.generator.generate_unique_code(
                self.code_repo.code_exists, referrer_id
            )

            try:
                async with self.session.begin_nested():
                    referral = await self.code_repo.create_code(code, referrer_id)
            except IntegrityError as e:
                existing = await self.code_repo.get_active_for_referrer(referrer_id)
                if existing is not None:
                    self.logger.info(
                        "Concurrent link creation resolved to existing code",
                        extra={"referrer_id": referrer_id, "code": existing.code},
                    )
                    return existing

                # Code value taken between the uniqueness check and the insert
                self.logger.warning(
                    "Referral code collided on insert",
                    extra={
                        "referrer_id": referrer_id,
                        "code": code,
                        "attempt": attempt,
                    },
                )
                last_error = e
                continue

            self.logger.info(
                "Referral code created",
                extra={"referrer_id": referrer_id, "code": referral.code},
            )
            return referral

        raise CodeCollision(
            "Could not allocate a unique referral code",
            referrer_id=referrer_id,
            attempts=REFERRAL_CODE_INSERT_ATTEMPTS,
        ) from last_error

    async def find_by_code(self, code: str) -> ReferralCode:
        """
        Get referral code by value.

        Args:
            code: Referral code string

        Returns:
            ReferralCode

        Raises:
            NotFound: If the code does not exist
        """
        referral = await self.code_repo.find_code_by_value(code)
        if referral is None:
            raise NotFound("Referral code not found", code=code)
        return referral

    async def verify(self, code: str, referred_user_id: str) -> ReferralCode:
        """
        Verify a signup made with a referral code (``active → verified``).

        Repeating the call for the user that already verified the code
        returns the stored record unchanged.

        Args:
            code: Referral code string
            referred_user_id: ID of the user who signed up

        Returns:
            Verified ReferralCode

        Raises:
            NotFound: Unknown code
            SelfReferral: Referrer used their own code
            AlreadyConsumed: Code is not active (or lost a concurrent race)
        """
        transition = await self.verify_transition(code, referred_user_id)
        return transition.referral

    async def verify_transition(
        self, code: str, referred_user_id: str
    ) -> CodeTransition:
        """
        Verify a signup and report whether this call changed the code.

        Same contract as ``verify``; ``changed`` is False for repeated
        calls so callers can skip side effects that already ran.
        """
        referral = await self.find_by_code(code)

        if self._verified_by(referral, referred_user_id):
            self.logger.info(
                "Referral already verified for this user",
                extra={"code": code, "referred_id": referred_user_id},
            )
            return CodeTransition(referral=referral, changed=False)

        return await self._consume(
            referral, referred_user_id, ReferralCodeStatus.VERIFIED
        )

    async def mark_used(self, code: str, referred_user_id: str) -> ReferralCode:
        """
        Consume a code without the verification flow (``active → used``).

        Args:
            code: Referral code string
            referred_user_id: ID of the user who used the code

        Returns:
            Used ReferralCode

        Raises:
            NotFound: Unknown code
            SelfReferral: Referrer used their own code
            AlreadyConsumed: Code is not active
        """
        referral = await self.find_by_code(code)
        transition = await self._consume(
            referral, referred_user_id, ReferralCodeStatus.USED
        )
        return transition.referral

    async def invalidate(
        self, code: str, reason: str, referred_user_id: str | None = None
    ) -> ReferralCode:
        """
        Mark an active code as invalid (``active → invalid``).

        Args:
            code: Referral code string
            reason: Why the code was invalidated
            referred_user_id: User whose attempt triggered it, if any

        Returns:
            Invalid ReferralCode

        Raises:
            NotFound: Unknown code
            AlreadyConsumed: Code is not active
        """
        referral = await self.find_by_code(code)
        self._require_active(referral)

        fields = {"updated_at": datetime.now(UTC)}
        if referred_user_id is not None:
            fields["referred_id"] = referred_user_id

        updated = await self.code_repo.conditional_update_status(
            code,
            ReferralCodeStatus.ACTIVE,
            ReferralCodeStatus.INVALID,
            **fields,
        )
        if updated is None:
            raise self._consumed_error(referral)

        self.logger.warning(
            "Referral code invalidated",
            extra={
                "code": code,
                "referrer_id": updated.referrer_id,
                "reason": reason,
            },
        )
        return updated

    async def _consume(
        self,
        referral: ReferralCode,
        referred_user_id: str,
        new_status: ReferralCodeStatus,
    ) -> CodeTransition:
        if referral.referrer_id == referred_user_id:
            self.logger.warning(
                "Self-referral rejected",
                extra={"code": referral.code, "user_id": referred_user_id},
            )
            raise SelfReferral(
                "Cannot use your own referral link",
                code=referral.code,
                referrer_id=referral.referrer_id,
            )

        self._require_active(referral)

        updated = await self.code_repo.conditional_update_status(
            referral.code,
            ReferralCodeStatus.ACTIVE,
            new_status,
            referred_id=referred_user_id,
            updated_at=datetime.now(UTC),
        )

        if updated is None:
            # Lost a concurrent transition; see what the winner wrote
            await self.refresh(referral)
            if (
                new_status is ReferralCodeStatus.VERIFIED
                and self._verified_by(referral, referred_user_id)
            ):
                return CodeTransition(referral=referral, changed=False)
            raise self._consumed_error(referral)

        self.logger.info(
            f"Referral code {new_status.value}",
            extra={
                "code": updated.code,
                "referrer_id": updated.referrer_id,
                "referred_id": referred_user_id,
            },
        )
        return CodeTransition(referral=updated, changed=True)

    def _require_active(self, referral: ReferralCode) -> None:
        if not referral.is_active:
            raise self._consumed_error(referral)

    @staticmethod
    def _verified_by(referral: ReferralCode, user_id: str) -> bool:
        return (
            referral.status == ReferralCodeStatus.VERIFIED
            and referral.referred_id == user_id
        )

    @staticmethod
    def _consumed_error(referral: ReferralCode) -> AlreadyConsumed:
        if referral.status in (
            ReferralCodeStatus.VERIFIED, ReferralCodeStatus.USED
        ):
            message = "This referral link has already been used"
        else:
            message = "This referral link is not active"
        return AlreadyConsumed(
            message,
            code=referral.code,
            referrer_id=referral.referrer_id,
            status=referral.status,
        )
