"""
Commission calculation.

Turns a purchase by a referred user into one immutable ledger entry per
paid layer of the referral chain above them.
"""

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import StrEnum

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from refchain.config.constants import MAX_PURCHASE_AMOUNT, MONEY_QUANTUM
from refchain.models.commission_ledger import CommissionLedgerEntry
from refchain.repositories.commission_ledger_repository import (
    CommissionLedgerRepository,
)
from refchain.repositories.referral_code_repository import (
    ReferralCodeRepository,
)
from refchain.services.base_service import BaseService
from refchain.services.referral.chain_walker import (
    ChainLink,
    ChainWalker,
    ReferralChain,
)
from refchain.services.referral.config import ReferralProgramConfig
from refchain.services.referral.tier_policy import TierPolicy
from refchain.utils.exceptions import (
    InvalidAmount,
    NoReferralChain,
    NotRegisteredViaReferral,
    ReferenceConflict,
)


class CommissionStage(StrEnum):
    """Stages a purchase moves through during calculation."""

    PURCHASE_REQUESTED = "purchase_requested"
    REGISTRATION_CHECKED = "registration_checked"
    CHAIN_WALKED = "chain_walked"
    LEDGER_WRITTEN = "ledger_written"
    COMPLETED = "completed"
    REJECTED = "rejected"


@dataclass(frozen=True)
class CommissionResult:
    """Result of commission calculation for one purchase."""

    purchase_reference: str
    purchase_amount: Decimal
    chain: ReferralChain
    entries: list[CommissionLedgerEntry] = field(default_factory=list)
    total: Decimal = Decimal("0")
    replayed: bool = False

    @property
    def commission_count(self) -> int:
        """Number of ledger entries for the purchase."""
        return len(self.entries)


def normalize_amount(amount: Decimal | int | float | str) -> Decimal:
    """
    Convert a purchase amount to Decimal and validate it.

    The amount is rounded to ledger precision, so the returned value is
    exactly what gets stored.

    Args:
        amount: Purchase amount in currency units

    Returns:
        Amount as Decimal quantized to 8 decimal places

    Raises:
        InvalidAmount: If the amount is not a positive finite number that
            fits the ledger columns
    """
    if isinstance(amount, bool):
        raise InvalidAmount("Amount must be a number", amount=amount)
    if isinstance(amount, float) and not math.isfinite(amount):
        raise InvalidAmount("Amount must be finite", amount=str(amount))

    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise InvalidAmount("Amount must be a number", amount=str(amount)) from e

    if not value.is_finite():
        raise InvalidAmount("Amount must be finite", amount=str(amount))
    if value <= 0:
        raise InvalidAmount("Amount must be positive", amount=str(amount))
    if value > MAX_PURCHASE_AMOUNT:
        raise InvalidAmount(
            f"Amount must not exceed {MAX_PURCHASE_AMOUNT}", amount=str(amount)
        )

    value = value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)
    if value <= 0:
        raise InvalidAmount(
            f"Amount is below the smallest unit {MONEY_QUANTUM}",
            amount=str(amount),
        )
    return value


def calculate_layer_commission(amount: Decimal, rate: Decimal) -> Decimal:
    """
    Calculate one layer's commission.

    Args:
        amount: Purchase amount
        rate: Layer rate as a fraction (0.12 == 12%)

    Returns:
        amount * rate, quantized to ledger precision
    """
    return (amount * rate).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


class CommissionCalculator(BaseService):
    """
    Calculates and records commissions for purchases.

    The caller owns the transaction: all ledger entries of a purchase are
    written by one bulk insert and committed together.
    """

    def __init__(
        self, session: AsyncSession, config: ReferralProgramConfig
    ) -> None:
        """
        Initialize commission calculator.

        Args:
            session: Async database session
            config: Rate and depth tables
        """
        super().__init__(session)
        self.config = config
        self.code_repo = ReferralCodeRepository(session)
        self.ledger_repo = CommissionLedgerRepository(session)
        self.tier_policy = TierPolicy(session, config)
        self.chain_walker = ChainWalker(session)

    async def calculate(
        self,
        referred_user_id: str,
        purchase_amount: Decimal | int | float | str,
        purchase_reference: str,
    ) -> CommissionResult:
        """
        Calculate and store commissions for a purchase.

        ``purchase_reference`` is an idempotency key: if entries already
        exist for it with the same purchaser and amount, they are returned
        with ``replayed=True`` and nothing new is written.

        Args:
            referred_user_id: User who made the purchase
            purchase_amount: Amount of the purchase
            purchase_reference: Unique purchase identifier

        Returns:
            CommissionResult with chain, entries and total

        Raises:
            InvalidAmount: Amount is not a positive finite number
            NotRegisteredViaReferral: Purchaser has no verified referral
            NoReferralChain: No layer could be paid
            ReferenceConflict: Reference already recorded for another
                purchaser or amount
            PartialLedgerWriteFailure: Bulk insert wrote fewer rows
        """
        self._stage(CommissionStage.PURCHASE_REQUESTED, purchase_reference)

        try:
            amount = normalize_amount(purchase_amount)
        except InvalidAmount:
            self._stage(CommissionStage.REJECTED, purchase_reference, reason="invalid_amount")
            raise

        direct = await self.code_repo.find_most_recent_verified_for(referred_user_id)
        if direct is None:
            self._stage(CommissionStage.REJECTED, purchase_reference, reason="not_registered")
            raise NotRegisteredViaReferral(
                "User has not completed registration via referral",
                user_id=referred_user_id,
            )
        self._stage(CommissionStage.REGISTRATION_CHECKED, purchase_reference)

        existing = await self.ledger_repo.find_by_purchase_reference(purchase_reference)
        if existing:
            return self._replay(
                existing, referred_user_id, amount, purchase_reference
            )

        # Depth comes from the direct referrer's tier, not the purchaser's
        max_depth = await self.tier_policy.max_depth(direct.referrer_id)
        chain = await self.chain_walker.walk(referred_user_id, max_depth)
        if not chain:
            self._stage(CommissionStage.REJECTED, purchase_reference, reason="no_chain")
            raise NoReferralChain(
                "No referral chain found", user_id=referred_user_id
            )
        self._stage(CommissionStage.CHAIN_WALKED, purchase_reference, layers=len(chain))

        rows = self._build_entries(
            chain, referred_user_id, amount, purchase_reference
        )
        if not rows:
            self._stage(CommissionStage.REJECTED, purchase_reference, reason="no_paid_layers")
            raise NoReferralChain(
                "No commission rate applies to any layer",
                user_id=referred_user_id,
            )

        try:
            entries = await self.ledger_repo.insert_ledger_entries(rows)
        except IntegrityError:
            # Same reference written concurrently
            existing = await self.ledger_repo.find_by_purchase_reference(
                purchase_reference
            )
            if not existing:
                raise
            return self._replay(
                existing, referred_user_id, amount, purchase_reference
            )
        self._stage(CommissionStage.LEDGER_WRITTEN, purchase_reference, entries=len(entries))

        total = sum((e.amount for e in entries), Decimal("0"))

        for entry in entries:
            self.logger.info(
                "Commission recorded",
                extra={
                    "purchase_reference": purchase_reference,
                    "beneficiary_id": entry.beneficiary_id,
                    "layer": entry.layer,
                    "rate": str(entry.commission_rate),
                    "amount": str(entry.amount),
                    "purchase_amount": str(amount),
                },
            )

        self._stage(CommissionStage.COMPLETED, purchase_reference, total=str(total))

        return CommissionResult(
            purchase_reference=purchase_reference,
            purchase_amount=amount,
            chain=chain,
            entries=entries,
            total=total,
        )

    def _build_entries(
        self,
        chain: ReferralChain,
        purchaser_id: str,
        amount: Decimal,
        purchase_reference: str,
    ) -> list[dict]:
        created_at = datetime.now(UTC)
        rows = []

        for link in chain:
            rate = self.config.rate_for(link.layer)
            if rate is None:
                self.logger.warning(
                    "No commission rate defined for layer, skipped",
                    extra={
                        "purchase_reference": purchase_reference,
                        "layer": link.layer,
                        "beneficiary_id": link.user_id,
                "purchaser_id": purchaser_id,
                    },
                )
                continue

            rows.append({
                "beneficiary_id": link.user_id,
                "referral_code_id": link.referral_code_id,
                "layer": link.layer,
                "amount": calculate_layer_commission(amount, rate),
                "purchase_amount": amount,
                "commission_rate": rate,
                "purchase_reference": purchase_reference,
                "created_at": created_at,
            })

        return rows

    def _replay(
        self,
        entries: list[CommissionLedgerEntry],
        purchaser_id: str,
        amount: Decimal,
        purchase_reference: str,
    ) -> CommissionResult:
        stored_purchaser_id = entries[0].purchaser_id
        stored_amount = entries[0].purchase_amount
        if stored_purchaser_id != purchaser_id or stored_amount != amount:
            self._stage(
                CommissionStage.REJECTED,
                purchase_reference,
                reason="reference_conflict",
                stored_purchaser_id=stored_purchaser_id,
                purchaser_id=purchaser_id,
                stored_amount=str(stored_amount),
                requested_amount=str(amount),
            )
            raise ReferenceConflict(
                "Purchase reference already used for a different purchase",
                purchase_reference=purchase_reference,
                purchaser_id=purchaser_id,
            )

        self.logger.info(
            "Purchase reference already processed, returning stored commissions",
            extra={"purchase_reference": purchase_reference},
        )

        chain = ReferralChain(links=tuple(
            ChainLink(
                user_id=e.beneficiary_id,
                layer=e.layer,
                referral_code_id=e.referral_code_id,
            )
            for e in entries
        ))
        return CommissionResult(
            purchase_reference=purchase_reference,
            purchase_amount=stored_amount,
            chain=chain,
            entries=entries,
            total=sum((e.amount for e in entries), Decimal("0")),
            replayed=True,
        )

    def _stage(
        self, stage: CommissionStage, purchase_reference: str, **context: object
    ) -> None:
        log = self.logger.warning if stage is CommissionStage.REJECTED else self.logger.debug
        log(
            f"Commission {stage.value}",
            extra={"purchase_reference": purchase_reference, "stage": stage.value, **context},
        )
