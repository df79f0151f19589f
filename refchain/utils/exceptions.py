"""
Referral core exceptions.

Every failure the core reports to its callers derives from
``ReferralError`` and carries a stable ``code`` for message mapping.
"""


class ReferralError(Exception):
    """Base class for referral core errors."""

    code = "referral_error"
    retryable = False

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


# Client errors (state machine)

class NotFound(ReferralError):
    """Unknown referral code or user."""

    code = "not_found"


class AlreadyConsumed(ReferralError):
    """Referral code is no longer ``active``."""

    code = "already_consumed"


class SelfReferral(ReferralError):
    """A referrer tried to consume their own code."""

    code = "self_referral"


# Client errors (purchase side, never write ledger entries)

class NotRegisteredViaReferral(ReferralError):
    """Purchaser has no verified upstream referral."""

    code = "not_registered_via_referral"


class InvalidAmount(ReferralError):
    """Purchase amount is not a positive finite number."""

    code = "invalid_amount"


class NoReferralChain(ReferralError):
    """Chain walk produced no beneficiaries."""

    code = "no_referral_chain"


class ReferenceConflict(ReferralError):
    """Purchase reference already recorded for a different purchase."""

    code = "reference_conflict"


# Infrastructure

class StoreUnavailable(ReferralError):
    """Transient store failure or timeout. Safe to retry with backoff."""

    code = "store_unavailable"
    retryable = True


class CodeCollision(ReferralError):
    """Generated referral codes kept colliding on insert. Safe to retry."""

    code = "code_collision"
    retryable = True


class PartialLedgerWriteFailure(ReferralError):
    """All-or-nothing ledger write returned fewer rows than requested."""

    code = "partial_ledger_write"
