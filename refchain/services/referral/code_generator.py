"""
Referral code generation.

Produces random referral codes and checks them against the store for
uniqueness, falling back to a composite code when collisions persist.
"""

import secrets
import time
from collections.abc import Awaitable, Callable

from loguru import logger

from refchain.config.constants import (
    REFERRAL_CODE_ALPHABET,
    REFERRAL_CODE_LENGTH,
    REFERRAL_CODE_MAX_ATTEMPTS,
    REFERRAL_CODE_OWNER_FRAGMENT,
    REFERRAL_CODE_RANDOM_BYTES,
)

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


class ReferralCodeGenerator:
    """Generates referral codes."""

    def __init__(
        self,
        length: int = REFERRAL_CODE_LENGTH,
        max_attempts: int = REFERRAL_CODE_MAX_ATTEMPTS,
        alphabet: str = REFERRAL_CODE_ALPHABET,
    ) -> None:
        if length < 1:
            raise ValueError("Code length must be positive")
        if max_attempts < 1:
            raise ValueError("max_attempts must be positive")
        self.length = length
        self.max_attempts = max_attempts
        self.alphabet = alphabet

    def generate_code(self) -> str:
        """
        Generate a random fixed-length alphanumeric code.

        Returns:
            Code string of ``self.length`` characters
        """
        return "".join(
            secrets.choice(self.alphabet) for _ in range(self.length)
        )

    def composite_code(self, owner_id: str) -> str:
        """
        Build a code from time, owner id and randomness.

        Format: ``{base36 ms timestamp}-{owner fragment}-{hex random}``.

        Args:
            owner_id: ID of the user the code is issued to

        Returns:
            Upper-cased composite code
        """
        timestamp = _to_base36(time.time_ns() // 1_000_000)
        owner_part = str(owner_id)[-REFERRAL_CODE_OWNER_FRAGMENT:]
        random_part = secrets.token_hex(REFERRAL_CODE_RANDOM_BYTES)
        return f"{timestamp}-{owner_part}-{random_part}".upper()

    async def generate_unique_code(
        self,
        exists_check: Callable[[str], Awaitable[bool]],
        owner_id: str,
    ) -> str:
        """
        Generate a code not yet present in the store.

        Tries up to ``max_attempts`` random codes, then returns a composite
        code without checking it again.

        Args:
            exists_check: Async predicate returning True for taken codes
            owner_id: ID of the user the code is issued to

        Returns:
            Unique referral code
        """
        for _ in range(self.max_attempts):
            code = self.generate_code()
            if not await exists_check(code):
                return code

        logger.warning(
            "Referral code collisions exhausted random attempts",
            extra={"owner_id": owner_id, "attempts": self.max_attempts},
        )
        return self.composite_code(owner_id)
