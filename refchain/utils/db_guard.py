"""
Store access guard.

Bounds store work with a caller-supplied timeout and maps transient
infrastructure failures onto ``StoreUnavailable``.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loguru import logger
from sqlalchemy.exc import InterfaceError, OperationalError

from refchain.utils.exceptions import StoreUnavailable


@asynccontextmanager
async def store_guard(
    operation: str, timeout: float | None
) -> AsyncIterator[None]:
    """
    Guard a block of store operations.

    Usage:
        async with store_guard("verify_signup", 5.0):
            async with session_maker() as session:
                ...

    Referral errors raised inside the block pass through unchanged.

    Args:
        operation: Operation name for logs and the error message
        timeout: Seconds before the block is cancelled (None = unbounded)

    Raises:
        StoreUnavailable: On timeout or connection-level database errors
    """
    try:
        async with asyncio.timeout(timeout):
            yield
    except TimeoutError as e:
        logger.error(
            "Store operation timed out",
            extra={"operation": operation, "timeout": timeout},
        )
        raise StoreUnavailable(
            f"Store operation {operation} timed out after {timeout}s",
            operation=operation,
        ) from e
    except (OperationalError, InterfaceError) as e:
        logger.error(
            "Store unavailable",
            extra={"operation": operation, "error": str(e)},
        )
        raise StoreUnavailable(
            f"Store unavailable during {operation}",
            operation=operation,
        ) from e
