"""
Best-effort side effects.

Runs side effects (notifications, link refresh) inside an isolated error
boundary: failures are logged with structured context and returned as a
``BestEffortResult`` instead of propagating to the triggering request.
"""

import asyncio
import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from loguru import logger


T = TypeVar("T")


@dataclass(frozen=True)
class BestEffortResult(Generic[T]):
    """Outcome of a best-effort step."""

    step: str
    ok: bool
    value: T | None = None
    error: str | None = None


async def run_best_effort(
    step: str,
    func: Callable[..., Any],
    *args: Any,
    timeout: float | None = None,
    context: dict[str, Any] | None = None,
) -> BestEffortResult:
    """
    Run ``func(*args)`` and never raise.

    ``func`` may be a coroutine function or a plain callable. Plain
    callables run in a worker thread so a blocking hook cannot stall the
    event loop; either way the call is bounded by ``timeout`` seconds. A
    thread that overruns the timeout is abandoned, not killed.

    Args:
        step: Step name used in logs
        func: Callable to invoke
        *args: Positional arguments for ``func``
        timeout: Upper bound for the call (None = unbounded)
        context: Extra structured fields for the failure log

    Returns:
        BestEffortResult with the value on success or the error text
    """
    try:
        async with asyncio.timeout(timeout):
            if inspect.iscoroutinefunction(func):
                value = await func(*args)
            else:
                value = await asyncio.to_thread(func, *args)
            if inspect.isawaitable(value):
                value = await value
    except Exception as e:
        logger.warning(
            f"Best-effort step failed: {step}",
            extra={
                "step": step,
                "error_type": type(e).__name__,
                "error": str(e),
                **(context or {}),
            },
        )
        return BestEffortResult(step=step, ok=False, error=str(e) or type(e).__name__)

    return BestEffortResult(step=step, ok=True, value=value)
