"""Bounded fixed-delay retry for async operations."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


async def retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int,
    delay: float,
    *,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    on_retry: Optional[Callable[[int, BaseException], None]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await ``operation()`` until it succeeds or ``max_attempts`` is reached.

    Sleeps ``delay`` seconds between failed attempts (never after the last
    one). Exceptions outside ``retry_on`` propagate immediately; once the
    attempts are exhausted the last exception is re-raised.

    Args:
        operation: Zero-argument coroutine factory.
        max_attempts: Total number of attempts, at least 1.
        delay: Fixed pause between attempts, in seconds.
        retry_on: Exception types that trigger another attempt.
        on_retry: Called as ``on_retry(attempt, exc)`` before each pause.
        sleep: Awaitable sleep, replaceable in tests.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except retry_on as exc:
            if attempt == max_attempts:
                raise
            if on_retry is not None:
                on_retry(attempt, exc)
            else:
                logger.debug("Attempt %d/%d failed: %s", attempt, max_attempts, exc)
            await sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover
