"""Bounded retries with exponential backoff for agent invocations."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from ..models.config import RetrySettings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay_ms(retry: RetrySettings, attempt: int) -> int:
    """Delay to wait after the given (1-based) failed attempt."""
    return retry.base_delay_ms * 2 ** (attempt - 1)


async def with_retries(
    operation: Callable[[], Awaitable[T]],
    retry: RetrySettings,
    label: str = "operation",
) -> T:
    """Run ``operation`` up to ``retry.max_attempts`` times.

    The last error is re-raised as-is once attempts are exhausted, so the
    caller sees the root cause rather than a wrapper.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as e:
            if attempt >= retry.max_attempts:
                if retry.max_attempts > 1:
                    logger.error("%s failed after %d attempts: %s", label, attempt, e)
                raise
            delay_ms = backoff_delay_ms(retry, attempt)
            logger.warning(
                "%s failed (attempt %d/%d): %s. Retrying in %dms...",
                label,
                attempt,
                retry.max_attempts,
                e,
                delay_ms,
            )
            await asyncio.sleep(delay_ms / 1000)
