"""Bounded exponential backoff shared by every external call site."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, Iterator, List, Sequence, TypeVar

from leadgen.core.errors import ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000
DEFAULT_JITTER_MS = 200


def is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, ProviderError):
        return exc.retryable
    return True


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    jitter_ms: int = DEFAULT_JITTER_MS,
    label: str = "operation",
) -> T:
    """Run ``operation`` up to ``max_retries`` times.

    Waits ``base_delay_ms * 2**attempt`` plus up to ``jitter_ms`` between
    attempts. Errors whose kind is not retryable are re-raised immediately and
    the last error is re-raised once attempts are exhausted.
    """
    attempts = max(1, max_retries)
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:  # noqa: BLE001
            if not is_retryable(exc):
                logger.warning("%s failed with non-retryable error: %s", label, exc)
                raise
            if attempt >= attempts - 1:
                logger.warning("%s exhausted %d attempts: %s", label, attempts, exc)
                raise
            delay_ms = base_delay_ms * (2**attempt) + random.uniform(0, jitter_ms)
            logger.info(
                "%s failed (attempt %d/%d), retrying in %.0fms: %s",
                label,
                attempt + 1,
                attempts,
                delay_ms,
                exc,
            )
            await asyncio.sleep(delay_ms / 1000)
            attempt += 1


async def pause(seconds: float, *, jitter_ms: int = DEFAULT_JITTER_MS) -> None:
    """Sleep for ``seconds`` plus a small random jitter."""
    if seconds <= 0:
        return
    await asyncio.sleep(seconds + random.uniform(0, jitter_ms) / 1000)


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    size = max(1, size)
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


def batch_count(total: int, size: int) -> int:
    size = max(1, size)
    return (total + size - 1) // size
