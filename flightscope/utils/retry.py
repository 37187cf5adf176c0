from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Sequence

from ..constants import BACKOFF_SCHEDULE_MS

RATE_LIMIT_MARKERS = ("429", "rate limit")


def is_retryable(error: str | BaseException) -> bool:
    """Return ``True`` when a failure is an upstream rate-limit signal."""
    description = str(error).lower()
    return any(marker in description for marker in RATE_LIMIT_MARKERS)


def backoff_delay_ms(
    attempt: int, schedule: Sequence[int] = BACKOFF_SCHEDULE_MS
) -> int:
    """Return the wait before retry ``attempt`` (1-based) from ``schedule``."""
    if attempt < 1 or attempt > len(schedule):
        raise ValueError(
            f"No backoff defined for retry attempt {attempt} "
            f"(schedule covers 1..{len(schedule)})"
        )
    return schedule[attempt - 1]


async def schedule_retry(
    attempt: int,
    schedule: Sequence[int] = BACKOFF_SCHEDULE_MS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> None:
    """Sleep for the backoff delay before retrying."""
    await sleep(backoff_delay_ms(attempt, schedule) / 1000)
