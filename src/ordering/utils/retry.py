"""Bounded exponential-backoff retry for idempotent outbound reads.

Used for catalog snapshot lookups and payment-intent retrieval only.
Writes (stock decrements, intent creation) are never retried here.
"""

import time
from collections.abc import Callable
from typing import TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float = 0.1, multiplier: float = 2.0, max_delay: float = 2.0) -> float:
    """Delay before retry number ``attempt`` (zero-based)."""
    return min(base_delay * (multiplier**attempt), max_delay)


def retry_with_backoff(
    operation: Callable[[], T],
    *,
    attempts: int = 3,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    base_delay: float = 0.1,
    multiplier: float = 2.0,
    max_delay: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "operation",
) -> T:
    """Call ``operation`` until it succeeds or ``attempts`` calls have failed.

    Only exceptions listed in ``retry_on`` are retried; anything else
    propagates immediately. After the last attempt the final exception is
    re-raised unchanged.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(attempts):
        try:
            return operation()
        except retry_on as exc:
            if attempt == attempts - 1:
                raise
            delay = backoff_delay(attempt, base_delay, multiplier, max_delay)
            logger.info(
                "Retrying after transient failure",
                operation=description,
                attempt=attempt + 1,
                max_attempts=attempts,
                delay_seconds=delay,
                error=str(exc),
            )
            sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover
