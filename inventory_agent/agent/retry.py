"""
Retry with capped exponential backoff for rate-limited async calls.

Only rate-limit faults (HTTP 429) are retried; anything else propagates on the first
attempt. Used around the model call only, not around tools or checkpoint I/O.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from inventory_agent.core.config import MAX_RETRIES, RETRY_BASE_DELAY, RETRY_MAX_DELAY
from inventory_agent.core.errors import RateLimitedError, RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def status_code_of(exc: BaseException) -> int | None:
    """HTTP status carried by an exception (openai APIStatusError, httpx HTTPStatusError, ...)."""
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def is_rate_limit(exc: BaseException) -> bool:
    return isinstance(exc, RateLimitedError) or status_code_of(exc) == 429


def backoff_delay(
    attempt: int,
    base: float = RETRY_BASE_DELAY,
    cap: float = RETRY_MAX_DELAY,
) -> float:
    """Delay in seconds after the given 0-based failed attempt: 1, 2, 4, ... capped."""
    return min(base * (2 ** attempt), cap)


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    max_retries: int = MAX_RETRIES,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await fn(), retrying on rate limits up to max_retries total attempts.
    Raises RetryExhaustedError (chained from the last 429) when every attempt was rate limited.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be >= 1")
    last_error: BaseException | None = None
    for attempt in range(max_retries):
        try:
            return await fn()
        except Exception as e:
            if not is_rate_limit(e):
                raise
            last_error = e
            if attempt + 1 >= max_retries:
                break
            delay = backoff_delay(attempt)
            logger.warning(
                "[retry] rate limit hit (attempt %d/%d). Retrying in %.1f seconds...",
                attempt + 1, max_retries, delay,
            )
            await sleep(delay)
    logger.warning("[retry] giving up after %d rate-limited attempts", max_retries)
    raise RetryExhaustedError("Max retries exceeded", attempts=max_retries) from last_error
