"""Retry logic with exponential backoff"""

import asyncio
import random
from typing import Any, Awaitable, Callable, Optional

from loguru import logger

from .config import BASE_DELAY, JITTER_RANGE, MAX_RETRIES
from .exceptions import ConfigurationError


def compute_backoff(
    attempt: int,
    base_delay: float = BASE_DELAY,
    rand: Callable[[], float] = random.random,
    max_delay: Optional[float] = None,
) -> float:
    """
    Delay before the retry that follows ``attempt`` (0-based).

    ``base_delay * 2**attempt`` scaled by a jitter factor drawn from
    ``JITTER_RANGE`` so that concurrent retries do not line up.
    """
    low, high = JITTER_RANGE
    delay = base_delay * (2 ** attempt) * (low + rand() * (high - low))
    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay


async def retry_with_backoff(
    func: Callable[[], Awaitable[Any]],
    max_retries: int = MAX_RETRIES,
    base_delay: float = BASE_DELAY,
    max_delay: Optional[float] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    rand: Callable[[], float] = random.random,
    on_retry: Optional[Callable[[int, Exception], Awaitable[Any]]] = None,
):
    """
    Execute function with exponential backoff retry logic.

    Only errors whose ``can_retry`` attribute is true are retried; anything
    else is re-raised after the first attempt. When retries are exhausted the
    last error is re-raised.

    Args:
        func: Zero-argument async function to execute
        max_retries: Maximum number of retries after the first attempt
        base_delay: Delay in seconds before the first retry
        max_delay: Optional cap on a single delay
        sleep: Awaitable sleep used between attempts
        rand: Source of jitter in [0, 1)
        on_retry: Optional callback called on each retry: on_retry(attempt, error)
    """
    if max_retries < 0:
        raise ConfigurationError(f"max_retries must not be negative, got {max_retries}")
    if base_delay < 0:
        raise ConfigurationError(f"base_delay must not be negative, got {base_delay}")

    last_exception: Optional[Exception] = None

    for attempt in range(max_retries + 1):
        try:
            result = await func()

            if attempt > 0:
                logger.success(f"Recovered after {attempt} retries")

            return result

        except Exception as e:
            last_exception = e

            if not getattr(e, "can_retry", False):
                logger.debug(f"Not retrying non-retryable error: {e}")
                break

            if attempt >= max_retries:
                if max_retries > 0:
                    logger.error(f"Failed after {max_retries} retries: {e}")
                break

            delay = compute_backoff(attempt, base_delay, rand, max_delay)
            logger.warning(f"Attempt {attempt + 1}/{max_retries + 1} failed: {e}")
            logger.info(f"   Retrying in {delay:.2f}s...")

            if on_retry:
                await on_retry(attempt, e)

            await sleep(delay)

    raise last_exception
