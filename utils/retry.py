"""
Retry helpers for calls that may fail transiently (database writes, HTTP).
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_with_exponential_backoff(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    exceptions: tuple[type[Exception], ...] = (Exception,),
) -> T:
    """
    Await ``func()`` until it succeeds or ``max_retries`` retries are used up.

    Args:
        func: zero-argument coroutine factory
        max_retries: retries after the first attempt (0 means a single attempt)
        initial_delay: seconds before the first retry
        max_delay: upper bound for a single wait
        exponential_base: growth factor between waits
        exceptions: exception types that trigger a retry

    Raises:
        The exception of the last attempt.
    """
    delay = initial_delay

    for attempt in range(max_retries + 1):
        try:
            result = await func()
            if attempt > 0:
                logger.info(f"Retry succeeded on attempt {attempt + 1}/{max_retries + 1}")
            return result

        except exceptions as e:
            if attempt == max_retries:
                logger.error(f"All {max_retries + 1} attempts failed. Last error: {e}")
                raise

            logger.warning(
                f"Attempt {attempt + 1}/{max_retries + 1} failed: {e}. "
                f"Retrying in {delay:.1f}s..."
            )
            await asyncio.sleep(delay)
            delay = min(delay * exponential_base, max_delay)

    raise RuntimeError("Unexpected retry logic error")
