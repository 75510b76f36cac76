"""Resilience utilities: retry with backoff and request batching."""

import asyncio
import functools
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior (delays in seconds)."""
    max_retries: int = 3
    initial_delay: float = 0.3
    max_delay: float = 5.0
    exceptions: tuple = (Exception,)


class NonRetryableError(Exception):
    """Exception that indicates an operation should not be retried."""
    pass


def calculate_delay(attempt: int, initial_delay: float, max_delay: float,
                    rand: Callable[[], float] = random.random) -> float:
    """Calculate the delay before the retry that follows ``attempt``.

    Exponential backoff with +/-10% jitter, capped at ``max_delay``.

    Args:
        attempt: Failed attempt number (0-based)
        initial_delay: Base delay in seconds
        max_delay: Upper bound in seconds
        rand: Source of uniform [0, 1) values

    Returns:
        Delay in seconds
    """
    return min(max_delay, initial_delay * (2 ** attempt) * (0.9 + rand() * 0.2))


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    initial_delay: float = 0.3,
    max_delay: float = 5.0,
    exceptions: tuple = (Exception,),
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Await ``fn()`` up to ``max_retries`` times with exponential backoff.

    The last error is re-raised once every attempt has failed.
    ``NonRetryableError`` is raised immediately.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    name = getattr(fn, "__qualname__", repr(fn))
    last_exception: Optional[BaseException] = None

    for attempt in range(max_retries):
        try:
            return await fn()
        except exceptions as e:
            last_exception = e

            # Don't retry on non-retryable errors
            if isinstance(e, NonRetryableError):
                logger.error(f"Non-retryable error in {name}: {e}")
                raise

            if attempt < max_retries - 1:
                delay = calculate_delay(attempt, initial_delay, max_delay)
                logger.warning(
                    f"Attempt {attempt + 1} failed for {name}: {e}. "
                    f"Retrying in {delay:.2f}s"
                )
                await sleep(delay)
            else:
                logger.error(f"All {max_retries} attempts failed for {name}")

    raise last_exception


def retryable(config: RetryConfig = None):
    """Decorator for retrying coroutine functions with exponential backoff.

    Args:
        config: Retry configuration
    """
    if config is None:
        config = RetryConfig()

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            async def attempt():
                return await func(*args, **kwargs)
            attempt.__qualname__ = func.__qualname__

            return await retry_with_backoff(
                attempt,
                max_retries=config.max_retries,
                initial_delay=config.initial_delay,
                max_delay=config.max_delay,
                exceptions=config.exceptions,
            )

        return wrapper
    return decorator


async def batch_requests(
    requests: Sequence[Callable[[], Awaitable[T]]],
    batch_size: int = 5,
) -> List[T]:
    """Run ``requests`` in sequential batches of ``batch_size``.

    Requests inside a batch run concurrently; results keep the original order.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    results: List[T] = []

    for i in range(0, len(requests), batch_size):
        batch = requests[i:i + batch_size]
        batch_results = await asyncio.gather(*(request() for request in batch))
        results.extend(batch_results)

    return results
