"""Retry strategy for provider calls.

Exponential backoff with jitter for transient errors. A rate limit that
carries a retry-after hint waits exactly that long instead.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from resume_chat.providers.errors import RateLimitError, TransientError

__all__ = ["compute_backoff_seconds", "with_retries"]

if TYPE_CHECKING:
    from resume_chat.providers.config import ProviderConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


def compute_backoff_seconds(
    attempt: int, config: "ProviderConfig", error: Exception | None = None
) -> float:
    """Return the delay before the next attempt.

    Args:
        attempt: Zero-based attempt number that just failed.
        config: Provider configuration with retry settings.
        error: The error that triggered the retry, if any.

    Returns:
        Delay in seconds, capped at ``retry_max_delay_ms``.
    """
    if isinstance(error, RateLimitError) and error.retry_after_seconds:
        return error.retry_after_seconds

    base_delay = config.retry_base_delay_ms * (2**attempt)
    jitter = random.uniform(0, base_delay * 0.1)
    return min(base_delay + jitter, config.retry_max_delay_ms) / 1000


async def with_retries(
    func: Callable[[], Awaitable[T]],
    config: "ProviderConfig",
    retryable_errors: tuple[type[Exception], ...] = (TransientError, RateLimitError),
) -> T:
    """Execute an async callable with exponential backoff retry.

    Args:
        func: Async function to execute (no arguments).
        config: Provider configuration with retry settings.
        retryable_errors: Error types that should trigger a retry.

    Returns:
        Result from the first successful call.

    Raises:
        TransientError: If all retries are exhausted on transient failures.
        RateLimitError: If all retries are exhausted on rate limiting.
        RuntimeError: If the loop exits without an error or a result.
    """
    last_error: Exception | None = None

    for attempt in range(config.max_retries + 1):
        try:
            return await func()
        except retryable_errors as e:
            last_error = e

            if attempt == config.max_retries:
                break

            delay = compute_backoff_seconds(attempt, config, e)

            logger.warning(
                "Provider error (attempt %d/%d): %s. Retrying in %.2fs",
                attempt + 1,
                config.max_retries + 1,
                e,
                delay,
            )

            await asyncio.sleep(delay)

    if last_error is not None:
        raise last_error
    raise RuntimeError("Retry loop exited without error or result")
