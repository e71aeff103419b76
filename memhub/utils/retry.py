"""
Retry helper with exponential backoff.

Used for embedding gateway calls and for the index/relationship cascade
that follows a memory write or delete.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from memhub.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    operation_name: str,
    retry_on: tuple[type[BaseException], ...],
    max_retries: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 8.0,
) -> T:
    """
    Retry an async operation with exponential backoff.

    Only exceptions listed in ``retry_on`` are retried; anything else
    propagates on the first failure. After ``max_retries`` attempts the last
    retryable exception is re-raised unchanged.

    Args:
        operation: Zero-argument async callable
        operation_name: Name for logging
        retry_on: Exception types considered transient
        max_retries: Total attempts (>= 1)
        base_delay: Delay before the second attempt, in seconds
        max_delay: Upper bound for a single delay

    Returns:
        Result of operation
    """
    attempts = max(1, max_retries)

    for attempt in range(attempts):
        try:
            return await operation()
        except retry_on as e:
            if attempt >= attempts - 1:
                logger.error(
                    f"{operation_name} failed after {attempts} attempts",
                    extra={
                        "operation": operation_name,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
                raise

            delay = min(max_delay, base_delay * (2**attempt))
            logger.warning(
                f"{operation_name} failed (attempt {attempt + 1}/{attempts}): {e}. "
                f"Retrying in {delay}s...",
                extra={
                    "operation": operation_name,
                    "attempt": attempt + 1,
                    "error_type": type(e).__name__,
                },
            )
            await asyncio.sleep(delay)

    raise RuntimeError("unreachable")  # pragma: no cover
