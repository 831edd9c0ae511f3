"""Caller-driven retry with exponential backoff.

The orchestrators never retry on their own; a failed TransferResult carries
a retryable flag and callers that want automatic retries wrap the call with
retry_transfer().
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from filerelay.client.transfer.types import TransferResult

logger = logging.getLogger(__name__)

# Default retry configuration
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_INITIAL_BACKOFF = 1.0  # seconds
DEFAULT_MAX_BACKOFF = 30.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0


async def retry_transfer(
    operation: Callable[[], Awaitable[TransferResult]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
    max_backoff: float = DEFAULT_MAX_BACKOFF,
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
    on_retry: Callable[[int, TransferResult], None] | None = None,
) -> TransferResult:
    """Run a transfer until it succeeds or fails with a non-retryable error.

    Cancelled and validation failures are never retried. AuthenticationError
    raised by the operation propagates immediately.

    Args:
        operation: Factory starting a fresh transfer attempt.
        max_attempts: Total number of attempts, including the first.
        initial_backoff: Delay before the second attempt, in seconds.
        max_backoff: Upper bound for the delay.
        backoff_multiplier: Multiplier applied after each retry.
        on_retry: Optional callback (attempt number, failed result).

    Returns:
        The last TransferResult.
    """
    backoff = initial_backoff
    attempt = 1
    result = await operation()

    while not result.success and result.retryable and attempt < max_attempts:
        logger.warning(
            f"Attempt {attempt}/{max_attempts} failed: {result.message} "
            f"Retrying in {backoff:.1f}s..."
        )
        if on_retry:
            on_retry(attempt, result)
        await asyncio.sleep(backoff)
        backoff = min(backoff * backoff_multiplier, max_backoff)
        attempt += 1
        result = await operation()

    if not result.success and result.retryable:
        logger.error(f"All {max_attempts} attempts failed: {result.message}")
    return result
