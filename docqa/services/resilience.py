# =============================================================================
# Resilience Helpers — Timeouts and Bounded Retry with Backoff
# =============================================================================
#
# Remote calls (vector search, upsert, LLM completion) must not hang a
# request forever, and transient failures on idempotent reads should not
# fail a whole query.
#
# POLICY:
#   - Every remote call runs under a timeout (with_timeout).
#   - Idempotent reads (vector search) are retried with exponential backoff:
#       delay = base_delay * 2 ** attempt    (attempt = 0, 1, ...)
#   - Generation calls are NOT retried: they cost money and are not
#     idempotent. Callers use with_timeout() only.
#
# Both helpers raise UpstreamFailure once the policy is exhausted, chaining
# the last underlying exception.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from docqa.errors import ConfigurationError, UpstreamFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_timeout(
    awaitable: Awaitable[T],
    timeout: float | None,
    operation: str,
) -> T:
    """
    Await with a deadline.

    Raises:
        UpstreamFailure: If the deadline passes.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise UpstreamFailure(
            f"{operation} timed out after {timeout}s"
        ) from exc


async def retry_with_backoff(
    call: Callable[[], Awaitable[T]],
    *,
    operation: str,
    max_retries: int,
    base_delay: float,
    timeout: float | None = None,
) -> T:
    """
    Run call() under a timeout, retrying failures with exponential backoff.

    Args:
        call: Zero-argument factory producing a fresh awaitable per attempt.
        operation: Human-readable name used in logs and errors.
        max_retries: Extra attempts after the first (0 = no retry).
        base_delay: Delay before the first retry, doubled each time.
        timeout: Per-attempt timeout in seconds (None = no deadline).

    Raises:
        UpstreamFailure: After 1 + max_retries failed attempts.
    """
    attempts = max_retries + 1
    last_error: Exception | None = None

    for attempt in range(attempts):
        try:
            return await with_timeout(call(), timeout, operation)
        except ConfigurationError:
            # A missing credential will not appear between attempts
            raise
        except Exception as exc:
            last_error = exc
            if attempt == attempts - 1:
                break
            delay = base_delay * (2 ** attempt)
            logger.warning(
                "%s failed (attempt %d/%d): %s. Retrying in %.2fs",
                operation, attempt + 1, attempts, exc, delay,
            )
            await asyncio.sleep(delay)

    raise UpstreamFailure(
        f"{operation} failed after {attempts} attempt(s): {last_error}"
    ) from last_error
