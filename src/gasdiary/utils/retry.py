"""Bounded retry with timeout for backend calls."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from gasdiary.domain.errors import FetchError, FetchTimeoutError, fetch_exhausted

logger = logging.getLogger("gasdiary.retry")

T = TypeVar("T")


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    label: str,
    timeout: float = 10.0,
    attempts: int = 3,
    backoff: float = 0.5,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` with a per-attempt timeout and exponential backoff.

    A timed-out attempt counts as a transient failure like any other
    exception. The delay before retry ``n`` (1-based) is
    ``backoff * 2 ** (n - 1)``.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt
        label: Name used in log messages and errors
        timeout: Seconds allowed per attempt
        attempts: Maximum number of attempts (at least 1)
        backoff: Base delay in seconds
        sleep: Awaitable sleep function, replaceable in tests

    Returns:
        The operation's result

    Raises:
        FetchError: If every attempt failed
    """
    attempts = max(1, attempts)
    last_error: BaseException | None = None

    for attempt in range(1, attempts + 1):
        try:
            return await asyncio.wait_for(operation(), timeout=timeout)
        except asyncio.TimeoutError:
            last_error = FetchTimeoutError(label, timeout)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            last_error = e

        if attempt < attempts:
            delay = backoff * 2 ** (attempt - 1)
            logger.warning(
                f"{label}: attempt {attempt}/{attempts} failed ({last_error}); "
                f"retrying in {delay:g}s"
            )
            await sleep(delay)

    raise FetchError(
        fetch_exhausted(label, attempts, last_error), label=label, attempts=attempts
    ) from last_error
