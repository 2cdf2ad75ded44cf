"""
Bounded exponential-backoff retry for generative calls.

Only rate-limit failures are retried. Everything else is normalised to a
StudioError and raised on the first attempt.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional, TypeVar, Union

from config.settings import RETRY_CONFIG
from studio.services.errors import ErrorKind, StudioError, to_studio_error

logger = logging.getLogger("retry")

T = TypeVar("T")


async def with_retry(
    operation: Callable[[], Union[T, Awaitable[T]]],
    max_retries: int = RETRY_CONFIG["max_retries"],
    initial_delay: float = RETRY_CONFIG["initial_delay"],
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: Optional[str] = None,
) -> T:
    """
    Run ``operation`` until it succeeds, retrying rate-limit errors.

    The n-th retry waits ``initial_delay * 2**(n-1)``. After ``max_retries``
    retries a rate-limit failure becomes StudioError(RATE_LIMITED,
    "QUOTA_EXCEEDED"). Each call owns its own counter and delay.
    """
    attempts_left = max_retries
    delay = initial_delay
    name = label or getattr(operation, "__name__", "call")

    while True:
        try:
            result = operation()
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            error = to_studio_error(e)
            if error.kind is not ErrorKind.RATE_LIMITED:
                if error is e:
                    raise
                raise error from e

            if attempts_left <= 0:
                logger.error(f"❌ {name}: quota exceeded after {max_retries} retries")
                raise StudioError(ErrorKind.RATE_LIMITED, "QUOTA_EXCEEDED") from e

            logger.warning(
                f"⏳ {name}: rate limited (429). Retrying in {delay:.1f}s "
                f"({attempts_left} attempts left)"
            )
            await sleep(delay)
            attempts_left -= 1
            delay *= 2
