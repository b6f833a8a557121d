"""
Exponential backoff for rate-limited API calls
"""
import asyncio
import logging
import random
from typing import Any, Awaitable, Callable

from google.api_core import exceptions as google_exceptions

logger = logging.getLogger(__name__)

JITTER_MIN = 0.8
JITTER_MAX = 1.2


def is_rate_limit_error(error: BaseException) -> bool:
    """
    True if the error is a provider rate-limit (HTTP 429) signal

    Covers the google-api-core exceptions raised by the Gemini SDK plus any
    exception carrying a 429 ``code`` or ``status_code`` attribute.
    """
    if isinstance(error, (google_exceptions.ResourceExhausted, google_exceptions.TooManyRequests)):
        return True
    for attr in ("status_code", "code", "status"):
        if getattr(error, attr, None) == 429:
            return True
    return False


async def invoke(
    operation: Callable[[], Awaitable[Any]],
    max_retries: int = 5,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Any:
    """
    Run ``operation`` retrying rate-limit failures with exponential backoff

    Args:
        operation: Zero-argument coroutine function making the call
        max_retries: Rate-limit retries before giving up
        initial_delay: First wait in seconds
        max_delay: Cap applied to the wait before jitter
        sleep: Awaitable sleep, injectable for tests

    Returns:
        Whatever ``operation`` returns

    Raises:
        The last rate-limit error once ``max_retries + 1`` attempts have
        failed, or any non-rate-limit error immediately.
    """
    delay = initial_delay
    retry_count = 0

    while True:
        try:
            return await operation()
        except Exception as e:
            if not is_rate_limit_error(e):
                raise

            if retry_count >= max_retries:
                logger.error(f"Rate limit retry attempts exhausted ({max_retries})")
                raise

            retry_count += 1
            wait = min(delay, max_delay) * (JITTER_MIN + random.random() * (JITTER_MAX - JITTER_MIN))
            logger.warning(
                f"Rate limit hit, retrying in {wait:.2f}s "
                f"(attempt {retry_count}/{max_retries})"
            )
            await sleep(wait)
            delay *= 2
