"""
Contains the logic to retry transient failures of AI provider calls.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


async def call_with_retries(
    operation: str,
    func: Callable[[], Awaitable[Any]],
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    retries: int = 3,
    initial_delay: float = 1.0,
) -> Any:
    """Await `func()` with retry logic.

    Retries exceptions listed in `retry_on` up to `retries` times with
    exponential backoff. Any other exception propagates immediately.

    Args:
        operation: Name used in log messages (e.g. "gemini.generate_question")
        func: Zero-argument coroutine factory performing the call
        retry_on: Exception types considered transient
        retries: Max attempts
        initial_delay: Initial backoff delay in seconds

    Returns:
        The result of `func()`.

    Raises:
        Exception: Re-raises the last transient exception after exhausting retries.
    """
    attempt = 0
    delay = initial_delay

    while True:
        try:
            logger.debug(f"Attempt {attempt + 1} of {operation}")
            return await func()
        except retry_on as e:
            attempt += 1
            if attempt >= retries:
                logger.error(f"{operation} failed after {retries} attempts: {e}")
                raise
            logger.warning(
                f"{operation} failed (attempt {attempt}/{retries}): {e}. Retrying in {delay}s."
            )
            await asyncio.sleep(delay)
            delay = min(delay * 2, 16.0)
