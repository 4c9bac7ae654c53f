"""Bounded fixed-delay retry for awaitable operations.

:func:`retry_on_failure` waits a fixed delay between attempts and retries
every exception type the same way. The last attempt's exception reaches the
caller unchanged.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from falconkit.output import get_output

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_DELAY = 0.5


async def retry_on_failure(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    delay: float = DEFAULT_DELAY,
    description: Optional[str] = None,
) -> T:
    """Await ``operation()`` up to *max_attempts* times.

    Args:
        operation: Zero-argument callable returning a fresh awaitable on
            every call.
        max_attempts: Total number of attempts, including the first.
        delay: Seconds to wait between attempts.
        description: Label used in debug output.

    Returns:
        The result of the first successful attempt.

    Raises:
        ValueError: If *max_attempts* is less than 1.
        Exception: Whatever the final attempt raised.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    label = description or getattr(operation, "__name__", "operation")
    output = get_output()

    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt >= max_attempts:
                raise
            output.debug(
                f"{label} failed: {exc!r}, retrying in {delay}s "
                f"(attempt {attempt}/{max_attempts})"
            )
        await asyncio.sleep(delay)
        attempt += 1
