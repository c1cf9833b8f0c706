from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from loguru import logger

T = TypeVar("T")


async def retry(
    times: int,
    operation: Callable[[], Awaitable[T]],
    *,
    initial_delay: float = 0.1,
    max_delay: float = 1.0,
    factor: float = 2.0,
) -> T:
    """Await ``operation`` up to ``times`` times with exponential backoff.

    Delays are in seconds. Failures before the last attempt are logged and
    retried; the last attempt's exception propagates to the caller.
    """
    current_delay = initial_delay
    for attempt in range(1, max(times, 1)):
        try:
            return await operation()
        except Exception as e:
            logger.warning(
                f"Operation failed on attempt {attempt}. "
                f"Retrying in {current_delay:.2f}s. Error: {e}"
            )
            await asyncio.sleep(current_delay)
            current_delay = min(current_delay * factor, max_delay)

    return await operation()
