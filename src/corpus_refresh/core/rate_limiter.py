"""Pacing for calls to the external item source."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional


async def pause(seconds: float, shutdown: Optional[asyncio.Event] = None) -> bool:
    """Sleep for ``seconds`` unless shutdown is requested first.

    Returns:
        True if the shutdown event is set, False if the full delay elapsed.
    """
    if shutdown is None:
        if seconds > 0:
            await asyncio.sleep(seconds)
        return False

    if shutdown.is_set():
        return True
    if seconds <= 0:
        return False

    try:
        await asyncio.wait_for(shutdown.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return False
    return True


class RateLimiter:
    """Allow one external call at a time, with a fixed delay after each.

    Not a token bucket: concurrency is fixed at one and every call is
    followed by ``delay_ms`` before the next one may start, whether it
    succeeded or not.
    """

    def __init__(self, delay_ms: int = 10, shutdown: Optional[asyncio.Event] = None) -> None:
        if delay_ms < 0:
            raise ValueError("delay_ms cannot be negative")
        self.delay = delay_ms / 1000
        self.shutdown = shutdown
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold the single call slot for the duration of one external call."""
        async with self._lock:
            try:
                yield
            finally:
                await pause(self.delay, self.shutdown)
