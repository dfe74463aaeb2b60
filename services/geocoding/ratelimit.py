"""
Per-provider admission control.

A bounded pool of slots, one per allowed request per second. Each admission
takes a slot and schedules its return on the event loop, so a burst of up to
``requests_per_second`` calls goes out immediately while sustained traffic is
held to that ceiling.
"""

import asyncio
import logging

from .errors import RateLimitError

logger = logging.getLogger(__name__)


class RateLimiter:
    """Leaky-bucket rate limiter with a delayed release per admission."""

    def __init__(self, requests_per_second: int, window: float = 1.0):
        """Initialize rate limiter.

        Args:
            requests_per_second: Pool capacity; at most this many admissions
                are outstanding within any rolling window
            window: Seconds before an admitted slot returns to the pool
        """
        if requests_per_second <= 0:
            raise ValueError(f"requests_per_second must be positive, got {requests_per_second}")
        if window <= 0:
            raise ValueError(f"window must be positive, got {window}")

        self.requests_per_second = requests_per_second
        self.window = window
        self._slots = asyncio.Semaphore(requests_per_second)
        self._outstanding = 0

    @property
    def outstanding(self) -> int:
        """Admissions whose slot has not been returned yet"""
        return self._outstanding

    async def acquire(self, timeout: float | None = None) -> None:
        """Wait for a free slot.

        Args:
            timeout: Seconds the caller is willing to wait. ``None`` waits
                indefinitely; zero or less means the caller's deadline has
                already passed.

        Raises:
            RateLimitError: the deadline passed before a slot was available
        """
        if timeout is not None and timeout <= 0:
            raise RateLimitError("rate limit error: deadline exceeded before admission")

        try:
            if timeout is None:
                await self._slots.acquire()
            else:
                async with asyncio.timeout(timeout):
                    await self._slots.acquire()
        except TimeoutError as e:
            logger.warning(
                f"Admission wait timed out after {timeout:.2f}s "
                f"({self._outstanding}/{self.requests_per_second} slots in use)"
            )
            raise RateLimitError(f"rate limit error: no slot within {timeout:.2f}s") from e

        self._outstanding += 1
        asyncio.get_running_loop().call_later(self.window, self._release)

    def _release(self) -> None:
        self._outstanding -= 1
        self._slots.release()
