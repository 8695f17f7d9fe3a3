"""Asynchronous token-bucket rate limiter for ClearlyDefined API calls.

ClearlyDefined allows roughly 2000 definition requests per minute. The
default bucket holds 33 tokens and is refilled with 33 tokens every second
(1980 per minute). Callers that find the bucket empty are queued and served
oldest-first; acquisition only ever delays, it never rejects.

Example:
    limiter = TokenBucketRateLimiter(capacity=33, period=1.0)
    await limiter.acquire()
    response = await make_api_call()
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

from cdx_enrich.logging_config import logger

DEFAULT_CAPACITY = 33
DEFAULT_PERIOD_SECONDS = 1.0


class TokenBucketRateLimiter:
    """
    Token bucket replenished with ``capacity`` tokens every ``period`` seconds.

    Waiters queue on an ``asyncio.Lock``, which wakes them in FIFO order, so
    the oldest caller always gets the next tokens. The token count is only
    touched while the lock is held. The limiter lives for the whole process
    and may be used from successive event loops (one per ``asyncio.run``);
    the lock is re-created for each new loop.

    Attributes:
        capacity: Maximum number of tokens (also the tokens added per period)
        period: Replenishment period in seconds
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        period: float = DEFAULT_PERIOD_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if period <= 0:
            raise ValueError("period must be positive")

        self.capacity = capacity
        self.period = period
        self._clock = clock
        self._sleep = sleep
        self._tokens = capacity
        self._last_replenish = clock()
        self._lock = asyncio.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _lock_for_running_loop(self) -> asyncio.Lock:
        """Lock bound to the running event loop; the token state outlives any single loop."""
        loop = asyncio.get_running_loop()
        if self._loop is not loop:
            self._lock = asyncio.Lock()
            self._loop = loop
        return self._lock

    def _replenish(self) -> None:
        """Add tokens for every full period elapsed since the last replenishment."""
        elapsed_periods = int((self._clock() - self._last_replenish) // self.period)
        if elapsed_periods > 0:
            self._tokens = min(self.capacity, self._tokens + elapsed_periods * self.capacity)
            self._last_replenish += elapsed_periods * self.period

    async def acquire(self, tokens: int = 1) -> None:
        """
        Wait until ``tokens`` tokens are available, then take them.

        Args:
            tokens: Number of tokens to take

        Raises:
            ValueError: If more tokens are requested than the bucket can ever hold
        """
        if tokens < 1 or tokens > self.capacity:
            raise ValueError(f"Can only acquire between 1 and {self.capacity} tokens, got {tokens}")

        async with self._lock_for_running_loop():
            self._replenish()
            while self._tokens < tokens:
                wait_time = max(0.0, self._last_replenish + self.period - self._clock())
                logger.debug(f"Rate limiter exhausted, waiting {wait_time:.3f}s for replenishment")
                await self._sleep(wait_time)
                self._replenish()
            self._tokens -= tokens

    @property
    def available_tokens(self) -> int:
        """Tokens that could be taken right now without waiting."""
        self._replenish()
        return self._tokens


_default_rate_limiter: Optional[TokenBucketRateLimiter] = None


def get_default_rate_limiter() -> TokenBucketRateLimiter:
    """
    Get the process-wide rate limiter shared by all ClearlyDefined lookups.

    The rate bound only holds if every client uses this one instance, so it
    is created once and never torn down.
    """
    global _default_rate_limiter
    if _default_rate_limiter is None:
        _default_rate_limiter = TokenBucketRateLimiter()
    return _default_rate_limiter
