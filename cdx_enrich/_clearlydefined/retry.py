"""Retry utilities for ClearlyDefined calls (exponential backoff + jitter, per-attempt timeout)."""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

import requests

from cdx_enrich.logging_config import logger

T = TypeVar("T")

# Transport-level failures worth another attempt. asyncio.TimeoutError is what
# a per-attempt timeout raises.
RETRYABLE_EXCEPTIONS: Tuple[Type[BaseException], ...] = (requests.RequestException, asyncio.TimeoutError)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry an awaitable operation with exponential backoff and jitter.

    Attributes:
        max_attempts: Total attempts, including the first one
        base_delay_seconds: Delay before the first retry; doubled for each further retry
        max_delay_seconds: Upper bound for a single delay
        jitter: Relative random variation of each delay (0.2 = +/-20%)
        timeout_seconds: Bound for a single attempt; a timeout only aborts that attempt
        retry_on: Exception types that trigger a retry
        sleep: Coroutine function used to wait between attempts
    """

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    jitter: float = 0.2
    timeout_seconds: float = 60.0
    retry_on: Tuple[Type[BaseException], ...] = RETRYABLE_EXCEPTIONS
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def compute_delay(self, attempt: int) -> float:
        """
        Delay before the retry that follows ``attempt`` (1-based).

        Returns:
            base * 2**(attempt-1), capped and scaled by a random factor in [1-jitter, 1+jitter]
        """
        delay = min(self.base_delay_seconds * (2 ** (attempt - 1)), self.max_delay_seconds)
        factor = 1.0 + random.uniform(-self.jitter, self.jitter)
        return max(0.0, delay * factor)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        should_retry_result: Callable[[T], bool] = lambda _: False,
        on_retry: Optional[Callable[[int, float, Any], None]] = None,
    ) -> T:
        """
        Run ``operation`` until it succeeds or attempts run out.

        A result for which ``should_retry_result`` is true (e.g. an HTTP 429
        response) is retried like a transport failure. When attempts run out
        the last result is returned, or the last exception re-raised.

        Args:
            operation: Zero-argument coroutine function performing one attempt
            should_retry_result: Predicate selecting results worth retrying
            on_retry: Callback invoked with (attempt, delay, outcome) before each backoff

        Returns:
            Result of the last attempt
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                outcome: Any = await asyncio.wait_for(operation(), timeout=self.timeout_seconds)
            except self.retry_on as e:
                if isinstance(e, asyncio.TimeoutError):
                    logger.warning(f"Attempt {attempt} timed out after {self.timeout_seconds} seconds")
                if attempt == self.max_attempts:
                    raise
                outcome = e
            else:
                if attempt == self.max_attempts or not should_retry_result(outcome):
                    return outcome

            delay = self.compute_delay(attempt)
            if on_retry is not None:
                on_retry(attempt, delay, outcome)
            await self.sleep(delay)

        # unreachable, the last attempt either returns or raises
        raise RuntimeError("retry loop exited without an outcome")
