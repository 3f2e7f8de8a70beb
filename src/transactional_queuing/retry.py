"""RetryPolicy — exponential backoff after consecutive remote failures."""

from __future__ import annotations

import asyncio
import random


class RetryPolicy:
    """Configurable exponential backoff with jitter.

    Attempts are unbounded; the consumer keeps polling and only the delay
    between attempts grows.
    """

    def __init__(
        self,
        *,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        jitter: bool = True,
    ) -> None:
        """Configure retry delays.

        Args:
            base_delay: Delay in seconds after the first failure.
            max_delay: Cap on delay in seconds.
            jitter: If True, add random jitter to delays to avoid thundering herd.
        """
        if base_delay < 0 or max_delay < 0:
            raise ValueError("base_delay and max_delay must be >= 0")
        if base_delay > max_delay:
            raise ValueError("base_delay must be <= max_delay")
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter

    def delay_for_attempt(self, attempt: int) -> float:
        """Return delay in seconds after the given 1-based failed attempt.

        Uses exponential backoff: base_delay * 2^(attempt-1), capped by max_delay.
        If jitter is enabled, multiplies by a random factor in [0.5, 1.5].
        """
        if attempt < 1:
            return 0.0
        delay = min(
            self.base_delay * (2 ** min(attempt - 1, 32)),
            self.max_delay,
        )
        if self.jitter:
            delay = delay * (0.5 + random.random())  # noqa: S311
        return float(max(0.0, delay))

    async def wait_before_retry(self, attempt: int) -> None:
        """Async sleep for the delay of the given attempt."""
        d = self.delay_for_attempt(attempt)
        if d > 0:
            await _sleep(d)


async def _sleep(seconds: float) -> None:
    """Async sleep (overridable for tests)."""
    await asyncio.sleep(seconds)
