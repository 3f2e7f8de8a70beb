"""IdleBackoff — adaptive delay between existence checks on an idle queue."""

from __future__ import annotations

import asyncio


class IdleBackoff:
    """Grow the idle wait by a fixed step up to a ceiling; reset on any message.

    The wait is clamped to the ceiling, so a ceiling that is not a multiple
    of the step is reached exactly rather than overshot.

    State is a single integer (milliseconds) and is not synchronised.
    """

    def __init__(self, peek_interval: int = 1000, maximum_wait: int = 60000) -> None:
        """Configure the step and ceiling.

        Args:
            peek_interval: Milliseconds added to the wait per idle observation.
            maximum_wait: Ceiling for the wait, in milliseconds.
        """
        if peek_interval < 0 or maximum_wait < 0:
            raise ValueError("peek_interval and maximum_wait must be >= 0")
        self.peek_interval = peek_interval
        self.maximum_wait = maximum_wait
        self._delay_ms = 0

    @property
    def delay_ms(self) -> int:
        """Current wait applied after an idle observation."""
        return self._delay_ms

    async def observe_and_wait(self, saw_message: bool) -> None:
        """Reset when a message was seen; otherwise grow the wait and sleep it."""
        if saw_message:
            self._delay_ms = 0
            return
        self._delay_ms = min(self._delay_ms + self.peek_interval, self.maximum_wait)
        if self._delay_ms > 0:
            await _sleep(self._delay_ms / 1000)


async def _sleep(seconds: float) -> None:
    """Async sleep (overridable for tests)."""
    await asyncio.sleep(seconds)
