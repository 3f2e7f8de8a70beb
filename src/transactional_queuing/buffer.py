"""PrefetchBuffer — leased messages fetched in the last batch, not yet handed out."""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .client import RawQueueMessage


class PrefetchBuffer:
    """FIFO holding area owned by a single consumer.

    No locking: one ``QueueTransport`` (and so one buffer) per consumer.
    """

    def __init__(self) -> None:
        self._messages: deque[RawQueueMessage] = deque()

    def extend(self, messages: Iterable[RawQueueMessage]) -> None:
        """Append a fetched batch, preserving fetch order."""
        self._messages.extend(messages)

    def pop(self) -> RawQueueMessage | None:
        """Remove and return the oldest message, or None when drained."""
        if not self._messages:
            return None
        return self._messages.popleft()

    def clear(self) -> int:
        """Drop every buffered message; return how many were dropped."""
        dropped = len(self._messages)
        self._messages.clear()
        return dropped

    def __len__(self) -> int:
        return len(self._messages)

    def __bool__(self) -> bool:
        return bool(self._messages)
