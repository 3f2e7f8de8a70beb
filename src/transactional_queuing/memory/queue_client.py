"""InMemoryQueueClient — lease-based IRawQueueClient for tests and local runs."""

from __future__ import annotations

import itertools
import time
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..client import RawQueueMessage
from ..exceptions import QueueMessageNotFoundError, QueueNotFoundError

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import timedelta


@dataclass
class _StoredMessage:
    message_id: str
    body: bytes
    visible_at: float = 0.0
    receipt_handle: str | None = None
    dequeue_count: int = 0


class InMemoryQueueClient:
    """In-memory queue service honouring visibility timeouts.

    Leased messages stay hidden until their lease expires according to
    ``clock`` (seconds, default ``time.monotonic``); pass a fake clock to
    advance time in tests. Each lease issues a new receipt handle and only
    the current one can delete the message.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.monotonic
        self._queues: dict[str, list[_StoredMessage]] = {}
        self._ids = itertools.count(1)

    async def exists(self, queue: str) -> bool:
        return queue in self._queues

    async def create_if_absent(self, queue: str) -> None:
        self._queues.setdefault(queue, [])

    async def clear(self, queue: str) -> None:
        self._get(queue).clear()

    async def add(self, queue: str, body: bytes) -> None:
        self._get(queue).append(
            _StoredMessage(message_id=f"msg-{next(self._ids)}", body=body)
        )

    async def peek(self, queue: str) -> RawQueueMessage | None:
        now = self._clock()
        for stored in self._get(queue):
            if stored.visible_at <= now:
                return RawQueueMessage(
                    message_id=stored.message_id,
                    body=stored.body,
                    dequeue_count=stored.dequeue_count,
                )
        return None

    async def get_batch(
        self, queue: str, count: int, lease: timedelta
    ) -> list[RawQueueMessage]:
        now = self._clock()
        leased: list[RawQueueMessage] = []
        for stored in self._get(queue):
            if len(leased) >= count:
                break
            if stored.visible_at > now:
                continue
            stored.visible_at = now + lease.total_seconds()
            stored.receipt_handle = uuid.uuid4().hex
            stored.dequeue_count += 1
            leased.append(
                RawQueueMessage(
                    message_id=stored.message_id,
                    body=stored.body,
                    receipt_handle=stored.receipt_handle,
                    dequeue_count=stored.dequeue_count,
                )
            )
        return leased

    async def delete(self, queue: str, message: RawQueueMessage) -> None:
        stored_messages = self._get(queue)
        for index, stored in enumerate(stored_messages):
            if (
                stored.message_id == message.message_id
                and stored.receipt_handle is not None
                and stored.receipt_handle == message.receipt_handle
            ):
                del stored_messages[index]
                return
        raise QueueMessageNotFoundError(queue, message.message_id)

    # ── Test helpers ─────────────────────────────────────────────

    def messages(self, queue: str) -> list[RawQueueMessage]:
        """Return every stored message, visible or leased, in queue order."""
        return [
            RawQueueMessage(
                message_id=s.message_id,
                body=s.body,
                receipt_handle=s.receipt_handle,
                dequeue_count=s.dequeue_count,
            )
            for s in self._get(queue)
        ]

    def visible_count(self, queue: str) -> int:
        now = self._clock()
        return sum(1 for s in self._get(queue) if s.visible_at <= now)

    def invisible_until(self, queue: str, message_id: str) -> float:
        """Clock value at which *message_id*'s current lease expires."""
        for stored in self._get(queue):
            if stored.message_id == message_id:
                return stored.visible_at
        raise QueueMessageNotFoundError(queue, message_id)

    def _get(self, queue: str) -> list[_StoredMessage]:
        try:
            return self._queues[queue]
        except KeyError:
            raise QueueNotFoundError(queue) from None
