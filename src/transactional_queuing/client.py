"""Raw queue client port — remote at-least-once, lease-based primitives."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import timedelta


@dataclass(frozen=True)
class RawQueueMessage:
    """Provider-level message: opaque bytes plus the lease needed to delete it.

    ``receipt_handle`` is ``None`` for peeked messages, which carry no lease.
    """

    message_id: str
    body: bytes
    receipt_handle: str | None = None
    dequeue_count: int = 0


@runtime_checkable
class IRawQueueClient(Protocol):
    """
    Port for a remote lease-based queue service.

    Adapters raise ``QueueNotFoundError`` for missing queues,
    ``QueueMessageNotFoundError`` from ``delete`` when the message is already
    gone, and ``RemoteOperationFailedError`` for anything else.
    """

    async def exists(self, queue: str) -> bool:
        """Return True if *queue* exists."""
        ...

    async def create_if_absent(self, queue: str) -> None:
        """Create *queue* unless it already exists."""
        ...

    async def clear(self, queue: str) -> None:
        """Remove every message from *queue*."""
        ...

    async def add(self, queue: str, body: bytes) -> None:
        """Append *body* to *queue*."""
        ...

    async def peek(self, queue: str) -> RawQueueMessage | None:
        """Return the next visible message without leasing it."""
        ...

    async def get_batch(
        self, queue: str, count: int, lease: timedelta
    ) -> list[RawQueueMessage]:
        """Lease up to *count* visible messages for *lease*, in queue order."""
        ...

    async def delete(self, queue: str, message: RawQueueMessage) -> None:
        """Permanently remove a leased *message*."""
        ...
