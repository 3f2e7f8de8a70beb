"""QueueTransport — transactional send/receive over a lease-based remote queue."""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from .address import QueueAddress
from .backoff import IdleBackoff
from .buffer import PrefetchBuffer
from .envelope import MessageEnvelope
from .exceptions import (
    DeserializationFailedError,
    QueueMessageNotFoundError,
    QueueNotFoundError,
    TransportNotInitializedError,
)
from .serialization import EnvelopeSerializer
from .transactions import ReceiveEnlistment, SendEnlistment, current_transaction

if TYPE_CHECKING:
    from .client import IRawQueueClient, RawQueueMessage
    from .envelope import TransportMessage
    from .serialization import IMessageCodec

logger = logging.getLogger("transactional_queuing.transport")


class QueueTransportSettings(BaseModel):
    """Tuning options for a QueueTransport. Durations are in milliseconds."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    peek_interval: int = Field(
        default=1000, ge=0, description="Added to the idle wait per empty peek"
    )
    maximum_wait_time_when_idle: int = Field(
        default=60000, ge=0, description="Ceiling for the idle wait"
    )
    purge_on_startup: bool = Field(
        default=False, description="Clear the receive queue during init"
    )
    message_invisible_time: int = Field(
        default=30000, gt=0, description="Base lease per received message"
    )
    batch_size: int = Field(
        default=10, gt=0, description="Messages fetched per remote call"
    )

    @property
    def batch_lease(self) -> timedelta:
        """Lease applied to every message of a fetched batch.

        The per-message lease is multiplied by the batch size so the last
        message of a batch stays hidden while the ones before it are
        processed. Inherited behavior, kept as is even though it over-leases
        small batches.
        """
        return timedelta(milliseconds=self.message_invisible_time * self.batch_size)


class QueueTransport:
    """
    Sends and receives TransportMessages through an ``IRawQueueClient``.

    When an ambient ``Transaction`` is active, sends are deferred to its
    commit and received messages are only deleted on commit; on rollback
    nothing is sent and received leases simply expire.

    Receive state (prefetch buffer, idle backoff) belongs to one consumer:
    ``receive`` and ``has_message`` must not be called concurrently on the
    same instance. ``send`` keeps no instance state and may be.
    """

    def __init__(
        self,
        client: IRawQueueClient,
        *,
        codec: IMessageCodec | None = None,
        settings: QueueTransportSettings | None = None,
        **overrides: Any,
    ) -> None:
        """Configure the transport.

        Args:
            client: Remote queue primitives.
            codec: Envelope codec; default EnvelopeSerializer().
            settings: Tuning options; keyword overrides are applied on top.
        """
        self._client = client
        self._codec = codec or EnvelopeSerializer()
        settings = settings or QueueTransportSettings()
        if overrides:
            settings = QueueTransportSettings.model_validate(
                {**settings.model_dump(), **overrides}
            )
        self.settings = settings
        self._backoff = IdleBackoff(
            settings.peek_interval, settings.maximum_wait_time_when_idle
        )
        self._buffer = PrefetchBuffer()
        self._queue: str | None = None
        self._transactional = False

    @property
    def queue(self) -> str | None:
        """Name of the receive queue, once initialized."""
        return self._queue

    @property
    def transactional(self) -> bool:
        return self._transactional

    @property
    def backoff(self) -> IdleBackoff:
        return self._backoff

    @property
    def buffered(self) -> int:
        """Number of leased messages waiting in the prefetch buffer."""
        return len(self._buffer)

    def release_buffered(self) -> int:
        """Drop the rest of the current batch without handing it out.

        Their leases are left to expire, so the remote queue redelivers them.
        Used when the transaction the batch was enlisted in rolls back.
        """
        released = self._buffer.clear()
        if released:
            logger.debug(
                "Released %d buffered message(s) from %s", released, self._queue
            )
        return released

    async def init(self, address: str | QueueAddress, transactional: bool) -> None:
        """Bind the receive queue, creating it and purging it if configured."""
        queue = QueueAddress.parse(address).queue
        await self._client.create_if_absent(queue)
        if self.settings.purge_on_startup:
            logger.info("Purging queue %s on startup", queue)
            await self._client.clear(queue)
        self._queue = queue
        self._transactional = transactional
        logger.info("Receiving from %s (transactional=%s)", queue, transactional)

    async def create_queue(self, queue_name: str) -> None:
        """Create *queue_name* unless it already exists."""
        await self._client.create_if_absent(queue_name)

    async def send(
        self, message: TransportMessage, destination: str | QueueAddress
    ) -> None:
        """Assign a fresh id to *message* and queue it at *destination*.

        Raises:
            QueueNotFoundError: The destination queue does not exist.
        """
        queue = QueueAddress.parse(destination).queue
        if not await self._client.exists(queue):
            raise QueueNotFoundError(queue)

        message.id = str(uuid.uuid4())
        body = self._codec.encode(MessageEnvelope.from_transport(message))

        transaction = current_transaction()
        if transaction is None:
            await self._client.add(queue, body)
            logger.debug("Sent %s to %s", message.id, queue)
        else:
            transaction.enlist_volatile(SendEnlistment(self._client, queue, body))
            logger.debug("Deferred send of %s to %s until commit", message.id, queue)

    async def has_message(self) -> bool:
        """Peek for a message, waiting out the idle backoff when there is none."""
        if self._buffer:
            return True
        found = await self._client.peek(self._require_queue()) is not None
        await self._backoff.observe_and_wait(found)
        return found

    async def receive(self) -> TransportMessage | None:
        """Return the next message, or None when the queue is empty.

        Raises:
            DeserializationFailedError: The message body could not be decoded.
        """
        raw = await self._next_message()
        if raw is None:
            return None
        envelope = self._codec.decode(raw.body)
        if envelope is None:
            raise DeserializationFailedError(raw.message_id)
        return envelope.to_transport()

    async def _next_message(self) -> RawQueueMessage | None:
        queue = self._require_queue()
        if not self._buffer:
            fetched = await self._client.get_batch(
                queue, self.settings.batch_size, self.settings.batch_lease
            )
            if fetched:
                logger.debug("Fetched %d message(s) from %s", len(fetched), queue)
            transaction = current_transaction() if self._transactional else None
            for raw in fetched:
                if transaction is None:
                    await self._delete(queue, raw)
                else:
                    transaction.enlist_volatile(
                        ReceiveEnlistment(self._client, queue, raw)
                    )
            self._buffer.extend(fetched)
        return self._buffer.pop()

    async def _delete(self, queue: str, raw: RawQueueMessage) -> None:
        try:
            await self._client.delete(queue, raw)
        except QueueMessageNotFoundError:
            logger.warning("Message %s already removed from %s", raw.message_id, queue)

    def _require_queue(self) -> str:
        if self._queue is None:
            raise TransportNotInitializedError(
                "QueueTransport.init() must be awaited before receiving"
            )
        return self._queue
