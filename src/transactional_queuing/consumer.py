"""QueueTransportConsumer — polling loop that hands messages to a handler."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .exceptions import MessagingError, TransactionError
from .retry import RetryPolicy
from .transactions import Transaction, TransactionStatus

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

    from .envelope import TransportMessage
    from .transport import QueueTransport

logger = logging.getLogger("transactional_queuing.consumer")


class QueueTransportConsumer:
    """Drives a single initialized QueueTransport.

    Each iteration checks ``has_message`` (which applies the idle backoff)
    and, when a message is there, receives it and awaits ``handler``.

    A transactional transport enlists a whole fetched batch into the
    transaction that is ambient when the batch is fetched, so the consumer
    keeps one ``Transaction`` open until the prefetch buffer drains. The batch
    commits as a unit once its last message is handled: its messages are
    deleted and whatever the handler sent through a transport goes out. A
    handler failure rolls the batch back and drops the messages still
    buffered; every message of the batch is redelivered once the lease
    expires, including those already handled. Stopping mid-batch does the
    same.
    """

    def __init__(
        self,
        transport: QueueTransport,
        handler: Callable[[TransportMessage], Coroutine[Any, Any, None]],
        *,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """Configure consumer.

        Args:
            transport: Transport already bound with ``init``.
            handler: Async callable invoked once per received message.
            retry_policy: Delay between attempts after remote failures.
        """
        self._transport = transport
        self._handler = handler
        self._retry_policy = retry_policy or RetryPolicy()
        self._running = False
        self._failures = 0
        self._batch: Transaction | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def run(self) -> None:
        """Poll until ``stop()`` is called."""
        self._running = True
        logger.info("Consuming from %s", self._transport.queue)
        try:
            while self._running:
                await self.poll_once()
        finally:
            # Stopped mid-batch: handled messages are redelivered with the rest.
            await self._abandon_batch()

    async def poll_once(self) -> bool:
        """Run one iteration; return True if a message was handled."""
        try:
            if not await self._transport.has_message():
                self._failures = 0
                return False
            if self._transport.transactional:
                handled = await self._receive_in_batch()
            else:
                handled = await self._receive_and_dispatch()
        except (MessagingError, TransactionError) as e:
            self._failures += 1
            logger.warning(
                "Receive from %s failed (%d in a row): %s",
                self._transport.queue,
                self._failures,
                e,
            )
            await self._retry_policy.wait_before_retry(self._failures)
            return False
        self._failures = 0
        return handled

    async def _receive_and_dispatch(self) -> bool:
        message = await self._transport.receive()
        if message is None:
            return False
        try:
            await self._handler(message)
        except Exception:
            # Already deleted from the queue; the message is lost.
            logger.exception("Handler failed for %s", message.id)
        return True

    async def _receive_in_batch(self) -> bool:
        if self._batch is None:
            self._batch = Transaction()
        batch = self._batch

        try:
            with batch.ambient():
                message = await self._transport.receive()
        except Exception:
            await self._abandon_batch()
            raise
        if message is None:
            await self._commit_batch()
            return False

        try:
            with batch.ambient():
                await self._handler(message)
        except Exception:
            logger.exception("Handler failed for %s; rolling back batch", message.id)
            await self._abandon_batch()
            return False

        if not self._transport.buffered:
            await self._commit_batch()
        return True

    async def _commit_batch(self) -> None:
        batch, self._batch = self._batch, None
        if batch is not None:
            await batch.commit()

    async def _abandon_batch(self) -> None:
        batch, self._batch = self._batch, None
        if batch is None:
            return
        released = self._transport.release_buffered()
        if released:
            logger.warning(
                "Released %d unhandled message(s) from %s for redelivery",
                released,
                self._transport.queue,
            )
        if batch.status is TransactionStatus.ACTIVE:
            await batch.rollback()

    async def stop(self) -> None:
        """Stop the consumer loop."""
        self._running = False
