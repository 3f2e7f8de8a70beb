"""Ambient transactions and the enlistments that bind queue side effects to them."""

from __future__ import annotations

import contextlib
import enum
import logging
from contextvars import ContextVar, Token
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .exceptions import (
    EnlistmentError,
    QueueMessageNotFoundError,
    TransactionAbortedError,
    TransactionInDoubtError,
    TransactionStateError,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .client import IRawQueueClient, RawQueueMessage

logger = logging.getLogger("transactional_queuing.transactions")

_current_transaction: ContextVar[Transaction | None] = ContextVar(
    "current_transaction", default=None
)


def current_transaction() -> Transaction | None:
    """Return the ambient transaction for the current context, if any."""
    return _current_transaction.get()


@runtime_checkable
class IEnlistmentNotification(Protocol):
    """Volatile participant notified of the ambient transaction's outcome."""

    async def prepare(self) -> bool:
        """Vote on the outcome; False aborts the transaction."""
        ...

    async def commit(self) -> None:
        """Apply the deferred side effect."""
        ...

    async def rollback(self) -> None:
        """Compensate; the transaction will not commit."""
        ...


class TransactionStatus(str, enum.Enum):
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    IN_DOUBT = "in_doubt"


class Transaction:
    """
    Coordinator for volatile (non-durable) participants.

    Commit is two-phase: every participant is asked to ``prepare``; a False
    vote or an exception rolls back all participants and raises
    ``TransactionAbortedError``. Then each participant is committed in
    enlistment order. A participant failing during commit is not compensated
    or retried: the rest are still committed and ``TransactionInDoubtError``
    is raised afterwards.

    Used as an async context manager the transaction is ambient for the
    block, commits on clean exit and rolls back on exception::

        async with Transaction():
            await transport.send(message, "orders")
    """

    def __init__(self) -> None:
        self._participants: list[IEnlistmentNotification] = []
        self._status = TransactionStatus.ACTIVE
        self._token: Token[Transaction | None] | None = None

    @property
    def status(self) -> TransactionStatus:
        return self._status

    @property
    def participants(self) -> list[IEnlistmentNotification]:
        return list(self._participants)

    def enlist_volatile(self, participant: IEnlistmentNotification) -> None:
        """Register *participant* for the outcome of this transaction."""
        self._ensure_active("enlist in")
        self._participants.append(participant)
        logger.debug(
            "Enlisted %s (%d participant(s))",
            type(participant).__name__,
            len(self._participants),
        )

    async def commit(self) -> None:
        """Prepare then commit every participant."""
        self._ensure_active("commit")
        for participant in self._participants:
            try:
                vote = await participant.prepare()
            except Exception as exc:
                await self._abort()
                raise TransactionAbortedError(
                    f"{type(participant).__name__} failed to prepare: {exc}"
                ) from exc
            if not vote:
                await self._abort()
                raise TransactionAbortedError(
                    f"{type(participant).__name__} voted to abort"
                )

        errors: list[BaseException] = []
        for participant in self._participants:
            try:
                await participant.commit()
            except Exception as exc:
                logger.error(
                    "Participant %s failed during commit: %s",
                    type(participant).__name__,
                    exc,
                    exc_info=True,
                )
                errors.append(exc)
        self._participants.clear()
        if errors:
            self._status = TransactionStatus.IN_DOUBT
            raise TransactionInDoubtError(errors)
        self._status = TransactionStatus.COMMITTED

    async def rollback(self) -> None:
        """Notify every participant that the transaction will not commit."""
        self._ensure_active("roll back")
        await self._abort()

    async def _abort(self) -> None:
        self._status = TransactionStatus.ROLLED_BACK
        participants, self._participants = self._participants, []
        for participant in participants:
            try:
                await participant.rollback()
            except Exception as exc:
                logger.error(
                    "Participant %s failed during rollback: %s",
                    type(participant).__name__,
                    exc,
                    exc_info=True,
                )

    def _ensure_active(self, action: str) -> None:
        if self._status is not TransactionStatus.ACTIVE:
            raise TransactionStateError(
                f"Cannot {action} a transaction that is {self._status.value}"
            )

    @contextlib.contextmanager
    def ambient(self) -> Iterator[Transaction]:
        """Make this transaction ambient for a block without resolving it.

        Lets one transaction span several awaits that are not nested in a
        single ``async with``; the caller commits or rolls back explicitly.
        """
        self._ensure_active("enter")
        token = _current_transaction.set(self)
        try:
            yield self
        finally:
            _current_transaction.reset(token)

    async def __aenter__(self) -> Transaction:
        if self._token is not None:
            raise TransactionStateError("Transaction is already ambient")
        self._token = _current_transaction.set(self)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Restore the previous ambient transaction, then resolve this one.

        A transaction already completed inside the block is left as is.
        """
        if self._token is not None:
            _current_transaction.reset(self._token)
            self._token = None
        if self._status is not TransactionStatus.ACTIVE:
            return
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()


class _SingleUseEnlistment:
    """Base for enlistments that accept exactly one terminal notification."""

    def __init__(self) -> None:
        self._completed = False

    @property
    def completed(self) -> bool:
        return self._completed

    def _complete(self) -> None:
        if self._completed:
            raise EnlistmentError(
                f"{type(self).__name__} was already committed or rolled back"
            )
        self._completed = True

    async def prepare(self) -> bool:
        return not self._completed

    async def rollback(self) -> None:
        # The side effect never happened; nothing to compensate.
        self._complete()


class SendEnlistment(_SingleUseEnlistment):
    """Defers adding an already-serialized message until commit."""

    def __init__(self, client: IRawQueueClient, queue: str, body: bytes) -> None:
        super().__init__()
        self.client = client
        self.queue = queue
        self.body = body

    async def commit(self) -> None:
        self._complete()
        await self.client.add(self.queue, self.body)
        logger.debug("Committed deferred send to %s", self.queue)


class ReceiveEnlistment(_SingleUseEnlistment):
    """Defers deleting a leased message until commit.

    On rollback the lease is left to expire, after which the message is
    visible to other consumers again.
    """

    def __init__(
        self, client: IRawQueueClient, queue: str, message: RawQueueMessage
    ) -> None:
        super().__init__()
        self.client = client
        self.queue = queue
        self.message = message

    async def commit(self) -> None:
        self._complete()
        try:
            await self.client.delete(self.queue, self.message)
        except QueueMessageNotFoundError:
            logger.warning(
                "Message %s already removed from %s",
                self.message.message_id,
                self.queue,
            )
            return
        logger.debug(
            "Committed deferred delete of %s from %s",
            self.message.message_id,
            self.queue,
        )
