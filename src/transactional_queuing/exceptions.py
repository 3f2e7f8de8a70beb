"""Exceptions for transactional-queuing."""

from __future__ import annotations


class QueuingError(Exception):
    """Root exception for the entire transactional-queuing package."""


class MessagingError(QueuingError):
    """Base class for all messaging-related infrastructure errors."""


class QueueNotFoundError(MessagingError):
    """Raised when a queue does not exist on the remote service."""

    def __init__(self, queue: str) -> None:
        self.queue = queue
        super().__init__(f"Queue {queue!r} does not exist")


class MessagingSerializationError(MessagingError):
    """Raised when a message cannot be encoded for the wire."""


class DeserializationFailedError(MessagingError):
    """Raised when a received message body cannot be decoded.

    The message is surfaced as an error; it is neither dropped nor requeued.
    """

    def __init__(self, message_id: str) -> None:
        self.message_id = message_id
        super().__init__(f"Failed to deserialize message with id: {message_id}")


class RemoteOperationFailedError(MessagingError):
    """Raised when a remote queue primitive (add/delete/fetch/peek) fails."""


class QueueMessageNotFoundError(RemoteOperationFailedError):
    """Raised by delete when the message (or its lease) is already gone."""

    def __init__(self, queue: str, message_id: str) -> None:
        self.queue = queue
        self.message_id = message_id
        super().__init__(f"Message {message_id!r} not found in queue {queue!r}")


class TransportNotInitializedError(MessagingError):
    """Raised when receiving before ``QueueTransport.init`` was awaited."""


# ── Transaction Exceptions ───────────────────────────────────────────


class TransactionError(QueuingError):
    """Base class for ambient transaction errors."""


class TransactionStateError(TransactionError):
    """Raised on an operation that is invalid for the transaction's state."""


class TransactionAbortedError(TransactionError):
    """Raised when a participant vetoed the commit during prepare."""


class TransactionInDoubtError(TransactionError):
    """Raised when one or more participants failed during commit.

    The remaining participants were still notified; nothing is compensated.
    """

    def __init__(self, errors: list[BaseException]) -> None:
        self.errors = errors
        super().__init__(
            f"{len(errors)} participant(s) failed during commit. "
            f"First error: {errors[0] if errors else 'unknown'}"
        )


class EnlistmentError(TransactionError):
    """Raised when a single-use enlistment is notified more than once."""
