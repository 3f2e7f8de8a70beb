"""Transactional send/receive over lease-based remote queues."""

from __future__ import annotations

from .address import QueueAddress
from .backoff import IdleBackoff
from .buffer import PrefetchBuffer
from .client import IRawQueueClient, RawQueueMessage
from .consumer import QueueTransportConsumer
from .envelope import MessageEnvelope, MessageIntent, TransportMessage
from .exceptions import (
    DeserializationFailedError,
    EnlistmentError,
    MessagingError,
    MessagingSerializationError,
    QueueMessageNotFoundError,
    QueueNotFoundError,
    QueuingError,
    RemoteOperationFailedError,
    TransactionAbortedError,
    TransactionError,
    TransactionInDoubtError,
    TransactionStateError,
    TransportNotInitializedError,
)
from .memory import InMemoryQueueClient
from .retry import RetryPolicy
from .serialization import EnvelopeSerializer, IMessageCodec
from .transactions import (
    IEnlistmentNotification,
    ReceiveEnlistment,
    SendEnlistment,
    Transaction,
    TransactionStatus,
    current_transaction,
)
from .transport import QueueTransport, QueueTransportSettings

__all__ = [
    "DeserializationFailedError",
    "EnlistmentError",
    "EnvelopeSerializer",
    "IEnlistmentNotification",
    "IMessageCodec",
    "IRawQueueClient",
    "IdleBackoff",
    "InMemoryQueueClient",
    "MessageEnvelope",
    "MessageIntent",
    "MessagingError",
    "MessagingSerializationError",
    "PrefetchBuffer",
    "QueueAddress",
    "QueueMessageNotFoundError",
    "QueueNotFoundError",
    "QueueTransport",
    "QueueTransportConsumer",
    "QueueTransportSettings",
    "QueuingError",
    "RawQueueMessage",
    "ReceiveEnlistment",
    "RemoteOperationFailedError",
    "RetryPolicy",
    "SendEnlistment",
    "Transaction",
    "TransactionAbortedError",
    "TransactionError",
    "TransactionInDoubtError",
    "TransactionStateError",
    "TransactionStatus",
    "TransportNotInitializedError",
    "current_transaction",
]
