"""SQS transport adapter (optional extra: transactional-queuing[sqs])."""

from __future__ import annotations

from .connection import SQSConnectionManager
from .queue_client import SQSQueueClient

__all__ = [
    "SQSConnectionManager",
    "SQSQueueClient",
]
