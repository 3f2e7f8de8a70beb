"""In-memory queue adapter for testing."""

from __future__ import annotations

from .queue_client import InMemoryQueueClient

__all__ = [
    "InMemoryQueueClient",
]
