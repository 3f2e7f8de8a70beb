"""QueueAddress — logical destination, optionally qualified by a machine."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator


class QueueAddress(BaseModel):
    """``queue@machine`` address; the machine segment is optional."""

    model_config = ConfigDict(frozen=True)

    queue: str
    machine: str | None = None

    @field_validator("queue")
    @classmethod
    def _queue_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("queue name must not be empty")
        return value.strip()

    @classmethod
    def parse(cls, address: str | QueueAddress) -> QueueAddress:
        """Parse ``"queue"`` or ``"queue@machine"``."""
        if isinstance(address, QueueAddress):
            return address
        queue, _, machine = address.partition("@")
        return cls(queue=queue, machine=machine.strip() or None)

    def __str__(self) -> str:
        if self.machine:
            return f"{self.queue}@{self.machine}"
        return self.queue
