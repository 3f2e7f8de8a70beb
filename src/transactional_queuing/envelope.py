"""TransportMessage and MessageEnvelope — application message and wire record."""

from __future__ import annotations

import enum
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ConfigDict, Field


class MessageIntent(str, enum.Enum):
    """Why a message was sent."""

    SEND = "send"
    PUBLISH = "publish"
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"
    REPLY = "reply"


class TransportMessage(BaseModel):
    """Application-level unit of communication.

    ``id`` is overwritten by the transport on every send.
    ``time_to_be_received`` is advisory; ``None`` means no expiry.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = ""
    body: bytes = b""
    correlation_id: str | None = None
    recoverable: bool = False
    reply_to_address: str | None = None
    time_to_be_received: timedelta | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    message_intent: MessageIntent = MessageIntent.SEND
    time_sent: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    id_for_correlation: str | None = None


class MessageEnvelope(BaseModel):
    """Immutable wire record carrying every TransportMessage field.

    Bytes travel base64-encoded so arbitrary bodies survive JSON.
    """

    model_config = ConfigDict(
        frozen=True,
        ser_json_bytes="base64",
        val_json_bytes="base64",
    )

    id: str
    body: bytes = b""
    correlation_id: str | None = None
    recoverable: bool = False
    reply_to_address: str | None = None
    time_to_be_received: timedelta | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    message_intent: MessageIntent = MessageIntent.SEND
    time_sent: datetime
    id_for_correlation: str | None = None

    @classmethod
    def from_transport(cls, message: TransportMessage) -> MessageEnvelope:
        """Wrap a transport message for the wire."""
        return cls(**message.model_dump())

    def to_transport(self) -> TransportMessage:
        """Rebuild the transport message carried by this envelope."""
        return TransportMessage(**self.model_dump())
