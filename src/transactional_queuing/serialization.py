"""EnvelopeSerializer — JSON roundtrip for MessageEnvelope."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from .envelope import MessageEnvelope
from .exceptions import MessagingSerializationError

logger = logging.getLogger("transactional_queuing.serialization")


@runtime_checkable
class IMessageCodec(Protocol):
    """Port turning envelopes into wire bytes and back."""

    def encode(self, envelope: MessageEnvelope) -> bytes:
        """Encode *envelope* to bytes."""
        ...

    def decode(self, raw: bytes) -> MessageEnvelope | None:
        """Decode *raw*; return ``None`` when it is not a valid envelope."""
        ...


class EnvelopeSerializer:
    """Serialize/deserialize MessageEnvelope to/from JSON bytes."""

    def encode(self, envelope: MessageEnvelope) -> bytes:
        """Encode envelope to JSON bytes."""
        try:
            return envelope.model_dump_json().encode("utf-8")
        except (TypeError, ValueError) as e:
            raise MessagingSerializationError(str(e)) from e

    def decode(self, raw: bytes) -> MessageEnvelope | None:
        """Decode JSON bytes to MessageEnvelope, or ``None`` if malformed."""
        try:
            return MessageEnvelope.model_validate_json(raw)
        except (ValidationError, UnicodeDecodeError) as e:
            logger.debug("Discarding undecodable payload: %s", e)
            return None
