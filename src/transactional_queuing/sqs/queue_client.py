"""SQSQueueClient — IRawQueueClient over Amazon SQS."""

from __future__ import annotations

import base64
import binascii
import logging
import math
from typing import TYPE_CHECKING, Any

from ..client import RawQueueMessage
from ..exceptions import (
    QueueMessageNotFoundError,
    QueueNotFoundError,
    RemoteOperationFailedError,
)
from .connection import NON_EXISTENT_QUEUE_CODES, error_code

if TYPE_CHECKING:
    from datetime import timedelta

    from .connection import SQSConnectionManager

logger = logging.getLogger("transactional_queuing.sqs")

MAX_MESSAGES_PER_RECEIVE = 10
MAX_VISIBILITY_TIMEOUT = 43200
INVALID_RECEIPT_CODES = frozenset({"ReceiptHandleIsInvalid", "InvalidParameterValue"})
ENCODING_ATTRIBUTE = "ContentTransferEncoding"
BASE64_ENCODING = "base64"


class SQSQueueClient:
    """SQS adapter implementing IRawQueueClient.

    Bodies travel base64-encoded since SQS only accepts text, tagged with a
    ``ContentTransferEncoding`` message attribute; untagged bodies written
    by other producers are passed through as UTF-8. SQS caps a
    receive at 10 messages and a visibility timeout at 12 hours; larger
    requests are clamped. ``peek`` receives with a zero visibility timeout,
    so the message stays visible (its receive count still increases).
    """

    def __init__(self, connection: SQSConnectionManager) -> None:
        self._connection = connection

    async def exists(self, queue: str) -> bool:
        client = await self._connection.get_client()
        try:
            await client.get_queue_url(QueueName=queue)
        except Exception as e:
            if error_code(e) in NON_EXISTENT_QUEUE_CODES:
                return False
            raise RemoteOperationFailedError(str(e)) from e
        return True

    async def create_if_absent(self, queue: str) -> None:
        client = await self._connection.get_client()
        try:
            await client.create_queue(QueueName=queue)
        except Exception as e:
            raise RemoteOperationFailedError(str(e)) from e

    async def clear(self, queue: str) -> None:
        queue_url = await self._connection.get_queue_url(queue)
        await self._call("purge_queue", QueueUrl=queue_url)

    async def add(self, queue: str, body: bytes) -> None:
        queue_url = await self._connection.get_queue_url(queue)
        await self._call(
            "send_message",
            QueueUrl=queue_url,
            MessageBody=base64.b64encode(body).decode("ascii"),
            MessageAttributes={
                ENCODING_ATTRIBUTE: {
                    "DataType": "String",
                    "StringValue": BASE64_ENCODING,
                }
            },
        )

    async def peek(self, queue: str) -> RawQueueMessage | None:
        queue_url = await self._connection.get_queue_url(queue)
        out = await self._call(
            "receive_message",
            QueueUrl=queue_url,
            MaxNumberOfMessages=1,
            VisibilityTimeout=0,
            AttributeNames=["ApproximateReceiveCount"],
            MessageAttributeNames=[ENCODING_ATTRIBUTE],
        )
        messages = out.get("Messages", [])
        if not messages:
            return None
        return self._to_raw(messages[0], leased=False)

    async def get_batch(
        self, queue: str, count: int, lease: timedelta
    ) -> list[RawQueueMessage]:
        queue_url = await self._connection.get_queue_url(queue)
        visibility = min(math.ceil(lease.total_seconds()), MAX_VISIBILITY_TIMEOUT)
        out = await self._call(
            "receive_message",
            QueueUrl=queue_url,
            MaxNumberOfMessages=max(1, min(count, MAX_MESSAGES_PER_RECEIVE)),
            VisibilityTimeout=visibility,
            AttributeNames=["ApproximateReceiveCount"],
            MessageAttributeNames=[ENCODING_ATTRIBUTE],
        )
        return [self._to_raw(m, leased=True) for m in out.get("Messages", [])]

    async def delete(self, queue: str, message: RawQueueMessage) -> None:
        if message.receipt_handle is None:
            raise QueueMessageNotFoundError(queue, message.message_id)
        try:
            queue_url = await self._connection.get_queue_url(queue)
        except QueueNotFoundError as e:
            raise QueueMessageNotFoundError(queue, message.message_id) from e
        client = await self._connection.get_client()
        try:
            await client.delete_message(
                QueueUrl=queue_url, ReceiptHandle=message.receipt_handle
            )
        except Exception as e:
            code = error_code(e)
            if code in INVALID_RECEIPT_CODES or code in NON_EXISTENT_QUEUE_CODES:
                raise QueueMessageNotFoundError(queue, message.message_id) from e
            raise RemoteOperationFailedError(str(e)) from e

    async def _call(self, operation: str, **kwargs: Any) -> dict[str, Any]:
        client = await self._connection.get_client()
        try:
            out = await getattr(client, operation)(**kwargs)
        except Exception as e:
            logger.debug("SQS %s failed: %s", operation, e)
            raise RemoteOperationFailedError(str(e)) from e
        return dict(out or {})

    @staticmethod
    def _to_raw(msg: dict[str, Any], *, leased: bool) -> RawQueueMessage:
        body = msg.get("Body", "")
        encoding = (
            msg.get("MessageAttributes", {})
            .get(ENCODING_ATTRIBUTE, {})
            .get("StringValue")
        )
        if encoding == BASE64_ENCODING:
            try:
                raw = base64.b64decode(body, validate=True)
            except (binascii.Error, ValueError):
                # Left for the codec to reject under this message id.
                logger.warning("Message %s is not valid base64", msg.get("MessageId"))
                raw = body.encode("utf-8")
        else:
            raw = body.encode("utf-8")
        attributes = msg.get("Attributes", {})
        return RawQueueMessage(
            message_id=str(msg["MessageId"]),
            body=raw,
            receipt_handle=msg.get("ReceiptHandle") if leased else None,
            dequeue_count=int(attributes.get("ApproximateReceiveCount", 0)),
        )
