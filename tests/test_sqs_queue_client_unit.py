"""Unit tests for SQSQueueClient with a mocked connection (no real AWS)."""

from __future__ import annotations

import base64
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from transactional_queuing.client import IRawQueueClient, RawQueueMessage
from transactional_queuing.exceptions import (
    QueueMessageNotFoundError,
    QueueNotFoundError,
    RemoteOperationFailedError,
)
from transactional_queuing.sqs.queue_client import SQSQueueClient

QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123/orders"


class ClientError(Exception):
    def __init__(self, code: str) -> None:
        self.response = {"Error": {"Code": code}}
        super().__init__(code)


@pytest.fixture
def mock_client() -> MagicMock:
    client = MagicMock()
    for op in (
        "get_queue_url",
        "create_queue",
        "purge_queue",
        "send_message",
        "receive_message",
        "delete_message",
    ):
        setattr(client, op, AsyncMock(return_value={}))
    client.get_queue_url.return_value = {"QueueUrl": QUEUE_URL}
    return client


@pytest.fixture
def mock_connection(mock_client: MagicMock) -> MagicMock:
    conn = MagicMock()
    conn.get_client = AsyncMock(return_value=mock_client)
    conn.get_queue_url = AsyncMock(return_value=QUEUE_URL)
    return conn


@pytest.fixture
def sqs(mock_connection: MagicMock) -> SQSQueueClient:
    return SQSQueueClient(mock_connection)


def _sqs_message(body: bytes, n: int = 1) -> dict[str, object]:
    return {
        "MessageId": f"id-{n}",
        "ReceiptHandle": f"rh-{n}",
        "Body": base64.b64encode(body).decode("ascii"),
        "Attributes": {"ApproximateReceiveCount": "2"},
        "MessageAttributes": {
            "ContentTransferEncoding": {"DataType": "String", "StringValue": "base64"}
        },
    }


def test_satisfies_port(sqs: SQSQueueClient) -> None:
    assert isinstance(sqs, IRawQueueClient)


@pytest.mark.asyncio
async def test_exists(sqs: SQSQueueClient, mock_client: MagicMock) -> None:
    assert await sqs.exists("orders") is True
    mock_client.get_queue_url.side_effect = ClientError("QueueDoesNotExist")
    assert await sqs.exists("orders") is False
    mock_client.get_queue_url.side_effect = ClientError("AccessDenied")
    with pytest.raises(RemoteOperationFailedError):
        await sqs.exists("orders")


@pytest.mark.asyncio
async def test_create_and_clear(sqs: SQSQueueClient, mock_client: MagicMock) -> None:
    await sqs.create_if_absent("orders")
    mock_client.create_queue.assert_awaited_once_with(QueueName="orders")
    await sqs.clear("orders")
    mock_client.purge_queue.assert_awaited_once_with(QueueUrl=QUEUE_URL)


@pytest.mark.asyncio
async def test_add_base64_encodes_body(
    sqs: SQSQueueClient, mock_client: MagicMock
) -> None:
    await sqs.add("orders", b"\x00\x01binary")
    kwargs = mock_client.send_message.call_args.kwargs
    assert kwargs["QueueUrl"] == QUEUE_URL
    assert base64.b64decode(kwargs["MessageBody"]) == b"\x00\x01binary"
    assert kwargs["MessageAttributes"] == {
        "ContentTransferEncoding": {"DataType": "String", "StringValue": "base64"}
    }


@pytest.mark.asyncio
async def test_add_to_missing_queue(
    sqs: SQSQueueClient, mock_connection: MagicMock
) -> None:
    mock_connection.get_queue_url.side_effect = QueueNotFoundError("orders")
    with pytest.raises(QueueNotFoundError):
        await sqs.add("orders", b"x")


@pytest.mark.asyncio
async def test_peek_uses_zero_visibility(
    sqs: SQSQueueClient, mock_client: MagicMock
) -> None:
    assert await sqs.peek("orders") is None
    mock_client.receive_message.return_value = {"Messages": [_sqs_message(b"hi")]}
    peeked = await sqs.peek("orders")
    assert peeked == RawQueueMessage(
        message_id="id-1", body=b"hi", receipt_handle=None, dequeue_count=2
    )
    assert mock_client.receive_message.call_args.kwargs["VisibilityTimeout"] == 0
    assert mock_client.receive_message.call_args.kwargs["MaxNumberOfMessages"] == 1


@pytest.mark.asyncio
async def test_get_batch_leases_for_lease_seconds(
    sqs: SQSQueueClient, mock_client: MagicMock
) -> None:
    mock_client.receive_message.return_value = {
        "Messages": [_sqs_message(b"a", 1), _sqs_message(b"b", 2)]
    }
    batch = await sqs.get_batch("orders", 10, timedelta(milliseconds=300000))
    kwargs = mock_client.receive_message.call_args.kwargs
    assert kwargs["MaxNumberOfMessages"] == 10
    assert kwargs["VisibilityTimeout"] == 300
    assert [m.body for m in batch] == [b"a", b"b"]
    assert [m.receipt_handle for m in batch] == ["rh-1", "rh-2"]


@pytest.mark.asyncio
async def test_get_batch_clamps_to_sqs_limits(
    sqs: SQSQueueClient, mock_client: MagicMock
) -> None:
    await sqs.get_batch("orders", 50, timedelta(hours=20))
    kwargs = mock_client.receive_message.call_args.kwargs
    assert kwargs["MaxNumberOfMessages"] == 10
    assert kwargs["VisibilityTimeout"] == 43200


@pytest.mark.asyncio
async def test_get_batch_rounds_lease_up(
    sqs: SQSQueueClient, mock_client: MagicMock
) -> None:
    await sqs.get_batch("orders", 1, timedelta(milliseconds=1500))
    assert mock_client.receive_message.call_args.kwargs["VisibilityTimeout"] == 2


@pytest.mark.asyncio
async def test_non_base64_body_kept_as_text(
    sqs: SQSQueueClient, mock_client: MagicMock
) -> None:
    mock_client.receive_message.return_value = {
        "Messages": [{"MessageId": "x", "ReceiptHandle": "r", "Body": "{not b64}"}]
    }
    (message,) = await sqs.get_batch("orders", 1, timedelta(seconds=1))
    assert message.body == b"{not b64}"
    assert message.dequeue_count == 0


@pytest.mark.asyncio
async def test_untagged_body_is_not_base64_decoded(
    sqs: SQSQueueClient, mock_client: MagicMock
) -> None:
    mock_client.receive_message.return_value = {
        "Messages": [{"MessageId": "x", "ReceiptHandle": "r", "Body": "abcd"}]
    }
    (message,) = await sqs.get_batch("orders", 1, timedelta(seconds=1))
    assert message.body == b"abcd"
    kwargs = mock_client.receive_message.call_args.kwargs
    assert kwargs["MessageAttributeNames"] == ["ContentTransferEncoding"]


@pytest.mark.asyncio
async def test_tagged_body_that_is_not_base64_passes_through(
    sqs: SQSQueueClient, mock_client: MagicMock
) -> None:
    raw = _sqs_message(b"", 1)
    raw["Body"] = "{broken}"
    mock_client.receive_message.return_value = {"Messages": [raw]}
    peeked = await sqs.peek("orders")
    assert peeked is not None
    assert peeked.body == b"{broken}"


@pytest.mark.asyncio
async def test_receive_failure_wrapped(
    sqs: SQSQueueClient, mock_client: MagicMock
) -> None:
    mock_client.receive_message.side_effect = RuntimeError("timeout")
    with pytest.raises(RemoteOperationFailedError, match="timeout") as exc_info:
        await sqs.get_batch("orders", 1, timedelta(seconds=1))
    assert exc_info.value.__cause__ is not None


@pytest.mark.asyncio
async def test_delete_uses_receipt_handle(
    sqs: SQSQueueClient, mock_client: MagicMock
) -> None:
    message = RawQueueMessage(message_id="id-1", body=b"", receipt_handle="rh-1")
    await sqs.delete("orders", message)
    mock_client.delete_message.assert_awaited_once_with(
        QueueUrl=QUEUE_URL, ReceiptHandle="rh-1"
    )


@pytest.mark.asyncio
async def test_delete_invalid_receipt_is_not_found(
    sqs: SQSQueueClient, mock_client: MagicMock
) -> None:
    mock_client.delete_message.side_effect = ClientError("ReceiptHandleIsInvalid")
    message = RawQueueMessage(message_id="id-1", body=b"", receipt_handle="rh-1")
    with pytest.raises(QueueMessageNotFoundError):
        await sqs.delete("orders", message)


@pytest.mark.asyncio
async def test_delete_from_missing_queue_is_not_found(
    sqs: SQSQueueClient, mock_connection: MagicMock, mock_client: MagicMock
) -> None:
    mock_connection.get_queue_url.side_effect = QueueNotFoundError("gone")
    message = RawQueueMessage(message_id="m1", body=b"x", receipt_handle="r1")
    with pytest.raises(QueueMessageNotFoundError) as exc_info:
        await sqs.delete("gone", message)
    assert isinstance(exc_info.value.__cause__, QueueNotFoundError)
    mock_client.delete_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_queue_removed_meanwhile_is_not_found(
    sqs: SQSQueueClient, mock_client: MagicMock
) -> None:
    mock_client.delete_message.side_effect = ClientError(
        "AWS.SimpleQueueService.NonExistentQueue"
    )
    message = RawQueueMessage(message_id="id-1", body=b"", receipt_handle="rh-1")
    with pytest.raises(QueueMessageNotFoundError):
        await sqs.delete("orders", message)


@pytest.mark.asyncio
async def test_delete_other_failure(
    sqs: SQSQueueClient, mock_client: MagicMock
) -> None:
    mock_client.delete_message.side_effect = ClientError("ServiceUnavailable")
    message = RawQueueMessage(message_id="id-1", body=b"", receipt_handle="rh-1")
    with pytest.raises(RemoteOperationFailedError) as exc_info:
        await sqs.delete("orders", message)
    assert not isinstance(exc_info.value, QueueMessageNotFoundError)


@pytest.mark.asyncio
async def test_delete_without_lease_is_not_found(
    sqs: SQSQueueClient, mock_client: MagicMock
) -> None:
    with pytest.raises(QueueMessageNotFoundError):
        await sqs.delete("orders", RawQueueMessage(message_id="id-1", body=b""))
    mock_client.delete_message.assert_not_awaited()
