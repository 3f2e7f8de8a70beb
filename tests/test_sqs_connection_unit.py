"""Unit tests for SQSConnectionManager with mocked aiobotocore (no real AWS)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from transactional_queuing.exceptions import (
    QueueNotFoundError,
    RemoteOperationFailedError,
)
from transactional_queuing.sqs.connection import SQSConnectionManager, error_code


class ClientError(Exception):
    """Stand-in exposing botocore's ``response`` shape."""

    def __init__(self, code: str) -> None:
        self.response = {"Error": {"Code": code}}
        super().__init__(code)


@pytest.fixture
def mock_session() -> MagicMock:
    session = MagicMock()
    mock_cm = MagicMock()
    mock_client = MagicMock()
    mock_client.get_queue_url = AsyncMock(
        return_value={"QueueUrl": "https://sqs.us-east-1.amazonaws.com/123/my-queue"}
    )
    mock_client.list_queues = AsyncMock(return_value={"QueueUrls": []})
    mock_cm.__aenter__ = AsyncMock(return_value=mock_client)
    mock_cm.__aexit__ = AsyncMock(return_value=None)
    session.create_client = MagicMock(return_value=mock_cm)
    return session


def test_error_code() -> None:
    assert error_code(ClientError("Throttling")) == "Throttling"
    assert error_code(RuntimeError("x")) is None


@pytest.mark.asyncio
async def test_get_client_creates_and_caches(mock_session: MagicMock) -> None:
    conn = SQSConnectionManager(region_name="eu-west-1", session=mock_session)
    client1 = await conn.get_client()
    client2 = await conn.get_client()
    assert client1 is client2
    mock_session.create_client.assert_called_once()
    assert mock_session.create_client.call_args.kwargs["region_name"] == "eu-west-1"
    assert mock_session.create_client.call_args.args[0] == "sqs"


@pytest.mark.asyncio
async def test_get_queue_url_returns_url(mock_session: MagicMock) -> None:
    conn = SQSConnectionManager(session=mock_session)
    url = await conn.get_queue_url("my-queue")
    assert url == "https://sqs.us-east-1.amazonaws.com/123/my-queue"


@pytest.mark.asyncio
async def test_get_queue_url_missing_queue(mock_session: MagicMock) -> None:
    client = mock_session.create_client.return_value.__aenter__.return_value
    client.get_queue_url = AsyncMock(
        side_effect=ClientError("AWS.SimpleQueueService.NonExistentQueue")
    )
    conn = SQSConnectionManager(session=mock_session)
    with pytest.raises(QueueNotFoundError) as exc_info:
        await conn.get_queue_url("gone")
    assert exc_info.value.queue == "gone"


@pytest.mark.asyncio
async def test_get_queue_url_wraps_other_errors(mock_session: MagicMock) -> None:
    client = mock_session.create_client.return_value.__aenter__.return_value
    client.get_queue_url = AsyncMock(side_effect=RuntimeError("network error"))
    conn = SQSConnectionManager(session=mock_session)
    with pytest.raises(RemoteOperationFailedError, match="network error") as exc_info:
        await conn.get_queue_url("my-queue")
    assert exc_info.value.__cause__ is not None


@pytest.mark.asyncio
async def test_close_cleans_up_client(mock_session: MagicMock) -> None:
    mock_cm = mock_session.create_client.return_value
    conn = SQSConnectionManager(session=mock_session)
    await conn.get_client()
    await conn.close()
    mock_cm.__aexit__.assert_called_once()
    assert conn._client is None


@pytest.mark.asyncio
async def test_health_check(mock_session: MagicMock) -> None:
    conn = SQSConnectionManager(session=mock_session)
    assert await conn.health_check() is True
    client = await conn.get_client()
    client.list_queues = AsyncMock(side_effect=RuntimeError("timeout"))
    assert await conn.health_check() is False
