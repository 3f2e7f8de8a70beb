"""Tests for QueueAddress."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from transactional_queuing.address import QueueAddress


def test_parse_plain_queue() -> None:
    address = QueueAddress.parse("orders")
    assert address.queue == "orders"
    assert address.machine is None
    assert str(address) == "orders"


def test_parse_queue_at_machine() -> None:
    address = QueueAddress.parse("orders@storage-account")
    assert address.queue == "orders"
    assert address.machine == "storage-account"
    assert str(address) == "orders@storage-account"


def test_parse_passes_addresses_through() -> None:
    address = QueueAddress(queue="q")
    assert QueueAddress.parse(address) is address


def test_trailing_at_means_no_machine() -> None:
    assert QueueAddress.parse("q@").machine is None


@pytest.mark.parametrize("raw", ["", "   ", "@machine"])
def test_empty_queue_rejected(raw: str) -> None:
    with pytest.raises(ValidationError):
        QueueAddress.parse(raw)
