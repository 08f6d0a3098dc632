from __future__ import annotations

import pytest

from wiredb_py import Attribute, KeyAttribute, PrimaryKey
from wiredb_py.mocks import FakeSigner
from wiredb_py.table import Table
from wiredb_py.testkit import ANY, FakeTransport, RecordingSleep, fake_server, no_sleep


def _table(transport: FakeTransport) -> Table:
    return Table(server=fake_server(transport), name="notes", key=PrimaryKey(hash=KeyAttribute("pk")))


def test_fake_transport_records_and_matches_put_item() -> None:
    transport = FakeTransport()
    transport.expect("PutItem", {"TableName": "notes", "Item": ANY})

    _table(transport).put_item("A", None, [Attribute.number("value", 1)])

    transport.assert_no_pending()
    assert transport.calls[0].operation == "PutItem"
    assert transport.calls[0].headers["Authorization"] == "fake"


def test_fake_transport_asserts_pending_calls() -> None:
    transport = FakeTransport()
    transport.expect("Query")
    with pytest.raises(AssertionError):
        transport.assert_no_pending()


def test_fake_transport_rejects_unexpected_and_mismatched_calls() -> None:
    table = _table(FakeTransport())
    with pytest.raises(AssertionError, match="unexpected call"):
        table.delete_item(table.key.clone("A"))

    transport = FakeTransport()
    transport.expect("GetItem")
    table = _table(transport)
    with pytest.raises(AssertionError, match="expected GetItem"):
        table.delete_item(table.key.clone("A"))

    transport = FakeTransport()
    transport.expect("DeleteItem", {"Key": {"pk": {"S": "B"}}})
    table = _table(transport)
    with pytest.raises(AssertionError, match="DeleteItem.Key.pk.S"):
        table.delete_item(table.key.clone("A"))


def test_fake_signer_records_region_and_access_key() -> None:
    transport = FakeTransport()
    transport.expect("DeleteItem")
    server = fake_server(transport, region="eu-west-1")
    Table(server=server, name="notes", key=PrimaryKey(hash=KeyAttribute("pk"))).delete_item(
        PrimaryKey(hash=KeyAttribute("pk")).clone("A")
    )

    assert isinstance(server.signer, FakeSigner)
    assert server.signer.calls == [("eu-west-1", "AKIDEXAMPLE")]


def test_sleep_helpers() -> None:
    assert no_sleep(1.5) is None
    sleep = RecordingSleep()
    sleep(0.25)
    sleep(1)
    assert sleep.delays == [0.25, 1]
