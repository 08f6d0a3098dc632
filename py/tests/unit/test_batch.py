from __future__ import annotations

import pytest

from wiredb_py import (
    Attribute,
    BatchGetItem,
    KeyAttribute,
    PrimaryKey,
    ResponseShapeError,
    UnprocessedItemsError,
    ValidationError,
    write_actions,
)
from wiredb_py.table import Table
from wiredb_py.testkit import FakeTransport, RecordingSleep, fake_server


def _tables(transport: FakeTransport) -> tuple[Table, Table]:
    server = fake_server(transport)
    users = Table(server=server, name="users", key=PrimaryKey(hash=KeyAttribute("id")))
    events = Table(server=server, name="events", key=PrimaryKey(hash=KeyAttribute("pk"), range=KeyAttribute("sk")))
    return users, events


def test_batch_get_groups_keys_per_table_and_decodes_responses() -> None:
    transport = FakeTransport()
    transport.expect(
        "BatchGetItem",
        {
            "RequestItems": {
                "users": {"Keys": [{"id": {"S": "u1"}}, {"id": {"S": "u2"}}]},
                "events": {"Keys": [{"pk": {"S": "p"}, "sk": {"S": "s"}}]},
            }
        },
        response={
            "Responses": {
                "users": [{"id": {"S": "u1"}, "age": {"N": "30"}}],
                "events": [],
            },
            "UnprocessedKeys": {},
        },
    )
    users, events = _tables(transport)

    batch = users.batch_get_items([users.key.clone("u1"), users.key.clone("u2")])
    batch.add_table(events, [events.key.clone("p", "s")])
    results = batch.execute()

    assert results["users"][0]["age"] == Attribute.number("age", 30)
    assert results["events"] == []
    transport.assert_no_pending()


def test_batch_get_add_table_replaces_keys() -> None:
    users, _ = _tables(FakeTransport())
    batch = BatchGetItem(users.server)
    batch.add_table(users, [users.key.clone("a")])
    batch.add_table(users, [users.key.clone("b")])

    assert batch.keys == {users: [users.key.clone("b")]}


def test_batch_get_non_list_entry_is_shape_error() -> None:
    transport = FakeTransport()
    transport.expect("BatchGetItem", response={"Responses": {"users": {"id": {"S": "u1"}}}})
    users, _ = _tables(transport)

    with pytest.raises(ResponseShapeError):
        users.batch_get_items([users.key.clone("u1")]).execute()


def test_batch_get_missing_responses_is_shape_error() -> None:
    transport = FakeTransport()
    transport.expect("BatchGetItem", response={})
    users, _ = _tables(transport)

    with pytest.raises(ResponseShapeError):
        users.batch_get_items([users.key.clone("u1")]).execute()


def test_batch_write_encodes_puts_and_deletes() -> None:
    transport = FakeTransport()
    transport.expect(
        "BatchWriteItem",
        {
            "RequestItems": {
                "events": [
                    {"PutRequest": {"Item": {"v": {"N": "1"}, "pk": {"S": "p"}, "sk": {"S": "a"}}}},
                    {"DeleteRequest": {"Key": {"pk": {"S": "p"}, "sk": {"S": "b"}}}},
                ]
            }
        },
        response={"UnprocessedItems": {}},
    )
    _, events = _tables(transport)
    actions = write_actions(
        puts=[events.put_request("p", "a", [Attribute.number("v", 1)])],
        deletes=[events.key.clone("p", "b")],
    )

    assert events.batch_write_items(actions).execute() is None
    transport.assert_no_pending()


def test_batch_write_unprocessed_items_are_surfaced() -> None:
    leftover = {"events": [{"PutRequest": {"Item": {"pk": {"S": "p"}, "sk": {"S": "a"}}}}]}
    transport = FakeTransport()
    transport.expect("BatchWriteItem", response={"UnprocessedItems": leftover})
    _, events = _tables(transport)

    batch = events.batch_write_items(write_actions(puts=[events.put_request("p", "a", [Attribute.string("x", "y")])]))
    with pytest.raises(UnprocessedItemsError) as excinfo:
        batch.execute()

    assert excinfo.value.unprocessed == leftover
    assert str(excinfo.value) == "One or more unprocessed items."


def test_batch_write_missing_unprocessed_is_shape_error() -> None:
    transport = FakeTransport()
    transport.expect("BatchWriteItem", response={})
    _, events = _tables(transport)

    batch = events.batch_write_items(write_actions(deletes=[events.key.clone("p", "a")]))
    with pytest.raises(ResponseShapeError):
        batch.execute()


def test_resubmit_sends_unprocessed_document_verbatim() -> None:
    leftover = {"events": [{"DeleteRequest": {"Key": {"pk": {"S": "p"}, "sk": {"S": "a"}}}}]}
    transport = FakeTransport()
    transport.expect("BatchWriteItem", {"RequestItems": leftover}, response={"UnprocessedItems": {}})
    _, events = _tables(transport)

    events.batch_write_items({}).resubmit(leftover)

    assert transport.calls[0].body == {"RequestItems": leftover}
    transport.assert_no_pending()


def test_batch_write_retries_throttling_when_opted_in() -> None:
    transport = FakeTransport()
    transport.expect_error("BatchWriteItem", code="ProvisionedThroughputExceededException")
    transport.expect("BatchWriteItem", response={"UnprocessedItems": {}})
    sleep = RecordingSleep()
    server = fake_server(transport, sleep=sleep)
    events = Table(server=server, name="events", key=PrimaryKey(hash=KeyAttribute("pk"), range=KeyAttribute("sk")))

    events.batch_write_items(write_actions(deletes=[events.key.clone("p", "a")])).execute(is_retry=True)

    assert sleep.delays == [1.0]
    assert transport.calls[1].body == transport.calls[0].body


def test_batch_rejects_two_tables_with_the_same_name() -> None:
    server = fake_server(FakeTransport())
    by_pk = Table(server=server, name="events", key=PrimaryKey(hash=KeyAttribute("pk")))
    by_id = Table(server=server, name="events", key=PrimaryKey(hash=KeyAttribute("id")))

    batch = by_pk.batch_write_items(write_actions(deletes=[by_pk.key.clone("a")]))
    batch.add_table(by_id, write_actions(deletes=[by_id.key.clone("b")]))
    with pytest.raises(ValidationError, match="more than once"):
        batch.execute()

    get = by_pk.batch_get_items([by_pk.key.clone("a")]).add_table(by_id, [by_id.key.clone("b")])
    with pytest.raises(ValidationError, match="more than once"):
        get.execute()


def test_batch_rejects_table_from_another_server() -> None:
    users, _ = _tables(FakeTransport())
    elsewhere = Table(server=fake_server(FakeTransport()), name="orders", key=PrimaryKey(hash=KeyAttribute("id")))

    with pytest.raises(ValidationError):
        users.batch_get_items([users.key.clone("u1")]).add_table(elsewhere, [elsewhere.key.clone("o1")])
    with pytest.raises(ValidationError):
        users.batch_write_items({}).add_table(elsewhere, write_actions(deletes=[elsewhere.key.clone("o1")]))
