from __future__ import annotations

import json

import pytest

from wiredb_py import Attribute, AttributeComparison, KeyAttribute, PrimaryKey, Query, ValidationError
from wiredb_py.testkit import FakeTransport, fake_server
from wiredb_py.table import Table, write_actions


def _table(name: str = "users", *, with_range: bool = True) -> Table:
    key = PrimaryKey(hash=KeyAttribute("pk"), range=KeyAttribute("sk") if with_range else None)
    return Table(server=fake_server(FakeTransport()), name=name, key=key)


def test_key_and_item_slots() -> None:
    table = _table()
    q = Query(table).add_key(table, table.key.clone("u1", "profile"))
    q.add_item([Attribute.string("name", "alice"), Attribute.number("age", 30)])

    assert q.to_dict() == {
        "TableName": "users",
        "Key": {"pk": {"S": "u1"}, "sk": {"S": "profile"}},
        "Item": {"name": {"S": "alice"}, "age": {"N": "30"}},
    }


def test_add_key_rejects_foreign_schema() -> None:
    table = _table()
    other = _table("other", with_range=False)
    with pytest.raises(ValidationError):
        Query(table).add_key(table, other.key.clone("u1"))


def test_add_key_must_target_the_query_table() -> None:
    users = _table("users")
    groups = _table("groups")

    with pytest.raises(ValidationError):
        Query(users).add_key(groups, groups.key.clone("g1", "a"))

    q = Query().add_key(groups, groups.key.clone("g1", "a"))
    assert q.to_dict()["TableName"] == "groups"


def test_setters_overwrite_instead_of_merging() -> None:
    q = Query(_table())
    q.add_expected([Attribute.string("state", "open")])
    q.add_expected([Attribute.number("version", 2)])
    q.add_limit(5)
    q.add_limit(10)

    doc = q.to_dict()
    assert doc["Expected"] == {"version": {"Value": {"N": "2"}}}
    assert doc["Limit"] == 10


def test_expected_exists_variants() -> None:
    q = Query(_table()).add_expected(
        [
            Attribute.absent("lock"),
            Attribute.number("version", 3).expect_exists(),
            Attribute.string("state", "open"),
        ]
    )
    assert q.to_dict()["Expected"] == {
        "lock": {"Exists": False},
        "version": {"Exists": True, "Value": {"N": "3"}},
        "state": {"Value": {"S": "open"}},
    }


def test_updates_apply_action_to_every_attribute() -> None:
    q = Query(_table()).add_updates([Attribute.number("hits", 1), Attribute.string_set("tags", ["x"])], "ADD")
    assert q.to_dict()["AttributeUpdates"] == {
        "hits": {"Action": "ADD", "Value": {"N": "1"}},
        "tags": {"Action": "ADD", "Value": {"SS": ["x"]}},
    }


def test_scalar_delete_without_value_omits_value() -> None:
    q = Query(_table()).add_updates(
        [Attribute.string("nickname", ""), Attribute.string_set("tags", ["old"])], "DELETE"
    )
    assert q.to_dict()["AttributeUpdates"] == {
        "nickname": {"Action": "DELETE"},
        "tags": {"Action": "DELETE", "Value": {"SS": ["old"]}},
    }


def test_unknown_update_action_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Query(_table()).add_updates([Attribute.string("a", "b")], "REPLACE")  # type: ignore[arg-type]


def test_key_conditions() -> None:
    q = Query(_table()).add_key_conditions(
        [
            AttributeComparison.eq(Attribute.string("pk", "u1")),
            AttributeComparison.between(Attribute.string("sk", "a"), Attribute.string("sk", "m")),
        ]
    )
    assert q.to_dict()["KeyConditions"] == {
        "pk": {"ComparisonOperator": "EQ", "AttributeValueList": [{"S": "u1"}]},
        "sk": {"ComparisonOperator": "BETWEEN", "AttributeValueList": [{"S": "a"}, {"S": "m"}]},
    }


def test_key_conditions_validate_operators_and_count() -> None:
    eq = AttributeComparison.eq(Attribute.string("pk", "u1"))
    with pytest.raises(ValidationError):
        Query(_table()).add_key_conditions([])
    with pytest.raises(ValidationError):
        Query(_table()).add_key_conditions([eq, eq, eq])
    with pytest.raises(ValidationError):
        Query(_table()).add_key_conditions([eq, AttributeComparison.ne(Attribute.string("sk", "x"))])


def test_comparison_arity() -> None:
    with pytest.raises(ValidationError):
        AttributeComparison(name="sk", operator="BETWEEN", values=(Attribute.string("sk", "a"),))
    with pytest.raises(ValidationError):
        AttributeComparison(name="sk", operator="LIKE", values=(Attribute.string("sk", "a"),))
    with pytest.raises(ValidationError):
        AttributeComparison.between(Attribute.string("a", "1"), Attribute.string("b", "2"))
    assert AttributeComparison.null("gone").to_wire() == {"ComparisonOperator": "NULL"}


def test_index_limit_select_consistency() -> None:
    q = (
        Query(_table())
        .add_index("by-email")
        .add_limit(25)
        .add_select("COUNT")
        .consistent_read(True)
        .add_scan_index_forward(False)
    )
    doc = q.to_dict()
    assert doc["IndexName"] == "by-email"
    assert doc["Limit"] == 25
    assert doc["Select"] == "COUNT"
    assert doc["ConsistentRead"] is True
    assert doc["ScanIndexForward"] is False

    with pytest.raises(ValidationError):
        Query(_table()).add_limit(0)
    with pytest.raises(ValidationError):
        Query(_table()).add_select("EVERYTHING")  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        Query(_table()).add_index("x!")


def test_exclusive_start_key() -> None:
    table = _table()
    q = Query(table).add_exclusive_start_key(table.key.clone("u1", "b"))
    assert q.to_dict()["ExclusiveStartKey"] == {"pk": {"S": "u1"}, "sk": {"S": "b"}}


def test_get_request_items_span_tables() -> None:
    users = _table("users")
    groups = _table("groups", with_range=False)
    q = Query().add_get_request_items(
        {
            users: [users.key.clone("u1", "a"), users.key.clone("u2", "b")],
            groups: [groups.key.clone("g1")],
        }
    )
    assert q.to_dict() == {
        "RequestItems": {
            "users": {"Keys": [{"pk": {"S": "u1"}, "sk": {"S": "a"}}, {"pk": {"S": "u2"}, "sk": {"S": "b"}}]},
            "groups": {"Keys": [{"pk": {"S": "g1"}}]},
        }
    }


def test_write_request_items() -> None:
    users = _table("users")
    actions = write_actions(
        puts=[users.put_request("u1", "a", [Attribute.string("name", "alice")])],
        deletes=[users.key.clone("u2", "b")],
    )
    q = Query().add_write_request_items({users: actions})
    assert q.to_dict() == {
        "RequestItems": {
            "users": [
                {"PutRequest": {"Item": {"name": {"S": "alice"}, "pk": {"S": "u1"}, "sk": {"S": "a"}}}},
                {"DeleteRequest": {"Key": {"pk": {"S": "u2"}, "sk": {"S": "b"}}}},
            ]
        }
    }

    with pytest.raises(ValidationError):
        Query().add_write_request_items({users: {"Upsert": [[Attribute.string("a", "b")]]}})


def test_serialization_is_repeatable() -> None:
    q = Query(_table()).add_item([Attribute.string("name", "alice")])
    first = str(q)
    q.to_dict()["Item"]["name"] = {"S": "mallory"}

    assert str(q) == first
    assert json.loads(first) == {"TableName": "users", "Item": {"name": {"S": "alice"}}}


def test_table_name_is_validated() -> None:
    with pytest.raises(ValidationError):
        _table("x")
