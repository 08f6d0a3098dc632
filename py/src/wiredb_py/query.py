from __future__ import annotations

import copy
import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from .attribute import Attribute, Item, encode_attribute, encode_item
from .errors import ValidationError
from .key import Key
from .validation import validate_attribute_name, validate_index_name, validate_table_name

if TYPE_CHECKING:
    from .table import Table

type UpdateAction = Literal["PUT", "ADD", "DELETE"]
type SelectMode = Literal["ALL_ATTRIBUTES", "ALL_PROJECTED_ATTRIBUTES", "SPECIFIC_ATTRIBUTES", "COUNT"]
type WriteActions = Mapping[str, Sequence[Sequence[Attribute]]]

UPDATE_ACTIONS: frozenset[str] = frozenset({"PUT", "ADD", "DELETE"})
SELECT_MODES: frozenset[str] = frozenset(
    {"ALL_ATTRIBUTES", "ALL_PROJECTED_ATTRIBUTES", "SPECIFIC_ATTRIBUTES", "COUNT"}
)

WRITE_ACTION_PUT = "Put"
WRITE_ACTION_DELETE = "Delete"

# operator -> (min operands, max operands)
_OPERATOR_ARITY: dict[str, tuple[int, int]] = {
    "EQ": (1, 1),
    "NE": (1, 1),
    "LE": (1, 1),
    "LT": (1, 1),
    "GE": (1, 1),
    "GT": (1, 1),
    "BEGINS_WITH": (1, 1),
    "BETWEEN": (2, 2),
    "CONTAINS": (1, 1),
    "NOT_CONTAINS": (1, 1),
    "NULL": (0, 0),
    "NOT_NULL": (0, 0),
}

KEY_CONDITION_OPERATORS: frozenset[str] = frozenset({"EQ", "LE", "LT", "GE", "GT", "BEGINS_WITH", "BETWEEN"})


@dataclass(frozen=True)
class AttributeComparison:
    name: str
    operator: str
    values: tuple[Attribute, ...] = ()

    def __post_init__(self) -> None:
        arity = _OPERATOR_ARITY.get(self.operator)
        if arity is None:
            raise ValidationError(f"unsupported comparison operator: {self.operator}")
        low, high = arity
        if not low <= len(self.values) <= high:
            raise ValidationError(f"{self.operator} takes {low}..{high} operands, got {len(self.values)}")
        for value in self.values:
            if value.type.is_set:
                raise ValidationError(f"{self.operator} operands must be scalar attributes")

    @staticmethod
    def eq(value: Attribute) -> AttributeComparison:
        return AttributeComparison(name=value.name, operator="EQ", values=(value,))

    @staticmethod
    def ne(value: Attribute) -> AttributeComparison:
        return AttributeComparison(name=value.name, operator="NE", values=(value,))

    @staticmethod
    def le(value: Attribute) -> AttributeComparison:
        return AttributeComparison(name=value.name, operator="LE", values=(value,))

    @staticmethod
    def lt(value: Attribute) -> AttributeComparison:
        return AttributeComparison(name=value.name, operator="LT", values=(value,))

    @staticmethod
    def ge(value: Attribute) -> AttributeComparison:
        return AttributeComparison(name=value.name, operator="GE", values=(value,))

    @staticmethod
    def gt(value: Attribute) -> AttributeComparison:
        return AttributeComparison(name=value.name, operator="GT", values=(value,))

    @staticmethod
    def begins_with(prefix: Attribute) -> AttributeComparison:
        return AttributeComparison(name=prefix.name, operator="BEGINS_WITH", values=(prefix,))

    @staticmethod
    def between(low: Attribute, high: Attribute) -> AttributeComparison:
        if low.name != high.name:
            raise ValidationError("BETWEEN bounds must name the same attribute")
        return AttributeComparison(name=low.name, operator="BETWEEN", values=(low, high))

    @staticmethod
    def contains(value: Attribute) -> AttributeComparison:
        return AttributeComparison(name=value.name, operator="CONTAINS", values=(value,))

    @staticmethod
    def not_contains(value: Attribute) -> AttributeComparison:
        return AttributeComparison(name=value.name, operator="NOT_CONTAINS", values=(value,))

    @staticmethod
    def null(name: str) -> AttributeComparison:
        return AttributeComparison(name=name, operator="NULL")

    @staticmethod
    def not_null(name: str) -> AttributeComparison:
        return AttributeComparison(name=name, operator="NOT_NULL")

    def to_wire(self) -> dict[str, Any]:
        out: dict[str, Any] = {"ComparisonOperator": self.operator}
        if self.values:
            out["AttributeValueList"] = [encode_attribute(v) for v in self.values]
        return out


@dataclass(frozen=True)
class Page:
    items: list[Item]
    last_evaluated_key: Key | None


def _expected_entry(attr: Attribute) -> dict[str, Any]:
    if attr.exists is False:
        return {"Exists": False}
    if attr.exists is True:
        return {"Exists": True, "Value": encode_attribute(attr)}
    return {"Value": encode_attribute(attr)}


def _update_entry(attr: Attribute, action: str) -> dict[str, Any]:
    entry: dict[str, Any] = {"Action": action, "Value": encode_attribute(attr)}
    # A scalar DELETE without a value removes the whole attribute.
    if action == "DELETE" and not attr.type.is_set and attr.value == "":
        del entry["Value"]
    return entry


def _comparisons_to_wire(comparisons: Sequence[AttributeComparison]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for comparison in comparisons:
        validate_attribute_name(comparison.name)
        out[comparison.name] = comparison.to_wire()
    return out


class Query:
    """Accumulates one wire request body.

    Every ``add_*`` call overwrites its own slot, so calling the same setter
    twice replaces the earlier value. Serialisation reads the slots and never
    mutates them.
    """

    def __init__(self, table: Table | None = None) -> None:
        self._table_name: str | None = None
        if table is not None:
            validate_table_name(table.name)
            self._table_name = table.name

        self._key: dict[str, Any] | None = None
        self._item: dict[str, Any] | None = None
        self._expected: dict[str, Any] | None = None
        self._updates: dict[str, Any] | None = None
        self._key_conditions: dict[str, Any] | None = None
        self._scan_filter: dict[str, Any] | None = None
        self._index_name: str | None = None
        self._limit: int | None = None
        self._select: str | None = None
        self._consistent_read: bool | None = None
        self._scan_index_forward: bool | None = None
        self._exclusive_start_key: dict[str, Any] | None = None
        self._request_items: dict[str, Any] | None = None

    @property
    def table_name(self) -> str | None:
        return self._table_name

    def add_key(self, table: Table, key: Key) -> Query:
        if not table.key.matches(key):
            raise ValidationError(f"key does not match the key schema of table {table.name!r}")
        if self._table_name is None:
            self._table_name = table.name
        elif self._table_name != table.name:
            raise ValidationError(f"key belongs to table {table.name!r}, query targets {self._table_name!r}")
        self._key = key.to_wire()
        return self

    def add_item(self, attributes: Sequence[Attribute]) -> Query:
        for attr in attributes:
            validate_attribute_name(attr.name)
        self._item = encode_item(attributes)
        return self

    def add_expected(self, attributes: Sequence[Attribute]) -> Query:
        for attr in attributes:
            validate_attribute_name(attr.name)
        self._expected = {attr.name: _expected_entry(attr) for attr in attributes}
        return self

    def add_updates(self, attributes: Sequence[Attribute], action: UpdateAction) -> Query:
        if action not in UPDATE_ACTIONS:
            raise ValidationError(f"unsupported update action: {action}")
        for attr in attributes:
            validate_attribute_name(attr.name)
        self._updates = {attr.name: _update_entry(attr, action) for attr in attributes}
        return self

    def add_key_conditions(self, comparisons: Sequence[AttributeComparison]) -> Query:
        if not comparisons:
            raise ValidationError("at least one key condition is required")
        if len(comparisons) > 2:
            raise ValidationError("key conditions take a hash condition and at most one range condition")
        for comparison in comparisons:
            if comparison.operator not in KEY_CONDITION_OPERATORS:
                raise ValidationError(f"{comparison.operator} is not a key condition operator")
        self._key_conditions = _comparisons_to_wire(comparisons)
        return self

    def add_scan_filter(self, comparisons: Sequence[AttributeComparison]) -> Query:
        self._scan_filter = _comparisons_to_wire(comparisons) if comparisons else None
        return self

    def add_index(self, name: str) -> Query:
        validate_index_name(name)
        self._index_name = name
        return self

    def add_limit(self, limit: int) -> Query:
        if limit <= 0:
            raise ValidationError("limit must be > 0")
        self._limit = limit
        return self

    def add_select(self, mode: SelectMode) -> Query:
        if mode not in SELECT_MODES:
            raise ValidationError(f"unsupported select mode: {mode}")
        self._select = mode
        return self

    def consistent_read(self, consistent: bool) -> Query:
        self._consistent_read = consistent
        return self

    def add_scan_index_forward(self, forward: bool) -> Query:
        self._scan_index_forward = forward
        return self

    def add_exclusive_start_key(self, key: Key) -> Query:
        self._exclusive_start_key = key.to_wire()
        return self

    def add_get_request_items(self, tables: Mapping[Table, Sequence[Key]]) -> Query:
        request_items: dict[str, Any] = {}
        for table, keys in tables.items():
            validate_table_name(table.name)
            if table.name in request_items:
                raise ValidationError(f"table {table.name!r} appears more than once in the batch")
            for key in keys:
                if not table.key.matches(key):
                    raise ValidationError(f"key does not match the key schema of table {table.name!r}")
            request_items[table.name] = {"Keys": [key.to_wire() for key in keys]}
        self._request_items = request_items
        return self

    def add_write_request_items(self, tables: Mapping[Table, WriteActions]) -> Query:
        request_items: dict[str, Any] = {}
        for table, actions in tables.items():
            validate_table_name(table.name)
            if table.name in request_items:
                raise ValidationError(f"table {table.name!r} appears more than once in the batch")
            requests: list[dict[str, Any]] = []
            for action, items in actions.items():
                for attributes in items:
                    if action == WRITE_ACTION_PUT:
                        requests.append({"PutRequest": {"Item": encode_item(attributes)}})
                    elif action == WRITE_ACTION_DELETE:
                        requests.append({"DeleteRequest": {"Key": encode_item(attributes)}})
                    else:
                        raise ValidationError(f"unsupported batch write action: {action}")
            request_items[table.name] = requests
        self._request_items = request_items
        return self

    def to_dict(self) -> dict[str, Any]:
        doc: dict[str, Any] = {}
        if self._table_name is not None:
            doc["TableName"] = self._table_name
        if self._key is not None:
            doc["Key"] = self._key
        if self._item is not None:
            doc["Item"] = self._item
        if self._expected is not None:
            doc["Expected"] = self._expected
        if self._updates is not None:
            doc["AttributeUpdates"] = self._updates
        if self._key_conditions is not None:
            doc["KeyConditions"] = self._key_conditions
        if self._scan_filter is not None:
            doc["ScanFilter"] = self._scan_filter
        if self._index_name is not None:
            doc["IndexName"] = self._index_name
        if self._limit is not None:
            doc["Limit"] = self._limit
        if self._select is not None:
            doc["Select"] = self._select
        if self._consistent_read is not None:
            doc["ConsistentRead"] = self._consistent_read
        if self._scan_index_forward is not None:
            doc["ScanIndexForward"] = self._scan_index_forward
        if self._exclusive_start_key is not None:
            doc["ExclusiveStartKey"] = self._exclusive_start_key
        if self._request_items is not None:
            doc["RequestItems"] = self._request_items
        return copy.deepcopy(doc)

    def __str__(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)

    def __repr__(self) -> str:
        return f"Query({self})"
