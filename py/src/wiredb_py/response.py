from __future__ import annotations

import json
from typing import Any

from .attribute import Item, decode_item
from .errors import NotFoundError, ResponseShapeError
from .key import Key, PrimaryKey


def load_document(body: bytes) -> dict[str, Any]:
    try:
        doc = json.loads(body)
    except ValueError as err:
        raise ResponseShapeError(body) from err
    if not isinstance(doc, dict):
        raise ResponseShapeError(body)
    return doc


def parse_ack(body: bytes) -> None:
    load_document(body)


def parse_get_item(body: bytes) -> Item:
    doc = load_document(body)
    if "Item" not in doc:
        raise NotFoundError("Item not found")

    item = doc["Item"]
    if not isinstance(item, dict):
        raise ResponseShapeError(body)
    return decode_item(item)


def _int_field(doc: dict[str, Any], name: str) -> int | None:
    value = doc.get(name)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def parse_count(body: bytes) -> int:
    count = _int_field(load_document(body), "Count")
    if count is None:
        raise ResponseShapeError(body)
    return count


def parse_items(body: bytes, key: PrimaryKey, *, operation: str = "Query") -> tuple[list[Item], Key | None]:
    doc = load_document(body)

    count = _int_field(doc, "Count")
    if count is None:
        # UpdateItem responses routed through the raw query path carry no Count.
        if operation == "UpdateItem":
            return [], None
        raise ResponseShapeError(body)

    wire_items = doc.get("Items", [])
    if not isinstance(wire_items, list) or len(wire_items) < count:
        raise ResponseShapeError(body)

    items: list[Item] = []
    for wire_item in wire_items[:count]:
        if not isinstance(wire_item, dict):
            raise ResponseShapeError(body)
        items.append(decode_item(wire_item))

    last_evaluated_key: Key | None = None
    last = doc.get("LastEvaluatedKey")
    if isinstance(last, dict) and last:
        last_evaluated_key = key.parse_key(last, raw=body)

    return items, last_evaluated_key


def parse_batch_get(body: bytes) -> dict[str, list[Item]]:
    doc = load_document(body)
    responses = doc.get("Responses")
    if not isinstance(responses, dict):
        raise ResponseShapeError(body)

    results: dict[str, list[Item]] = {}
    for table_name, entries in responses.items():
        if not isinstance(entries, list):
            raise ResponseShapeError(body)

        table_items: list[Item] = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise ResponseShapeError(body)
            table_items.append(decode_item(entry))
        results[table_name] = table_items

    return results


def parse_batch_write(body: bytes) -> dict[str, Any]:
    doc = load_document(body)
    unprocessed = doc.get("UnprocessedItems")
    if not isinstance(unprocessed, dict):
        raise ResponseShapeError(body)
    return unprocessed
