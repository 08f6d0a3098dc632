from __future__ import annotations

import json
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from .attribute import Item
from .errors import UnprocessedItemsError, ValidationError
from .key import Key
from .query import Query, WriteActions
from .response import parse_batch_get, parse_batch_write
from .server import Server, target

if TYPE_CHECKING:
    from .table import Table


def _check_server(server: Server, table: Table) -> None:
    if table.server is not server:
        raise ValidationError(f"table {table.name!r} is bound to a different server than the batch")


class BatchGetItem:
    """Keys to fetch, grouped per table. Adding a table again replaces its keys."""

    def __init__(self, server: Server) -> None:
        self.server = server
        self.keys: dict[Table, list[Key]] = {}

    def add_table(self, table: Table, keys: Sequence[Key]) -> BatchGetItem:
        _check_server(self.server, table)
        self.keys[table] = list(keys)
        return self

    def execute(self, *, is_retry: bool = False) -> dict[str, list[Item]]:
        q = Query().add_get_request_items(self.keys)
        body = self.server.query_server(target("BatchGetItem"), q, is_retry=is_retry)
        return parse_batch_get(body)


class BatchWriteItem:
    """Put and delete actions, grouped per table.

    ``execute`` returns ``None`` when every request was processed. Otherwise it
    raises ``UnprocessedItemsError`` whose ``unprocessed`` mapping is the exact
    ``UnprocessedItems`` document, ready to be resubmitted.
    """

    def __init__(self, server: Server) -> None:
        self.server = server
        self.item_actions: dict[Table, WriteActions] = {}

    def add_table(self, table: Table, item_actions: WriteActions) -> BatchWriteItem:
        _check_server(self.server, table)
        self.item_actions[table] = item_actions
        return self

    def execute(self, *, is_retry: bool = False) -> None:
        q = Query().add_write_request_items(self.item_actions)
        body = self.server.query_server(target("BatchWriteItem"), q, is_retry=is_retry)
        unprocessed = parse_batch_write(body)
        if unprocessed:
            raise UnprocessedItemsError(unprocessed)

    def resubmit(self, unprocessed: dict[str, Any], *, is_retry: bool = False) -> None:
        body = self.server.raw_query_server(
            target("BatchWriteItem"),
            json.dumps({"RequestItems": unprocessed}, separators=(",", ":"), ensure_ascii=False),
            is_retry=is_retry,
        )
        remaining = parse_batch_write(body)
        if remaining:
            raise UnprocessedItemsError(remaining)
