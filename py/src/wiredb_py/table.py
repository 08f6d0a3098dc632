from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from .attribute import Attribute, Item
from .aws_errors import is_retryable_error
from .batch import BatchGetItem, BatchWriteItem
from .errors import ServiceError, ValidationError
from .key import Key, KeyValue, PrimaryKey
from .query import (
    WRITE_ACTION_DELETE,
    WRITE_ACTION_PUT,
    AttributeComparison,
    Page,
    Query,
    UpdateAction,
    WriteActions,
)
from .response import parse_ack, parse_count, parse_get_item, parse_items
from .server import Server, target
from .validation import validate_table_name

log = logging.getLogger(__name__)

MAX_PUT_RETRIES = 4


def _backoff_seconds(attempt: int) -> float:
    return 0.05 * (2.0**attempt)


@dataclass(frozen=True)
class Table:
    """A named table on a server with its key schema.

    Tables hold no per-request state; one instance can serve any number of
    concurrent calls.
    """

    server: Server
    name: str
    key: PrimaryKey

    def __post_init__(self) -> None:
        validate_table_name(self.name)

    def get_item(self, key: Key, *, is_retry: bool = False) -> Item:
        return self._get_item(key, consistent_read=False, is_retry=is_retry)

    def get_item_consistent(self, key: Key, consistent_read: bool, *, is_retry: bool = False) -> Item:
        return self._get_item(key, consistent_read=consistent_read, is_retry=is_retry)

    def _get_item(self, key: Key, *, consistent_read: bool, is_retry: bool) -> Item:
        q = Query(self).add_key(self, key)
        if consistent_read:
            q.consistent_read(True)

        body = self.server.query_server(target("GetItem"), q, is_retry=is_retry)
        return parse_get_item(body)

    def put_item(
        self,
        hash_key: KeyValue,
        range_key: KeyValue | None,
        attributes: Sequence[Attribute],
        *,
        is_retry: bool = False,
    ) -> None:
        self._put_item(hash_key, range_key, attributes, None, is_retry=is_retry)

    def conditional_put_item(
        self,
        hash_key: KeyValue,
        range_key: KeyValue | None,
        attributes: Sequence[Attribute],
        expected: Sequence[Attribute],
        *,
        is_retry: bool = False,
    ) -> None:
        self._put_item(hash_key, range_key, attributes, expected, is_retry=is_retry)

    def _put_item(
        self,
        hash_key: KeyValue,
        range_key: KeyValue | None,
        attributes: Sequence[Attribute],
        expected: Sequence[Attribute] | None,
        *,
        is_retry: bool,
    ) -> None:
        if not attributes:
            raise ValidationError("at least one attribute is required")

        key = self.key.clone(hash_key, range_key)
        q = Query(self).add_item([*attributes, *key.attributes()])
        if expected is not None:
            q.add_expected(expected)

        attempt = 0
        while True:
            try:
                body = self.server.query_server(target("PutItem"), q, is_retry=is_retry)
                break
            except ServiceError as err:
                if attempt >= MAX_PUT_RETRIES or not is_retryable_error(err):
                    raise
                delay = _backoff_seconds(attempt)
                log.warning("PutItem on %s failed with %s, retrying in %.0f ms", self.name, err.code, delay * 1000)
                self.server.sleep(delay)
                attempt += 1

        parse_ack(body)

    def delete_item(self, key: Key, *, is_retry: bool = False) -> None:
        self._delete_item(key, None, is_retry=is_retry)

    def conditional_delete_item(self, key: Key, expected: Sequence[Attribute], *, is_retry: bool = False) -> None:
        self._delete_item(key, expected, is_retry=is_retry)

    def _delete_item(self, key: Key, expected: Sequence[Attribute] | None, *, is_retry: bool) -> None:
        q = Query(self).add_key(self, key)
        if expected is not None:
            q.add_expected(expected)

        body = self.server.query_server(target("DeleteItem"), q, is_retry=is_retry)
        parse_ack(body)

    def add_attributes(self, key: Key, attributes: Sequence[Attribute], *, is_retry: bool = False) -> None:
        self._modify_attributes(key, attributes, None, "ADD", is_retry=is_retry)

    def update_attributes(self, key: Key, attributes: Sequence[Attribute], *, is_retry: bool = False) -> None:
        self._modify_attributes(key, attributes, None, "PUT", is_retry=is_retry)

    def delete_attributes(self, key: Key, attributes: Sequence[Attribute], *, is_retry: bool = False) -> None:
        self._modify_attributes(key, attributes, None, "DELETE", is_retry=is_retry)

    def conditional_add_attributes(
        self,
        key: Key,
        attributes: Sequence[Attribute],
        expected: Sequence[Attribute],
        *,
        is_retry: bool = False,
    ) -> None:
        self._modify_attributes(key, attributes, expected, "ADD", is_retry=is_retry)

    def conditional_update_attributes(
        self,
        key: Key,
        attributes: Sequence[Attribute],
        expected: Sequence[Attribute],
        *,
        is_retry: bool = False,
    ) -> None:
        self._modify_attributes(key, attributes, expected, "PUT", is_retry=is_retry)

    def conditional_delete_attributes(
        self,
        key: Key,
        attributes: Sequence[Attribute],
        expected: Sequence[Attribute],
        *,
        is_retry: bool = False,
    ) -> None:
        self._modify_attributes(key, attributes, expected, "DELETE", is_retry=is_retry)

    def _modify_attributes(
        self,
        key: Key,
        attributes: Sequence[Attribute],
        expected: Sequence[Attribute] | None,
        action: UpdateAction,
        *,
        is_retry: bool,
    ) -> None:
        if not attributes:
            raise ValidationError("at least one attribute is required")

        q = Query(self).add_key(self, key).add_updates(attributes, action)
        if expected is not None:
            q.add_expected(expected)

        body = self.server.query_server(target("UpdateItem"), q, is_retry=is_retry)
        parse_ack(body)

    def query(self, comparisons: Sequence[AttributeComparison], *, is_retry: bool = False) -> list[Item]:
        q = Query(self).add_key_conditions(comparisons)
        items, _ = self.query_table(q, is_retry=is_retry)
        return items

    def query_on_index(
        self,
        comparisons: Sequence[AttributeComparison],
        index_name: str,
        *,
        is_retry: bool = False,
    ) -> list[Item]:
        q = Query(self).add_key_conditions(comparisons).add_index(index_name)
        items, _ = self.query_table(q, is_retry=is_retry)
        return items

    def limited_query(
        self,
        comparisons: Sequence[AttributeComparison],
        limit: int,
        *,
        is_retry: bool = False,
    ) -> list[Item]:
        q = Query(self).add_key_conditions(comparisons).add_limit(limit)
        items, _ = self.query_table(q, is_retry=is_retry)
        return items

    def limited_query_on_index(
        self,
        comparisons: Sequence[AttributeComparison],
        index_name: str,
        limit: int,
        *,
        is_retry: bool = False,
    ) -> list[Item]:
        q = Query(self).add_key_conditions(comparisons).add_index(index_name).add_limit(limit)
        items, _ = self.query_table(q, is_retry=is_retry)
        return items

    def count_query(self, comparisons: Sequence[AttributeComparison], *, is_retry: bool = False) -> int:
        q = Query(self).add_key_conditions(comparisons).add_select("COUNT")
        body = self.server.query_server(target("Query"), q, is_retry=is_retry)
        return parse_count(body)

    def query_page(
        self,
        comparisons: Sequence[AttributeComparison],
        *,
        index_name: str | None = None,
        limit: int | None = None,
        start_key: Key | None = None,
        scan_forward: bool = True,
        consistent_read: bool = False,
        is_retry: bool = False,
    ) -> Page:
        q = Query(self).add_key_conditions(comparisons)
        if index_name is not None:
            q.add_index(index_name)
        if limit is not None:
            q.add_limit(limit)
        if start_key is not None:
            q.add_exclusive_start_key(start_key)
        if not scan_forward:
            q.add_scan_index_forward(False)
        if consistent_read:
            q.consistent_read(True)

        items, last_key = self.query_table(q, is_retry=is_retry)
        return Page(items=items, last_evaluated_key=last_key)

    def query_all(
        self,
        comparisons: Sequence[AttributeComparison],
        *,
        index_name: str | None = None,
        page_size: int | None = None,
        scan_forward: bool = True,
        consistent_read: bool = False,
        is_retry: bool = False,
    ) -> list[Item]:
        out: list[Item] = []
        start_key: Key | None = None

        while True:
            page = self.query_page(
                comparisons,
                index_name=index_name,
                limit=page_size,
                start_key=start_key,
                scan_forward=scan_forward,
                consistent_read=consistent_read,
                is_retry=is_retry,
            )
            out.extend(page.items)
            if page.last_evaluated_key is None:
                break
            start_key = page.last_evaluated_key

        return out

    def scan(
        self,
        filters: Sequence[AttributeComparison] = (),
        *,
        limit: int | None = None,
        start_key: Key | None = None,
        is_retry: bool = False,
    ) -> Page:
        q = Query(self).add_scan_filter(filters)
        if limit is not None:
            q.add_limit(limit)
        if start_key is not None:
            q.add_exclusive_start_key(start_key)

        items, last_key = self.raw_query_table(str(q), "Scan", is_retry=is_retry)
        return Page(items=items, last_evaluated_key=last_key)

    def query_table(self, query: Query, *, is_retry: bool = False) -> tuple[list[Item], Key | None]:
        return self.raw_query_table(str(query), "Query", is_retry=is_retry)

    def raw_query_table(
        self,
        body: str,
        operation: str,
        *,
        is_retry: bool = False,
    ) -> tuple[list[Item], Key | None]:
        response = self.server.raw_query_server(target(operation), body, is_retry=is_retry)
        return parse_items(response, self.key, operation=operation)

    def batch_get_items(self, keys: Sequence[Key]) -> BatchGetItem:
        return BatchGetItem(self.server).add_table(self, keys)

    def batch_write_items(self, item_actions: WriteActions) -> BatchWriteItem:
        return BatchWriteItem(self.server).add_table(self, item_actions)

    def put_request(
        self, hash_key: KeyValue, range_key: KeyValue | None, attributes: Sequence[Attribute]
    ) -> list[Attribute]:
        return [*attributes, *self.key.clone(hash_key, range_key).attributes()]


def write_actions(
    *,
    puts: Sequence[Sequence[Attribute]] = (),
    deletes: Sequence[Key] = (),
) -> Mapping[str, list[list[Attribute]]]:
    actions: dict[str, list[list[Attribute]]] = {}
    if puts:
        actions[WRITE_ACTION_PUT] = [list(attrs) for attrs in puts]
    if deletes:
        actions[WRITE_ACTION_DELETE] = [key.attributes() for key in deletes]
    return actions
