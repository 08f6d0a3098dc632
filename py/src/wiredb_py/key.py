from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from .attribute import Attribute, AttributeType, decode_attribute, encode_item
from .errors import ResponseShapeError, ValidationError

if TYPE_CHECKING:
    from .query import AttributeComparison

log = logging.getLogger(__name__)

_SCALAR_TYPES = frozenset({AttributeType.STRING, AttributeType.NUMBER, AttributeType.BINARY})

type KeyValue = str | int | Decimal | bytes


@dataclass(frozen=True)
class KeyAttribute:
    name: str
    type: AttributeType = AttributeType.STRING

    def __post_init__(self) -> None:
        if not self.name:
            raise ValidationError("key attribute name is required")
        if not isinstance(self.type, AttributeType):
            object.__setattr__(self, "type", AttributeType(self.type))
        if self.type not in _SCALAR_TYPES:
            raise ValidationError(f"key attribute {self.name!r} must be a scalar type, got {self.type}")

    def attribute(self, value: KeyValue) -> Attribute:
        if self.type is AttributeType.NUMBER:
            if isinstance(value, bytes):
                raise ValidationError(f"key attribute {self.name!r} expects a number")
            return Attribute.number(self.name, value)
        if self.type is AttributeType.BINARY:
            if not isinstance(value, (bytes, str)):
                raise ValidationError(f"key attribute {self.name!r} expects bytes")
            return Attribute.binary(self.name, value)
        if not isinstance(value, str):
            raise ValidationError(f"key attribute {self.name!r} expects a string")
        return Attribute.string(self.name, value)


@dataclass(frozen=True)
class Key:
    hash_key: Attribute
    range_key: Attribute | None = None

    def attributes(self) -> list[Attribute]:
        if self.range_key is None:
            return [self.hash_key]
        return [self.hash_key, self.range_key]

    def to_wire(self) -> dict[str, Any]:
        return encode_item(self.attributes())


@dataclass(frozen=True)
class PrimaryKey:
    """Key schema of a table: a hash component and an optional range component."""

    hash: KeyAttribute
    range: KeyAttribute | None = None

    def has_range(self) -> bool:
        return self.range is not None

    def clone(self, hash_value: KeyValue, range_value: KeyValue | None = None) -> Key:
        hash_attr = self.hash.attribute(hash_value)
        if self.range is None:
            if range_value is not None and range_value != "":
                raise ValidationError("table key has no range component")
            return Key(hash_key=hash_attr)

        if range_value is None:
            raise ValidationError(f"range key {self.range.name!r} is required")
        return Key(hash_key=hash_attr, range_key=self.range.attribute(range_value))

    def hash_condition(self, value: KeyValue) -> AttributeComparison:
        from .query import AttributeComparison

        return AttributeComparison.eq(self.hash.attribute(value))

    def matches(self, key: Key) -> bool:
        if key.hash_key.name != self.hash.name or key.hash_key.type is not self.hash.type:
            return False
        if self.range is None:
            return key.range_key is None
        if key.range_key is None:
            return False
        return key.range_key.name == self.range.name and key.range_key.type is self.range.type

    def parse_key(self, wire: Mapping[str, Any], *, raw: bytes | str = b"") -> Key:
        hash_attr = self._parse_component(self.hash, wire.get(self.hash.name))
        if hash_attr is None:
            log.warning("continuation key is missing hash component %r", self.hash.name)
            raise ResponseShapeError(raw or repr(dict(wire)))

        if self.range is None:
            return Key(hash_key=hash_attr)

        range_attr = self._parse_component(self.range, wire.get(self.range.name))
        return Key(hash_key=hash_attr, range_key=range_attr)

    @staticmethod
    def _parse_component(schema: KeyAttribute, wire: Any) -> Attribute | None:
        attr = decode_attribute(schema.name, wire)
        if attr is None or attr.type is not schema.type:
            return None
        return attr
