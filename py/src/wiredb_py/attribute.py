from __future__ import annotations

import base64
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from enum import StrEnum
from typing import Any

from .errors import ValidationError

log = logging.getLogger(__name__)


class AttributeType(StrEnum):
    STRING = "S"
    NUMBER = "N"
    BINARY = "B"
    STRING_SET = "SS"
    NUMBER_SET = "NS"
    BINARY_SET = "BS"

    @property
    def is_set(self) -> bool:
        return self in _SET_TYPES


_SET_TYPES = frozenset({AttributeType.STRING_SET, AttributeType.NUMBER_SET, AttributeType.BINARY_SET})

# Decode probes tags in this order; the first type-correct payload wins.
DECODE_ORDER: tuple[AttributeType, ...] = (
    AttributeType.STRING,
    AttributeType.NUMBER,
    AttributeType.BINARY,
    AttributeType.STRING_SET,
    AttributeType.NUMBER_SET,
    AttributeType.BINARY_SET,
)


def _number_text(value: Any) -> str:
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"number must be an int, Decimal or decimal string, got {type(value).__name__}")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValidationError("number must be finite")
        return str(value)
    if isinstance(value, str):
        try:
            parsed = Decimal(value)
        except InvalidOperation as err:
            raise ValidationError(f"not a decimal number: {value!r}") from err
        if not parsed.is_finite():
            raise ValidationError("number must be finite")
        return value
    raise ValidationError(f"unsupported number value: {type(value).__name__}")


def _check_number_text(name: str, text: str) -> None:
    try:
        parsed = Decimal(text)
    except InvalidOperation as err:
        raise ValidationError(f"attribute {name!r}: not a decimal number: {text!r}") from err
    if not parsed.is_finite():
        raise ValidationError(f"attribute {name!r}: number must be finite")


def _check_binary_text(name: str, text: str) -> None:
    try:
        base64.b64decode(text, validate=True)
    except ValueError as err:
        raise ValidationError(f"attribute {name!r}: binary value is not valid base64") from err


def _binary_text(value: bytes | bytearray | str) -> str:
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, str):
        return value
    raise ValidationError("binary value must be bytes or a base64 string")


@dataclass(frozen=True)
class Attribute:
    """A named, typed item attribute.

    Scalars carry ``value``; the three set types carry ``set_values``. Numbers
    are always decimal strings and binaries are base64 text, so the payload is
    exactly what goes on the wire. ``exists`` only matters inside an expected
    (conditional) clause.
    """

    type: AttributeType
    name: str
    value: str | None = None
    set_values: tuple[str, ...] | None = None
    exists: bool | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.type, AttributeType):
            object.__setattr__(self, "type", AttributeType(self.type))
        if not self.name:
            raise ValidationError("attribute name is required")

        if self.type.is_set:
            if self.value is not None:
                raise ValidationError(f"{self.type} attribute {self.name!r} cannot carry a scalar value")
            if self.set_values is None or len(self.set_values) == 0:
                raise ValidationError(f"{self.type} attribute {self.name!r} must have at least one member")
            if not isinstance(self.set_values, tuple):
                object.__setattr__(self, "set_values", tuple(self.set_values))
            if not all(isinstance(v, str) for v in self.set_values):
                raise ValidationError(f"{self.type} attribute {self.name!r} members must be strings")
            for member in self.set_values:
                self._check_text(member)
            return

        if self.set_values is not None:
            raise ValidationError(f"{self.type} attribute {self.name!r} cannot carry set values")
        if not isinstance(self.value, str):
            raise ValidationError(f"{self.type} attribute {self.name!r} value must be a string")
        self._check_text(self.value)

    def _check_text(self, text: str) -> None:
        if self.type in (AttributeType.NUMBER, AttributeType.NUMBER_SET):
            _check_number_text(self.name, text)
        elif self.type in (AttributeType.BINARY, AttributeType.BINARY_SET):
            _check_binary_text(self.name, text)

    @staticmethod
    def string(name: str, value: str) -> Attribute:
        return Attribute(AttributeType.STRING, name, value=value)

    @staticmethod
    def number(name: str, value: int | Decimal | str) -> Attribute:
        return Attribute(AttributeType.NUMBER, name, value=_number_text(value))

    @staticmethod
    def binary(name: str, value: bytes | bytearray | str) -> Attribute:
        return Attribute(AttributeType.BINARY, name, value=_binary_text(value))

    @staticmethod
    def string_set(name: str, values: Iterable[str]) -> Attribute:
        return Attribute(AttributeType.STRING_SET, name, set_values=tuple(values))

    @staticmethod
    def number_set(name: str, values: Iterable[int | Decimal | str]) -> Attribute:
        return Attribute(AttributeType.NUMBER_SET, name, set_values=tuple(_number_text(v) for v in values))

    @staticmethod
    def binary_set(name: str, values: Iterable[bytes | bytearray | str]) -> Attribute:
        return Attribute(AttributeType.BINARY_SET, name, set_values=tuple(_binary_text(v) for v in values))

    @staticmethod
    def absent(name: str) -> Attribute:
        return Attribute(AttributeType.STRING, name, value="", exists=False)

    def expect_exists(self) -> Attribute:
        return replace(self, exists=True)

    def to_decimal(self) -> Decimal:
        if self.type is not AttributeType.NUMBER or self.value is None:
            raise ValidationError(f"attribute {self.name!r} is not a number")
        return Decimal(self.value)

    def to_bytes(self) -> bytes:
        if self.type is not AttributeType.BINARY or self.value is None:
            raise ValidationError(f"attribute {self.name!r} is not binary")
        return base64.b64decode(self.value)


type Item = dict[str, Attribute]


def encode_attribute(attr: Attribute) -> dict[str, Any]:
    if attr.type.is_set:
        return {attr.type.value: list(attr.set_values or ())}
    return {attr.type.value: attr.value}


def encode_item(attrs: Sequence[Attribute]) -> dict[str, Any]:
    return {attr.name: encode_attribute(attr) for attr in attrs}


def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0 and all(isinstance(v, str) for v in value)


def decode_attribute(name: str, wire: Any) -> Attribute | None:
    if not isinstance(wire, dict):
        return None

    for kind in DECODE_ORDER:
        if kind not in wire:
            continue
        payload = wire[kind]
        try:
            if kind.is_set:
                if _is_string_list(payload):
                    return Attribute(kind, name, set_values=tuple(payload))
            elif isinstance(payload, str):
                return Attribute(kind, name, value=payload)
        except ValidationError:
            # Malformed number or base64 text; keep probing.
            continue

    return None


def decode_item(wire_item: Mapping[str, Any]) -> Item:
    out: Item = {}
    for name, wire in wire_item.items():
        attr = decode_attribute(name, wire)
        if attr is None:
            log.warning("dropping attribute %r with unsupported wire shape: %r", name, wire)
            continue
        out[name] = attr
    return out
