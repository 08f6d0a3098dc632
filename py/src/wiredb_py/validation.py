from __future__ import annotations

import re

from .errors import ValidationError

MaxAttributeNameLength = 255
MaxTableNameLength = 255
MinTableNameLength = 3

_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_.-]+$")


class SecurityValidationError(ValidationError):
    def __init__(self, *, type: str, detail: str) -> None:
        super().__init__(f"validation failed: {type}: {detail}")
        self.type = type
        self.detail = detail


def validate_table_name(name: str) -> None:
    if len(name) < MinTableNameLength or len(name) > MaxTableNameLength:
        raise SecurityValidationError(type="InvalidTableName", detail="table name length invalid")

    if _NAME_PATTERN.match(name) is None:
        raise SecurityValidationError(
            type="InvalidTableName", detail="table name contains invalid characters"
        )


def validate_index_name(name: str) -> None:
    if len(name) < MinTableNameLength or len(name) > MaxTableNameLength:
        raise SecurityValidationError(type="InvalidIndexName", detail="index name length invalid")

    if _NAME_PATTERN.match(name) is None:
        raise SecurityValidationError(
            type="InvalidIndexName", detail="index name contains invalid characters"
        )


def validate_attribute_name(name: str) -> None:
    if not name:
        raise SecurityValidationError(type="InvalidAttribute", detail="attribute name cannot be empty")
    if len(name.encode("utf-8")) > MaxAttributeNameLength:
        raise SecurityValidationError(
            type="InvalidAttribute", detail="attribute name exceeds maximum length"
        )
    if _contains_control_characters(name):
        raise SecurityValidationError(
            type="InvalidAttribute", detail="attribute name contains control characters"
        )


def _contains_control_characters(value: str) -> bool:
    for ch in value:
        code = ord(ch)
        if code < 32 or code == 127:
            return True
    return False
