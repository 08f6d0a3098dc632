from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class WiredbPyError(Exception):
    pass


class ValidationError(WiredbPyError):
    pass


class NotFoundError(WiredbPyError):
    pass


class ServiceError(WiredbPyError):
    def __init__(self, *, status_code: int, status: str, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.status_code = status_code
        self.status = status
        self.code = code
        self.message = message


class ConditionFailedError(ServiceError):
    pass


class ResponseShapeError(WiredbPyError):
    def __init__(self, raw: bytes | str) -> None:
        text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        super().__init__(f"Unexpected response {text}")
        self.raw = text


class UnprocessedItemsError(WiredbPyError):
    def __init__(self, unprocessed: Mapping[str, Any]) -> None:
        super().__init__("One or more unprocessed items.")
        self.unprocessed = dict(unprocessed)
