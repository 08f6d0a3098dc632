from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

from .server import HttpResponse, Region, status_text


class _AnySentinel:
    def __repr__(self) -> str:  # pragma: no cover
        return "ANY"


ANY: Any = _AnySentinel()


def _assert_match(expected: Any, actual: Any, *, path: str) -> None:
    if expected is ANY:
        return

    if isinstance(expected, dict):
        if not isinstance(actual, dict):
            raise AssertionError(f"{path}: expected dict, got {type(actual).__name__}")
        for k, v in expected.items():
            if k not in actual:
                raise AssertionError(f"{path}: missing key {k!r}")
            _assert_match(v, actual[k], path=f"{path}.{k}")
        return

    if isinstance(expected, list):
        if not isinstance(actual, list):
            raise AssertionError(f"{path}: expected list, got {type(actual).__name__}")
        if len(expected) != len(actual):
            raise AssertionError(f"{path}: expected {len(expected)} items, got {len(actual)}")
        for i, (e, a) in enumerate(zip(expected, actual, strict=True)):
            _assert_match(e, a, path=f"{path}[{i}]")
        return

    if expected != actual:
        raise AssertionError(f"{path}: expected {expected!r}, got {actual!r}")


@dataclass(frozen=True)
class ExpectedCall:
    operation: str
    expected: Mapping[str, Any] | Callable[[Mapping[str, Any]], None] | None = None
    status_code: int = 200
    body: bytes = b"{}"
    error: Exception | None = None


@dataclass(frozen=True)
class RecordedCall:
    operation: str
    headers: dict[str, str]
    body: dict[str, Any]


def _encode_body(response: Mapping[str, Any] | bytes | str | None) -> bytes:
    if response is None:
        return b"{}"
    if isinstance(response, bytes):
        return response
    if isinstance(response, str):
        return response.encode("utf-8")
    return json.dumps(response).encode("utf-8")


class FakeTransport:
    """Replays canned HTTP responses in order and checks each request body."""

    def __init__(self) -> None:
        self._expected: list[ExpectedCall] = []
        self.calls: list[RecordedCall] = []

    def expect(
        self,
        operation: str,
        expected: Mapping[str, Any] | Callable[[Mapping[str, Any]], None] | None = None,
        *,
        response: Mapping[str, Any] | bytes | str | None = None,
        status_code: int = 200,
        error: Exception | None = None,
    ) -> None:
        self._expected.append(
            ExpectedCall(
                operation=operation,
                expected=expected,
                status_code=status_code,
                body=_encode_body(response),
                error=error,
            )
        )

    def expect_error(self, operation: str, *, code: str, message: str = "", status_code: int = 400) -> None:
        self.expect(
            operation,
            response={"__type": f"com.amazonaws.dynamodb.v20120810#{code}", "message": message},
            status_code=status_code,
        )

    def assert_no_pending(self) -> None:
        if self._expected:
            raise AssertionError(f"pending expected calls: {self._expected!r}")

    def send(self, request: AWSRequest) -> HttpResponse:
        operation = str(request.headers.get("X-Amz-Target", "")).rpartition(".")[2]
        raw = request.body or b"{}"
        body = json.loads(raw)
        self.calls.append(
            RecordedCall(
                operation=operation,
                headers={str(k): str(v) for k, v in request.headers.items()},
                body=body,
            )
        )

        if not self._expected:
            raise AssertionError(f"unexpected call: {operation}")

        call = self._expected.pop(0)
        if call.operation != operation:
            raise AssertionError(f"expected {call.operation}, got {operation}")

        if callable(call.expected):
            call.expected(body)
        elif call.expected is not None:
            _assert_match(dict(call.expected), body, path=operation)

        if call.error is not None:
            raise call.error

        return HttpResponse(status_code=call.status_code, status=status_text(call.status_code), body=call.body)


class FakeSigner:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def sign(self, request: AWSRequest, credentials: Credentials, region: Region) -> None:
        self.calls.append((region.name, credentials.access_key))
        request.headers["Authorization"] = "fake"
