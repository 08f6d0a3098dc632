from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import TYPE_CHECKING, Protocol

from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.config import Config
from botocore.credentials import Credentials
from botocore.httpsession import URLLib3Session

from .aws_errors import PROVISIONED_THROUGHPUT_EXCEEDED, build_service_error
from .errors import ServiceError
from .runtime import CallMetric, create_transport_config, instrument_transport

if TYPE_CHECKING:
    from .query import Query

log = logging.getLogger(__name__)

API_VERSION = "DynamoDB_20120810"
SERVICE_NAME = "dynamodb"
CONTENT_TYPE = "application/x-amz-json-1.0"


def target(operation: str) -> str:
    return f"{API_VERSION}.{operation}"


def status_text(status_code: int) -> str:
    try:
        return f"{status_code} {HTTPStatus(status_code).phrase}"
    except ValueError:
        return str(status_code)


@dataclass(frozen=True)
class Region:
    name: str
    endpoint: str

    @staticmethod
    def from_name(name: str, *, endpoint: str | None = None) -> Region:
        return Region(name=name, endpoint=(endpoint or f"https://dynamodb.{name}.amazonaws.com").rstrip("/"))


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    status: str
    body: bytes


class RequestSigner(Protocol):
    def sign(self, request: AWSRequest, credentials: Credentials, region: Region) -> None: ...


class Transport(Protocol):
    def send(self, request: AWSRequest) -> HttpResponse: ...


class SigV4Signer:
    """Adds X-Amz-Date, the session token header and the SigV4 Authorization header."""

    def __init__(self, service_name: str = SERVICE_NAME) -> None:
        self._service_name = service_name

    def sign(self, request: AWSRequest, credentials: Credentials, region: Region) -> None:
        SigV4Auth(credentials, self._service_name, region.name).add_auth(request)


class BotocoreTransport:
    def __init__(self, *, config: Config | None = None, verify: bool | str = True) -> None:
        config = config or create_transport_config()
        self._session = URLLib3Session(
            verify=verify,
            timeout=(config.connect_timeout, config.read_timeout),
            max_pool_connections=config.max_pool_connections,
        )

    def send(self, request: AWSRequest) -> HttpResponse:
        response = self._session.send(request.prepare())
        return HttpResponse(
            status_code=response.status_code,
            status=status_text(response.status_code),
            body=response.content,
        )


@dataclass(frozen=True, eq=False)
class Server:
    """Endpoint, credentials and call plumbing shared by every table.

    Instances are never mutated after construction and can be shared across
    threads. ``sleep`` is the only clock the retry loops use.
    """

    credentials: Credentials
    region: Region
    signer: RequestSigner = field(default_factory=SigV4Signer)
    transport: Transport = field(default_factory=BotocoreTransport)
    sleep: Callable[[float], None] = time.sleep
    metrics: Callable[[CallMetric], None] | None = None
    max_throttle_retries: int | None = None

    def query_server(self, target: str, query: Query, *, is_retry: bool = False) -> bytes:
        return self.raw_query_server(target, str(query), is_retry=is_retry)

    def raw_query_server(self, target: str, body: str, *, is_retry: bool = False) -> bytes:
        attempt = 0
        while True:
            response = self._send(target, body)
            if response.status_code == 200:
                return response.body

            err = build_service_error(response.status_code, response.status, response.body)
            if not self._should_retry_throttle(err, is_retry=is_retry, attempt=attempt):
                raise err

            attempt += 1
            log.warning("%s throttled, retry %d in %ds", target, attempt, attempt)
            log.debug("retrying request body: %s", body)
            self.sleep(float(attempt))

    def _should_retry_throttle(self, err: ServiceError, *, is_retry: bool, attempt: int) -> bool:
        if not is_retry or err.code != PROVISIONED_THROUGHPUT_EXCEEDED:
            return False
        if self.max_throttle_retries is not None and attempt >= self.max_throttle_retries:
            return False
        return True

    def _send(self, target: str, body: str) -> HttpResponse:
        request = AWSRequest(
            method="POST",
            url=self.region.endpoint + "/",
            data=body.encode("utf-8"),
            headers={"Content-Type": CONTENT_TYPE, "X-Amz-Target": target},
        )
        self.signer.sign(request, self.credentials, self.region)

        transport = self.transport
        if self.metrics is not None:
            transport = instrument_transport(transport, on_call=self.metrics)

        response = transport.send(request)
        log.debug("%s -> %s", target, response.status)
        return response
