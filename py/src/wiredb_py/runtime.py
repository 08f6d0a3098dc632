from __future__ import annotations

import os
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import boto3
from botocore.config import Config

from .errors import ValidationError

if TYPE_CHECKING:
    from botocore.awsrequest import AWSRequest

    from .server import HttpResponse, Server, Transport


@dataclass(frozen=True)
class CallMetric:
    operation: str
    seconds: float
    status_code: int | None
    ok: bool


def is_lambda_environment(environ: Mapping[str, str] = os.environ) -> bool:
    return bool(
        environ.get("AWS_LAMBDA_FUNCTION_NAME") or "AWS_Lambda" in (environ.get("AWS_EXECUTION_ENV") or "")
    )


def create_transport_config(
    *,
    connect_timeout: float = 5.0,
    read_timeout: float = 30.0,
    max_pool_connections: int = 10,
) -> Config:
    return Config(
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        max_pool_connections=max_pool_connections,
    )


def create_lambda_transport_config() -> Config:
    return create_transport_config(connect_timeout=1.0, read_timeout=3.0)


class _InstrumentedTransport:
    def __init__(self, transport: Transport, on_call: Callable[[CallMetric], None]) -> None:
        self._transport = transport
        self._on_call = on_call

    def send(self, request: AWSRequest) -> HttpResponse:
        operation = str(request.headers.get("X-Amz-Target", "")).rpartition(".")[2]
        start = time.monotonic()
        try:
            response = self._transport.send(request)
        except Exception:
            self._on_call(
                CallMetric(operation=operation, seconds=time.monotonic() - start, status_code=None, ok=False)
            )
            raise

        self._on_call(
            CallMetric(
                operation=operation,
                seconds=time.monotonic() - start,
                status_code=response.status_code,
                ok=response.status_code == 200,
            )
        )
        return response


def instrument_transport(transport: Transport, *, on_call: Callable[[CallMetric], None]) -> Transport:
    return _InstrumentedTransport(transport, on_call)


def resolve_region_name(
    region_name: str | None = None,
    *,
    session: Any | None = None,
    environ: Mapping[str, str] = os.environ,
) -> str:
    region = (
        region_name
        or (getattr(session, "region_name", None) if session is not None else None)
        or environ.get("AWS_REGION")
        or environ.get("AWS_DEFAULT_REGION")
    )
    if not region:
        raise ValidationError("region is required (pass region_name or set AWS_REGION)")
    return region


def server_from_environment(
    *,
    region_name: str | None = None,
    endpoint_url: str | None = None,
    session: Any | None = None,
    config: Config | None = None,
    metrics: Callable[[CallMetric], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    max_throttle_retries: int | None = None,
    environ: Mapping[str, str] = os.environ,
) -> Server:
    from .server import BotocoreTransport, Region, Server

    sess = session or boto3.session.Session(region_name=region_name)
    credentials = sess.get_credentials()
    if credentials is None:
        raise ValidationError("no AWS credentials found")

    region = Region.from_name(
        resolve_region_name(region_name, session=sess, environ=environ),
        endpoint=endpoint_url or environ.get("DYNAMODB_ENDPOINT") or None,
    )
    if config is None:
        config = create_lambda_transport_config() if is_lambda_environment(environ) else create_transport_config()

    return Server(
        credentials=credentials,
        region=region,
        transport=BotocoreTransport(config=config),
        metrics=metrics,
        sleep=sleep,
        max_throttle_retries=max_throttle_retries,
    )
