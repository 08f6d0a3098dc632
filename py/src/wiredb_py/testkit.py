from __future__ import annotations

from collections.abc import Callable

from botocore.credentials import Credentials

from .mocks import ANY, FakeSigner, FakeTransport
from .server import Region, Server


def no_sleep(_: float) -> None:
    return None


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def fake_server(
    transport: FakeTransport,
    *,
    sleep: Callable[[float], None] = no_sleep,
    region: str = "us-east-1",
    max_throttle_retries: int | None = None,
) -> Server:
    return Server(
        credentials=Credentials("AKIDEXAMPLE", "secret"),
        region=Region.from_name(region),
        signer=FakeSigner(),
        transport=transport,
        sleep=sleep,
        max_throttle_retries=max_throttle_retries,
    )


__all__ = [
    "ANY",
    "FakeSigner",
    "FakeTransport",
    "RecordingSleep",
    "fake_server",
    "no_sleep",
]
