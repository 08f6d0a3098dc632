from __future__ import annotations

import json
import re
from importlib.resources import files
from typing import TYPE_CHECKING, Any

from .attribute import Attribute, AttributeType, Item, decode_attribute, decode_item, encode_attribute, encode_item
from .errors import (
    ConditionFailedError,
    NotFoundError,
    ResponseShapeError,
    ServiceError,
    UnprocessedItemsError,
    ValidationError,
    WiredbPyError,
)
from .key import Key, KeyAttribute, PrimaryKey
from .query import AttributeComparison, Page, Query

if TYPE_CHECKING:
    from .batch import BatchGetItem, BatchWriteItem
    from .runtime import (
        CallMetric,
        create_lambda_transport_config,
        create_transport_config,
        instrument_transport,
        is_lambda_environment,
        server_from_environment,
    )
    from .server import BotocoreTransport, HttpResponse, Region, Server, SigV4Signer
    from .table import Table, write_actions
    from .validation import SecurityValidationError


def _read_repo_version() -> str:
    try:
        data = json.loads(files(__package__).joinpath("version.json").read_text(encoding="utf-8"))
    except Exception:
        return "0.0.0"

    version = data.get("version")
    return version if isinstance(version, str) and version else "0.0.0"


def _normalize_repo_version(repo_version: str) -> str:
    match = re.match(r"^(\d+\.\d+\.\d+)-rc\.?([0-9]+)$", repo_version)
    if match:
        return f"{match.group(1)}rc{match.group(2)}"
    return repo_version


__repo_version__ = _read_repo_version()
__version__ = _normalize_repo_version(__repo_version__)


def __getattr__(name: str) -> Any:
    if name in {"Table", "write_actions"}:
        from . import table

        return getattr(table, name)
    if name in {"BatchGetItem", "BatchWriteItem"}:
        from . import batch

        return getattr(batch, name)
    if name in {"BotocoreTransport", "HttpResponse", "Region", "Server", "SigV4Signer"}:
        from . import server

        return getattr(server, name)
    if name in {
        "CallMetric",
        "create_lambda_transport_config",
        "create_transport_config",
        "instrument_transport",
        "is_lambda_environment",
        "server_from_environment",
    }:
        from . import runtime

        return getattr(runtime, name)
    if name == "SecurityValidationError":
        from .validation import SecurityValidationError

        return SecurityValidationError
    raise AttributeError(name)


__all__ = [
    "Attribute",
    "AttributeComparison",
    "AttributeType",
    "BatchGetItem",
    "BatchWriteItem",
    "BotocoreTransport",
    "CallMetric",
    "ConditionFailedError",
    "create_lambda_transport_config",
    "create_transport_config",
    "decode_attribute",
    "decode_item",
    "encode_attribute",
    "encode_item",
    "HttpResponse",
    "instrument_transport",
    "is_lambda_environment",
    "Item",
    "Key",
    "KeyAttribute",
    "NotFoundError",
    "Page",
    "PrimaryKey",
    "Query",
    "Region",
    "ResponseShapeError",
    "SecurityValidationError",
    "Server",
    "server_from_environment",
    "ServiceError",
    "SigV4Signer",
    "Table",
    "UnprocessedItemsError",
    "ValidationError",
    "WiredbPyError",
    "write_actions",
    "__repo_version__",
    "__version__",
]
