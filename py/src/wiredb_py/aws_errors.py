from __future__ import annotations

import json
import logging

from .errors import ConditionFailedError, ServiceError

log = logging.getLogger(__name__)

PROVISIONED_THROUGHPUT_EXCEEDED = "ProvisionedThroughputExceededException"
THROTTLING = "ThrottlingException"
CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"

_RETRYABLE_CODES = frozenset({THROTTLING, PROVISIONED_THROUGHPUT_EXCEEDED})


def error_code_from_type(type_name: str) -> str:
    # com.amazonaws.dynamodb.v20120810#ResourceNotFoundException
    _, sep, suffix = type_name.rpartition("#")
    return suffix if sep else type_name


def build_service_error(status_code: int, status: str, body: bytes) -> ServiceError:
    try:
        doc = json.loads(body)
    except ValueError:
        log.warning("failed to parse error body as JSON (status=%s)", status_code)
        return ServiceError(
            status_code=status_code,
            status=status,
            code="SerializationException",
            message=body.decode("utf-8", errors="replace"),
        )

    if not isinstance(doc, dict):
        doc = {}

    code = error_code_from_type(str(doc.get("__type") or ""))
    # DynamoDB sends "message"; some proxies send "Message".
    message = str(doc.get("message") or doc.get("Message") or "")

    if code == CONDITIONAL_CHECK_FAILED:
        return ConditionFailedError(status_code=status_code, status=status, code=code, message=message)
    return ServiceError(status_code=status_code, status=status, code=code, message=message)


def is_retryable_error(err: BaseException) -> bool:
    if not isinstance(err, ServiceError):
        return False
    return err.status_code == 500 or err.code in _RETRYABLE_CODES
