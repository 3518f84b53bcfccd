"""Classification of Aliyun container service response bodies.

A successful response body is always JSON. Backend failures are surfaced by
the SDK as a multi-line text block whose last line carries the JSON payload
returned by the server:

    ERROR: SDK.ServerError
    ErrorCode:
    Recommend:
    RequestId:
    Message: {"code":"ClusterNameAlreadyExist","message":"...","requestId":"...","status":400}
"""

from __future__ import annotations

import json
from enum import StrEnum
from typing import Any

from vc_manager.provisioning.errors import (
    BackendBusinessError,
    ResponseShapeError,
)

ERROR_NAME_PREFIX = "ERROR:"
ERROR_CODE_PREFIX = "ErrorCode:"
RECOMMEND_PREFIX = "Recommend:"
REQUEST_ID_PREFIX = "RequestId:"
MESSAGE_PREFIX = "Message:"
SERVER_ERROR_NAME = "SDK.ServerError"


class SdkErrorCode(StrEnum):
    # https://error-center.alibabacloud.com/status/product/CS
    OPERATION_NOT_SUPPORTED = "ErrorCheckAcl"
    CLUSTER_NOT_FOUND = "ErrorClusterNotFound"
    CLUSTER_NAME_ALREADY_EXIST = "ClusterNameAlreadyExist"


CLUSTER_ABSENT_CODES = frozenset(
    {
        SdkErrorCode.CLUSTER_NOT_FOUND,
        SdkErrorCode.OPERATION_NOT_SUPPORTED,
    }
)


def is_json(body: str) -> bool:
    try:
        json.loads(body)
    except ValueError:
        return False
    return True


def classify_response(body: str) -> BackendBusinessError | None:
    """Return None for a successful body, or the backend error it carries."""
    if is_json(body):
        return None

    error_name: str | None = None
    message_payload: str | None = None
    for line in body.splitlines():
        stripped = line.strip()
        if error_name is None and stripped.startswith(ERROR_NAME_PREFIX):
            error_name = stripped[len(ERROR_NAME_PREFIX) :].strip()
        elif stripped.startswith(MESSAGE_PREFIX):
            message_payload = stripped[len(MESSAGE_PREFIX) :].strip()

    if error_name is None or message_payload is None:
        raise ResponseShapeError(
            f"response is neither JSON nor an SDK error: {_excerpt(body)}"
        )

    try:
        payload = json.loads(message_payload)
    except ValueError as exc:
        raise ResponseShapeError(
            f"SDK error message is not valid JSON: {_excerpt(message_payload)}"
        ) from exc
    if not isinstance(payload, dict):
        raise ResponseShapeError("SDK error message must be a JSON object")

    error_code = payload.get("code")
    if not isinstance(error_code, str) or not error_code:
        raise ResponseShapeError("SDK error message doesn't contain 'code' field")

    request_id = payload.get("requestId")
    return BackendBusinessError(
        error_name=error_name,
        error_code=error_code,
        error_message=str(payload.get("message", "")),
        request_id=request_id if isinstance(request_id, str) else None,
    )


def render_server_error(payload: dict[str, Any]) -> str:
    """Render a JSON error payload the way the SDK reports server errors."""
    return "\n".join(
        (
            f"{ERROR_NAME_PREFIX} {SERVER_ERROR_NAME}",
            f"{ERROR_CODE_PREFIX} {payload.get('code', '')}",
            f"{RECOMMEND_PREFIX} {payload.get('recommend', '')}",
            f"{REQUEST_ID_PREFIX} {payload.get('requestId', '')}",
            f"{MESSAGE_PREFIX} {json.dumps(payload, separators=(',', ':'))}",
        )
    )


def is_cluster_absent_error(exc: BaseException) -> bool:
    return isinstance(exc, BackendBusinessError) and exc.error_code in CLUSTER_ABSENT_CODES


def is_name_conflict_error(exc: BaseException) -> bool:
    return (
        isinstance(exc, BackendBusinessError)
        and exc.error_code == SdkErrorCode.CLUSTER_NAME_ALREADY_EXIST
    )


def _excerpt(text: str) -> str:
    return text.strip()[:240]
