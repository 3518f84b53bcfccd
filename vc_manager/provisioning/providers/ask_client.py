"""Aliyun container service (ASK) API adapter."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

from aliyunsdkcore.acs_exception.exceptions import ClientException, ServerException
from aliyunsdkcore.client import AcsClient
from aliyunsdkcore.request import CommonRequest
from loguru import logger

from vc_manager.provisioning.credentials import AccessKeyPair, AskConfig
from vc_manager.provisioning.errors import (
    ClusterLookupNotFoundError,
    ProvisionerTransportError,
    ResponseShapeError,
)
from vc_manager.provisioning.providers.ask_errors import (
    classify_response,
    render_server_error,
)

AcsClientFactory = Callable[..., AcsClient]

ASK_API_DOMAIN = "cs.aliyuncs.com"
ASK_API_VERSION = "2015-12-15"
ASK_CLUSTER_TYPE = "Ask"
JSON_CONTENT_TYPE = "application/json"
CLUSTER_ID_PARAM = "ClusterId"


@dataclass(frozen=True, slots=True)
class AskRequest:
    method: str
    path_pattern: str
    path_params: dict[str, str] = field(default_factory=dict)
    query_params: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None

    @property
    def path(self) -> str:
        path = self.path_pattern
        for key, value in self.path_params.items():
            path = path.replace(f"[{key}]", quote(value, safe=""))
        return path


class AskClient:
    """Stateless per-call client for the ASK control-plane-as-a-service API."""

    def __init__(
        self,
        *,
        access_keys: AccessKeyPair,
        region_id: str,
        scheme: str = "https",
        domain: str = ASK_API_DOMAIN,
        api_version: str = ASK_API_VERSION,
        timeout_seconds: float = 30.0,
        acs_client_factory: AcsClientFactory = AcsClient,
    ) -> None:
        self._access_keys = access_keys
        self._region_id = region_id
        self._scheme = scheme
        self._domain = domain
        self._api_version = api_version
        self._timeout_seconds = timeout_seconds
        self._acs_client_factory = acs_client_factory

    @property
    def region_id(self) -> str:
        return self._region_id

    def list_clusters(self) -> list[dict[str, Any]]:
        body = self._call(AskRequest(method="GET", path_pattern="/clusters"))
        payload = _decode_json(body, context="cluster list")
        if not isinstance(payload, list):
            raise ResponseShapeError("cluster list response must be a JSON array")
        clusters: list[dict[str, Any]] = []
        for entry in payload:
            if not isinstance(entry, dict):
                raise ResponseShapeError("cluster list entries must be JSON objects")
            clusters.append(entry)
        return clusters

    def lookup_cluster_id(self, cluster_name: str) -> str:
        for cluster_info in self.list_clusters():
            name = _require_str(cluster_info, "name", context="clusterInfo")
            if name == cluster_name:
                return _require_str(cluster_info, "cluster_id", context="clusterInfo")
        raise ClusterLookupNotFoundError(cluster_name)

    def create_cluster(
        self,
        *,
        cluster_name: str,
        ask_config: AskConfig,
        cluster_type: str = ASK_CLUSTER_TYPE,
    ) -> str:
        payload = build_creation_payload(
            cluster_name=cluster_name,
            ask_config=ask_config,
            cluster_type=cluster_type,
        )
        body = self._call(
            AskRequest(
                method="POST",
                path_pattern="/clusters",
                body=json.dumps(payload, separators=(",", ":")).encode("utf-8"),
            )
        )
        cluster_info = _decode_json_object(body, context="cluster creation")
        if "cluster_id" not in cluster_info:
            raise ResponseShapeError("can't find 'cluster_id' in response body")
        return _require_str(cluster_info, "cluster_id", context="cluster creation")

    def get_cluster_state(self, cluster_id: str) -> str:
        body = self._call(
            AskRequest(
                method="GET",
                path_pattern=f"/clusters/[{CLUSTER_ID_PARAM}]",
                path_params={CLUSTER_ID_PARAM: cluster_id},
            )
        )
        cluster_info = _decode_json_object(body, context="cluster info")
        returned_id = _require_str(cluster_info, "cluster_id", context="cluster info")
        if returned_id != cluster_id:
            raise ResponseShapeError(
                f"cluster id does not match: got {returned_id} want {cluster_id}"
            )
        return _require_str(cluster_info, "state", context=f"cluster({cluster_id})")

    def get_user_kubeconfig(self, cluster_id: str) -> str:
        body = self._call(
            AskRequest(
                method="GET",
                path_pattern=f"/k8s/[{CLUSTER_ID_PARAM}]/user_config",
                path_params={CLUSTER_ID_PARAM: cluster_id},
            )
        )
        kubeconfig_info = _decode_json_object(body, context="user config")
        if "config" not in kubeconfig_info:
            raise ResponseShapeError(f"kubeconfig of cluster({cluster_id}) is not found")
        return _require_str(kubeconfig_info, "config", context=f"cluster({cluster_id})")

    def delete_cluster(self, cluster_id: str) -> None:
        self._call(
            AskRequest(
                method="DELETE",
                path_pattern=f"/clusters/[{CLUSTER_ID_PARAM}]",
                path_params={CLUSTER_ID_PARAM: cluster_id},
            ),
            allow_empty=True,
        )

    def _call(self, request: AskRequest, *, allow_empty: bool = False) -> str:
        body = self.process_request(request)
        if allow_empty and not body.strip():
            return body
        sdk_error = classify_response(body)
        if sdk_error is not None:
            raise sdk_error
        return body

    def process_request(self, request: AskRequest) -> str:
        """Send one signed request and return the response body.

        Server-side failures are returned in the SDK's textual error format
        rather than raised; client-side failures raise a transport error.
        """
        logger.debug(f"ASK request {request.method} {request.path}")
        client = self._acs_client_factory(
            self._access_keys.key_id,
            self._access_keys.key_secret,
            self._region_id,
            auto_retry=False,
            timeout=self._timeout_seconds,
        )
        try:
            response = client.do_action_with_exception(self.build_common_request(request))
        except ServerException as exc:
            return render_server_error(_server_error_payload(exc))
        except ClientException as exc:
            raise ProvisionerTransportError(
                f"ASK request {request.method} {request.path} failed: "
                f"{exc.get_error_code()} {exc.get_error_msg()}"
            ) from exc

        if isinstance(response, bytes):
            return response.decode("utf-8")
        return str(response or "")

    def build_common_request(self, request: AskRequest) -> CommonRequest:
        common_request = CommonRequest()
        common_request.set_method(request.method)
        common_request.set_protocol_type(self._scheme)
        common_request.set_domain(self._domain)
        common_request.set_version(self._api_version)
        common_request.set_uri_pattern(request.path_pattern)
        common_request.set_accept_format("json")
        common_request.add_header("Content-Type", JSON_CONTENT_TYPE)
        for key, value in request.path_params.items():
            common_request.add_path_param(key, quote(value, safe=""))
        common_request.add_query_param("RegionId", self._region_id)
        for key, value in request.query_params.items():
            common_request.add_query_param(key, value)
        if request.body is not None:
            common_request.set_content(request.body)
        return common_request


def build_creation_payload(
    *,
    cluster_name: str,
    ask_config: AskConfig,
    cluster_type: str = ASK_CLUSTER_TYPE,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "cluster_type": cluster_type,
        "name": cluster_name,
        "region_id": ask_config.region_id,
        "zoneid": ask_config.zone_id,
    }
    if ask_config.vpc_id:
        payload["vpc_id"] = ask_config.vpc_id
    else:
        logger.info("vpcID is not specified, a new vpc will be created")
    payload["nat_gateway"] = True
    payload["private_zone"] = True
    return payload


def _server_error_payload(exc: ServerException) -> dict[str, Any]:
    # ROA error bodies use lowercase keys, which the SDK leaves in the message.
    message = exc.get_error_msg() or ""
    start = message.find("{")
    if start >= 0:
        try:
            payload = json.loads(message[start:])
        except ValueError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("code"), str):
            payload.setdefault("requestId", exc.get_request_id() or "")
            return payload

    return {
        "code": exc.get_error_code(),
        "message": message,
        "requestId": exc.get_request_id() or "",
        "status": exc.get_http_status(),
    }


def _decode_json(body: str, *, context: str) -> Any:
    try:
        return json.loads(body)
    except ValueError as exc:
        raise ResponseShapeError(f"{context} response was not valid JSON") from exc


def _decode_json_object(body: str, *, context: str) -> dict[str, Any]:
    data = _decode_json(body, context=context)
    if not isinstance(data, dict):
        raise ResponseShapeError(f"{context} response payload must be an object")
    return data


def _require_str(payload: dict[str, Any], key: str, *, context: str) -> str:
    if key not in payload:
        raise ResponseShapeError(f"{context} doesn't contain '{key}' field")
    value = payload[key]
    if not isinstance(value, str):
        raise ResponseShapeError(f"fail to assert '{key}' of {context} to string")
    return value
