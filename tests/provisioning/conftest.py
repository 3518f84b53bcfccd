from __future__ import annotations

import json
import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeAlias

import pytest
from aliyunsdkcore.acs_exception.exceptions import ServerException
from aliyunsdkcore.request import CommonRequest

CLUSTER_PATH = re.compile(r"^/clusters/(?P<cluster_id>[^/]+)$")
USER_CONFIG_PATH = re.compile(r"^/k8s/(?P<cluster_id>[^/]+)/user_config$")
DEFAULT_KUBECONFIG = "apiVersion: v1\nkind: Config\nclusters: []\n"
REQUEST_ID = "C2D0F836-DD3D-4749-97AB-10AE8371BABE"


@dataclass(frozen=True, slots=True)
class SentRequest:
    method: str
    path: str
    query: dict[str, str]
    headers: dict[str, str]
    body: bytes | None
    scheme: str
    domain: str
    version: str
    key_id: str
    region_id: str


AcsHandler: TypeAlias = Callable[[SentRequest], bytes]


@dataclass(slots=True)
class FakeAcsClient:
    handler: AcsHandler
    key_id: str
    key_secret: str
    region_id: str
    options: dict[str, Any] = field(default_factory=dict)

    def do_action_with_exception(self, request: CommonRequest) -> bytes:
        path = request.get_uri_pattern()
        for key, value in (request.get_path_params() or {}).items():
            path = path.replace(f"[{key}]", value)
        return self.handler(
            SentRequest(
                method=request.get_method(),
                path=path,
                query=dict(request.get_query_params()),
                headers=dict(request.get_headers()),
                body=request.get_content(),
                scheme=request.get_protocol_type(),
                domain=request.get_domain(),
                version=request.get_version(),
                key_id=self.key_id,
                region_id=self.region_id,
            )
        )


def acs_client_factory(handler: AcsHandler) -> Callable[..., FakeAcsClient]:
    def factory(key_id: str, key_secret: str, region_id: str, **options: Any) -> FakeAcsClient:
        return FakeAcsClient(
            handler=handler,
            key_id=key_id,
            key_secret=key_secret,
            region_id=region_id,
            options=options,
        )

    return factory


def server_error(http_status: int, *, code: str, message: str) -> ServerException:
    body = json.dumps(
        {"code": code, "message": message, "requestId": REQUEST_ID, "status": http_status}
    )
    return ServerException(
        "SDK.UnknownServerError",
        f"ServerResponseBody: {body}",
        http_status,
        REQUEST_ID,
    )


def json_body(payload: Any) -> bytes:
    return json.dumps(payload).encode("utf-8")


@dataclass(slots=True)
class FakeAskBackend:
    """In-memory stand-in for the ASK REST surface."""

    cluster_names: dict[str, str] = field(default_factory=dict)
    states: dict[str, list[str]] = field(default_factory=dict)
    state_error_codes: dict[str, str] = field(default_factory=dict)
    kubeconfigs: dict[str, str] = field(default_factory=dict)
    creation_error_code: str | None = None
    next_cluster_ids: Iterator[str] = field(
        default_factory=lambda: iter(["cls-123", "cls-456", "cls-789"])
    )
    requests: list[SentRequest] = field(default_factory=list)

    def handle(self, request: SentRequest) -> bytes:
        self.requests.append(request)
        path = request.path
        method = request.method

        if path == "/clusters" and method == "GET":
            return json_body(
                [
                    {"name": name, "cluster_id": cluster_id, "state": "running"}
                    for cluster_id, name in self.cluster_names.items()
                ]
            )

        if path == "/clusters" and method == "POST":
            name = json.loads(request.body or b"{}")["name"]
            if self.creation_error_code is not None:
                raise server_error(400, code=self.creation_error_code, message="creation rejected")
            if name in self.cluster_names.values():
                raise server_error(
                    400,
                    code="ClusterNameAlreadyExist",
                    message=f"cluster name {name} already exist in your clusters",
                )
            cluster_id = next(self.next_cluster_ids)
            self.cluster_names[cluster_id] = name
            return json_body({"cluster_id": cluster_id})

        cluster_match = CLUSTER_PATH.match(path)
        if cluster_match and method == "GET":
            cluster_id = cluster_match.group("cluster_id")
            error_code = self.state_error_codes.get(cluster_id)
            if error_code is not None:
                raise server_error(404, code=error_code, message="cluster not found")
            sequence = self.states.get(cluster_id, ["running"])
            state = sequence.pop(0) if len(sequence) > 1 else sequence[0]
            return json_body({"cluster_id": cluster_id, "state": state, "name": "ignored"})

        if cluster_match and method == "DELETE":
            cluster_id = cluster_match.group("cluster_id")
            if cluster_id not in self.cluster_names:
                raise server_error(404, code="ErrorClusterNotFound", message="not found")
            return b""

        user_config_match = USER_CONFIG_PATH.match(path)
        if user_config_match and method == "GET":
            cluster_id = user_config_match.group("cluster_id")
            return json_body({"config": self.kubeconfigs.get(cluster_id, DEFAULT_KUBECONFIG)})

        raise AssertionError(f"unexpected request {method} {path}")

    def client_factory(
        self, key_id: str, key_secret: str, region_id: str, **options: Any
    ) -> FakeAcsClient:
        return acs_client_factory(self.handle)(key_id, key_secret, region_id, **options)

    def count(self, method: str, path: str) -> int:
        return sum(
            1
            for request in self.requests
            if request.method == method and request.path == path
        )


@pytest.fixture()
def ask_backend() -> FakeAskBackend:
    return FakeAskBackend()


@pytest.fixture()
def missing_namespace_file(tmp_path: Path) -> str:
    return str(tmp_path / "serviceaccount" / "namespace")
