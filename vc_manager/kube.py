"""Super master access used by the master provisioner."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from loguru import logger

from vc_manager.config import AppSettings

ADMIN_SECRET_NAME = "admin-kubeconfig"


class KubeApiError(Exception):
    """Base exception for super master API failures."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class KubeObjectNotFoundError(KubeApiError):
    """Raised when the requested object does not exist."""


class KubeObjectExistsError(KubeApiError):
    """Raised when creating an object that already exists."""


@dataclass(frozen=True, slots=True)
class SecretSpec:
    name: str
    namespace: str
    data: dict[str, str] = field(default_factory=dict)
    secret_type: str = "Opaque"


class SuperMasterClient(Protocol):
    def read_secret_data(self, *, namespace: str, name: str) -> dict[str, str]:
        """Return the decoded data of one Secret."""

    def read_config_map_data(self, *, namespace: str, name: str) -> dict[str, str]:
        """Return the data of one ConfigMap."""

    def create_namespace(self, name: str) -> None:
        """Create one Namespace; raise KubeObjectExistsError when present."""

    def create_secret(self, secret: SecretSpec) -> None:
        """Create one Secret; raise KubeObjectExistsError when present."""


class KubernetesSuperMasterClient:
    def __init__(self, core_api: client.CoreV1Api) -> None:
        self._core_api = core_api

    def read_secret_data(self, *, namespace: str, name: str) -> dict[str, str]:
        try:
            secret = self._core_api.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as exc:
            raise _translate_api_exception(exc, f"secret {namespace}/{name}") from exc

        decoded: dict[str, str] = {}
        for key, value in (secret.data or {}).items():
            decoded[key] = base64.b64decode(value).decode("utf-8")
        return decoded

    def read_config_map_data(self, *, namespace: str, name: str) -> dict[str, str]:
        try:
            config_map = self._core_api.read_namespaced_config_map(
                name=name,
                namespace=namespace,
            )
        except ApiException as exc:
            raise _translate_api_exception(exc, f"configmap {namespace}/{name}") from exc
        return dict(config_map.data or {})

    def create_namespace(self, name: str) -> None:
        body = client.V1Namespace(metadata=client.V1ObjectMeta(name=name))
        try:
            self._core_api.create_namespace(body=body)
        except ApiException as exc:
            raise _translate_api_exception(exc, f"namespace {name}") from exc

    def create_secret(self, secret: SecretSpec) -> None:
        body = client.V1Secret(
            metadata=client.V1ObjectMeta(name=secret.name, namespace=secret.namespace),
            type=secret.secret_type,
            data={
                key: base64.b64encode(value.encode("utf-8")).decode("ascii")
                for key, value in secret.data.items()
            },
        )
        try:
            self._core_api.create_namespaced_secret(namespace=secret.namespace, body=body)
        except ApiException as exc:
            raise _translate_api_exception(
                exc, f"secret {secret.namespace}/{secret.name}"
            ) from exc


def create_kubernetes_client(settings: AppSettings) -> KubernetesSuperMasterClient:
    kubeconfig_path = settings.kubeconfig_path.strip()
    if kubeconfig_path:
        config.load_kube_config(config_file=str(Path(kubeconfig_path).expanduser()))
        logger.info(f"using kubeconfig from {kubeconfig_path}")
    else:
        try:
            config.load_incluster_config()
            logger.info("using in-cluster kubernetes config")
        except config.ConfigException:
            config.load_kube_config()
            logger.info("using default kubeconfig")
    return KubernetesSuperMasterClient(client.CoreV1Api())


def resolve_operating_namespace(namespace_file: str, default_namespace: str) -> str:
    """Return the namespace this process runs in, or the default one."""
    try:
        namespace = Path(namespace_file).read_text(encoding="utf-8").strip()
    except OSError as exc:
        logger.info(
            f"can't find namespace from inside the pod ({exc}), "
            f"using default namespace {default_namespace}"
        )
        return default_namespace

    if not namespace:
        logger.info(f"namespace file is empty, using default namespace {default_namespace}")
        return default_namespace
    return namespace


def kubeconfig_to_secret(name: str, namespace: str, kubeconfig: str) -> SecretSpec:
    return SecretSpec(name=name, namespace=namespace, data={name: kubeconfig})


def _translate_api_exception(exc: ApiException, resource: str) -> KubeApiError:
    if exc.status == 404:
        return KubeObjectNotFoundError(f"{resource} not found", status_code=exc.status)
    if exc.status == 409:
        return KubeObjectExistsError(f"{resource} already exists", status_code=exc.status)
    return KubeApiError(
        f"kubernetes API error for {resource}: {exc.reason}",
        status_code=exc.status,
    )
