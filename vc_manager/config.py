"""Application configuration loading."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, cast

import yaml

DEFAULT_RUNTIME_CONFIG_PATH = "runtime-config.yaml"
RUNTIME_CONFIG_PATH_ENV = "VC_MANAGER_RUNTIME_CONFIG_PATH"
SERVICE_ACCOUNT_NAMESPACE_FILE = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"
SUPPORTED_PROVISIONER_BACKENDS = ("aliyun",)


@dataclass(frozen=True, slots=True)
class AppSettings:
    provisioner_backend: str = "aliyun"
    default_namespace: str = "vc-manager"
    namespace_file: str = SERVICE_ACCOUNT_NAMESPACE_FILE
    kubeconfig_path: str = ""
    aliyun_scheme: str = "https"
    aliyun_domain: str = "cs.aliyuncs.com"
    aliyun_api_version: str = "2015-12-15"
    aliyun_cluster_type: str = "Ask"
    aliyun_http_timeout_seconds: float = 30.0
    aliyun_access_key_secret_name: str = "aliyun-accesskey"
    aliyun_ask_config_map_name: str = "aliyun-ask-config"
    creation_poll_interval_seconds: float = 10.0
    creation_timeout_seconds: float = 120.0
    deletion_poll_interval_seconds: float = 2.0
    deletion_timeout_seconds: float = 100.0
    runtime_config_path: str = DEFAULT_RUNTIME_CONFIG_PATH

    @classmethod
    def from_yaml(cls, runtime_config_path: str = DEFAULT_RUNTIME_CONFIG_PATH) -> AppSettings:
        normalized_path = runtime_config_path.strip() or DEFAULT_RUNTIME_CONFIG_PATH
        config = _load_runtime_config(normalized_path)

        provisioner_cfg = cast(dict[str, Any], config.get("provisioner", {}))
        kubernetes_cfg = cast(dict[str, Any], config.get("kubernetes", {}))
        aliyun_cfg = cast(dict[str, Any], config.get("aliyun", {}))
        creation_cfg = cast(dict[str, Any], aliyun_cfg.get("creation", {}))
        deletion_cfg = cast(dict[str, Any], aliyun_cfg.get("deletion", {}))

        backend = str(provisioner_cfg.get("backend", "aliyun")).strip().lower()
        if backend not in SUPPORTED_PROVISIONER_BACKENDS:
            raise ValueError(
                "unsupported provisioner.backend in runtime config: "
                f"{backend!r}; expected one of {SUPPORTED_PROVISIONER_BACKENDS!r}"
            )

        creation_interval, creation_timeout = _poll_window(
            creation_cfg, section="aliyun.creation", interval=10.0, timeout=120.0
        )
        deletion_interval, deletion_timeout = _poll_window(
            deletion_cfg, section="aliyun.deletion", interval=2.0, timeout=100.0
        )

        return cls(
            provisioner_backend=backend,
            default_namespace=str(
                provisioner_cfg.get("default_namespace", "vc-manager")
            ).strip()
            or "vc-manager",
            namespace_file=str(
                provisioner_cfg.get("namespace_file", SERVICE_ACCOUNT_NAMESPACE_FILE)
            ),
            kubeconfig_path=str(kubernetes_cfg.get("kubeconfig", "")),
            aliyun_scheme=str(aliyun_cfg.get("scheme", "https")).lower(),
            aliyun_domain=str(aliyun_cfg.get("domain", "cs.aliyuncs.com")),
            aliyun_api_version=str(aliyun_cfg.get("api_version", "2015-12-15")),
            aliyun_cluster_type=str(aliyun_cfg.get("cluster_type", "Ask")),
            aliyun_http_timeout_seconds=_positive_seconds(
                aliyun_cfg.get("http_timeout_seconds", 30.0), minimum=1.0
            ),
            aliyun_access_key_secret_name=str(
                aliyun_cfg.get("access_key_secret_name", "aliyun-accesskey")
            ),
            aliyun_ask_config_map_name=str(
                aliyun_cfg.get("ask_config_map_name", "aliyun-ask-config")
            ),
            creation_poll_interval_seconds=creation_interval,
            creation_timeout_seconds=creation_timeout,
            deletion_poll_interval_seconds=deletion_interval,
            deletion_timeout_seconds=deletion_timeout,
            runtime_config_path=normalized_path,
        )

    @classmethod
    def from_env(cls) -> AppSettings:
        return cls.from_yaml(
            os.environ.get(RUNTIME_CONFIG_PATH_ENV, DEFAULT_RUNTIME_CONFIG_PATH)
        )


def _load_runtime_config(runtime_config_path: str) -> dict[str, Any]:
    path = Path(runtime_config_path)
    if not path.exists() or not path.is_file():
        return {}

    parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
    if isinstance(parsed, dict):
        return parsed
    return {}


def _positive_seconds(value: Any, *, minimum: float = 0.001) -> float:
    try:
        seconds = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"expected a number of seconds, received {value!r}") from exc
    return max(minimum, seconds)


def _poll_window(
    cfg: dict[str, Any], *, section: str, interval: float, timeout: float
) -> tuple[float, float]:
    interval_seconds = _positive_seconds(cfg.get("poll_interval_seconds", interval))
    timeout_seconds = _positive_seconds(cfg.get("timeout_seconds", timeout))
    if interval_seconds >= timeout_seconds:
        raise ValueError(
            f"{section}.poll_interval_seconds ({interval_seconds:g}) must be less than "
            f"{section}.timeout_seconds ({timeout_seconds:g})"
        )
    return interval_seconds, timeout_seconds


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings.from_env()
