from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from vc_manager.kube import KubeObjectExistsError, KubeObjectNotFoundError, SecretSpec


@dataclass(slots=True)
class FakeClock:
    now: float = 1000.0
    sleeps: list[float] = field(default_factory=list)

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@dataclass(slots=True)
class StubSuperMasterClient:
    secrets: dict[tuple[str, str], dict[str, str]] = field(default_factory=dict)
    config_maps: dict[tuple[str, str], dict[str, str]] = field(default_factory=dict)
    namespaces: set[str] = field(default_factory=set)
    created_secrets: dict[tuple[str, str], SecretSpec] = field(default_factory=dict)
    reads: list[tuple[str, str, str]] = field(default_factory=list)

    def read_secret_data(self, *, namespace: str, name: str) -> dict[str, str]:
        self.reads.append(("secret", namespace, name))
        try:
            return dict(self.secrets[(namespace, name)])
        except KeyError as exc:
            raise KubeObjectNotFoundError(f"secret {namespace}/{name} not found") from exc

    def read_config_map_data(self, *, namespace: str, name: str) -> dict[str, str]:
        self.reads.append(("configmap", namespace, name))
        try:
            return dict(self.config_maps[(namespace, name)])
        except KeyError as exc:
            raise KubeObjectNotFoundError(f"configmap {namespace}/{name} not found") from exc

    def create_namespace(self, name: str) -> None:
        if name in self.namespaces:
            raise KubeObjectExistsError(f"namespace {name} already exists")
        self.namespaces.add(name)

    def create_secret(self, secret: SecretSpec) -> None:
        key = (secret.namespace, secret.name)
        if key in self.created_secrets:
            raise KubeObjectExistsError(f"secret {secret.namespace}/{secret.name} already exists")
        self.created_secrets[key] = secret


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def super_master() -> StubSuperMasterClient:
    return StubSuperMasterClient(
        secrets={
            ("vc-manager", "aliyun-accesskey"): {
                "accessKeyID": "test-key-id",
                "accessKeySecret": "test-key-secret",
            }
        },
        config_maps={
            ("vc-manager", "aliyun-ask-config"): {
                "askRegionID": "cn-hangzhou",
                "askZoneID": "cn-hangzhou-g",
            }
        },
    )
