"""Per-call loading of Aliyun access keys and ASK settings from the super master.

Nothing here is cached: operators may rotate the access key secret or change
the ASK ConfigMap at any time and the next provisioning call must see it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from vc_manager.config import AppSettings
from vc_manager.kube import (
    KubeApiError,
    KubeObjectNotFoundError,
    SuperMasterClient,
    resolve_operating_namespace,
)
from vc_manager.provisioning.errors import ProvisionerConfigError

ACCESS_KEY_ID_FIELD = "accessKeyID"
ACCESS_KEY_SECRET_FIELD = "accessKeySecret"
ASK_REGION_ID_FIELD = "askRegionID"
ASK_ZONE_ID_FIELD = "askZoneID"
ASK_VPC_ID_FIELD = "askVpcID"


@dataclass(frozen=True, slots=True)
class AccessKeyPair:
    key_id: str
    key_secret: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class AskConfig:
    region_id: str
    zone_id: str
    vpc_id: str | None = None


class CredentialLoader:
    def __init__(
        self,
        *,
        kube_client: SuperMasterClient,
        default_namespace: str,
        namespace_file: str,
        access_key_secret_name: str = "aliyun-accesskey",
        ask_config_map_name: str = "aliyun-ask-config",
    ) -> None:
        self._kube_client = kube_client
        self._default_namespace = default_namespace
        self._namespace_file = namespace_file
        self._access_key_secret_name = access_key_secret_name
        self._ask_config_map_name = ask_config_map_name

    def operating_namespace(self) -> str:
        return resolve_operating_namespace(self._namespace_file, self._default_namespace)

    def load_access_keys(self) -> AccessKeyPair:
        namespace = self.operating_namespace()
        try:
            data = self._kube_client.read_secret_data(
                namespace=namespace,
                name=self._access_key_secret_name,
            )
        except KubeObjectNotFoundError as exc:
            raise ProvisionerConfigError(
                f"access key secret {namespace}/{self._access_key_secret_name} not found"
            ) from exc
        except KubeApiError as exc:
            raise ProvisionerConfigError(
                f"can't read access key secret {namespace}/{self._access_key_secret_name}: {exc}"
            ) from exc

        return AccessKeyPair(
            key_id=_require_field(data, ACCESS_KEY_ID_FIELD, source="aliyun access key secret"),
            key_secret=_require_field(
                data, ACCESS_KEY_SECRET_FIELD, source="aliyun access key secret"
            ),
        )

    def load_ask_config(self) -> AskConfig:
        namespace = self.operating_namespace()
        try:
            data = self._kube_client.read_config_map_data(
                namespace=namespace,
                name=self._ask_config_map_name,
            )
        except KubeObjectNotFoundError as exc:
            raise ProvisionerConfigError(
                f"ASK configmap {namespace}/{self._ask_config_map_name} not found"
            ) from exc
        except KubeApiError as exc:
            raise ProvisionerConfigError(
                f"can't read ASK configmap {namespace}/{self._ask_config_map_name}: {exc}"
            ) from exc

        vpc_id = data.get(ASK_VPC_ID_FIELD, "").strip()
        return AskConfig(
            region_id=_require_field(data, ASK_REGION_ID_FIELD, source="ASK configmap"),
            zone_id=_require_field(data, ASK_ZONE_ID_FIELD, source="ASK configmap"),
            vpc_id=vpc_id or None,
        )


def create_credential_loader(
    settings: AppSettings,
    kube_client: SuperMasterClient,
) -> CredentialLoader:
    return CredentialLoader(
        kube_client=kube_client,
        default_namespace=settings.default_namespace,
        namespace_file=settings.namespace_file,
        access_key_secret_name=settings.aliyun_access_key_secret_name,
        ask_config_map_name=settings.aliyun_ask_config_map_name,
    )


def _require_field(data: dict[str, str], key: str, *, source: str) -> str:
    value = data.get(key)
    if value is None:
        raise ProvisionerConfigError(f"{key} doesn't exist in {source}")
    value = value.strip()
    if not value:
        raise ProvisionerConfigError(f"{key} in {source} is empty")
    return value
