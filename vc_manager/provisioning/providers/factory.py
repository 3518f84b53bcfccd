"""Master provisioner selection based on runtime settings."""

from __future__ import annotations

from functools import partial

from vc_manager.config import AppSettings
from vc_manager.kube import SuperMasterClient, create_kubernetes_client
from vc_manager.provisioning.credentials import create_credential_loader
from vc_manager.provisioning.providers.aliyun import AliyunMasterProvisioner
from vc_manager.provisioning.providers.ask_client import AcsClientFactory, AskClient
from vc_manager.provisioning.providers.base import MasterProvisioner


def create_master_provisioner(
    settings: AppSettings,
    *,
    kube_client: SuperMasterClient | None = None,
    acs_client_factory: AcsClientFactory | None = None,
) -> MasterProvisioner:
    backend = settings.provisioner_backend.strip().lower()
    if backend == "aliyun":
        if kube_client is None:
            kube_client = create_kubernetes_client(settings)
        ask_client_options: dict[str, object] = {
            "scheme": settings.aliyun_scheme,
            "domain": settings.aliyun_domain,
            "api_version": settings.aliyun_api_version,
            "timeout_seconds": settings.aliyun_http_timeout_seconds,
        }
        if acs_client_factory is not None:
            ask_client_options["acs_client_factory"] = acs_client_factory
        return AliyunMasterProvisioner(
            kube_client=kube_client,
            credential_loader=create_credential_loader(settings, kube_client),
            ask_client_factory=partial(AskClient, **ask_client_options),
            cluster_type=settings.aliyun_cluster_type,
            creation_poll_interval_seconds=settings.creation_poll_interval_seconds,
            creation_timeout_seconds=settings.creation_timeout_seconds,
            deletion_poll_interval_seconds=settings.deletion_poll_interval_seconds,
            deletion_timeout_seconds=settings.deletion_timeout_seconds,
        )

    raise ValueError(
        f"provisioner.backend must be 'aliyun' (received {settings.provisioner_backend!r})"
    )
