"""Aliyun serverless Kubernetes (ASK) master provisioner."""

from __future__ import annotations

import time
from collections.abc import Callable

from loguru import logger

from vc_manager.kube import (
    ADMIN_SECRET_NAME,
    KubeObjectExistsError,
    SuperMasterClient,
    kubeconfig_to_secret,
)
from vc_manager.models import VirtualCluster
from vc_manager.provisioning.credentials import AskConfig, CredentialLoader
from vc_manager.provisioning.errors import BackendBusinessError
from vc_manager.provisioning.polling import Clock, Sleeper, poll_until
from vc_manager.provisioning.providers.ask_client import ASK_CLUSTER_TYPE, AskClient
from vc_manager.provisioning.providers.ask_errors import (
    is_cluster_absent_error,
    is_name_conflict_error,
)
from vc_manager.provisioning.providers.base import (
    DeletionOutcome,
    MasterDeletionResult,
    ProvisionedMaster,
)

AskClientFactory = Callable[..., AskClient]

CLUSTER_STATE_RUNNING = "running"
CLUSTER_STATE_DELETING = "deleting"


class AliyunMasterProvisioner:
    provisioner_name = "aliyun"

    def __init__(
        self,
        *,
        kube_client: SuperMasterClient,
        credential_loader: CredentialLoader,
        ask_client_factory: AskClientFactory = AskClient,
        cluster_type: str = ASK_CLUSTER_TYPE,
        creation_poll_interval_seconds: float = 10.0,
        creation_timeout_seconds: float = 120.0,
        deletion_poll_interval_seconds: float = 2.0,
        deletion_timeout_seconds: float = 100.0,
        clock: Clock = time.monotonic,
        sleep: Sleeper = time.sleep,
    ) -> None:
        self._kube_client = kube_client
        self._credential_loader = credential_loader
        self._ask_client_factory = ask_client_factory
        self._cluster_type = cluster_type
        self._creation_poll_interval_seconds = creation_poll_interval_seconds
        self._creation_timeout_seconds = creation_timeout_seconds
        self._deletion_poll_interval_seconds = deletion_poll_interval_seconds
        self._deletion_timeout_seconds = deletion_timeout_seconds
        self._clock = clock
        self._sleep = sleep

    def get_master_provisioner(self) -> str:
        return self.provisioner_name

    def create_virtual_cluster(self, vc: VirtualCluster) -> ProvisionedMaster:
        log = logger.bind(provisioner=self.provisioner_name, vc=vc.name)
        log.info(f"setting up control plane for the virtualcluster {vc.name}")

        ask_config, ask_client = self._connect()

        cluster_id, reused = self._request_cluster(ask_client, vc.name, ask_config)
        log = log.bind(cluster_id=cluster_id)
        log.info(f"ASK {cluster_id} is creating")

        def _is_running() -> bool:
            state = ask_client.get_cluster_state(cluster_id)
            log.debug(f"ASK {cluster_id} state is {state}")
            return state == CLUSTER_STATE_RUNNING

        poll_until(
            _is_running,
            interval_seconds=self._creation_poll_interval_seconds,
            timeout_seconds=self._creation_timeout_seconds,
            description=f"creating cluster({cluster_id})",
            clock=self._clock,
            sleep=self._sleep,
        )
        log.info(f"ASK {cluster_id} is up and running")

        namespace = vc.cluster_key
        try:
            self._kube_client.create_namespace(namespace)
        except KubeObjectExistsError:
            log.debug(f"virtualcluster namespace {namespace} already exists")
        log.info(f"virtualcluster namespace {namespace} is created")

        kubeconfig = ask_client.get_user_kubeconfig(cluster_id)
        log.info(f"got kubeconfig of cluster {cluster_id}")

        admin_secret = kubeconfig_to_secret(ADMIN_SECRET_NAME, namespace, kubeconfig)
        try:
            self._kube_client.create_secret(admin_secret)
        except KubeObjectExistsError:
            log.debug(f"admin kubeconfig secret already exists in {namespace}")
        log.info(f"admin kubeconfig is created for virtualcluster {vc.name}")

        return ProvisionedMaster(
            cluster_id=cluster_id,
            namespace=namespace,
            secret_name=admin_secret.name,
            reused=reused,
        )

    def delete_virtual_cluster(self, vc: VirtualCluster) -> MasterDeletionResult:
        """Send the deletion request and wait until it is accepted.

        The ASK is not guaranteed to be gone when this returns: success means
        the backend reported the cluster as deleting or no longer knows it.
        """
        log = logger.bind(provisioner=self.provisioner_name, vc=vc.name)
        log.info(f"deleting the ASK of the virtualcluster {vc.name}")

        _, ask_client = self._connect()

        cluster_id = ask_client.lookup_cluster_id(vc.name)
        log = log.bind(cluster_id=cluster_id)
        ask_client.delete_cluster(cluster_id)

        outcome = DeletionOutcome.ACCEPTED

        def _is_accepted() -> bool:
            nonlocal outcome
            try:
                state = ask_client.get_cluster_state(cluster_id)
            except BackendBusinessError as exc:
                if is_cluster_absent_error(exc):
                    outcome = DeletionOutcome.ALREADY_ABSENT
                    return True
                raise
            log.debug(f"ASK {cluster_id} state is {state}")
            return state == CLUSTER_STATE_DELETING

        poll_until(
            _is_accepted,
            interval_seconds=self._deletion_poll_interval_seconds,
            timeout_seconds=self._deletion_timeout_seconds,
            description=f"delete ASK({vc.name})",
            clock=self._clock,
            sleep=self._sleep,
        )
        if outcome is DeletionOutcome.ALREADY_ABSENT:
            log.info(f"corresponding ASK cluster of {vc.name} is not found")
        else:
            log.info(f"ASK cluster {cluster_id} is being deleted")
        return MasterDeletionResult(cluster_id=cluster_id, outcome=outcome)

    def _connect(self) -> tuple[AskConfig, AskClient]:
        access_keys = self._credential_loader.load_access_keys()
        ask_config = self._credential_loader.load_ask_config()
        ask_client = self._ask_client_factory(
            access_keys=access_keys,
            region_id=ask_config.region_id,
        )
        return ask_config, ask_client

    def _request_cluster(
        self,
        ask_client: AskClient,
        cluster_name: str,
        ask_config: AskConfig,
    ) -> tuple[str, bool]:
        try:
            cluster_id = ask_client.create_cluster(
                cluster_name=cluster_name,
                ask_config=ask_config,
                cluster_type=self._cluster_type,
            )
        except BackendBusinessError as exc:
            if not is_name_conflict_error(exc):
                raise
            logger.bind(provisioner=self.provisioner_name, vc=cluster_name).info(
                f"cluster name {cluster_name} already exists, reusing the existing ASK"
            )
            return ask_client.lookup_cluster_id(cluster_name), True
        return cluster_id, False
