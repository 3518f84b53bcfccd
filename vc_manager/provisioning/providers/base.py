"""Master provisioner interface and normalized result models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from vc_manager.models import VirtualCluster


class DeletionOutcome(StrEnum):
    ACCEPTED = "accepted"
    ALREADY_ABSENT = "already_absent"


@dataclass(frozen=True, slots=True)
class ProvisionedMaster:
    cluster_id: str
    namespace: str
    secret_name: str
    reused: bool


@dataclass(frozen=True, slots=True)
class MasterDeletionResult:
    cluster_id: str
    outcome: DeletionOutcome


class MasterProvisioner(Protocol):
    def create_virtual_cluster(self, vc: VirtualCluster) -> ProvisionedMaster:
        """Bring up the tenant master and store its admin kubeconfig."""

    def delete_virtual_cluster(self, vc: VirtualCluster) -> MasterDeletionResult:
        """Request deletion of the tenant master; does not wait for it to be gone."""

    def get_master_provisioner(self) -> str:
        """Return the backend identifier."""
