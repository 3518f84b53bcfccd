"""Master provisioners."""

from vc_manager.provisioning.errors import (
    BackendBusinessError,
    ClusterLookupNotFoundError,
    ErrorKind,
    MasterProvisionerError,
    ProvisionerConfigError,
    ProvisionerTransportError,
    ProvisionTimeoutError,
    ResponseShapeError,
)
from vc_manager.provisioning.providers.base import (
    DeletionOutcome,
    MasterDeletionResult,
    MasterProvisioner,
    ProvisionedMaster,
)
from vc_manager.provisioning.providers.factory import create_master_provisioner

__all__ = [
    "BackendBusinessError",
    "ClusterLookupNotFoundError",
    "DeletionOutcome",
    "ErrorKind",
    "MasterDeletionResult",
    "MasterProvisioner",
    "MasterProvisionerError",
    "ProvisionTimeoutError",
    "ProvisionedMaster",
    "ProvisionerConfigError",
    "ProvisionerTransportError",
    "ResponseShapeError",
    "create_master_provisioner",
]
