"""Provisioner error taxonomy."""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    TRANSPORT = "transport"
    RESPONSE_SHAPE = "response_shape"
    BACKEND = "backend"
    TIMEOUT = "timeout"
    CLUSTER_NOT_FOUND = "cluster_not_found"
    CONFIGURATION = "configuration"


class MasterProvisionerError(Exception):
    """Base provisioner exception for deterministic failure handling."""

    kind: ErrorKind


class ProvisionerTransportError(MasterProvisionerError):
    kind = ErrorKind.TRANSPORT


class ResponseShapeError(MasterProvisionerError):
    kind = ErrorKind.RESPONSE_SHAPE


class BackendBusinessError(MasterProvisionerError):
    """Structured error returned by the backend API."""

    kind = ErrorKind.BACKEND

    def __init__(
        self,
        *,
        error_name: str,
        error_code: str,
        error_message: str,
        request_id: str | None = None,
    ) -> None:
        super().__init__(
            f"Aliyun SDK Error: errorName({error_name}), errorCode({error_code}), "
            f"errorMessage({error_message})"
        )
        self.error_name = error_name
        self.error_code = error_code
        self.error_message = error_message
        self.request_id = request_id


class ProvisionTimeoutError(MasterProvisionerError):
    kind = ErrorKind.TIMEOUT

    def __init__(self, message: str, *, timeout_seconds: float, attempts: int) -> None:
        super().__init__(message)
        self.timeout_seconds = timeout_seconds
        self.attempts = attempts


class ClusterLookupNotFoundError(MasterProvisionerError):
    kind = ErrorKind.CLUSTER_NOT_FOUND

    def __init__(self, cluster_name: str) -> None:
        super().__init__(f"can't find cluster information for cluster({cluster_name})")
        self.cluster_name = cluster_name


class ProvisionerConfigError(MasterProvisionerError):
    kind = ErrorKind.CONFIGURATION
