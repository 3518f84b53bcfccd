"""Tenant identity as seen by the master provisioner."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class VirtualCluster:
    name: str
    namespace: str = ""
    uid: str = ""

    @property
    def cluster_key(self) -> str:
        return to_cluster_key(self)


def to_cluster_key(vc: VirtualCluster) -> str:
    """Return the anchor namespace name for the tenant in the super master."""
    if vc.namespace:
        digest = hashlib.sha256(vc.uid.encode("utf-8")).hexdigest()
        return f"{vc.namespace}-{digest[:6]}-{vc.name}"
    return vc.name
