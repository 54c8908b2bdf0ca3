"""Cluster capabilities consumed by the lifecycle executor and reconciler."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, runtime_checkable

from kubeorder.manifests.objects import GroupVersionResource, KubeObject

PODS = GroupVersionResource("", "v1", "pods")
PERSISTENT_VOLUME_CLAIMS = GroupVersionResource("", "v1", "persistentvolumeclaims")


@dataclass
class CommandOutput:
    """Captured output of one applier call."""

    stdout: str = ""
    stderr: str = ""


@runtime_checkable
class ManifestApplier(Protocol):
    """Creates/patches or deletes objects from raw manifest text."""

    def apply(self, namespace: str, manifest: str, wait: bool) -> CommandOutput:
        """Create or patch the objects in ``manifest``.

        Raises:
            ClusterError: the cluster rejected the manifest.
        """
        ...

    def remove(self, namespace: str, manifest: str, wait: bool) -> CommandOutput:
        """Delete the objects in ``manifest``.

        Raises:
            ClusterError: the cluster rejected the deletion.
        """
        ...


@runtime_checkable
class LiveCluster(Protocol):
    """Query and delete live objects by resource type."""

    def namespaced_resource_types(self) -> List[GroupVersionResource]:
        """Namespaced resource types that support list and delete."""
        ...

    def list_objects(
        self,
        gvr: GroupVersionResource,
        namespace: str,
        label_selector: Optional[str] = None,
    ) -> List[KubeObject]:
        ...

    def delete_object(
        self,
        gvr: GroupVersionResource,
        namespace: str,
        name: str,
        *,
        grace_period_seconds: Optional[int] = None,
        propagation_policy: Optional[str] = None,
    ) -> None:
        ...
