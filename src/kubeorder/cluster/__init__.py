"""Cluster access: kubectl applier and live-object adapter."""

from kubeorder.cluster.base import (
    PERSISTENT_VOLUME_CLAIMS,
    PODS,
    CommandOutput,
    LiveCluster,
    ManifestApplier,
)
from kubeorder.cluster.dynamic import KubernetesCluster
from kubeorder.cluster.kubectl import KubectlApplier

__all__ = [
    "CommandOutput",
    "KubectlApplier",
    "KubernetesCluster",
    "LiveCluster",
    "ManifestApplier",
    "PERSISTENT_VOLUME_CLAIMS",
    "PODS",
]
