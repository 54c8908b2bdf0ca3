"""
Kind ordering tables.

A ``KindOrder`` names the kinds that must be handled first (``pre_order``)
and last (``post_order``). Every other kind seen in a batch lands between
the two, sorted alphabetically. Apply and delete use different tables since
creation wants dependencies first and deletion wants dependents first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

# Bucket for instances of types declared by a CRD in the same batch.
CUSTOM_RESOURCE = "CustomResource"

# Bucket for documents whose kind could not be decoded.
UNCLASSIFIED = ""

CRD_KIND = "CustomResourceDefinition"
PVC_KIND = "PersistentVolumeClaim"


@dataclass(frozen=True)
class KindOrder:
    """Pre- and post-order kind lists."""

    pre_order: Tuple[str, ...] = ()
    post_order: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "pre_order", tuple(self.pre_order))
        object.__setattr__(self, "post_order", tuple(self.post_order))
        overlap = set(self.pre_order) & set(self.post_order)
        if overlap:
            raise ValueError(f"kinds listed in both pre and post order: {sorted(overlap)}")

    def __contains__(self, kind: object) -> bool:
        return kind in self.pre_order or kind in self.post_order

    @property
    def declared(self) -> Tuple[str, ...]:
        return self.pre_order + self.post_order

    def sequence(self, default_kinds: Iterable[str]) -> Tuple[str, ...]:
        """Full kind sequence: pre-order, sorted defaults, post-order."""
        defaults = sorted({kind for kind in default_kinds if kind not in self})
        return self.pre_order + tuple(defaults) + self.post_order


DEFAULT_DELETE_ORDER = KindOrder(
    pre_order=(
        CUSTOM_RESOURCE,
        "APIService",
        "Ingress",
        "Service",
        "CronJob",
        "Job",
        "StatefulSet",
        "HorizontalPodAutoscaler",
        "Deployment",
        "ReplicaSet",
        "ReplicationController",
        "Pod",
        "DaemonSet",
        "RoleBindingList",
        "RoleBinding",
        "RoleList",
        "Role",
        "ClusterRoleBindingList",
        "ClusterRoleBinding",
        "ClusterRoleList",
        "ClusterRole",
    ),
    post_order=(
        CRD_KIND,
        PVC_KIND,
        "PersistentVolume",
        "StorageClass",
        "ConfigMap",
        "SecretList",
        "Secret",
        "ServiceAccount",
        "PodDisruptionBudget",
        "PodSecurityPolicy",
        "LimitRange",
        "ResourceQuota",
    ),
)

DEFAULT_APPLY_ORDER = KindOrder(
    pre_order=(
        "Namespace",
        "NetworkPolicy",
        "ResourceQuota",
        "LimitRange",
        "PodSecurityPolicy",
        "PodDisruptionBudget",
        "ServiceAccount",
        "Secret",
        "SecretList",
        "ConfigMap",
        "StorageClass",
        "PersistentVolume",
        PVC_KIND,
        CRD_KIND,
        "ClusterRole",
        "ClusterRoleList",
        "ClusterRoleBinding",
        "ClusterRoleBindingList",
        "Role",
        "RoleList",
        "RoleBinding",
        "RoleBindingList",
        "Service",
        "DaemonSet",
        "Pod",
        "ReplicationController",
        "ReplicaSet",
        "Deployment",
        "HorizontalPodAutoscaler",
        "StatefulSet",
        "Job",
        "CronJob",
        "IngressClass",
        "Ingress",
        "APIService",
    ),
    post_order=(CUSTOM_RESOURCE,),
)
