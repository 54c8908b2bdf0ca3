"""Delete the storage claims mounted by an application's pods."""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

import structlog

from kubeorder.cluster.base import PERSISTENT_VOLUME_CLAIMS, PODS, LiveCluster
from kubeorder.core.errors import ClusterError
from kubeorder.ordering.selectors import LabelSelector

logger = structlog.get_logger()


def delete_app_pvcs(
    cluster: LiveCluster,
    namespace: str,
    app_slug: str,
    selector: LabelSelector | Mapping[str, Any] | None = None,
    *,
    app_label: str = "kubeorder.io/app-slug",
) -> List[str]:
    """Delete every claim referenced by a volume of the application's pods.

    Pods are matched by ``selector`` plus ``app_label=app_slug``. Claims are
    deleted immediately with background propagation; claims that are already
    gone are ignored. Returns the claim names that were targeted.

    Raises:
        ClusterError: listing pods or deleting a claim failed.
    """
    pod_selector = (LabelSelector.parse(selector) or LabelSelector()).with_label(app_label, app_slug)
    query = pod_selector.to_query()

    try:
        pods = cluster.list_objects(PODS, namespace, label_selector=query)
    except ClusterError as e:
        raise ClusterError("failed to get list of app pods", {"namespace": namespace}) from e

    claims: List[str] = []
    for pod in pods:
        for volume in pod.get("spec", "volumes", default=None) or []:
            claim = _claim_name(volume)
            if claim and claim not in claims:
                claims.append(claim)

    if not claims:
        logger.info("no_pvcs_to_delete", namespace=namespace, selector=query)
        return []

    logger.info("deleting_pvcs", namespace=namespace, selector=query, count=len(claims))
    for claim in claims:
        logger.info("deleting_pvc", namespace=namespace, name=claim)
        try:
            cluster.delete_object(
                PERSISTENT_VOLUME_CLAIMS,
                namespace,
                claim,
                grace_period_seconds=0,
                propagation_policy="Background",
            )
        except ClusterError as e:
            if e.not_found:
                continue
            raise ClusterError(f"failed to delete pvc {claim}", {"namespace": namespace}) from e

    return claims


def _claim_name(volume: Any) -> Optional[str]:
    if not isinstance(volume, Mapping):
        return None
    source = volume.get("persistentVolumeClaim")
    if not isinstance(source, Mapping):
        return None
    name = source.get("claimName")
    return str(name) if name else None
