"""
Live-cluster adapter over the kubernetes dynamic client.

Lists and deletes arbitrary resource types by group/version/resource, which
is what namespace reconciliation needs since it must see every object an
application left behind, not only the ones named in its manifests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import DynamicApiError, ResourceNotFoundError
from urllib3.exceptions import HTTPError as TransportError

from kubeorder.core.errors import ClusterError, ConfigurationError
from kubeorder.manifests.objects import GroupVersionResource, KubeObject

logger = structlog.get_logger()


@dataclass
class KubernetesCluster:
    """
    Dynamic-client implementation of ``LiveCluster``.

    Configuration:
        kubeconfig: Path to kubeconfig file (optional)
        context: Kubeconfig context to use (optional)
        timeout: API request timeout in seconds

    In-cluster configuration is tried first, then the kubeconfig.
    """

    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    timeout: float = 30.0

    _dynamic: Any = field(default=None, repr=False, compare=False)

    def _get_dynamic_client(self) -> DynamicClient:
        if self._dynamic is not None:
            return self._dynamic

        try:
            config.load_incluster_config()
        except config.ConfigException:
            try:
                config.load_kube_config(config_file=self.kubeconfig, context=self.context)
            except config.ConfigException as e:
                raise ConfigurationError(f"Failed to load Kubernetes config: {e}") from e

        self._dynamic = DynamicClient(client.ApiClient())
        return self._dynamic

    def _resource_api(self, gvr: GroupVersionResource) -> Any:
        try:
            return self._get_dynamic_client().resources.get(
                api_version=gvr.api_version, name=gvr.resource
            )
        except ResourceNotFoundError as e:
            raise ClusterError(f"resource type {gvr} is not served", status=404) from e
        except TransportError as e:
            raise ClusterError(f"discovery of {gvr} failed", {"reason": str(e)}) from e

    def namespaced_resource_types(self) -> List[GroupVersionResource]:
        gvrs: Dict[str, GroupVersionResource] = {}
        for resource in self._get_dynamic_client().resources.search():
            name = getattr(resource, "name", None) or ""
            verbs = getattr(resource, "verbs", None) or []
            if not name or "/" in name:
                continue
            if not getattr(resource, "namespaced", False):
                continue
            if "list" not in verbs or "delete" not in verbs:
                continue
            if not getattr(resource, "preferred", True):
                continue
            gvr = GroupVersionResource(resource.group or "", resource.api_version, name)
            gvrs[gvr.key] = gvr
        return [gvrs[key] for key in sorted(gvrs)]

    def list_objects(
        self,
        gvr: GroupVersionResource,
        namespace: str,
        label_selector: Optional[str] = None,
    ) -> List[KubeObject]:
        api = self._resource_api(gvr)
        try:
            result = api.get(
                namespace=namespace,
                label_selector=label_selector,
                _request_timeout=self.timeout,
            )
        except (ApiException, DynamicApiError) as e:
            raise ClusterError(
                f"failed to list {gvr} in namespace {namespace}",
                {"reason": getattr(e, "reason", str(e))},
                status=getattr(e, "status", None),
            ) from e
        except TransportError as e:
            raise ClusterError(
                f"failed to list {gvr} in namespace {namespace}", {"reason": str(e)}
            ) from e

        payload = result.to_dict()
        objects = []
        for item in payload.get("items") or []:
            # list items omit their own type meta
            item.setdefault("apiVersion", gvr.api_version)
            item.setdefault("kind", getattr(api, "kind", "") or "")
            objects.append(KubeObject(item))
        return objects

    def delete_object(
        self,
        gvr: GroupVersionResource,
        namespace: str,
        name: str,
        *,
        grace_period_seconds: Optional[int] = None,
        propagation_policy: Optional[str] = None,
    ) -> None:
        api = self._resource_api(gvr)
        body: Dict[str, Any] = {}
        if grace_period_seconds is not None:
            body["gracePeriodSeconds"] = grace_period_seconds
        if propagation_policy is not None:
            body["propagationPolicy"] = propagation_policy
        try:
            api.delete(name=name, namespace=namespace, body=body or None)
        except (ApiException, DynamicApiError) as e:
            raise ClusterError(
                f"failed to delete {gvr} {name} in namespace {namespace}",
                {"reason": getattr(e, "reason", str(e))},
                status=getattr(e, "status", None),
            ) from e
        except TransportError as e:
            raise ClusterError(
                f"failed to delete {gvr} {name} in namespace {namespace}", {"reason": str(e)}
            ) from e
