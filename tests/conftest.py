"""Root test configuration."""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
import structlog
from kubeorder.cluster.base import CommandOutput
from kubeorder.core.errors import ClusterError
from kubeorder.manifests.objects import GroupVersionResource, KubeObject


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


DEPLOYMENTS = GroupVersionResource("apps", "v1", "deployments")
SERVICES = GroupVersionResource("", "v1", "services")
CONFIGMAPS = GroupVersionResource("", "v1", "configmaps")
PODS = GroupVersionResource("", "v1", "pods")


def live_object(
    kind: str,
    name: str,
    *,
    api_version: str = "v1",
    app: Optional[str] = "my-app",
    labels: Optional[Dict[str, str]] = None,
    deleting: bool = False,
    spec: Optional[Dict[str, Any]] = None,
) -> KubeObject:
    metadata: Dict[str, Any] = {"name": name, "namespace": "default"}
    if app is not None:
        metadata["annotations"] = {"kubeorder.io/app-slug": app}
    if labels:
        metadata["labels"] = labels
    if deleting:
        metadata["deletionTimestamp"] = "2024-01-01T00:00:00Z"
    content: Dict[str, Any] = {"apiVersion": api_version, "kind": kind, "metadata": metadata}
    if spec is not None:
        content["spec"] = spec
    return KubeObject(content)


class StubCluster:
    """In-memory LiveCluster: deletes remove objects unless they are sticky."""

    def __init__(self, objects: Optional[Dict[GroupVersionResource, List[KubeObject]]] = None):
        self.objects: Dict[GroupVersionResource, List[KubeObject]] = {
            gvr: list(items) for gvr, items in (objects or {}).items()
        }
        self.sticky: set = set()
        self.list_errors: Dict[GroupVersionResource, ClusterError] = {}
        self.delete_errors: Dict[str, ClusterError] = {}
        self.on_delete: Optional[Callable[["StubCluster", GroupVersionResource, str], None]] = None
        self.list_calls: List[GroupVersionResource] = []
        self.list_selectors: List[Optional[str]] = []
        self.deleted: List[str] = []
        self.delete_kwargs: List[Dict[str, Any]] = []

    def namespaced_resource_types(self) -> List[GroupVersionResource]:
        return list(self.objects)

    def list_objects(self, gvr, namespace, label_selector=None):
        self.list_calls.append(gvr)
        self.list_selectors.append(label_selector)
        if gvr in self.list_errors:
            raise self.list_errors[gvr]
        return list(self.objects.get(gvr, []))

    def delete_object(self, gvr, namespace, name, *, grace_period_seconds=None, propagation_policy=None):
        self.delete_kwargs.append(
            {"grace_period_seconds": grace_period_seconds, "propagation_policy": propagation_policy}
        )
        if name in self.delete_errors:
            raise self.delete_errors[name]
        self.deleted.append(name)
        if name not in self.sticky:
            self.objects[gvr] = [o for o in self.objects.get(gvr, []) if o.name != name]
        if self.on_delete is not None:
            self.on_delete(self, gvr, name)


@pytest.fixture
def stub_cluster():
    """Factory for StubCluster instances."""
    return StubCluster


@pytest.fixture
def fake_sleep():
    """Records requested sleeps instead of sleeping."""
    calls: List[float] = []

    def _sleep(seconds: float) -> None:
        calls.append(seconds)

    _sleep.calls = calls  # type: ignore[attr-defined]
    return _sleep


class RecordingApplier:
    """ManifestApplier that records calls and fails when a marker appears in the manifest."""

    def __init__(self, failures: Optional[Dict[str, Exception]] = None):
        self.calls: List[Tuple[str, str, str, bool]] = []
        self.failures = failures or {}

    def _record(self, verb: str, namespace: str, manifest: str, wait: bool) -> CommandOutput:
        self.calls.append((verb, namespace, manifest, wait))
        for marker, error in self.failures.items():
            if marker in manifest:
                raise error
        return CommandOutput(stdout=f"{verb}d")

    def apply(self, namespace, manifest, wait):
        return self._record("apply", namespace, manifest, wait)

    def remove(self, namespace, manifest, wait):
        return self._record("delete", namespace, manifest, wait)
