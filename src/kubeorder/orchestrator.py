"""
Orchestrator for ordered install/upgrade/rollback/uninstall of manifests.

Wires the decoder, CRD index, scheduler, executor and reconciler together
behind the two entry points callers use: ``apply_or_delete`` for a rendered
batch and ``reconcile_namespace`` for driving a namespace to empty. The
cluster capabilities are injected, never looked up globally.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

import structlog
from pydantic import BaseModel, Field

from kubeorder.cluster.base import LiveCluster, ManifestApplier
from kubeorder.cluster.dynamic import KubernetesCluster
from kubeorder.cluster.kubectl import KubectlApplier
from kubeorder.config.settings import Settings, get_settings
from kubeorder.core.errors import ConfigurationError
from kubeorder.lifecycle.executor import ExecutionReport, LifecycleExecutor, Operation
from kubeorder.lifecycle.pvcs import delete_app_pvcs
from kubeorder.lifecycle.reconciler import NamespaceReconciler, RetryPolicy
from kubeorder.logging import bind_context, clear_context, configure_logging
from kubeorder.manifests.decoder import decode_manifests, split_documents
from kubeorder.ordering.crds import build_crd_index
from kubeorder.ordering.kinds import DEFAULT_APPLY_ORDER, DEFAULT_DELETE_ORDER, KindOrder
from kubeorder.ordering.scheduler import Schedule, classify
from kubeorder.ordering.selectors import LabelSelector

logger = structlog.get_logger()

Documents = Union[str, Iterable[str]]


class UndeployRequest(BaseModel):
    """Everything needed to uninstall or roll back one application."""

    app_slug: str
    namespace: str
    manifests: Union[str, List[str]] = Field(default_factory=list)
    wait: bool = False
    clear_namespaces: List[str] = Field(default_factory=list)
    clear_pvcs: bool = False
    is_restore: bool = False
    restore_label_selector: Optional[Dict[str, Any]] = None


@dataclass
class UndeployResult:
    """Result of an undeploy run."""

    app_slug: str
    delete_report: ExecutionReport
    cleared_namespaces: List[str] = field(default_factory=list)
    deleted_pvcs: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0


def as_documents(raw: Documents) -> List[str]:
    """Normalise a multi-document string or a list of documents."""
    if isinstance(raw, str):
        return split_documents(raw)
    documents: List[str] = []
    for item in raw:
        documents.extend(split_documents(item))
    return documents


class Orchestrator:
    """Ordered apply/delete and namespace reconciliation for one cluster."""

    def __init__(
        self,
        applier: ManifestApplier,
        cluster: Optional[LiveCluster] = None,
        settings: Optional[Settings] = None,
        *,
        apply_order: KindOrder = DEFAULT_APPLY_ORDER,
        delete_order: KindOrder = DEFAULT_DELETE_ORDER,
        policy: Optional[RetryPolicy] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.applier = applier
        self.cluster = cluster
        self.apply_order = apply_order
        self.delete_order = delete_order
        self.policy = policy or RetryPolicy.from_settings(self.settings)
        self.executor = LifecycleExecutor(
            applier,
            creation_weight_annotation=self.settings.creation_weight_annotation,
            deletion_weight_annotation=self.settings.deletion_weight_annotation,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> Orchestrator:
        """Build an orchestrator backed by kubectl and the kubernetes API."""
        settings = settings or get_settings()
        configure_logging(settings.log_level)
        applier = KubectlApplier(
            settings.kubectl_path,
            kubeconfig=settings.kubeconfig,
            context=settings.context,
            timeout=settings.kubectl_timeout_seconds,
        )
        cluster = KubernetesCluster(kubeconfig=settings.kubeconfig, context=settings.context)
        return cls(applier, cluster, settings)

    def kind_order(self, operation: Operation) -> KindOrder:
        return self.apply_order if operation is Operation.APPLY else self.delete_order

    def plan(self, raw_documents: Documents, namespace: str, operation: Operation) -> Schedule:
        """Compute the schedule for a batch without touching the cluster."""
        resources = decode_manifests(as_documents(raw_documents))
        crd_index = build_crd_index(resources)
        return classify(resources, self.kind_order(operation), crd_index, namespace)

    def apply_or_delete(
        self,
        raw_documents: Documents,
        namespace: str,
        wait: bool = False,
        operation: Operation = Operation.APPLY,
    ) -> ExecutionReport:
        """Apply or delete a rendered batch in kind order.

        Individual failures are logged and listed on the report; they do not
        raise.
        """
        schedule = self.plan(raw_documents, namespace, operation)
        logger.info(
            "batch_scheduled",
            operation=operation.value,
            namespace=namespace,
            resources=len(schedule),
            kinds=[kind for kind, _ in schedule.batches()],
        )
        return self.executor.execute(schedule, operation, wait=wait, namespace=namespace)

    def apply(self, raw_documents: Documents, namespace: str, wait: bool = False) -> ExecutionReport:
        return self.apply_or_delete(raw_documents, namespace, wait, Operation.APPLY)

    def delete(self, raw_documents: Documents, namespace: str, wait: bool = False) -> ExecutionReport:
        return self.apply_or_delete(raw_documents, namespace, wait, Operation.DELETE)

    def reconciler(self) -> NamespaceReconciler:
        if self.cluster is None:
            raise ConfigurationError("namespace reconciliation requires a live cluster adapter")
        return NamespaceReconciler(
            self.cluster,
            kind_order=self.delete_order,
            policy=self.policy,
            app_slug_annotation=self.settings.app_slug_annotation,
            backup_exclude_label=self.settings.backup_exclude_label,
            deletion_weight_annotation=self.settings.deletion_weight_annotation,
        )

    def reconcile_namespace(
        self,
        namespace: str,
        app_slug: str,
        is_restore: bool = False,
        restore_selector: LabelSelector | Dict[str, Any] | None = None,
    ) -> None:
        """Delete the application's live objects until the namespace is clear.

        Raises:
            NamespaceNotClearedError: objects remained after the retry budget.
            InvalidLabelSelectorError: ``restore_selector`` is malformed.
        """
        self.reconciler().reconcile(namespace, app_slug, is_restore, restore_selector)

    def undeploy(self, request: UndeployRequest) -> UndeployResult:
        """Uninstall/roll back: delete manifests, clear namespaces, then claims."""
        start = time.time()
        bind_context(app=request.app_slug, namespace=request.namespace)
        try:
            report = self.delete(request.manifests, request.namespace, request.wait)
            result = UndeployResult(app_slug=request.app_slug, delete_report=report)

            if request.clear_namespaces:
                self.reconciler().clear_namespaces(
                    request.app_slug,
                    request.clear_namespaces,
                    request.is_restore,
                    request.restore_label_selector,
                )
                result.cleared_namespaces = list(request.clear_namespaces)

            if request.clear_pvcs:
                if self.cluster is None:
                    raise ConfigurationError("clearing pvcs requires a live cluster adapter")
                selector = request.restore_label_selector if request.is_restore else None
                result.deleted_pvcs = delete_app_pvcs(
                    self.cluster,
                    request.namespace,
                    request.app_slug,
                    selector,
                    app_label=self.settings.app_slug_annotation,
                )

            result.duration_seconds = time.time() - start
            logger.info(
                "undeploy_finished",
                deleted=report.total,
                failed=len(report.failures),
                cleared_namespaces=len(result.cleared_namespaces),
                deleted_pvcs=len(result.deleted_pvcs),
                duration_seconds=round(result.duration_seconds, 2),
            )
            return result
        finally:
            clear_context()
