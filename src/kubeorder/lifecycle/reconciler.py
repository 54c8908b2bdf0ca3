"""
Namespace reconciliation.

Drives a namespace to "no objects owned by the application" by repeating
list -> order -> delete passes. Controllers recreate children after the
first pass, so one pass is never assumed to be enough: the loop re-lists
live state every time and stops when a pass finds nothing left to delete,
or fails once the retry budget is spent.

Retrying is delegated to tenacity so the pass logic stays a plain function
and tests can drive it with a fake sleep.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

import structlog
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_result,
    stop_after_attempt,
    stop_when_event_set,
    wait_fixed,
)

from kubeorder.cluster.base import LiveCluster
from kubeorder.config.settings import Settings
from kubeorder.core.errors import ClusterError, NamespaceNotClearedError, ReconcileCancelledError
from kubeorder.manifests.objects import GroupVersionResource, Resource
from kubeorder.ordering.kinds import DEFAULT_DELETE_ORDER, KindOrder
from kubeorder.ordering.scheduler import Schedule, classify
from kubeorder.ordering.selectors import LabelSelector

logger = structlog.get_logger()

# Endpoints that cannot hold applied objects (or cannot be listed at all).
SKIPPED_RESOURCE_TYPES = frozenset(
    {
        "/v1/bindings",
        "/v1/events",
        "extensions/v1beta1/replicationcontrollers",
        "apps/v1/controllerrevisions",
        "authentication.k8s.io/v1/tokenreviews",
        "authorization.k8s.io/v1/localsubjectaccessreviews",
        "authorization.k8s.io/v1/subjectaccessreviews",
        "authorization.k8s.io/v1/selfsubjectaccessreviews",
        "authorization.k8s.io/v1/selfsubjectrulesreviews",
    }
)


class ReconcileState(str, Enum):
    LISTING = "listing"
    DELETING = "deleting"
    CONVERGED = "converged"
    RETRY_BUDGET_EXHAUSTED = "retry_budget_exhausted"


@dataclass
class RetryPolicy:
    """Budget and pacing of reconciliation passes."""

    attempts: int = 60
    interval: float = 2.0
    grace: float = 20.0
    sleep: Callable[[float], None] = time.sleep
    cancel: Optional[threading.Event] = None

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {self.attempts}")

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> RetryPolicy:
        values = {
            "attempts": settings.reconcile_attempts,
            "interval": settings.reconcile_interval_seconds,
            "grace": settings.reconcile_grace_seconds,
        }
        values.update(overrides)
        return cls(**values)

    @property
    def cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()

    def retrying(self) -> Retrying:
        stop = stop_after_attempt(self.attempts)
        if self.cancel is not None:
            stop = stop | stop_when_event_set(self.cancel)
        return Retrying(
            stop=stop,
            wait=wait_fixed(self.interval),
            retry=retry_if_result(lambda result: result.state is not ReconcileState.CONVERGED),
            sleep=self.sleep,
            before_sleep=_log_still_populated,
        )


@dataclass
class ReconcilePass:
    """What one list/delete pass observed."""

    namespace: str
    attempt: int
    state: ReconcileState
    found: int = 0
    deleted: int = 0
    pending: int = 0
    list_failures: int = 0


def _log_still_populated(retry_state: RetryCallState) -> None:
    result = retry_state.outcome.result() if retry_state.outcome else None
    logger.info(
        "namespace_not_empty_sleeping",
        namespace=getattr(result, "namespace", None),
        attempt=retry_state.attempt_number,
        remaining=getattr(result, "found", None),
    )


class NamespaceReconciler:
    """Clears an application's live objects from namespaces."""

    def __init__(
        self,
        cluster: LiveCluster,
        *,
        kind_order: KindOrder = DEFAULT_DELETE_ORDER,
        policy: Optional[RetryPolicy] = None,
        resource_types: Optional[Iterable[GroupVersionResource]] = None,
        app_slug_annotation: str = "kubeorder.io/app-slug",
        backup_exclude_label: str = "velero.io/exclude-from-backup",
        deletion_weight_annotation: Optional[str] = None,
    ) -> None:
        self._cluster = cluster
        self.kind_order = kind_order
        self.policy = policy or RetryPolicy()
        self._resource_types = list(resource_types) if resource_types is not None else None
        self.app_slug_annotation = app_slug_annotation
        self.backup_exclude_label = backup_exclude_label
        self.deletion_weight_annotation = deletion_weight_annotation
        self.state = ReconcileState.LISTING
        self.passes: List[ReconcilePass] = []

    def reconcile(
        self,
        namespace: str,
        app_slug: str,
        is_restore: bool = False,
        restore_selector: LabelSelector | Mapping[str, Any] | None = None,
    ) -> None:
        """Clear one namespace, then wait out the grace period.

        Raises:
            InvalidLabelSelectorError: ``restore_selector`` is malformed.
            NamespaceNotClearedError: the retry budget ran out.
            ReconcileCancelledError: the policy's cancel event was set.
        """
        self.clear_namespaces(app_slug, [namespace], is_restore, restore_selector)

    def clear_namespaces(
        self,
        app_slug: str,
        namespaces: Sequence[str],
        is_restore: bool = False,
        restore_selector: LabelSelector | Mapping[str, Any] | None = None,
    ) -> None:
        """Clear each namespace in turn; the grace sleep happens once at the end."""
        selector = LabelSelector.parse(restore_selector) if is_restore else None
        self.passes = []
        if not namespaces:
            return

        resource_types = self.deletion_resource_types()
        for namespace in namespaces:
            self._converge(namespace, app_slug, resource_types, is_restore, selector)

        # objects without the ownership annotation are not tracked; give finalizers time
        self.policy.sleep(self.policy.grace)

    def deletion_resource_types(self) -> List[GroupVersionResource]:
        """Resource types to scan, minus endpoints that never hold applied objects."""
        if self._resource_types is not None:
            candidates = self._resource_types
        else:
            candidates = self._cluster.namespaced_resource_types()
        return [gvr for gvr in candidates if gvr.key not in SKIPPED_RESOURCE_TYPES]

    def _converge(
        self,
        namespace: str,
        app_slug: str,
        resource_types: List[GroupVersionResource],
        is_restore: bool,
        selector: Optional[LabelSelector],
    ) -> None:
        logger.info("clearing_namespace", app=app_slug, namespace=namespace)
        self.state = ReconcileState.LISTING
        try:
            self.policy.retrying()(
                self._run_pass, namespace, app_slug, resource_types, is_restore, selector
            )
        except RetryError as exc:
            self.state = ReconcileState.RETRY_BUDGET_EXHAUSTED
            attempts = exc.last_attempt.attempt_number
            if self.policy.cancelled:
                raise ReconcileCancelledError(
                    f"clearing app {app_slug} from namespace {namespace} was cancelled",
                    {"app": app_slug, "namespace": namespace, "attempts": attempts},
                ) from exc
            logger.error(
                "namespace_not_cleared", app=app_slug, namespace=namespace, attempts=attempts
            )
            raise NamespaceNotClearedError(app_slug, namespace, attempts) from exc

        logger.info("namespace_cleared", app=app_slug, namespace=namespace)

    def _run_pass(
        self,
        namespace: str,
        app_slug: str,
        resource_types: List[GroupVersionResource],
        is_restore: bool,
        selector: Optional[LabelSelector],
    ) -> ReconcilePass:
        attempt = sum(1 for p in self.passes if p.namespace == namespace) + 1
        self.state = ReconcileState.LISTING
        resources, pending, list_failures = self._list_owned(
            namespace, app_slug, resource_types, is_restore, selector
        )
        schedule = classify(resources, self.kind_order, None, namespace)

        if not schedule:
            self.state = ReconcileState.CONVERGED
            result = ReconcilePass(
                namespace=namespace,
                attempt=attempt,
                state=ReconcileState.CONVERGED,
                pending=pending,
                list_failures=list_failures,
            )
        else:
            self.state = ReconcileState.DELETING
            deleted = self._delete(namespace, schedule)
            result = ReconcilePass(
                namespace=namespace,
                attempt=attempt,
                state=ReconcileState.DELETING,
                found=len(schedule),
                deleted=deleted,
                pending=pending,
                list_failures=list_failures,
            )

        self.passes.append(result)
        return result

    def _list_owned(
        self,
        namespace: str,
        app_slug: str,
        resource_types: List[GroupVersionResource],
        is_restore: bool,
        selector: Optional[LabelSelector],
    ) -> Tuple[List[Resource], int, int]:
        resources: List[Resource] = []
        pending = 0
        list_failures = 0

        for gvr in resource_types:
            try:
                objects = self._cluster.list_objects(gvr, namespace)
            except ClusterError as exc:
                # some types can't be listed despite discovery saying so
                logger.error(
                    "list_namespace_resources_failed",
                    gvr=gvr.key,
                    namespace=namespace,
                    error=exc.message,
                )
                list_failures += 1
                continue

            for obj in objects:
                labels = obj.labels
                if is_restore:
                    if labels.get(self.backup_exclude_label) == "true":
                        continue
                    if selector is not None and not selector.matches(labels):
                        continue

                if obj.annotations.get(self.app_slug_annotation) != app_slug:
                    continue

                if obj.deletion_timestamp:
                    logger.info("pending_deletion", gvr=gvr.key, name=obj.name)
                    pending += 1
                    continue

                logger.debug("found_owned_object", gvr=gvr.key, kind=obj.kind, name=obj.name)
                resources.append(Resource(obj=obj, gvr=gvr))

        return resources, pending, list_failures

    def _delete(self, namespace: str, schedule: Schedule) -> int:
        deleted = 0
        for kind, resources in schedule.batches(self.deletion_weight_annotation):
            for resource in resources:
                logger.info(
                    "deleting_live_object",
                    namespace=namespace,
                    gvr=resource.gvr.key if resource.gvr else None,
                    kind=kind,
                    name=resource.name,
                )
                try:
                    self._cluster.delete_object(resource.gvr, namespace, resource.name)  # type: ignore[arg-type]
                except ClusterError as exc:
                    if exc.not_found:
                        deleted += 1
                        continue
                    logger.error(
                        "live_object_delete_failed",
                        namespace=namespace,
                        kind=kind,
                        name=resource.name,
                        error=exc.message,
                    )
                    continue
                deleted += 1
        return deleted
