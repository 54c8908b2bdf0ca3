"""Executing schedules against the cluster and reconciling namespaces."""

from kubeorder.lifecycle.executor import (
    ExecutionReport,
    LifecycleExecutor,
    Operation,
    ResourceFailure,
    should_wait,
)
from kubeorder.lifecycle.pvcs import delete_app_pvcs
from kubeorder.lifecycle.reconciler import (
    SKIPPED_RESOURCE_TYPES,
    NamespaceReconciler,
    ReconcilePass,
    ReconcileState,
    RetryPolicy,
)

__all__ = [
    "ExecutionReport",
    "LifecycleExecutor",
    "NamespaceReconciler",
    "Operation",
    "ReconcilePass",
    "ReconcileState",
    "ResourceFailure",
    "RetryPolicy",
    "SKIPPED_RESOURCE_TYPES",
    "delete_app_pvcs",
    "should_wait",
]
