"""
Ordered apply/delete of a scheduled batch.

Resources are processed one at a time in schedule order. A failure on one
resource is logged and recorded, and the batch carries on: the report, not
an exception, tells the caller what went wrong.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import structlog

from kubeorder.cluster.base import ManifestApplier
from kubeorder.core.errors import ClusterError, KubectlError
from kubeorder.manifests.objects import Resource
from kubeorder.ordering.kinds import PVC_KIND, UNCLASSIFIED
from kubeorder.ordering.scheduler import Schedule

logger = structlog.get_logger()


class Operation(str, Enum):
    APPLY = "apply"
    DELETE = "delete"


@dataclass
class ResourceFailure:
    """One resource the cluster refused."""

    kind: str
    name: str
    namespace: str
    error: str
    stdout: str = ""
    stderr: str = ""


@dataclass
class ExecutionReport:
    """Outcome of executing one schedule."""

    operation: Operation
    processed: List[str] = field(default_factory=list)
    failures: List[ResourceFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.processed)

    @property
    def success(self) -> bool:
        return not self.failures


def should_wait(resource: Resource, operation: Operation, wait: bool) -> bool:
    """Per-kind override of the caller's wait flag.

    Blocking on a claim deletion deadlocks while a pod that mounts the claim
    is still around, so claims are never waited on during delete.
    """
    if operation is Operation.DELETE and resource.kind == PVC_KIND:
        return False
    return wait


class LifecycleExecutor:
    """Walks a schedule and applies or deletes each resource."""

    def __init__(
        self,
        applier: ManifestApplier,
        *,
        creation_weight_annotation: Optional[str] = None,
        deletion_weight_annotation: Optional[str] = None,
    ) -> None:
        self._applier = applier
        self._weights = {
            Operation.APPLY: creation_weight_annotation,
            Operation.DELETE: deletion_weight_annotation,
        }

    def execute(
        self,
        schedule: Schedule,
        operation: Operation,
        *,
        wait: bool = False,
        namespace: str = "",
    ) -> ExecutionReport:
        """Run ``operation`` over every resource of ``schedule``.

        ``namespace`` is used for documents that carry no namespace of their
        own (undecodable ones included).
        """
        report = ExecutionReport(operation=operation)
        verb = "applying" if operation is Operation.APPLY else "deleting"

        for kind, resources in schedule.batches(self._weights[operation]):
            logger.info(f"{verb}_kind", kind=kind or "<unidentified>", count=len(resources))
            for resource in resources:
                self._execute_one(resource, operation, wait, namespace, report)

        logger.info(
            f"{operation.value}_finished",
            processed=report.total,
            failed=len(report.failures),
        )
        return report

    def _execute_one(
        self,
        resource: Resource,
        operation: Operation,
        wait: bool,
        default_namespace: str,
        report: ExecutionReport,
    ) -> None:
        namespace = resource.namespace or default_namespace
        resource_wait = should_wait(resource, operation, wait)
        label = resource.describe()

        if resource.kind is None:
            logger.info(f"{operation.value}_unidentified_manifest", manifest=resource.manifest)
        else:
            logger.info(
                f"{operation.value}_manifest",
                resource=label,
                namespace=namespace,
                wait=resource_wait,
            )

        report.processed.append(label)
        try:
            if operation is Operation.APPLY:
                self._applier.apply(namespace, resource.manifest, resource_wait)
            else:
                self._applier.remove(namespace, resource.manifest, resource_wait)
        except KubectlError as exc:
            failure = ResourceFailure(
                kind=resource.kind or UNCLASSIFIED,
                name=resource.name,
                namespace=namespace,
                error=exc.message,
                stdout=exc.stdout,
                stderr=exc.stderr,
            )
        except ClusterError as exc:
            failure = ResourceFailure(
                kind=resource.kind or UNCLASSIFIED,
                name=resource.name,
                namespace=namespace,
                error=exc.message,
            )
        except Exception as exc:
            failure = ResourceFailure(
                kind=resource.kind or UNCLASSIFIED,
                name=resource.name,
                namespace=namespace,
                error=str(exc),
            )
        else:
            logger.info(f"{operation.value}_succeeded", resource=label, namespace=namespace)
            return

        logger.warning(
            f"{operation.value}_failed",
            resource=label,
            namespace=namespace,
            stdout=failure.stdout,
            stderr=failure.stderr,
            error=failure.error,
        )
        report.failures.append(failure)
