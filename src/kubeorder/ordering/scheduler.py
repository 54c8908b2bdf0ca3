"""
Resource scheduling.

``classify`` groups resources into per-kind buckets and computes a single
deterministic kind sequence for the batch:

    pre_order + sorted(kinds first seen in this batch) + post_order

It is a pure function: the input resources are never mutated and a fresh
``Schedule`` is returned on every call.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

import structlog

from kubeorder.manifests.objects import Resource
from kubeorder.ordering.crds import CRDIndex
from kubeorder.ordering.kinds import CUSTOM_RESOURCE, UNCLASSIFIED, KindOrder

logger = structlog.get_logger()


@dataclass(frozen=True)
class Schedule:
    """Bucketed resources plus the order in which buckets are processed."""

    buckets: Mapping[str, Tuple[Resource, ...]] = field(default_factory=dict)
    kinds: Tuple[str, ...] = ()

    def __iter__(self) -> Iterator[Resource]:
        for kind in self.kinds:
            yield from self.buckets.get(kind, ())

    def __len__(self) -> int:
        return sum(len(items) for items in self.buckets.values())

    def __bool__(self) -> bool:
        return len(self) > 0

    def bucket(self, kind: str) -> Tuple[Resource, ...]:
        return self.buckets.get(kind, ())

    def batches(
        self, weight_annotation: Optional[str] = None
    ) -> Iterator[Tuple[str, Tuple[Resource, ...]]]:
        """Yield ``(kind, resources)`` for every non-empty bucket, in order.

        With ``weight_annotation`` set, each bucket is sorted by the integer
        value of that annotation (ascending, stable).
        """
        for kind in self.kinds:
            items = self.buckets.get(kind, ())
            if not items:
                continue
            if weight_annotation:
                items = tuple(sorted(items, key=lambda r: resource_weight(r, weight_annotation)))
            yield kind, items


def resource_weight(resource: Resource, annotation: str) -> int:
    """Integer weight from an annotation; missing or malformed counts as 0."""
    if resource.obj is None:
        return 0
    raw = resource.obj.annotations.get(annotation)
    if not raw:
        return 0
    try:
        return int(raw)
    except ValueError:
        logger.warning(
            "invalid_weight_annotation",
            annotation=annotation,
            value=raw,
            resource=resource.describe(),
        )
        return 0


def bucket_key(resource: Resource, kind_order: KindOrder, crd_index: Optional[CRDIndex]) -> str:
    """Name of the bucket a resource belongs to."""
    kind = resource.kind
    if kind is None:
        return UNCLASSIFIED
    if crd_index is not None and resource.gvk in crd_index:
        # instances of batch-declared types keep their own slot only if the table names it
        return kind if kind in kind_order else CUSTOM_RESOURCE
    return kind


def classify(
    resources: Iterable[Resource],
    kind_order: KindOrder,
    crd_index: Optional[CRDIndex] = None,
    default_namespace: str = "",
) -> Schedule:
    """Group ``resources`` by kind and order the groups.

    Resources without a namespace get ``default_namespace``. Undecodable
    documents go to the ``UNCLASSIFIED`` bucket. Within a bucket, input order
    is preserved.
    """
    buckets: Dict[str, List[Resource]] = {kind: [] for kind in kind_order.declared}
    seen: List[str] = []

    for resource in resources:
        if resource.obj is not None and not resource.namespace and default_namespace:
            resource = replace(resource, obj=resource.obj.with_namespace(default_namespace))

        key = bucket_key(resource, kind_order, crd_index)
        if key not in buckets:
            buckets[key] = []
            seen.append(key)
        buckets[key].append(resource)

    return Schedule(
        buckets={kind: tuple(items) for kind, items in buckets.items()},
        kinds=kind_order.sequence(seen),
    )
