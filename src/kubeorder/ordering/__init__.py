"""Kind ordering, CRD classification and scheduling."""

from kubeorder.ordering.crds import CRDIndex, CustomResourceDefinition, build_crd_index
from kubeorder.ordering.kinds import (
    CRD_KIND,
    CUSTOM_RESOURCE,
    DEFAULT_APPLY_ORDER,
    DEFAULT_DELETE_ORDER,
    PVC_KIND,
    UNCLASSIFIED,
    KindOrder,
)
from kubeorder.ordering.scheduler import Schedule, bucket_key, classify, resource_weight
from kubeorder.ordering.selectors import LabelSelector, LabelSelectorRequirement

__all__ = [
    "CRDIndex",
    "CRD_KIND",
    "CUSTOM_RESOURCE",
    "CustomResourceDefinition",
    "DEFAULT_APPLY_ORDER",
    "DEFAULT_DELETE_ORDER",
    "KindOrder",
    "LabelSelector",
    "LabelSelectorRequirement",
    "PVC_KIND",
    "Schedule",
    "UNCLASSIFIED",
    "bucket_key",
    "build_crd_index",
    "classify",
    "resource_weight",
]
