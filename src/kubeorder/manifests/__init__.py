"""Manifest decoding and the unstructured object model."""

from kubeorder.manifests.decoder import (
    ManifestDecodeError,
    decode,
    decode_manifests,
    parse_object,
    split_documents,
)
from kubeorder.manifests.objects import (
    GroupVersionKind,
    GroupVersionResource,
    KubeObject,
    Resource,
)

__all__ = [
    "GroupVersionKind",
    "GroupVersionResource",
    "KubeObject",
    "ManifestDecodeError",
    "Resource",
    "decode",
    "decode_manifests",
    "parse_object",
    "split_documents",
]
