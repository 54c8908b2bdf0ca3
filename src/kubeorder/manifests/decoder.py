"""
Manifest decoding.

Turns raw YAML or JSON documents into ``Resource`` records. Decoding is
best-effort: a document that cannot be parsed, or that lacks ``apiVersion``
or ``kind``, still yields a ``Resource`` (with no object attached) so that it
is kept in the batch instead of silently dropped.
"""

from __future__ import annotations

import re
from typing import Iterable, List

import structlog
import yaml

from kubeorder.manifests.objects import KubeObject, Resource

logger = structlog.get_logger()

_DOCUMENT_SEPARATOR = re.compile(r"^---[ \t]*(?:#.*)?$", re.MULTILINE)


class ManifestDecodeError(ValueError):
    """Raised internally when a document is not a cluster object."""


def parse_object(raw: str) -> KubeObject:
    """Parse the first document in ``raw`` into a ``KubeObject``.

    Raises:
        ManifestDecodeError: the text is not YAML/JSON, is empty, or is not an
            object with ``apiVersion`` and ``kind``.
    """
    try:
        documents = yaml.safe_load_all(raw)
        data = next((doc for doc in documents if doc is not None), None)
    except yaml.YAMLError as exc:
        raise ManifestDecodeError(f"error decoding yaml: {exc}") from exc

    if data is None:
        raise ManifestDecodeError("document is empty")
    if not isinstance(data, dict):
        raise ManifestDecodeError(f"document is a {type(data).__name__}, not an object")

    for key in ("apiVersion", "kind"):
        value = data.get(key)
        if not isinstance(value, str) or not value:
            raise ManifestDecodeError(f"object has no {key}")

    return KubeObject(data)


def decode(raw: str) -> Resource:
    """Decode one raw document. Never raises."""
    try:
        obj = parse_object(raw)
    except ManifestDecodeError as exc:
        logger.info("manifest_decode_failed", error=str(exc))
        return Resource(manifest=raw)
    return Resource(manifest=raw, obj=obj)


def decode_manifests(manifests: Iterable[str]) -> List[Resource]:
    """Decode a batch. Undecodable documents are kept without an object."""
    return [decode(raw) for raw in manifests]


def split_documents(text: str) -> List[str]:
    """Split multi-document YAML text, dropping empty documents."""
    documents = []
    for chunk in _DOCUMENT_SEPARATOR.split(text):
        stripped = "\n".join(
            line for line in chunk.splitlines() if line.strip() and not line.lstrip().startswith("#")
        )
        if stripped:
            documents.append(chunk.strip("\n") + "\n")
    return documents
