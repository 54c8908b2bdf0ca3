"""
Schema-less cluster object model.

Cluster objects arrive as arbitrary nested mappings (decoded manifests or
items returned by the dynamic API). ``KubeObject`` wraps such a mapping and
exposes the handful of fields ordering and reconciliation care about, so the
rest of the package never digs through raw dictionaries.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Mapping, NamedTuple


class GroupVersionKind(NamedTuple):
    """Fully-qualified type identifier of an object."""

    group: str
    version: str
    kind: str

    @classmethod
    def from_api_version(cls, api_version: str, kind: str) -> GroupVersionKind:
        group, _, version = api_version.rpartition("/")
        return cls(group=group, version=version, kind=kind)

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    def __str__(self) -> str:
        return f"{self.group}/{self.version}/{self.kind}"


class GroupVersionResource(NamedTuple):
    """Identifier of a listable collection endpoint."""

    group: str
    version: str
    resource: str

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    @property
    def key(self) -> str:
        """Slash-joined form, ``/v1/events`` for the core group."""
        return f"{self.group}/{self.version}/{self.resource}"

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class KubeObject:
    """Read-only view over an unstructured cluster object."""

    content: Mapping[str, Any] = field(default_factory=dict)

    @property
    def api_version(self) -> str:
        return str(self.content.get("apiVersion") or "")

    @property
    def kind(self) -> str:
        return str(self.content.get("kind") or "")

    @property
    def gvk(self) -> GroupVersionKind:
        return GroupVersionKind.from_api_version(self.api_version, self.kind)

    @property
    def group(self) -> str:
        return self.gvk.group

    @property
    def version(self) -> str:
        return self.gvk.version

    @property
    def metadata(self) -> Mapping[str, Any]:
        metadata = self.content.get("metadata")
        return metadata if isinstance(metadata, Mapping) else {}

    @property
    def name(self) -> str:
        return str(self.metadata.get("name") or "")

    @property
    def namespace(self) -> str:
        return str(self.metadata.get("namespace") or "")

    @property
    def labels(self) -> dict[str, str]:
        return _string_map(self.metadata.get("labels"))

    @property
    def annotations(self) -> dict[str, str]:
        return _string_map(self.metadata.get("annotations"))

    @property
    def deletion_timestamp(self) -> str | None:
        value = self.metadata.get("deletionTimestamp")
        return str(value) if value else None

    def get(self, *path: str, default: Any = None) -> Any:
        """Walk nested mappings, returning ``default`` on the first miss."""
        node: Any = self.content
        for key in path:
            if not isinstance(node, Mapping) or key not in node:
                return default
            node = node[key]
        return node

    def with_namespace(self, namespace: str) -> KubeObject:
        """Return a copy with ``metadata.namespace`` set."""
        content = copy.deepcopy(dict(self.content))
        metadata = content.get("metadata")
        if not isinstance(metadata, dict):
            metadata = {}
            content["metadata"] = metadata
        metadata["namespace"] = namespace
        return KubeObject(content)

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(dict(self.content))


def _string_map(value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(k): "" if v is None else str(v) for k, v in value.items()}


@dataclass(frozen=True)
class Resource:
    """One manifest document (or live object) moving through a batch.

    ``obj`` is ``None`` when the document could not be decoded; the raw
    ``manifest`` text is kept so the document can still be sent to kubectl or
    at least logged. Live objects found during reconciliation carry the
    ``gvr`` they were listed from and an empty ``manifest``.
    """

    manifest: str = ""
    obj: KubeObject | None = None
    gvr: GroupVersionResource | None = None

    @property
    def kind(self) -> str | None:
        if self.obj is None or not self.obj.kind:
            return None
        return self.obj.kind

    @property
    def gvk(self) -> GroupVersionKind | None:
        if self.kind is None:
            return None
        return self.obj.gvk  # type: ignore[union-attr]

    @property
    def name(self) -> str:
        return self.obj.name if self.obj is not None else ""

    @property
    def namespace(self) -> str:
        return self.obj.namespace if self.obj is not None else ""

    def describe(self) -> str:
        """Short ``group/version/kind/name`` label for logs and reports."""
        if self.gvk is None:
            return "<unidentified>"
        return f"{self.gvk}/{self.name}"
