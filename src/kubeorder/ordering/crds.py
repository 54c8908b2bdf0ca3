"""
Index of extension types declared in a batch.

Scans decoded resources for CustomResourceDefinitions and records every
(group, kind, version) they declare. The scheduler uses the index to pull
instances of those types into the ``CustomResource`` bucket.
"""

from __future__ import annotations

from typing import FrozenSet, Iterable, List, Optional

import structlog
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from kubeorder.manifests.objects import GroupVersionKind, Resource
from kubeorder.ordering.kinds import CRD_KIND

logger = structlog.get_logger()


class CRDNames(BaseModel):
    kind: str
    plural: Optional[str] = None


class CRDVersion(BaseModel):
    name: str
    served: bool = True
    storage: bool = False


class CRDSpec(BaseModel):
    group: str
    names: CRDNames
    versions: List[CRDVersion] = Field(default_factory=list)
    # apiextensions.k8s.io/v1beta1 single-version form
    version: Optional[str] = None

    def version_names(self) -> List[str]:
        names = [v.name for v in self.versions]
        if self.version and self.version not in names:
            names.append(self.version)
        return names


class CustomResourceDefinition(BaseModel):
    """Typed view of the fields of a CRD that classification needs."""

    spec: CRDSpec


class CRDIndex:
    """Set of (group, kind, version) keys declared by CRDs in one batch."""

    def __init__(self, keys: Iterable[GroupVersionKind] = ()) -> None:
        self._keys: FrozenSet[GroupVersionKind] = frozenset(keys)

    def __contains__(self, gvk: object) -> bool:
        return gvk in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self):
        return iter(sorted(self._keys))

    def __repr__(self) -> str:
        return f"CRDIndex({sorted(self._keys)!r})"


def build_crd_index(resources: Iterable[Resource]) -> CRDIndex:
    """Build the index for a batch.

    A definition that does not convert into the typed model is skipped; its
    instances then fall back to ordering by their literal kind.
    """
    keys: List[GroupVersionKind] = []
    for resource in resources:
        if resource.kind != CRD_KIND:
            continue
        try:
            crd = CustomResourceDefinition.model_validate(resource.obj.to_dict())  # type: ignore[union-attr]
        except PydanticValidationError as exc:
            logger.info(
                "crd_conversion_failed",
                name=resource.name,
                errors=exc.error_count(),
            )
            continue

        for version in crd.spec.version_names():
            keys.append(
                GroupVersionKind(group=crd.spec.group, version=version, kind=crd.spec.names.kind)
            )

    return CRDIndex(keys)
