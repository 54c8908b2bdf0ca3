"""
Label selectors.

Mirrors the cluster's ``LabelSelector`` shape (``matchLabels`` plus
``matchExpressions``) and evaluates it client-side against object labels.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from kubeorder.core.errors import InvalidLabelSelectorError

OPERATORS = ("In", "NotIn", "Exists", "DoesNotExist")


class LabelSelectorRequirement(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: str
    operator: str
    values: List[str] = Field(default_factory=list)

    @field_validator("operator")
    @classmethod
    def _known_operator(cls, value: str) -> str:
        if value not in OPERATORS:
            raise ValueError(f"{value!r} is not a valid label selector operator")
        return value

    @model_validator(mode="after")
    def _values_match_operator(self) -> "LabelSelectorRequirement":
        if self.operator in ("In", "NotIn") and not self.values:
            raise ValueError(f"values must be non-empty for operator {self.operator}")
        if self.operator in ("Exists", "DoesNotExist") and self.values:
            raise ValueError(f"values must be empty for operator {self.operator}")
        return self

    def matches(self, labels: Mapping[str, str]) -> bool:
        if self.operator == "Exists":
            return self.key in labels
        if self.operator == "DoesNotExist":
            return self.key not in labels
        if self.operator == "In":
            return self.key in labels and labels[self.key] in self.values
        # NotIn also matches objects without the label at all
        return labels.get(self.key) not in self.values

    def to_query(self) -> str:
        if self.operator == "Exists":
            return self.key
        if self.operator == "DoesNotExist":
            return f"!{self.key}"
        op = "in" if self.operator == "In" else "notin"
        return f"{self.key} {op} ({','.join(sorted(self.values))})"


class LabelSelector(BaseModel):
    """Selector over object labels; an empty selector matches everything."""

    model_config = ConfigDict(populate_by_name=True)

    match_labels: Dict[str, str] = Field(default_factory=dict, alias="matchLabels")
    match_expressions: List[LabelSelectorRequirement] = Field(
        default_factory=list, alias="matchExpressions"
    )

    @classmethod
    def parse(cls, data: "LabelSelector | Mapping[str, Any] | None") -> Optional["LabelSelector"]:
        """Convert caller input into a selector.

        Raises:
            InvalidLabelSelectorError: if ``data`` is not a valid selector.
        """
        if data is None or isinstance(data, LabelSelector):
            return data
        try:
            return cls.model_validate(data)
        except PydanticValidationError as exc:
            raise InvalidLabelSelectorError(
                "failed to convert label selector to a selector",
                {"errors": exc.error_count()},
            ) from exc

    def with_label(self, key: str, value: str) -> "LabelSelector":
        return self.model_copy(update={"match_labels": {**self.match_labels, key: value}})

    def matches(self, labels: Mapping[str, str]) -> bool:
        for key, value in self.match_labels.items():
            if labels.get(key) != value:
                return False
        return all(req.matches(labels) for req in self.match_expressions)

    def to_query(self) -> str:
        """Render the string form accepted by list calls."""
        parts = [f"{k}={v}" for k, v in sorted(self.match_labels.items())]
        parts.extend(req.to_query() for req in self.match_expressions)
        return ",".join(parts)
