"""Domain models: quality attributes, quality trees, reports, preferences, constraints.

Every model here is immutable once built. A ``QualityTree`` indexes its nodes
by attribute when it is constructed, so ranking and constraint checks never
walk the tree.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Optional

# Raw measurements from the external metric tool, keyed by metric name.
RawMetrics = Mapping[str, float]

_EQ_TOLERANCE = 1e-9


class QualityAttribute(Enum):
    """Tag identifying one node of the quality tree."""

    QUALITY = "quality"
    COMPREHENSION = "comprehension"
    SIMPLICITY = "simplicity"
    MAINTAINABILITY = "maintainability"
    RELIABILITY = "reliability"
    COMPLEXITY = "complexity"
    SECURITY = "security"
    COMMENT_RATE = "comment_rate"
    METHOD_SIZE = "method_size"
    DUPLICATION = "duplication"
    BUG_SEVERITY = "bug_severity"
    TECHNICAL_DEBT_RATIO = "technical_debt_ratio"
    RELIABILITY_REMEDIATION_EFFORT = "reliability_remediation_effort"
    CYCLOMATIC_COMPLEXITY = "cyclomatic_complexity"
    COGNITIVE_COMPLEXITY = "cognitive_complexity"
    VULNERABILITY_SEVERITY = "vulnerability_severity"
    HOTSPOT_PRIORITY = "hotspot_priority"
    SECURITY_REMEDIATION_EFFORT = "security_remediation_effort"

    @classmethod
    def parse(cls, name: str) -> QualityAttribute:
        """Parse ``"Cyclomatic-Complexity"`` style names case-insensitively."""
        key = name.strip().lower().replace("-", "_").replace(" ", "_")
        try:
            return cls(key)
        except ValueError:
            valid = ", ".join(a.value for a in cls)
            raise ValueError(f"Unknown quality attribute '{name}' (expected one of: {valid})") from None


def freeze_metrics(values: Mapping[str, Any]) -> RawMetrics:
    """Return a read-only copy of ``values`` with every value coerced to float.

    Raises:
        ValueError: If a value is not numeric.
    """
    frozen: dict[str, float] = {}
    for name, value in values.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"Metric '{name}' is not numeric: {value!r}")
        frozen[str(name)] = float(value)
    return MappingProxyType(frozen)


# ── Quality tree ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class QualityMetricNode:
    """One attribute of the quality tree with its normalized score."""

    attribute: QualityAttribute
    value: float
    children: tuple[QualityMetricNode, ...] = ()

    def __post_init__(self) -> None:
        if math.isnan(self.value) or not 0.0 <= self.value <= 1.0:
            raise ValueError(
                f"{self.attribute.value} value must be between 0.0 and 1.0, got {self.value}"
            )
        object.__setattr__(self, "children", tuple(self.children))

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def walk(self) -> Iterator[QualityMetricNode]:
        """Yield this node and its descendants in pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict[str, Any]:
        return {
            "attribute": self.attribute.value,
            "value": self.value,
            "children": [child.to_dict() for child in self.children],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> QualityMetricNode:
        return cls(
            attribute=QualityAttribute(data["attribute"]),
            value=float(data["value"]),
            children=tuple(cls.from_dict(c) for c in data.get("children", ())),
        )


@dataclass(frozen=True)
class QualityTree:
    """A quality tree rooted at ``QUALITY`` with an attribute index.

    The index is built once here; ``find`` is a dictionary lookup.
    """

    root: QualityMetricNode
    _index: Mapping[QualityAttribute, QualityMetricNode] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if self.root.attribute is not QualityAttribute.QUALITY:
            raise ValueError(f"Tree root must be 'quality', got '{self.root.attribute.value}'")
        index: dict[QualityAttribute, QualityMetricNode] = {}
        for node in self.root.walk():
            if node.attribute in index:
                raise ValueError(f"Attribute '{node.attribute.value}' appears twice in tree")
            index[node.attribute] = node
        object.__setattr__(self, "_index", MappingProxyType(index))

    @property
    def overall(self) -> float:
        """Root (overall quality) value."""
        return self.root.value

    def find(self, attribute: QualityAttribute) -> Optional[QualityMetricNode]:
        return self._index.get(attribute)

    def value_of(self, attribute: QualityAttribute) -> Optional[float]:
        node = self._index.get(attribute)
        return node.value if node is not None else None

    def attributes(self) -> list[QualityAttribute]:
        return list(self._index)

    def __contains__(self, attribute: object) -> bool:
        return attribute in self._index

    def to_dict(self) -> dict[str, Any]:
        return self.root.to_dict()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> QualityTree:
        return cls(QualityMetricNode.from_dict(data))


# ── Preferences & constraints ────────────────────────────────────────


class ComparisonOperator(Enum):
    """Comparison used by a constraint."""

    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    EQ = "="

    @classmethod
    def parse(cls, symbol: str) -> ComparisonOperator:
        symbol = symbol.strip()
        if symbol == "==":
            return cls.EQ
        try:
            return cls(symbol)
        except ValueError:
            raise ValueError(f"Unknown comparison operator '{symbol}'") from None

    def evaluate(self, value: float, threshold: float) -> bool:
        if self is ComparisonOperator.LT:
            return value < threshold
        if self is ComparisonOperator.LE:
            return value <= threshold
        if self is ComparisonOperator.GT:
            return value > threshold
        if self is ComparisonOperator.GE:
            return value >= threshold
        return math.isclose(value, threshold, rel_tol=0.0, abs_tol=_EQ_TOLERANCE)


@dataclass(frozen=True)
class Preference:
    """Relative importance of an attribute when ranking."""

    attribute: QualityAttribute
    weight: float

    def __post_init__(self) -> None:
        if not math.isfinite(self.weight) or self.weight <= 0:
            raise ValueError(f"Preference weight must be positive, got {self.weight}")

    @classmethod
    def parse(cls, text: str) -> Preference:
        """Parse ``"security=1.5"`` (``:`` also accepted as separator)."""
        name, sep, raw_weight = text.replace(":", "=", 1).partition("=")
        if not sep:
            raise ValueError(f"Preference must look like 'attribute=weight', got '{text}'")
        try:
            weight = float(raw_weight)
        except ValueError:
            raise ValueError(f"Preference weight is not a number: '{raw_weight.strip()}'") from None
        return cls(QualityAttribute.parse(name), weight)

    def __str__(self) -> str:
        return f"{self.attribute.value}={self.weight:g}"


_CONSTRAINT_RE = re.compile(
    r"^\s*([A-Za-z][\w\- ]*?)\s*(<=|>=|==|<|>|=)\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*$"
)


@dataclass(frozen=True)
class Constraint:
    """Hard filter: ``attribute <operator> threshold`` on normalized values."""

    attribute: QualityAttribute
    operator: ComparisonOperator
    threshold: float

    def __post_init__(self) -> None:
        if not math.isfinite(self.threshold) or not 0.0 <= self.threshold <= 1.0:
            raise ValueError(
                f"Constraint threshold must be between 0.0 and 1.0, got {self.threshold}"
            )

    @classmethod
    def parse(cls, text: str) -> Constraint:
        """Parse ``"cyclomatic_complexity<0.3"``."""
        match = _CONSTRAINT_RE.match(text)
        if match is None:
            raise ValueError(
                f"Constraint must look like 'attribute<op>value' with op one of "
                f"<, <=, >, >=, =; got '{text}'"
            )
        name, symbol, threshold = match.groups()
        return cls(
            QualityAttribute.parse(name),
            ComparisonOperator.parse(symbol),
            float(threshold),
        )

    def is_satisfied_by(self, value: float) -> bool:
        return self.operator.evaluate(value, self.threshold)

    def __str__(self) -> str:
        return f"{self.attribute.value}{self.operator.value}{self.threshold:g}"


# ── Requests, reports, results ───────────────────────────────────────


@dataclass(frozen=True)
class AnalysisRequest:
    """One batch submission: locations plus optional constraints/preferences."""

    locations: tuple[str, ...]
    constraints: tuple[Constraint, ...] = ()
    preferences: tuple[Preference, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "locations", tuple(loc.strip() for loc in self.locations))
        object.__setattr__(self, "constraints", tuple(self.constraints))
        object.__setattr__(self, "preferences", tuple(self.preferences))
        if not self.locations:
            raise ValueError("At least one repository location is required")

    @classmethod
    def build(
        cls,
        locations: Iterable[str],
        constraints: Iterable[str] = (),
        preferences: Iterable[str] = (),
    ) -> AnalysisRequest:
        """Build a request from textual constraints/preferences."""
        return cls(
            tuple(locations),
            tuple(Constraint.parse(c) for c in constraints),
            tuple(Preference.parse(p) for p in preferences),
        )


@dataclass(frozen=True)
class RepositoryReport:
    """Analysis report for one repository.

    ``rank`` is only populated on copies returned by the ranking engine; it is
    never stored, so the tree and raw metrics stay the canonical state.
    """

    location: str
    tree: QualityTree
    raw_metrics: RawMetrics = field(default_factory=lambda: MappingProxyType({}))
    position: int = 0
    report_id: Optional[int] = None
    run_id: Optional[int] = None
    rank: Optional[float] = None

    @property
    def overall(self) -> float:
        return self.tree.overall

    def with_rank(self, rank: float) -> RepositoryReport:
        return replace(self, rank=rank)

    def to_dict(self) -> dict[str, Any]:
        return {
            "report_id": self.report_id,
            "run_id": self.run_id,
            "location": self.location,
            "position": self.position,
            "rank": self.rank,
            "quality": self.tree.to_dict(),
            "raw_metrics": dict(self.raw_metrics),
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Ranked reports for a run, best first; ties keep submission order."""

    run_id: Optional[int]
    reports: tuple[RepositoryReport, ...]
    excluded: tuple[RepositoryReport, ...] = ()

    def __len__(self) -> int:
        return len(self.reports)

    def __iter__(self) -> Iterator[RepositoryReport]:
        return iter(self.reports)

    @property
    def locations(self) -> list[str]:
        return [r.location for r in self.reports]

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "reports": [r.to_dict() for r in self.reports],
            "excluded": [r.location for r in self.excluded],
        }
