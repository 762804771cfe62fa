"""Build the quality tree from raw measurements.

The hierarchy is fixed, so any two trees built by the same version are
structurally comparable:

    quality
    ├── comprehension    comment_rate
    ├── simplicity       method_size
    ├── maintainability  duplication
    ├── reliability      bug_severity, technical_debt_ratio,
    │                    reliability_remediation_effort
    ├── complexity       cyclomatic_complexity, cognitive_complexity
    └── security         vulnerability_severity, hotspot_priority,
                         security_remediation_effort

Leaves are normalized (see ``normalization``); composites and the root
aggregate their children, by unweighted mean unless an
``AggregationPolicy`` supplies weights.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

import numpy as np

from ..config import AggregationConfig
from ..exceptions import IncompleteMetricsError
from ..models import QualityAttribute, QualityMetricNode, QualityTree, RawMetrics
from .normalization import LEAF_SPECS

QA = QualityAttribute

HIERARCHY: dict[QualityAttribute, tuple[QualityAttribute, ...]] = {
    QA.COMPREHENSION: (QA.COMMENT_RATE,),
    QA.SIMPLICITY: (QA.METHOD_SIZE,),
    QA.MAINTAINABILITY: (QA.DUPLICATION,),
    QA.RELIABILITY: (
        QA.BUG_SEVERITY,
        QA.TECHNICAL_DEBT_RATIO,
        QA.RELIABILITY_REMEDIATION_EFFORT,
    ),
    QA.COMPLEXITY: (QA.CYCLOMATIC_COMPLEXITY, QA.COGNITIVE_COMPLEXITY),
    QA.SECURITY: (
        QA.VULNERABILITY_SEVERITY,
        QA.HOTSPOT_PRIORITY,
        QA.SECURITY_REMEDIATION_EFFORT,
    ),
}

LEAF_ATTRIBUTES: tuple[QualityAttribute, ...] = tuple(
    leaf for leaves in HIERARCHY.values() for leaf in leaves
)

# Raw metric keys the extractor must provide
REQUIRED_METRICS: tuple[str, ...] = tuple(leaf.value for leaf in LEAF_ATTRIBUTES)


@dataclass(frozen=True)
class AggregationPolicy:
    """Child weights per composite; empty means unweighted mean everywhere.

    Children without an explicit weight weigh 1.0.
    """

    weights: Mapping[QualityAttribute, Mapping[QualityAttribute, float]] = field(
        default_factory=dict
    )

    @classmethod
    def from_config(cls, config: AggregationConfig) -> AggregationPolicy:
        if config.mode == "mean":
            return cls()
        parsed: dict[QualityAttribute, dict[QualityAttribute, float]] = {}
        for composite, children in config.weights.items():
            parsed[QA.parse(composite)] = {
                QA.parse(child): float(weight) for child, weight in children.items()
            }
        return cls(parsed)

    def aggregate(self, parent: QualityAttribute, children: Sequence[QualityMetricNode]) -> float:
        values = np.array([c.value for c in children], dtype=float)
        overrides = self.weights.get(parent)
        if not overrides:
            return float(np.clip(values.mean(), 0.0, 1.0))
        weights = np.array([overrides.get(c.attribute, 1.0) for c in children], dtype=float)
        if weights.sum() <= 0:
            raise ValueError(f"weights for '{parent.value}' must not all be zero")
        return float(np.clip(np.average(values, weights=weights), 0.0, 1.0))


DEFAULT_POLICY = AggregationPolicy()


class QualityTreeBuilder:
    """Turns ``RawMetrics`` into a ``QualityTree``. Stateless and thread-safe."""

    def __init__(self, policy: Optional[AggregationPolicy] = None) -> None:
        self.policy = policy or DEFAULT_POLICY

    def build(self, raw_metrics: RawMetrics) -> QualityTree:
        """Build the full tree.

        Raises:
            IncompleteMetricsError: If any leaf measurement is missing or
                not a finite number.
        """
        missing = [
            name
            for name in REQUIRED_METRICS
            if name not in raw_metrics or not _is_finite(raw_metrics[name])
        ]
        if missing:
            raise IncompleteMetricsError(missing)

        composites = []
        for composite, leaves in HIERARCHY.items():
            leaf_nodes = tuple(
                QualityMetricNode(leaf, LEAF_SPECS[leaf].normalize(float(raw_metrics[leaf.value])))
                for leaf in leaves
            )
            composites.append(
                QualityMetricNode(
                    composite, self.policy.aggregate(composite, leaf_nodes), leaf_nodes
                )
            )

        root = QualityMetricNode(
            QA.QUALITY, self.policy.aggregate(QA.QUALITY, composites), tuple(composites)
        )
        return QualityTree(root)


def build_tree(raw_metrics: RawMetrics, policy: Optional[AggregationPolicy] = None) -> QualityTree:
    """Convenience wrapper around ``QualityTreeBuilder(policy).build``."""
    return QualityTreeBuilder(policy).build(raw_metrics)


def _is_finite(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)
