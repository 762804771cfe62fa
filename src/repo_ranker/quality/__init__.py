"""Quality tree construction: normalization and aggregation."""

from .aggregator import (
    DEFAULT_POLICY,
    HIERARCHY,
    LEAF_ATTRIBUTES,
    REQUIRED_METRICS,
    AggregationPolicy,
    QualityTreeBuilder,
    build_tree,
)
from .normalization import LEAF_SPECS, Curve, NormalizationSpec, normalize

__all__ = [
    "QualityTreeBuilder",
    "AggregationPolicy",
    "DEFAULT_POLICY",
    "build_tree",
    "HIERARCHY",
    "LEAF_ATTRIBUTES",
    "REQUIRED_METRICS",
    "NormalizationSpec",
    "Curve",
    "LEAF_SPECS",
    "normalize",
]
