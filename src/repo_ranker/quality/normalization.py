"""Leaf normalization: raw measurement -> score in [0, 1] where 1.0 is best.

Two curves:
- LINEAR: clip the raw value into the reference range [best, worst] and
  scale linearly. Works for either direction, since ``best`` may be larger
  or smaller than ``worst``.
- SATURATING: exp(-x / scale) for unbounded "larger is worse" counts.
  0 maps to 1.0, ``scale`` maps to ~0.37, and the score never reaches 0.

Negative raw values are clamped to 0 before either curve is applied.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

import numpy as np

from ..models import QualityAttribute


class Curve(Enum):
    LINEAR = "linear"
    SATURATING = "saturating"


@dataclass(frozen=True)
class NormalizationSpec:
    """How one leaf attribute maps its raw measurement onto [0, 1].

    Attributes:
        unit: Human-readable unit of the raw measurement
        curve: LINEAR or SATURATING
        best: LINEAR only; raw value that scores 1.0
        worst: LINEAR only; raw value that scores 0.0
        scale: SATURATING only; raw value that scores exp(-1)
    """

    unit: str
    curve: Curve
    best: float = 0.0
    worst: float = 1.0
    scale: float = 1.0

    def __post_init__(self) -> None:
        if self.curve is Curve.LINEAR and self.best == self.worst:
            raise ValueError("best and worst must differ for a linear curve")
        if self.curve is Curve.SATURATING and self.scale <= 0:
            raise ValueError("scale must be positive for a saturating curve")

    def normalize(self, raw: float) -> float:
        if not math.isfinite(raw):
            raise ValueError(f"raw value must be finite, got {raw}")
        x = max(raw, 0.0)
        if self.curve is Curve.SATURATING:
            score = np.exp(-x / self.scale)
        else:
            score = (x - self.worst) / (self.best - self.worst)
        return float(np.clip(score, 0.0, 1.0))


QA = QualityAttribute

# Reference ranges for every leaf. Attribute values double as raw metric keys.
LEAF_SPECS: dict[QualityAttribute, NormalizationSpec] = {
    QA.COMMENT_RATE: NormalizationSpec("% commented lines", Curve.LINEAR, best=25.0, worst=0.0),
    QA.METHOD_SIZE: NormalizationSpec("avg lines per method", Curve.LINEAR, best=10.0, worst=100.0),
    QA.DUPLICATION: NormalizationSpec("% duplicated lines", Curve.LINEAR, best=0.0, worst=30.0),
    QA.BUG_SEVERITY: NormalizationSpec("severity-weighted bugs", Curve.SATURATING, scale=10.0),
    QA.TECHNICAL_DEBT_RATIO: NormalizationSpec("% debt ratio", Curve.LINEAR, best=0.0, worst=50.0),
    QA.RELIABILITY_REMEDIATION_EFFORT: NormalizationSpec(
        "minutes", Curve.SATURATING, scale=240.0
    ),
    QA.CYCLOMATIC_COMPLEXITY: NormalizationSpec(
        "avg per function", Curve.LINEAR, best=1.0, worst=25.0
    ),
    QA.COGNITIVE_COMPLEXITY: NormalizationSpec(
        "avg per function", Curve.LINEAR, best=0.0, worst=30.0
    ),
    QA.VULNERABILITY_SEVERITY: NormalizationSpec(
        "severity-weighted vulnerabilities", Curve.SATURATING, scale=5.0
    ),
    QA.HOTSPOT_PRIORITY: NormalizationSpec(
        "priority-weighted hotspots", Curve.SATURATING, scale=10.0
    ),
    QA.SECURITY_REMEDIATION_EFFORT: NormalizationSpec("minutes", Curve.SATURATING, scale=240.0),
}


def normalize(attribute: QualityAttribute, raw: float) -> float:
    """Normalize ``raw`` with the spec registered for ``attribute``."""
    return LEAF_SPECS[attribute].normalize(raw)
