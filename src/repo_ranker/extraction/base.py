"""Metric extractor interface."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from ..models import RawMetrics


@runtime_checkable
class MetricExtractor(Protocol):
    """Produces flat raw measurements for a checked-out repository.

    Implementations raise ``UnsupportedLanguageError`` when the directory
    holds no language they understand, ``AnalysisTimeoutError`` when the
    time budget runs out and ``MetricExtractionError`` for any other
    failure.
    """

    def analyze(self, directory: Path, timeout: Optional[float] = None) -> RawMetrics: ...
