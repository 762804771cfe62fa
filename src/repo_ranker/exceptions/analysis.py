"""Analysis-related exceptions: fetching, extraction, aggregation, batches."""

from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .base import RepoRankerError


class AnalysisError(RepoRankerError):
    """Base class for analysis-related errors."""

    pass


class FetchErrorKind(Enum):
    """Why a repository could not be cloned."""

    INVALID_OR_PRIVATE = "invalid_or_private"
    NETWORK = "network"
    TIMEOUT = "timeout"


class FetchError(AnalysisError):
    """Raised when a repository location cannot be cloned."""

    def __init__(self, location: str, kind: FetchErrorKind, reason: str = ""):
        details = {"location": location, "kind": kind.value}
        if reason:
            details["reason"] = reason
        super().__init__(f"Cannot fetch repository: {location}", details=details)
        self.location = location
        self.kind = kind
        self.reason = reason


class UnsupportedLanguageError(AnalysisError):
    """Raised when a repository contains no supported language."""

    def __init__(self, languages: Sequence[str], supported_languages: List[str]):
        found = ", ".join(languages) if languages else "none"
        super().__init__(
            f"Unsupported language: {found}",
            details={"found": found, "supported": ", ".join(supported_languages)},
        )
        self.languages = list(languages)
        self.supported_languages = supported_languages


class MetricExtractionError(AnalysisError):
    """Raised when the external metric tool fails or emits unusable output."""

    def __init__(self, directory: Path, reason: str):
        super().__init__(
            f"Metric extraction failed for {directory}",
            details={"directory": str(directory), "reason": reason},
        )
        self.directory = directory
        self.reason = reason


class AnalysisTimeoutError(AnalysisError):
    """Raised when a clone or extraction stage exceeds its time budget."""

    def __init__(self, stage: str, timeout: Optional[float]):
        details: Dict[str, str] = {"stage": stage}
        if timeout is not None:
            details["timeout_seconds"] = f"{timeout:.1f}"
        super().__init__(f"Timed out during {stage}", details=details)
        self.stage = stage
        self.timeout = timeout


class IncompleteMetricsError(AnalysisError):
    """Raised when raw metrics lack a value the quality tree needs."""

    def __init__(self, missing: Sequence[str]):
        super().__init__(
            "Raw metrics are missing required measurements",
            details={"missing": ", ".join(missing)},
        )
        self.missing = list(missing)


ALL_FAILED_GUIDANCE = (
    "We could not run the analysis. Please ensure that at least one repository "
    "is public, uses a supported language and has a valid URL."
)


class AllReposFailedError(AnalysisError):
    """Raised when no repository in a batch could be analyzed."""

    def __init__(self, attempted: int, reasons: Optional[Dict[str, str]] = None):
        super().__init__(ALL_FAILED_GUIDANCE)
        self.attempted = attempted
        self.reasons = dict(reasons or {})

    def __str__(self) -> str:
        return self.message
