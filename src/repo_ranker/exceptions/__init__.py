"""Exception hierarchy for repo-ranker."""

from .analysis import (
    ALL_FAILED_GUIDANCE,
    AllReposFailedError,
    AnalysisError,
    AnalysisTimeoutError,
    FetchError,
    FetchErrorKind,
    IncompleteMetricsError,
    MetricExtractionError,
    UnsupportedLanguageError,
)
from .base import RepoRankerError
from .config import ConfigurationError, InvalidConfigError
from .persistence import PersistenceError, ReportNotFoundError, RunNotFoundError

__all__ = [
    "RepoRankerError",
    "AnalysisError",
    "FetchError",
    "FetchErrorKind",
    "UnsupportedLanguageError",
    "MetricExtractionError",
    "AnalysisTimeoutError",
    "IncompleteMetricsError",
    "AllReposFailedError",
    "ALL_FAILED_GUIDANCE",
    "PersistenceError",
    "RunNotFoundError",
    "ReportNotFoundError",
    "ConfigurationError",
    "InvalidConfigError",
]
