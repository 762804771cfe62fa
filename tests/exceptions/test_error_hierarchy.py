"""Tests for the repo-ranker exception hierarchy."""

from pathlib import Path

import pytest

from repo_ranker.exceptions import (
    ALL_FAILED_GUIDANCE,
    AllReposFailedError,
    AnalysisError,
    AnalysisTimeoutError,
    ConfigurationError,
    FetchError,
    FetchErrorKind,
    IncompleteMetricsError,
    InvalidConfigError,
    MetricExtractionError,
    PersistenceError,
    RepoRankerError,
    ReportNotFoundError,
    RunNotFoundError,
    UnsupportedLanguageError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            FetchError("https://github.com/a/b", FetchErrorKind.NETWORK),
            UnsupportedLanguageError(["rust"], ["python"]),
            MetricExtractionError(Path("/tmp/x"), "exit 1"),
            AnalysisTimeoutError("clone", 30),
            IncompleteMetricsError(["duplication"]),
            AllReposFailedError(2),
        ],
    )
    def test_analysis_errors(self, error):
        assert isinstance(error, AnalysisError)
        assert isinstance(error, RepoRankerError)

    def test_not_found_errors_are_persistence_errors(self):
        assert isinstance(RunNotFoundError(1), PersistenceError)
        assert isinstance(ReportNotFoundError(1), PersistenceError)

    def test_invalid_config_is_configuration_error(self):
        assert isinstance(InvalidConfigError("workers", 0, "must be positive"), ConfigurationError)


class TestMessages:
    def test_details_rendered(self):
        error = FetchError("https://github.com/a/b", FetchErrorKind.INVALID_OR_PRIVATE, "not found")
        text = str(error)
        assert text.startswith("Cannot fetch repository: https://github.com/a/b")
        assert "kind=invalid_or_private" in text
        assert "reason=not found" in text

    def test_timeout_details(self):
        error = AnalysisTimeoutError("metric extraction", 12)
        assert error.details == {"stage": "metric extraction", "timeout_seconds": "12.0"}

    def test_all_failed_message_is_guidance_only(self):
        error = AllReposFailedError(3, {"x": "invalid_location"})
        assert str(error) == ALL_FAILED_GUIDANCE
        assert error.reasons == {"x": "invalid_location"}
        assert error.attempted == 3

    def test_persistence_error_is_generic(self):
        assert "sqlite" not in str(PersistenceError()).lower()

    def test_unsupported_language_lists_found(self):
        error = UnsupportedLanguageError([], ["python"])
        assert "none" in str(error)
