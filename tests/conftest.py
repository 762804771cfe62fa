"""Shared test fixtures for repo-ranker tests."""

import itertools
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

import pytest

from repo_ranker.exceptions import FetchError, FetchErrorKind, UnsupportedLanguageError
from repo_ranker.persistence import RankerDB, SqliteGateway
from repo_ranker.quality import REQUIRED_METRICS

FLASK = "https://github.com/pallets/flask"
REQUESTS = "https://github.com/psf/requests"
CLICK = "https://github.com/pallets/click"


def perfect_metrics() -> Dict[str, float]:
    """Raw metrics that normalize to 1.0 on every leaf."""
    return {
        "comment_rate": 25.0,
        "method_size": 10.0,
        "duplication": 0.0,
        "bug_severity": 0.0,
        "technical_debt_ratio": 0.0,
        "reliability_remediation_effort": 0.0,
        "cyclomatic_complexity": 1.0,
        "cognitive_complexity": 0.0,
        "vulnerability_severity": 0.0,
        "hotspot_priority": 0.0,
        "security_remediation_effort": 0.0,
    }


def mediocre_metrics() -> Dict[str, float]:
    """Raw metrics that land mid-range on most leaves."""
    return {
        "comment_rate": 12.5,
        "method_size": 55.0,
        "duplication": 15.0,
        "bug_severity": 10.0,
        "technical_debt_ratio": 25.0,
        "reliability_remediation_effort": 240.0,
        "cyclomatic_complexity": 13.0,
        "cognitive_complexity": 15.0,
        "vulnerability_severity": 5.0,
        "hotspot_priority": 10.0,
        "security_remediation_effort": 240.0,
    }


class FakeFetcher:
    """Fetcher that 'clones' by writing a marker file.

    ``failures`` maps a location to the FetchErrorKind it should raise.
    ``delay`` sleeps before cloning, to exercise timeouts and concurrency.
    """

    def __init__(self, failures: Optional[Dict[str, FetchErrorKind]] = None, delay: float = 0.0):
        self.failures = dict(failures or {})
        self.delay = delay
        self.cloned: Dict[str, Path] = {}
        self._lock = threading.Lock()
        self.active = 0
        self.max_active = 0

    def validate(self, location: str) -> bool:
        return location.startswith("https://github.com/")

    def clone(self, location: str, dest_dir: Path, timeout: Optional[float] = None) -> None:
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if location in self.failures:
                raise FetchError(location, self.failures[location], "simulated")
            (dest_dir / "CLONED").write_text(location)
            with self._lock:
                self.cloned[location] = dest_dir
        finally:
            with self._lock:
                self.active -= 1


class FakeExtractor:
    """Extractor returning canned metrics keyed by the cloned location."""

    def __init__(self, metrics: Dict[str, Dict[str, float]], unsupported=()):
        self.metrics = metrics
        self.unsupported = set(unsupported)

    def analyze(self, directory: Path, timeout: Optional[float] = None):
        location = (directory / "CLONED").read_text()
        if location in self.unsupported:
            raise UnsupportedLanguageError(["cobol"], ["python"])
        return dict(self.metrics[location])


def sequential_ids():
    """Deterministic id generator: 'id-0', 'id-1', ..."""
    counter = itertools.count()
    lock = threading.Lock()

    def generate() -> str:
        with lock:
            return f"id-{next(counter)}"

    return generate


def fixed_clock() -> datetime:
    return datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def gateway():
    """In-memory sqlite gateway, opened and closed around each test."""
    with SqliteGateway(RankerDB()) as gw:
        yield gw


@pytest.fixture
def workspace(tmp_path):
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def required_metrics():
    return REQUIRED_METRICS
