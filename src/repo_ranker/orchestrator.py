"""Concurrent ingestion: clone, extract and aggregate every repository of a batch.

Each location runs as an independent task on a bounded thread pool. A task
never raises: it returns a ``TaskOutcome`` that is either a report or a
skip reason. The orchestrator waits for every task before it looks at any
result, then persists the whole batch in one transaction.

Working directories are partitioned per batch and per repository:

    <workspace>/<batch id>/<task id>

Ids come from an injectable generator, never from the submitted locations.
The batch directory is removed once all tasks have finished, whatever the
outcome.
"""

from __future__ import annotations

import shutil
import time
import uuid
from concurrent.futures import ALL_COMPLETED, ThreadPoolExecutor, wait
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Sequence

from .exceptions import (
    AllReposFailedError,
    AnalysisError,
    AnalysisTimeoutError,
    FetchError,
    FetchErrorKind,
    IncompleteMetricsError,
    MetricExtractionError,
    UnsupportedLanguageError,
)
from .extraction.base import MetricExtractor
from .fetching.base import RepositoryFetcher
from .logging_config import get_logger
from .models import Constraint, Preference, RepositoryReport, freeze_metrics
from .persistence.gateway import OwnerId, PersistenceGateway
from .quality.aggregator import QualityTreeBuilder

logger = get_logger(__name__)

IdGenerator = Callable[[], str]
Clock = Callable[[], datetime]


def uuid_id_generator() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SkipReason(Enum):
    """Why a repository was left out of a batch."""

    INVALID_LOCATION = "invalid_location"
    PRIVATE_OR_MISSING = "private_or_missing"
    NETWORK = "network"
    TIMEOUT = "timeout"
    UNSUPPORTED_LANGUAGE = "unsupported_language"
    INCOMPLETE_METRICS = "incomplete_metrics"
    EXTRACTION_FAILED = "extraction_failed"
    WORKSPACE_UNAVAILABLE = "workspace_unavailable"
    INTERNAL_ERROR = "internal_error"


_FETCH_SKIP_REASONS = {
    FetchErrorKind.INVALID_OR_PRIVATE: SkipReason.PRIVATE_OR_MISSING,
    FetchErrorKind.NETWORK: SkipReason.NETWORK,
    FetchErrorKind.TIMEOUT: SkipReason.TIMEOUT,
}


@dataclass(frozen=True)
class TaskOutcome:
    """Result of one clone + extract + aggregate task."""

    location: str
    position: int
    report: Optional[RepositoryReport] = None
    skip_reason: Optional[SkipReason] = None
    detail: str = ""

    @property
    def succeeded(self) -> bool:
        return self.report is not None

    @classmethod
    def success(cls, report: RepositoryReport) -> TaskOutcome:
        return cls(report.location, report.position, report=report)

    @classmethod
    def skipped(cls, location: str, position: int, reason: SkipReason, detail: str = "") -> TaskOutcome:
        return cls(location, position, skip_reason=reason, detail=detail)


@dataclass(frozen=True)
class AnalysisOutcome:
    """A persisted batch: the run id, stored reports and skipped locations."""

    run_id: int
    reports: tuple[RepositoryReport, ...]
    skipped: tuple[TaskOutcome, ...]


class IngestionOrchestrator:
    """Fans out one task per location and fans the results back in.

    Args:
        fetcher: Clones repositories
        extractor: Produces raw metrics from a clone
        gateway: Persists successful batches
        builder: Builds quality trees (default: unweighted mean policy)
        workers: Pool size; fixed for the orchestrator's lifetime
        task_timeout: Seconds one task may spend, measured from when it
            starts running (not from submission)
        workspace: Parent directory for batch working directories
        id_generator: Produces collision-resistant directory names
        clock: Timestamp source for saved runs
    """

    def __init__(
        self,
        fetcher: RepositoryFetcher,
        extractor: MetricExtractor,
        gateway: PersistenceGateway,
        builder: Optional[QualityTreeBuilder] = None,
        workers: int = 4,
        task_timeout: float = 300.0,
        workspace: Optional[Path] = None,
        id_generator: IdGenerator = uuid_id_generator,
        clock: Clock = utc_now,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        if task_timeout <= 0:
            raise ValueError("task_timeout must be positive")
        self._fetcher = fetcher
        self._extractor = extractor
        self._gateway = gateway
        self._builder = builder or QualityTreeBuilder()
        self._task_timeout = float(task_timeout)
        self._workspace = Path(workspace) if workspace is not None else Path.cwd() / ".repo-ranker-work"
        self._id_generator = id_generator
        self._clock = clock
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="repo-ranker")
        self.workers = workers

    # ── lifecycle ─────────────────────────────────────────────────

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> IngestionOrchestrator:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ── batch ─────────────────────────────────────────────────────

    def run(
        self,
        request_id: str,
        locations: Sequence[str],
        constraints: Optional[Iterable[Constraint]] = None,
        preferences: Optional[Iterable[Preference]] = None,
        owner_id: OwnerId = None,
    ) -> AnalysisOutcome:
        """Analyze every location and persist the successful ones.

        Raises:
            AllReposFailedError: No location produced a report; nothing is
                persisted.
            PersistenceError: The batch could not be stored.
        """
        locations = list(locations)
        constraints = tuple(constraints or ())
        preferences = tuple(preferences or ())
        logger.info("Request %s: analyzing %d repositories", request_id, len(locations))

        with self._batch_workspace() as batch_dir:
            futures = [
                self._executor.submit(self._process, batch_dir, position, location)
                for position, location in enumerate(locations)
            ]
            wait(futures, return_when=ALL_COMPLETED)
            outcomes = [f.result() for f in futures]

        reports = [o.report for o in outcomes if o.report is not None]
        skipped = tuple(o for o in outcomes if not o.succeeded)
        for o in skipped:
            logger.warning(
                "Skipped %s (%s)%s",
                o.location,
                o.skip_reason.value if o.skip_reason else "unknown",
                f": {o.detail}" if o.detail else "",
            )

        if not reports:
            raise AllReposFailedError(
                attempted=len(locations),
                reasons={
                    o.location: o.skip_reason.value if o.skip_reason else "unknown"
                    for o in skipped
                },
            )

        run_id, stored = self._persist(request_id, owner_id, reports, constraints, preferences)
        logger.info(
            "Request %s: run %d stored with %d reports (%d skipped)",
            request_id,
            run_id,
            len(stored),
            len(skipped),
        )
        return AnalysisOutcome(run_id=run_id, reports=stored, skipped=skipped)

    def _persist(
        self,
        request_id: str,
        owner_id: OwnerId,
        reports: list[RepositoryReport],
        constraints: tuple[Constraint, ...],
        preferences: tuple[Preference, ...],
    ) -> tuple[int, tuple[RepositoryReport, ...]]:
        with self._gateway.transaction():
            run_id = self._gateway.save_run(owner_id, self._clock(), request_id)
            stored = []
            for report in reports:
                report = replace(report, run_id=run_id)
                stored.append(replace(report, report_id=self._gateway.save_report(run_id, report)))
            self._gateway.save_constraints(run_id, constraints)
            self._gateway.save_preferences(run_id, preferences)
        return run_id, tuple(stored)

    # ── per-repository task ───────────────────────────────────────

    def _process(self, batch_dir: Path, position: int, location: str) -> TaskOutcome:
        deadline = time.monotonic() + self._task_timeout
        location = location.strip()

        try:
            valid = self._fetcher.validate(location)
        except Exception as e:
            logger.error("Validation of %s failed", location, exc_info=True)
            return TaskOutcome.skipped(location, position, SkipReason.INVALID_LOCATION, str(e))
        if not valid:
            return TaskOutcome.skipped(location, position, SkipReason.INVALID_LOCATION)

        try:
            task_dir = batch_dir / self._id_generator()
            task_dir.mkdir()
        except OSError as e:
            return TaskOutcome.skipped(location, position, SkipReason.WORKSPACE_UNAVAILABLE, str(e))
        except Exception as e:
            logger.error("Cannot allocate a working directory for %s", location, exc_info=True)
            return TaskOutcome.skipped(location, position, SkipReason.INTERNAL_ERROR, str(e))

        try:
            outcome = self._analyze(task_dir, position, location, deadline)
        except Exception as e:
            logger.error("Unexpected failure analyzing %s", location, exc_info=True)
            outcome = TaskOutcome.skipped(location, position, SkipReason.INTERNAL_ERROR, str(e))
        if not outcome.succeeded:
            shutil.rmtree(task_dir, ignore_errors=True)
        return outcome

    def _analyze(self, task_dir: Path, position: int, location: str, deadline: float) -> TaskOutcome:
        logger.debug("Cloning %s into %s", location, task_dir)
        try:
            self._fetcher.clone(location, task_dir, timeout=self._remaining(deadline, "clone"))
            raw = self._extractor.analyze(
                task_dir, timeout=self._remaining(deadline, "metric extraction")
            )
            try:
                raw = freeze_metrics(raw)
            except ValueError as e:
                raise MetricExtractionError(task_dir, str(e))
            self._remaining(deadline, "aggregation")
            tree = self._builder.build(raw)
        except FetchError as e:
            return TaskOutcome.skipped(location, position, _FETCH_SKIP_REASONS[e.kind], e.reason)
        except AnalysisTimeoutError as e:
            return TaskOutcome.skipped(location, position, SkipReason.TIMEOUT, e.stage)
        except UnsupportedLanguageError as e:
            return TaskOutcome.skipped(
                location, position, SkipReason.UNSUPPORTED_LANGUAGE, ", ".join(e.languages)
            )
        except IncompleteMetricsError as e:
            return TaskOutcome.skipped(
                location, position, SkipReason.INCOMPLETE_METRICS, ", ".join(e.missing)
            )
        except MetricExtractionError as e:
            return TaskOutcome.skipped(location, position, SkipReason.EXTRACTION_FAILED, e.reason)
        except Exception as e:
            logger.error("Unexpected failure analyzing %s", location, exc_info=True)
            return TaskOutcome.skipped(location, position, SkipReason.INTERNAL_ERROR, str(e))

        logger.debug("Analyzed %s: overall quality %.3f", location, tree.overall)
        return TaskOutcome.success(
            RepositoryReport(location=location, tree=tree, raw_metrics=raw, position=position)
        )

    def _remaining(self, deadline: float, stage: str) -> float:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise AnalysisTimeoutError(stage, self._task_timeout)
        return remaining

    # ── workspace ─────────────────────────────────────────────────

    @contextmanager
    def _batch_workspace(self) -> Iterator[Path]:
        try:
            self._workspace.mkdir(parents=True, exist_ok=True)
            batch_dir = self._workspace / self._id_generator()
            batch_dir.mkdir()
        except OSError as e:
            raise AnalysisError(
                "Cannot create analysis workspace", details={"workspace": str(self._workspace)}
            ) from e
        try:
            yield batch_dir
        finally:
            try:
                shutil.rmtree(batch_dir)
            except OSError as e:
                logger.warning("Failed to remove workspace %s: %s", batch_dir, e)
