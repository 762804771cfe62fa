"""Public API for repo-ranker.

``RepoRanker`` wires the fetcher, extractor, tree builder, orchestrator and
persistence gateway together and exposes the submission and retrieval
contracts.

Example:
    >>> from repo_ranker import AnalysisRequest, RepoRanker
    >>>
    >>> request = AnalysisRequest.build(
    ...     ["https://github.com/pallets/flask", "https://github.com/psf/requests"],
    ...     constraints=["cyclomatic_complexity>=0.4"],
    ...     preferences=["security=2", "simplicity=1"],
    ... )
    >>> with RepoRanker() as ranker:
    ...     run_id = ranker.submit(request)
    ...     result = ranker.get_result(run_id)
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Optional

from .config import RankerConfig, load_config
from .exceptions import ConfigurationError, RunNotFoundError
from .extraction.base import MetricExtractor
from .extraction.command import CommandExtractor
from .fetching.base import RepositoryFetcher
from .fetching.github import GitHubFetcher
from .logging_config import get_logger
from .models import AnalysisRequest, AnalysisResult, RepositoryReport
from .orchestrator import (
    AnalysisOutcome,
    Clock,
    IdGenerator,
    IngestionOrchestrator,
    utc_now,
    uuid_id_generator,
)
from .persistence.database import RankerDB
from .persistence.gateway import OwnerId, PersistenceGateway, SqliteGateway
from .quality.aggregator import AggregationPolicy, QualityTreeBuilder
from .ranking.engine import order

logger = get_logger(__name__)


class RepoRanker:
    """Submit repository batches and read back ranked results.

    Collaborators not passed in are built from ``config``: a
    ``GitHubFetcher``, a ``CommandExtractor`` running
    ``config.extractor_command`` and a ``SqliteGateway`` on
    ``config.database_path``.
    """

    def __init__(
        self,
        config: Optional[RankerConfig] = None,
        fetcher: Optional[RepositoryFetcher] = None,
        extractor: Optional[MetricExtractor] = None,
        gateway: Optional[PersistenceGateway] = None,
        id_generator: IdGenerator = uuid_id_generator,
        clock: Clock = utc_now,
    ) -> None:
        self.config = config or load_config()
        self._fetcher = fetcher or GitHubFetcher(
            git_executable=self.config.git_executable, depth=self.config.clone_depth
        )
        self._extractor = extractor
        self._gateway = gateway or SqliteGateway(RankerDB(self.config.database_path))
        self._owns_gateway = gateway is None
        self._builder = QualityTreeBuilder(AggregationPolicy.from_config(self.config.aggregation))
        self._id_generator = id_generator
        self._clock = clock
        self._orchestrator: Optional[IngestionOrchestrator] = None

    # ── lifecycle ─────────────────────────────────────────────────

    def close(self) -> None:
        if self._orchestrator is not None:
            self._orchestrator.close()
            self._orchestrator = None
        if self._owns_gateway and isinstance(self._gateway, SqliteGateway):
            self._gateway.close()

    def __enter__(self) -> RepoRanker:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ── submission ────────────────────────────────────────────────

    def submit(self, request: AnalysisRequest, owner_id: OwnerId = None) -> int:
        """Analyze a batch and return the stored run id.

        Raises:
            AllReposFailedError: No repository could be analyzed.
            PersistenceError: The run could not be stored.
            ConfigurationError: No metric extractor is configured.
        """
        return self.submit_detailed(request, owner_id).run_id

    def submit_detailed(self, request: AnalysisRequest, owner_id: OwnerId = None) -> AnalysisOutcome:
        """Like ``submit`` but also returns stored reports and skipped locations."""
        request_id = uuid.uuid4().hex
        return self._get_orchestrator().run(
            request_id,
            request.locations,
            constraints=request.constraints,
            preferences=request.preferences,
            owner_id=owner_id,
        )

    # ── retrieval ─────────────────────────────────────────────────

    def get_result(self, run_id: int) -> AnalysisResult:
        """Rank a stored run with its stored preferences and constraints.

        The ranking is recomputed on every call from the stored trees.

        Raises:
            RunNotFoundError: ``run_id`` does not exist.
        """
        if not self._gateway.run_exists(run_id):
            raise RunNotFoundError(run_id)
        reports = self._gateway.load_reports(run_id)
        preferences = self._gateway.load_preferences(run_id)
        constraints = self._gateway.load_constraints(run_id)
        return order(reports, preferences, constraints, run_id=run_id)

    def get_report(self, report_id: int) -> RepositoryReport:
        """Load one stored report (unranked).

        Raises:
            ReportNotFoundError: ``report_id`` does not exist.
        """
        return self._gateway.load_report(report_id)

    def list_runs(self, limit: int = 20) -> list[dict]:
        return self._gateway.list_runs(limit)

    # ── wiring ────────────────────────────────────────────────────

    def _get_orchestrator(self) -> IngestionOrchestrator:
        if self._orchestrator is None:
            self._orchestrator = IngestionOrchestrator(
                fetcher=self._fetcher,
                extractor=self._get_extractor(),
                gateway=self._gateway,
                builder=self._builder,
                workers=self.config.resolved_workers,
                task_timeout=self.config.task_timeout_seconds,
                workspace=Path(self.config.resolved_workspace),
                id_generator=self._id_generator,
                clock=self._clock,
            )
        return self._orchestrator

    def _get_extractor(self) -> MetricExtractor:
        if self._extractor is None:
            if not self.config.extractor_command:
                raise ConfigurationError(
                    "No metric extractor configured. Set extractor_command in "
                    "repo-ranker.toml or REPO_RANKER_EXTRACTOR_COMMAND."
                )
            self._extractor = CommandExtractor(
                self.config.extractor_command, self.config.supported_languages
            )
        return self._extractor
