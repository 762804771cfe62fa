"""
repo-ranker - Concurrent repository quality analysis and ranking

Clones a batch of repositories in parallel, turns each one's raw static
analysis metrics into a normalized quality tree, and ranks the batch by
weighted preferences and hard constraints.
"""

__version__ = "0.1.0"

from .api import RepoRanker
from .exceptions import AllReposFailedError, RepoRankerError
from .models import (
    AnalysisRequest,
    AnalysisResult,
    ComparisonOperator,
    Constraint,
    Preference,
    QualityAttribute,
    QualityMetricNode,
    QualityTree,
    RepositoryReport,
)
from .quality import build_tree
from .ranking import order, rank

__all__ = [
    "RepoRanker",  # Main entry point
    "AnalysisRequest",
    "AnalysisResult",
    "RepositoryReport",
    "QualityAttribute",
    "QualityMetricNode",
    "QualityTree",
    "Preference",
    "Constraint",
    "ComparisonOperator",
    "build_tree",
    "rank",
    "order",
    "RepoRankerError",
    "AllReposFailedError",
]
