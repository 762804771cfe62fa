"""Constraint filtering, preference scoring and stable ordering of reports.

Everything here is a pure function of its arguments: no caches and no
module state, so the same trees can be ranked from many threads at once.

Ranks are recomputed on every read rather than stored. A change to the
scoring formula therefore applies to old runs without a data migration.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..logging_config import get_logger
from ..models import (
    AnalysisResult,
    Constraint,
    Preference,
    QualityTree,
    RepositoryReport,
)

logger = get_logger(__name__)


def passes_constraints(tree: QualityTree, constraints: Iterable[Constraint]) -> bool:
    """Return True if ``tree`` satisfies every constraint.

    A constraint on an attribute the tree does not contain counts as not
    satisfied, so the report is excluded rather than silently kept.
    """
    for constraint in constraints:
        node = tree.find(constraint.attribute)
        if node is None:
            logger.debug(
                "Constraint %s references missing attribute; excluding report", constraint
            )
            return False
        if not constraint.is_satisfied_by(node.value):
            return False
    return True


def rank(tree: QualityTree, preferences: Sequence[Preference]) -> float:
    """Score a tree: sum of weight * value over the preferred attributes.

    Preferences on attributes absent from the tree contribute nothing. With
    no preferences the score is the overall quality (root) value.
    """
    if not preferences:
        return tree.overall

    score = 0.0
    for preference in preferences:
        node = tree.find(preference.attribute)
        if node is None:
            continue
        score += preference.weight * node.value
    return score


def order(
    reports: Iterable[RepositoryReport],
    preferences: Sequence[Preference] = (),
    constraints: Sequence[Constraint] = (),
    run_id: Optional[int] = None,
) -> AnalysisResult:
    """Filter, score and sort reports into an ``AnalysisResult``.

    Reports are first put in submission order (``position``); the score sort
    is stable, so equal scores keep that order regardless of the order the
    reports were stored or loaded in.
    """
    by_submission = sorted(reports, key=lambda r: r.position)

    survivors: list[RepositoryReport] = []
    excluded: list[RepositoryReport] = []
    for report in by_submission:
        if passes_constraints(report.tree, constraints):
            survivors.append(report.with_rank(rank(report.tree, preferences)))
        else:
            excluded.append(report)

    survivors.sort(key=lambda r: r.rank, reverse=True)
    return AnalysisResult(run_id=run_id, reports=tuple(survivors), excluded=tuple(excluded))
