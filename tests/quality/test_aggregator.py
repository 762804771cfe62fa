"""Tests for quality tree construction and aggregation policies."""

import math

import pytest

from conftest import mediocre_metrics, perfect_metrics
from repo_ranker.config import AggregationConfig
from repo_ranker.exceptions import IncompleteMetricsError
from repo_ranker.models import QualityAttribute, QualityMetricNode
from repo_ranker.quality.aggregator import (
    HIERARCHY,
    LEAF_ATTRIBUTES,
    REQUIRED_METRICS,
    AggregationPolicy,
    QualityTreeBuilder,
    build_tree,
)

QA = QualityAttribute


class TestHierarchy:
    def test_six_composites(self):
        assert list(HIERARCHY) == [
            QA.COMPREHENSION,
            QA.SIMPLICITY,
            QA.MAINTAINABILITY,
            QA.RELIABILITY,
            QA.COMPLEXITY,
            QA.SECURITY,
        ]

    def test_required_metrics_match_leaves(self):
        assert len(LEAF_ATTRIBUTES) == 11
        assert REQUIRED_METRICS == tuple(a.value for a in LEAF_ATTRIBUTES)


class TestBuildTree:
    def test_perfect_metrics_score_one_everywhere(self):
        tree = build_tree(perfect_metrics())
        assert tree.overall == pytest.approx(1.0)
        assert all(node.value == pytest.approx(1.0) for node in tree.root.walk())

    def test_tree_contains_every_attribute(self):
        tree = build_tree(mediocre_metrics())
        assert set(tree.attributes()) == set(QA)

    def test_composite_is_mean_of_children(self):
        tree = build_tree(mediocre_metrics())
        for composite in HIERARCHY:
            node = tree.find(composite)
            expected = sum(c.value for c in node.children) / len(node.children)
            assert node.value == pytest.approx(expected)

    def test_root_is_mean_of_composites(self):
        tree = build_tree(mediocre_metrics())
        composites = [tree.value_of(c) for c in HIERARCHY]
        assert tree.overall == pytest.approx(sum(composites) / len(composites))

    def test_leaf_values_follow_reference_ranges(self):
        tree = build_tree(mediocre_metrics())
        assert tree.value_of(QA.DUPLICATION) == pytest.approx(0.5)
        assert tree.value_of(QA.COMMENT_RATE) == pytest.approx(0.5)
        assert tree.value_of(QA.BUG_SEVERITY) == pytest.approx(math.exp(-1))

    def test_deterministic(self):
        assert build_tree(mediocre_metrics()) == build_tree(mediocre_metrics())

    def test_all_values_in_unit_interval_for_extreme_input(self):
        raw = {name: 1e9 for name in REQUIRED_METRICS}
        tree = build_tree(raw)
        assert all(0.0 <= n.value <= 1.0 for n in tree.root.walk())

    def test_extra_metrics_ignored(self):
        raw = dict(perfect_metrics(), lines_of_code=120000)
        assert build_tree(raw).overall == pytest.approx(1.0)


class TestIncompleteMetrics:
    def test_missing_leaf_raises(self):
        raw = perfect_metrics()
        del raw["duplication"]
        with pytest.raises(IncompleteMetricsError) as exc_info:
            build_tree(raw)
        assert exc_info.value.missing == ["duplication"]

    def test_non_finite_leaf_raises(self):
        raw = dict(perfect_metrics(), bug_severity=float("nan"))
        with pytest.raises(IncompleteMetricsError) as exc_info:
            build_tree(raw)
        assert "bug_severity" in exc_info.value.missing

    def test_empty_metrics_lists_everything(self):
        with pytest.raises(IncompleteMetricsError) as exc_info:
            build_tree({})
        assert exc_info.value.missing == list(REQUIRED_METRICS)


class TestAggregationPolicy:
    def test_default_is_unweighted_mean(self):
        children = [QualityMetricNode(QA.BUG_SEVERITY, 0.2), QualityMetricNode(QA.DUPLICATION, 0.6)]
        assert AggregationPolicy().aggregate(QA.RELIABILITY, children) == pytest.approx(0.4)

    def test_weighted_mode(self):
        policy = AggregationPolicy.from_config(
            AggregationConfig(mode="weighted", weights={"security": {"vulnerability_severity": 3}})
        )
        raw = dict(
            perfect_metrics(), vulnerability_severity=1e9, hotspot_priority=0.0, security_remediation_effort=0.0
        )
        tree = QualityTreeBuilder(policy).build(raw)
        # 3 * ~0 + 1 * 1 + 1 * 1 over 5
        assert tree.value_of(QA.SECURITY) == pytest.approx(0.4)

    def test_mean_mode_ignores_weights(self):
        policy = AggregationPolicy.from_config(
            AggregationConfig(mode="mean", weights={"security": {"hotspot_priority": 5}})
        )
        assert policy.weights == {}

    def test_all_zero_weights_rejected(self):
        policy = AggregationPolicy({QA.COMPLEXITY: {QA.CYCLOMATIC_COMPLEXITY: 0, QA.COGNITIVE_COMPLEXITY: 0}})
        with pytest.raises(ValueError):
            policy.aggregate(
                QA.COMPLEXITY,
                [
                    QualityMetricNode(QA.CYCLOMATIC_COMPLEXITY, 0.5),
                    QualityMetricNode(QA.COGNITIVE_COMPLEXITY, 0.5),
                ],
            )
