"""Ranking engine: constraint filtering, weighted scoring, stable ordering."""

from .engine import order, passes_constraints, rank

__all__ = ["order", "passes_constraints", "rank"]
