"""Collapse metric candidates to one per category."""

from __future__ import annotations

from typing import Iterable

from sec_metrics.models import ExtendedFinancialMetric, MetricCategory


def reconcile(candidates: Iterable[ExtendedFinancialMetric]) -> list[ExtendedFinancialMetric]:
    """Keep the highest-confidence candidate of each category.

    On a confidence tie the candidate seen first wins, so callers control
    precedence by the order they pass sources in.  The result is sorted by
    ``MetricCategory`` declaration order.
    """
    best: dict[MetricCategory, ExtendedFinancialMetric] = {}
    for metric in candidates:
        current = best.get(metric.category)
        if current is None or metric.confidence > current.confidence:
            best[metric.category] = metric
    return sorted(best.values(), key=lambda m: m.category.ordinal)


def best_confidence(candidates: Iterable[ExtendedFinancialMetric]) -> dict[MetricCategory, float]:
    """Highest confidence seen per category."""
    best: dict[MetricCategory, float] = {}
    for metric in candidates:
        if metric.confidence > best.get(metric.category, -1.0):
            best[metric.category] = metric.confidence
    return best
