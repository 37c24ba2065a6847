"""Growth, CAGR, anomaly and margin-trend analytics over metric series.

Series are ordered oldest first.  Growth rates come from
``money.percentage_change``, so a zero base gives no rate and a change past
the growth ceiling is reported as IMPLAUSIBLE_GROWTH instead of returned.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Sequence

from sec_metrics.models import (
    AnomalyDetection,
    AnomalySeverity,
    ExtractionWarning,
    FailureReason,
    GrowthMetric,
    MarginTrend,
    TrendDirection,
    TrendReport,
)
from sec_metrics.money import (
    MAX_PLAUSIBLE_GROWTH_PCT,
    percentage_change,
    percentage_of,
    to_decimal,
)

log = logging.getLogger(__name__)

MIN_ANOMALY_HISTORY = 3
# Margin change in percentage points that counts as a direction
MARGIN_TREND_THRESHOLD_PP = Decimal("2")

_CENT = Decimal("0.01")
_HUNDRED = Decimal("100")
_PRECISION = 40

# (lower bound, exclusive) -> wording; below the last bound the fallback applies
_YOY_WORDING = (
    (Decimal("20"), "Exceptional growth"),
    (Decimal("10"), "Strong growth"),
    (Decimal("5"), "Moderate growth"),
    (Decimal("0"), "Slight growth"),
    (Decimal("-5"), "Slight decline"),
)
_QOQ_WORDING = (
    (Decimal("15"), "Exceptional quarterly growth"),
    (Decimal("5"), "Strong quarter"),
    (Decimal("0"), "Positive quarter"),
    (Decimal("-5"), "Weak quarter"),
)
_CAGR_WORDING = (
    (Decimal("15"), "Outstanding CAGR"),
    (Decimal("10"), "Excellent CAGR"),
    (Decimal("5"), "Good CAGR"),
)
_SEVERITY_BOUNDS = (
    (Decimal("3"), AnomalySeverity.CRITICAL),
    (Decimal("2"), AnomalySeverity.HIGH),
    (Decimal("1.5"), AnomalySeverity.MEDIUM),
)
_MARGIN_LEVELS = (
    (Decimal("30"), "excellent"),
    (Decimal("20"), "strong"),
    (Decimal("10"), "moderate"),
    (Decimal("5"), "weak"),
)
_DIRECTION_WORDING = {
    TrendDirection.IMPROVING: "and improving",
    TrendDirection.STABLE: "and stable",
    TrendDirection.DECLINING: "but declining",
}


def _round(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def _word(value: Decimal, table, fallback: str) -> str:
    for bound, word in table:
        if value > bound:
            return word
    return fallback


def _warn_growth(warnings: list[ExtractionWarning] | None, name: str, label: str) -> None:
    message = f"{name} {label} change exceeds {MAX_PLAUSIBLE_GROWTH_PCT}%"
    log.warning("%s: %s", FailureReason.IMPLAUSIBLE_GROWTH.value, message)
    if warnings is not None:
        warnings.append(ExtractionWarning(reason=FailureReason.IMPLAUSIBLE_GROWTH, message=message))


# ═══════════════════════════════════════════════════════════════════════════
#  Growth
# ═══════════════════════════════════════════════════════════════════════════

def _growth(name, label, wording, fallback, current, previous, warnings) -> GrowthMetric | None:
    outcome = percentage_change(current, previous)
    if outcome.failure is FailureReason.IMPLAUSIBLE_GROWTH:
        _warn_growth(warnings, name, label)
    if not outcome.ok:
        return None
    rate = outcome.value
    return GrowthMetric(
        name=name,
        period_label=label,
        current_value=to_decimal(current),
        previous_value=to_decimal(previous),
        growth_pct=rate,
        interpretation=f"{_word(rate, wording, fallback)} ({rate}%)",
    )


def yoy_growth(name: str, current, previous, *, warnings=None) -> GrowthMetric | None:
    """Year-over-year growth; None when ``previous`` is zero or the change
    is implausible."""
    return _growth(name, "YoY", _YOY_WORDING, "Significant decline", current, previous, warnings)


def qoq_growth(name: str, current, previous, *, warnings=None) -> GrowthMetric | None:
    return _growth(name, "QoQ", _QOQ_WORDING, "Poor quarter", current, previous, warnings)


def cagr(name: str, begin, end, years: int, *, warnings=None) -> GrowthMetric | None:
    """Compound annual growth rate ``(end / begin) ** (1 / years) - 1`` in percent.

    None unless ``begin`` is positive, ``end`` is not negative and
    ``years`` is positive.
    """
    start, finish = to_decimal(begin), to_decimal(end)
    if start <= 0 or finish < 0 or years <= 0:
        return None
    label = f"{years}Y CAGR"
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        growth = (finish / start) ** (Decimal(1) / Decimal(years))
        rate = _round((growth - 1) * _HUNDRED)
    if abs(rate) > MAX_PLAUSIBLE_GROWTH_PCT:
        _warn_growth(warnings, name, label)
        return None
    return GrowthMetric(
        name=name,
        period_label=label,
        current_value=finish,
        previous_value=start,
        growth_pct=rate,
        interpretation=f"{_word(rate, _CAGR_WORDING, 'Modest CAGR')} ({rate}%)",
    )


# ═══════════════════════════════════════════════════════════════════════════
#  Anomalies
# ═══════════════════════════════════════════════════════════════════════════

def detect_anomaly(name: str, value, history: Sequence) -> AnomalyDetection:
    """How far ``value`` sits from the mean of ``history``, in population
    standard deviations.

    With fewer than ``MIN_ANOMALY_HISTORY`` values there is no verdict.
    A flat history (zero deviation) gives a z-score of 0.
    """
    current = to_decimal(value)
    past = [to_decimal(v) for v in history]
    if len(past) < MIN_ANOMALY_HISTORY:
        return AnomalyDetection(
            name=name, value=current,
            description="Insufficient historical data for anomaly detection",
        )

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        n = Decimal(len(past))
        mean = sum(past, Decimal(0)) / n
        variance = sum(((v - mean) ** 2 for v in past), Decimal(0)) / n
        std_dev = variance.sqrt()
        z = (current - mean) / std_dev if std_dev > 0 else Decimal(0)

    severity = next((s for bound, s in _SEVERITY_BOUNDS if abs(z) > bound), AnomalySeverity.NONE)
    z, mean, std_dev = _round(z), _round(mean), _round(std_dev)
    if severity is AnomalySeverity.NONE:
        description = f"{name} is within normal range"
    else:
        direction = "higher" if z > 0 else "lower"
        description = (f"{name} is {abs(z)} standard deviations {direction} than its "
                       f"historical average (mean {mean})")
    return AnomalyDetection(
        name=name,
        value=current,
        is_anomaly=severity is not AnomalySeverity.NONE,
        severity=severity,
        z_score=z,
        mean=mean,
        std_dev=std_dev,
        description=description,
    )


# ═══════════════════════════════════════════════════════════════════════════
#  Margins
# ═══════════════════════════════════════════════════════════════════════════

def margin_trend(name: str, revenues: Sequence, costs: Sequence) -> MarginTrend | None:
    """Margin ``(revenue - cost) / revenue`` per period and its direction.

    ``revenues`` and ``costs`` are parallel, oldest first.  Periods without
    positive revenue are left out; None when fewer than two margins remain
    or the lengths differ.
    """
    if len(revenues) != len(costs) or len(revenues) < 2:
        return None
    margins: list[Decimal] = []
    for rev, cost in zip(revenues, costs):
        rev, cost = to_decimal(rev), to_decimal(cost)
        if rev > 0:
            margins.append(percentage_of(rev - cost, rev))
    if len(margins) < 2:
        return None

    change = margins[-1] - margins[0]
    if change > MARGIN_TREND_THRESHOLD_PP:
        direction = TrendDirection.IMPROVING
    elif change < -MARGIN_TREND_THRESHOLD_PP:
        direction = TrendDirection.DECLINING
    else:
        direction = TrendDirection.STABLE

    steps = [abs(b - a) for a, b in zip(margins, margins[1:])]
    volatility = _round(sum(steps, Decimal(0)) / len(steps))

    level = _word(margins[-1], _MARGIN_LEVELS, "concerning")
    sign = "+" if change >= 0 else ""
    return MarginTrend(
        name=name,
        margins=margins,
        direction=direction,
        change_pp=change,
        volatility=volatility,
        interpretation=(f"Margin is {level} ({margins[-1]}%) "
                        f"{_DIRECTION_WORDING[direction]} ({sign}{change}pp)"),
    )


# ═══════════════════════════════════════════════════════════════════════════
#  Series report
# ═══════════════════════════════════════════════════════════════════════════

def analyze_series(
    name: str,
    values: Sequence,
    *,
    costs: Sequence | None = None,
    quarterly: bool = False,
) -> TrendReport:
    """Growth of the latest period, CAGR over an annual series of three or
    more periods, an anomaly check of the latest value against the earlier
    ones, and the margin trend when ``costs`` are given."""
    warnings: list[ExtractionWarning] = []
    growth = None
    if len(values) >= 2:
        rate = qoq_growth if quarterly else yoy_growth
        growth = rate(name, values[-1], values[-2], warnings=warnings)

    compound = None
    if not quarterly and len(values) >= 3:
        compound = cagr(name, values[0], values[-1], len(values) - 1, warnings=warnings)

    anomaly = detect_anomaly(name, values[-1], values[:-1]) if values else None
    margins = margin_trend(name, values, costs) if costs is not None else None

    return TrendReport(
        name=name,
        growth=growth,
        cagr=compound,
        anomaly=anomaly,
        margin_trend=margins,
        warnings=warnings,
    )
