"""Reporting unit and period detection from document context."""

from __future__ import annotations

import re

from sec_metrics.models import MetricUnit, PeriodType

# Checked largest first: a statement "in millions" that mentions
# "in thousands" for one footnote still reports in millions
_UNIT_PHRASES: tuple[tuple[MetricUnit, tuple[str, ...]], ...] = (
    (MetricUnit.BILLIONS, (
        "in billions", "(in billions)", "$ in billions", "billions of dollars",
        "in billions of dollars", ", in billions,",
    )),
    (MetricUnit.MILLIONS, (
        "in millions", "(in millions)", "$ in millions", "millions of dollars",
        "in millions of dollars", ", in millions,",
    )),
    (MetricUnit.THOUSANDS, (
        "in thousands", "(in thousands)", "$ in thousands", "thousands of dollars",
        "in thousands of dollars", ", in thousands,",
    )),
)

_PER_SHARE_PHRASES = ("except per share", "per share data", "per-share data")

# Unit assumed when a filing states none: large filers report in millions
DEFAULT_UNIT = MetricUnit.MILLIONS

_PERIOD_PATTERNS = (
    re.compile(
        r"(?:For\s+the\s+|Quarter\s+Ended\s+|Year\s+Ended\s+|Period\s+Ended\s+)"
        r"([A-Za-z]+\s+\d{1,2},?\s+\d{4})",
        re.IGNORECASE,
    ),
    re.compile(
        r"(?:Three|Six|Nine|Twelve)\s+Months\s+Ended\s+([A-Za-z]+\s+\d{1,2},?\s+\d{4})",
        re.IGNORECASE,
    ),
    re.compile(r"\b(Q[1-4]\s+\d{4})\b", re.IGNORECASE),
    re.compile(r"\b(FY\s*\d{4})\b", re.IGNORECASE),
)

_QUARTER_TOKEN_RE = re.compile(r"\bq[1-4]\s")

_PERIOD_TYPE_RULES: tuple[tuple[PeriodType, tuple[str, ...]], ...] = (
    (PeriodType.QUARTERLY, ("three months", "quarterly", "quarter ended")),
    (PeriodType.ANNUAL, ("twelve months", "annual", "fiscal year", "year ended")),
    (PeriodType.YTD, ("nine months", "six months")),
)


def find_unit_phrase(text: str) -> MetricUnit | None:
    """Return the unit a canonical phrase states, or None when none is stated."""
    lower = text.lower()
    for unit, phrases in _UNIT_PHRASES:
        if any(p in lower for p in phrases):
            return unit
    return None


def signals_per_share(text: str) -> bool:
    lower = text.lower()
    return any(p in lower for p in _PER_SHARE_PHRASES)


def detect_unit(text: str) -> MetricUnit:
    """Reporting unit for a document.

    A stated phrase wins.  Otherwise NONE when the text only signals
    per-share scale, else ``DEFAULT_UNIT``.  Use ``find_unit_phrase`` to
    tell a stated unit from the default.
    """
    unit = find_unit_phrase(text)
    if unit is not None:
        return unit
    if signals_per_share(text):
        return MetricUnit.NONE
    return DEFAULT_UNIT


def detect_period(text: str) -> str | None:
    """First reporting-period phrase (``"December 31, 2024"``, ``"Q3 2024"``)."""
    for pattern in _PERIOD_PATTERNS:
        m = pattern.search(text)
        if m:
            return " ".join(m.group(1).split())
    return None


def detect_period_type(text: str) -> PeriodType | None:
    lower = text.lower()
    for period_type, phrases in _PERIOD_TYPE_RULES:
        if any(p in lower for p in phrases):
            return period_type
        if period_type is PeriodType.QUARTERLY and _QUARTER_TOKEN_RE.search(lower):
            return period_type
    return None
