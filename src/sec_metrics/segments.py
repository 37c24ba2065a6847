"""Revenue by geographic region and product line.

Segment tables are found by their heading ("Segment information",
"Revenue by region", ...).  Inside a segment section each row naming a known
region or product line contributes its first amount; a heading-like line
without amounts ends the section once rows have been read, and an
``Item n``, ``Note n`` or ``Part`` heading always ends it.  Totals are
skipped, and each segment's share is taken against the sum of the segments
of the same type.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal

from sec_metrics.extractor import resolve_unit, split_row
from sec_metrics.models import ExtractionWarning, MetricUnit, SegmentRevenue, SegmentType
from sec_metrics.money import parse_amount, percentage_of

log = logging.getLogger(__name__)

# Scaled amounts at or below this are footnote references, not revenue
MIN_SEGMENT_REVENUE = Decimal("1000")
# Longer row labels are sentences; the matched segment name is used instead
MAX_SEGMENT_LABEL_CHARS = 40

_SECTION_START_RES = (
    re.compile(r"\b(?:geographic|segment|regional)\s+information\b", re.IGNORECASE),
    re.compile(r"\brevenues?\s+by\s+(?:segment|region|geography|product)", re.IGNORECASE),
    re.compile(r"\bsegment\s+(?:revenues?|results)\b", re.IGNORECASE),
)
_HEADING_RE = re.compile(r"^[A-Z][\w\s,.'&()-]*:?$")
_NEXT_SECTION_RE = re.compile(r"^(?:item\s+\d|note\s+\d|part\s+[iv]+\b)", re.IGNORECASE)
_TOTAL_RE = re.compile(r"\btotal\b", re.IGNORECASE)
_YEAR_RE = re.compile(r"^(?:19|20)\d{2}$")

# Checked in order; the first name found on a row decides its type
_SEGMENT_NAMES: tuple[tuple[str, SegmentType, re.Pattern], ...] = tuple(
    (name, kind, re.compile(pattern, re.IGNORECASE))
    for name, kind, pattern in (
        ("Americas", SegmentType.GEOGRAPHIC, r"\bamericas\b"),
        ("United States", SegmentType.GEOGRAPHIC, r"\bunited\s+states\b"),
        ("North America", SegmentType.GEOGRAPHIC, r"\bnorth\s+america\b"),
        ("EMEA", SegmentType.GEOGRAPHIC, r"\bemea\b"),
        ("Europe", SegmentType.GEOGRAPHIC, r"\beurope\b"),
        ("Asia Pacific", SegmentType.GEOGRAPHIC, r"\basia[\s-]+pacific\b"),
        ("APAC", SegmentType.GEOGRAPHIC, r"\bapac\b"),
        ("China", SegmentType.GEOGRAPHIC, r"\bchina\b"),
        ("Japan", SegmentType.GEOGRAPHIC, r"\bjapan\b"),
        ("Other Countries", SegmentType.GEOGRAPHIC, r"\bother\s+countries\b"),
        ("International", SegmentType.GEOGRAPHIC, r"\binternational\b"),
        ("Domestic", SegmentType.GEOGRAPHIC, r"\bdomestic\b"),
        ("iPhone", SegmentType.PRODUCT, r"\biphone\b"),
        ("Mac", SegmentType.PRODUCT, r"\bmac\b"),
        ("iPad", SegmentType.PRODUCT, r"\bipad\b"),
        ("Wearables", SegmentType.PRODUCT, r"\bwearables\b"),
        ("Software", SegmentType.PRODUCT, r"\bsoftware\b"),
        ("Hardware", SegmentType.PRODUCT, r"\bhardware\b"),
        ("Products", SegmentType.PRODUCT, r"\bproducts?\b"),
        ("Services", SegmentType.SERVICE, r"\bservices?\b"),
        ("Subscription", SegmentType.SERVICE, r"\bsubscriptions?\b"),
    )
)


def is_segment_heading(line: str) -> bool:
    return any(p.search(line) for p in _SECTION_START_RES)


def match_segment(label: str) -> tuple[str, SegmentType] | None:
    """Canonical name and type of the first known segment in ``label``."""
    for name, kind, pattern in _SEGMENT_NAMES:
        if pattern.search(label):
            return name, kind
    return None


def _ends_section(line: str, label: str, values: list) -> bool:
    stripped = line.strip(" |")
    return (
        not values
        and bool(_HEADING_RE.match(stripped))
        and "revenue" not in stripped.lower()
        and match_segment(label) is None
    )


def _first_amount(values: list[str | None], unit: MetricUnit, currency: str) -> Decimal | None:
    for raw in values:
        if raw is None or _YEAR_RE.match(raw.strip("$ ")):
            continue
        outcome = parse_amount(raw, unit, currency)
        return outcome.value.amount if outcome.ok else None
    return None


def parse_segment_information(
    text: str,
    *,
    unit: MetricUnit | None = None,
    currency: str = "USD",
    warnings: list[ExtractionWarning] | None = None,
) -> list[SegmentRevenue]:
    """Segment revenues in ``text`` (normalized), in document order.

    ``unit`` defaults to the unit the text states.  A segment name seen
    twice keeps its first row, which is the most recent column in a
    comparative table.
    """
    unit = resolve_unit(text, unit, warnings)
    found: list[tuple[str, SegmentType, Decimal, str]] = []
    seen: set[str] = set()

    in_section = False
    rows_read = 0
    for i, line in enumerate(text.splitlines()):
        if not in_section:
            if is_segment_heading(line):
                in_section, rows_read = True, 0
            continue
        if is_segment_heading(line):
            rows_read = 0
            continue

        label, values = split_row(line)
        if _NEXT_SECTION_RE.match(line.strip(" |")) or (
            rows_read and _ends_section(line, label or line.strip(), values)
        ):
            in_section = False
            continue
        if not values or _TOTAL_RE.search(line):
            continue
        matched = match_segment(label or line)
        if matched is None:
            continue
        amount = _first_amount(values, unit, currency)
        if amount is None or amount <= MIN_SEGMENT_REVENUE:
            continue

        canonical, kind = matched
        name = label if label and len(label) <= MAX_SEGMENT_LABEL_CHARS else canonical
        rows_read += 1
        if name.casefold() in seen:
            continue
        seen.add(name.casefold())
        found.append((name, kind, amount, f"Line {i + 1}"))

    totals: dict[SegmentType, Decimal] = {}
    for _, kind, amount, _ in found:
        totals[kind] = totals.get(kind, Decimal(0)) + amount

    segments = [
        SegmentRevenue(
            name=name,
            segment_type=kind,
            revenue=amount,
            percent_of_total=percentage_of(amount, totals[kind]),
            source=source,
        )
        for name, kind, amount, source in found
    ]
    if segments:
        log.info("Found %d revenue segments", len(segments))
    return segments
