"""Pattern-based metric extraction from normalized filing text.

Two entry points:

  extract_metrics()        : searches the text for every PATTERN_CATALOG
                             label using several phrasings and scores each
                             hit by catalog confidence and match order
  parse_statement_table()  : reads column-aligned statement rows
                             (label, current value, prior value) and infers
                             each row's category from its label

Both return candidates only; picking one metric per category is left to
``reconcile.reconcile``.
"""

from __future__ import annotations

import heapq
import logging
import re
from decimal import Decimal
from functools import lru_cache
from typing import Iterable, Iterator, Mapping

from sec_metrics.catalog import (
    PATTERN_CATALOG,
    PER_SHARE_CATEGORIES,
    SHARE_COUNT_CATEGORIES,
    SIGNED_CATEGORIES,
    PatternEntry,
    infer_category,
)
from sec_metrics.config import get_config
from sec_metrics.models import (
    ExtendedFinancialMetric,
    ExtractionWarning,
    FailureReason,
    MetricCategory,
    MetricUnit,
    PeriodType,
)
from sec_metrics.money import format_money, format_plain, parse_amount, percentage_change
from sec_metrics.reconcile import reconcile
from sec_metrics.units import (
    detect_period,
    detect_period_type,
    detect_unit,
    find_unit_phrase,
)

log = logging.getLogger(__name__)

# Amounts below this (as written, before unit scaling) are usually
# percentages, ratios or footnote markers rather than line items
MIN_ABSOLUTE_VALUE = Decimal("1000")
# Confidence lost per earlier match of the same label
CONFIDENCE_DECAY = 0.08
MAX_MATCHES_PER_LABEL = 5

TEXT_SOURCE = "text pattern"
TABLE_SOURCE = "statement table"

TABLE_TOTAL_CONFIDENCE = 0.95
TABLE_ROW_CONFIDENCE = 0.85
TABLE_MIN_LINE_CHARS = 10
TABLE_HEADER_SCAN_LINES = 20


# ═══════════════════════════════════════════════════════════════════════════
#  Regex building blocks
# ═══════════════════════════════════════════════════════════════════════════

_NUM = r"(?P<num>\d[\d,]*(?:\.\d+)?)"
_INLINE_UNIT = r"(?:\s*(?P<mag>million|billion|thousand|mm|bn|[mbk])\b)?"
_DASH = r"[-\u2013\u2014]"

_INLINE_UNITS = {
    "thousand": MetricUnit.THOUSANDS, "k": MetricUnit.THOUSANDS,
    "million": MetricUnit.MILLIONS, "mm": MetricUnit.MILLIONS, "m": MetricUnit.MILLIONS,
    "billion": MetricUnit.BILLIONS, "bn": MetricUnit.BILLIONS, "b": MetricUnit.BILLIONS,
}

_YEAR_RE = re.compile(r"^(?:19|20)\d{2}$")
_NEGATION_CUE_RE = re.compile(r"\b(?:loss(?:es)?|deficit)\b")
# "Net income (loss)" names a line, it does not signal a negative value
_HEDGE_RE = re.compile(r"\(\s*(?:loss|deficit)\s*\)")

_TABLE_NUMBER_RE = re.compile(r"\(?\$?\s*\d[\d,]*(?:\.\d+)?\)?")
# Outside pipe-delimited rows a dash only counts as a value when it stands alone
_TABLE_TOKEN_RE = re.compile(rf"(?<!\S){_DASH}+(?!\S)|{_TABLE_NUMBER_RE.pattern}")
# "not applicable" cell
_DASH_CELL_RE = re.compile(rf"^{_DASH}+$")
# "(1,234" and ")" rendered as separate cells
_SPLIT_PAREN_RE = re.compile(r"\s*\|\s*\)")
_FILLER_CELLS = frozenset({"$", "(", ")", "%"})
_TABLE_YEAR_RE = re.compile(r"\b20\d{2}\b")
_PAGE_MARKER_RE = re.compile(r"^F-\d+")
_LABEL_TRIM = " |$:\t"


def _label_regex(label: str, not_after: str = "") -> str:
    """Escaped label that must not start or end inside a word, nor follow
    the word ``not_after`` when one is given."""
    escaped = r"\s+".join(re.escape(part) for part in label.split())
    guard = rf"(?<!\b{re.escape(not_after)}\s)" if not_after else ""
    return rf"{guard}(?<![A-Za-z]){escaped}(?![A-Za-z])"


@lru_cache(maxsize=None)
def _forward_patterns(label: str, not_after: str = "") -> tuple[re.Pattern, ...]:
    """Label-then-amount phrasings, compiled once per label."""
    lab = _label_regex(label, not_after)
    return (
        # "Total Revenue $ 1,234.5 million", "Net Loss (45,678)", "Revenue: -1,200"
        re.compile(rf"{lab}[:\s|\-]*\(?\s*\$?\s*\(?\s*-?{_NUM}\)?{_INLINE_UNIT}", re.IGNORECASE),
        # "| Total revenue | $ (1,234) |"
        re.compile(rf"{lab}\s*\|\s*\$?\s*\(?\s*{_NUM}\)?", re.IGNORECASE),
        # "Net loss ($ 1,234)"
        re.compile(rf"{lab}[:\s]*\(\$?\s*{_NUM}\)", re.IGNORECASE),
    )


@lru_cache(maxsize=None)
def _reverse_pattern(label: str, not_after: str = "") -> re.Pattern:
    """Amount-then-label: "$ 1,234 total revenue"."""
    return re.compile(
        rf"\$?\s*\(?{_NUM}\)?{_INLINE_UNIT}\s*{_DASH}?\s*{_label_regex(label, not_after)}",
        re.IGNORECASE,
    )


# ═══════════════════════════════════════════════════════════════════════════
#  Match interpretation
# ═══════════════════════════════════════════════════════════════════════════

def _is_parenthesized(text: str, start: int, end: int) -> bool:
    before = text[max(0, start - 4):start].rstrip(" $")
    after = text[end:end + 3].lstrip()
    return before.endswith("(") and after.startswith(")")


def _has_leading_minus(text: str, start: int) -> bool:
    return start > 0 and text[start - 1] == "-"


def _has_negation_cue(line: str, label: str) -> bool:
    label_text = _HEDGE_RE.sub(" ", label.lower())
    if _NEGATION_CUE_RE.search(label_text):
        return True
    around = _HEDGE_RE.sub(" ", line.lower())
    # the label itself was checked above
    around = around.replace(label.lower(), " ")
    return bool(_NEGATION_CUE_RE.search(around))


def _context_window(text: str, start: int, end: int, width: int) -> str:
    return text[max(0, start - width):min(len(text), end + width)].strip()


def _line_of(text: str, start: int, end: int) -> str:
    """The line holding ``text[start:end]``."""
    line_start = text.rfind("\n", 0, start) + 1
    line_end = text.find("\n", end)
    return text[line_start:line_end if line_end != -1 else len(text)]


def display_value(value: Decimal, category: MetricCategory) -> str:
    if category in SHARE_COUNT_CATEGORIES:
        return f"{format_plain(value)} shares"
    return format_money(value)


def _warn(
    warnings: list[ExtractionWarning] | None,
    reason: FailureReason,
    message: str,
    category: MetricCategory | None = None,
) -> None:
    log.info("%s: %s", reason.value, message)
    if warnings is not None:
        warnings.append(ExtractionWarning(reason=reason, message=message, category=category))


def resolve_unit(
    text: str,
    unit: MetricUnit | None,
    warnings: list[ExtractionWarning] | None = None,
) -> MetricUnit:
    """Unit passed by the caller, else the unit the text states, else the
    default (recorded as AMBIGUOUS_UNIT)."""
    if unit is not None:
        return unit
    stated = find_unit_phrase(text)
    if stated is not None:
        return stated
    fallback = detect_unit(text)
    _warn(
        warnings,
        FailureReason.AMBIGUOUS_UNIT,
        f"No unit phrase found; assuming {fallback.value}",
    )
    return fallback


# ═══════════════════════════════════════════════════════════════════════════
#  Label search
# ═══════════════════════════════════════════════════════════════════════════

def _forward_matches(text: str, entry: PatternEntry) -> Iterator[re.Match]:
    """Forward-phrasing matches in document order, one per amount."""
    merged = heapq.merge(
        *(p.finditer(text) for p in _forward_patterns(entry.label, entry.not_after)),
        key=lambda m: m.start("num"),
    )
    last_start = -1
    for m in merged:
        if m.start("num") == last_start:
            continue
        last_start = m.start("num")
        yield m


def _search_entry(
    text: str,
    entry: PatternEntry,
    *,
    unit: MetricUnit,
    period: str | None,
    period_type: PeriodType | None,
    currency: str,
    window: int,
    warnings: list[ExtractionWarning] | None,
) -> list[ExtendedFinancialMetric]:
    found = _collect(text, entry, _forward_matches(text, entry),
                     unit=unit, period=period, period_type=period_type,
                     currency=currency, window=window, warnings=warnings)
    if not found:
        found = _collect(text, entry, _reverse_pattern(entry.label, entry.not_after).finditer(text),
                         unit=unit, period=period, period_type=period_type,
                         currency=currency, window=window, warnings=warnings)
    return found


def _collect(
    text: str,
    entry: PatternEntry,
    matches: Iterable[re.Match],
    *,
    unit: MetricUnit,
    period: str | None,
    period_type: PeriodType | None,
    currency: str,
    window: int,
    warnings: list[ExtractionWarning] | None,
) -> list[ExtendedFinancialMetric]:
    results: list[ExtendedFinancialMetric] = []
    seen: set[Decimal] = set()
    per_share = entry.category in PER_SHARE_CATEGORIES

    for m in matches:
        if len(results) >= MAX_MATCHES_PER_LABEL:
            break
        num_text = m.group("num")
        digits = num_text.replace(",", "")
        if _YEAR_RE.match(digits):
            continue

        magnitude = m.groupdict().get("mag")
        inline_unit = _INLINE_UNITS.get(magnitude.lower()) if magnitude else None
        if not per_share and inline_unit is None and abs(Decimal(digits)) < MIN_ABSOLUTE_VALUE:
            continue

        start, end = m.start("num"), m.end("num")
        context = _context_window(text, m.start(), m.end(), window)
        # sign cues are read from the match's own line only
        line = _line_of(text, m.start(), m.end())
        negative = (
            _is_parenthesized(text, start, end)
            or _has_leading_minus(text, start)
            or (entry.category in SIGNED_CATEGORIES and _has_negation_cue(line, entry.label))
        )

        if per_share:
            metric_unit = MetricUnit.PER_SHARE
        else:
            metric_unit = inline_unit or unit
        outcome = parse_amount(("-" if negative else "") + num_text, metric_unit, currency)
        if outcome.failure is FailureReason.IMPLAUSIBLE_AMOUNT:
            _warn(warnings, outcome.failure,
                  f"{entry.label}: {num_text} ({metric_unit.value}) exceeds the plausible ceiling",
                  entry.category)
            continue
        if not outcome.ok:
            continue

        raw = outcome.value.amount
        if raw in seen:
            continue
        seen.add(raw)

        index = len(results)
        results.append(ExtendedFinancialMetric(
            name=entry.label,
            display_value=display_value(raw, entry.category),
            raw_value=raw,
            unit=metric_unit,
            period=period,
            period_type=period_type,
            category=entry.category,
            source=f"{TEXT_SOURCE}: {entry.label}",
            confidence=round(entry.confidence * (1.0 - index * CONFIDENCE_DECAY), 4),
            context=context,
        ))
    return results


def extract_metrics(
    text: str,
    *,
    unit: MetricUnit | None = None,
    period: str | None = None,
    period_type: PeriodType | None = None,
    satisfied: Iterable[MetricCategory] = (),
    known: Mapping[MetricCategory, float] | None = None,
    warnings: list[ExtractionWarning] | None = None,
    currency: str | None = None,
) -> list[ExtendedFinancialMetric]:
    """Search normalized text for every catalog label.

    Categories in ``satisfied`` (covered by an authoritative source) are
    skipped outright.  ``known`` maps categories to the best confidence
    another source already reached; a catalog entry is searched only when
    its base confidence is higher.  Returns every candidate, possibly several per
    category; plausibility violations and an assumed unit are appended to
    ``warnings`` when a list is given.
    """
    if not text:
        return []
    cfg = get_config()
    unit = resolve_unit(text, unit, warnings)
    if period is None:
        period = detect_period(text)
    if period_type is None:
        period_type = detect_period_type(text)
    currency = currency or cfg.default_currency
    skip = frozenset(satisfied)
    known = known or {}

    candidates: list[ExtendedFinancialMetric] = []
    for entry in PATTERN_CATALOG:
        if entry.category in skip or known.get(entry.category, -1.0) >= entry.confidence:
            continue
        candidates.extend(_search_entry(
            text, entry,
            unit=unit, period=period, period_type=period_type,
            currency=currency, window=cfg.context_window_chars,
            warnings=warnings,
        ))
    log.debug("Text patterns produced %d candidates (unit=%s)", len(candidates), unit.value)
    return candidates


# ═══════════════════════════════════════════════════════════════════════════
#  Statement tables
# ═══════════════════════════════════════════════════════════════════════════

def is_valid_label(label: str) -> bool:
    """Reject numeric labels, page/table markers and separator runs."""
    if len(label) < 3:
        return False
    if all(ch.isdigit() or ch.isspace() or ch in ",.$()" for ch in label):
        return False
    if "Page " in label or _PAGE_MARKER_RE.match(label):
        return False
    if label[0].isdigit():
        return False
    if "---" in label or "___" in label or "===" in label:
        return False
    return True


def split_row(line: str) -> tuple[str, list[str | None]]:
    """Row label and its value columns, ``None`` for a dash column.

    Pipe-delimited rows are split by cell, dropping empty and ``$`` filler
    cells; other lines are tokenized, the label being the text before the
    first value.
    """
    line = line.strip()
    if "|" in line:
        cells = [c.strip() for c in _SPLIT_PAREN_RE.sub(")", line).split("|")]
        cells = [c for c in cells if c and c not in _FILLER_CELLS]
        if not cells:
            return "", []
        values: list[str | None] = []
        for cell in cells[1:]:
            if _DASH_CELL_RE.match(cell):
                values.append(None)
                continue
            m = _TABLE_NUMBER_RE.match(cell)
            if m is not None:
                values.append(m.group().strip())
        return cells[0].strip(_LABEL_TRIM), values

    tokens = list(_TABLE_TOKEN_RE.finditer(line))
    if not tokens:
        return "", []
    label = line[:tokens[0].start()].strip(_LABEL_TRIM)
    return label, [None if _DASH_CELL_RE.match(t.group()) else t.group().strip() for t in tokens]


def find_header_years(lines: list[str]) -> list[str]:
    """Years of the first header row (>= 2 four-digit years) near the top."""
    for line in lines[:TABLE_HEADER_SCAN_LINES]:
        years = _TABLE_YEAR_RE.findall(line)
        if len(years) >= 2:
            return years
    return []


def parse_statement_table(
    text: str,
    *,
    unit: MetricUnit | None = None,
    period_type: PeriodType | None = None,
    warnings: list[ExtractionWarning] | None = None,
    currency: str | None = None,
) -> list[ExtendedFinancialMetric]:
    """Parse column-aligned statement rows.

    The first value column of a row is the current period, the second the
    prior period; the year-over-year change is computed from the pair.  A
    dash column is not applicable: no metric when it is the current value,
    no change when it is the prior one.  Returns the best row per category.
    """
    if not text:
        return []
    unit = resolve_unit(text, unit, warnings)
    currency = currency or get_config().default_currency
    lines = text.splitlines()
    years = find_header_years(lines)
    period = years[0] if years else None

    rows: list[ExtendedFinancialMetric] = []
    for line in lines:
        line = line.strip()
        if len(line) < TABLE_MIN_LINE_CHARS:
            continue
        label, values = split_row(line)
        if not values or values[0] is None:
            continue
        if not is_valid_label(label):
            continue
        category = infer_category(label)
        if category is None:
            continue

        row_unit = MetricUnit.PER_SHARE if category in PER_SHARE_CATEGORIES else unit
        current = parse_amount(values[0], row_unit, currency)
        if current.failure is FailureReason.IMPLAUSIBLE_AMOUNT:
            _warn(warnings, current.failure,
                  f"{label}: {values[0]} exceeds the plausible ceiling", category)
            continue
        if not current.ok:
            continue

        yoy = None
        if len(values) >= 2 and values[1] is not None:
            prior = parse_amount(values[1], row_unit, currency)
            if prior.ok:
                change = percentage_change(current.value, prior.value)
                if change.failure is FailureReason.IMPLAUSIBLE_GROWTH:
                    _warn(warnings, change.failure,
                          f"{label}: change from {prior.value.amount} to "
                          f"{current.value.amount} is implausible", category)
                yoy = change.value

        raw = current.value.amount
        rows.append(ExtendedFinancialMetric(
            name=label,
            display_value=display_value(raw, category),
            raw_value=raw,
            unit=row_unit,
            period=period,
            period_type=period_type,
            category=category,
            source=TABLE_SOURCE,
            confidence=(TABLE_TOTAL_CONFIDENCE if label.lower().startswith("total")
                        else TABLE_ROW_CONFIDENCE),
            context=line,
            yoy_change=yoy,
        ))
    return reconcile(rows)
