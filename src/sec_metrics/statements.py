"""Financial statement sections: locate, parse, assemble."""

from __future__ import annotations

import logging
import re
from types import MappingProxyType
from typing import Iterable

from sec_metrics.catalog import STATEMENT_CATEGORIES
from sec_metrics.config import get_config
from sec_metrics.extractor import extract_metrics, parse_statement_table, resolve_unit
from sec_metrics.models import (
    ExtendedFinancialMetric,
    ExtractionWarning,
    FinancialStatement,
    MetricUnit,
    StatementType,
)
from sec_metrics.reconcile import best_confidence, reconcile
from sec_metrics.units import detect_period, detect_period_type, find_unit_phrase

log = logging.getLogger(__name__)

# An end marker closer than this to the heading belongs to the heading block
SECTION_MIN_GAP = 100
SECTION_MIN_CHARS = 200

_I = re.IGNORECASE

STATEMENT_HEADINGS: MappingProxyType[StatementType, tuple[re.Pattern, ...]] = MappingProxyType({
    StatementType.INCOME_STATEMENT: (
        re.compile(r"CONSOLIDATED\s+STATEMENTS\s+OF\s+OPERATIONS", _I),
        re.compile(r"CONSOLIDATED\s+STATEMENTS\s+OF\s+INCOME", _I),
        re.compile(r"STATEMENTS\s+OF\s+OPERATIONS", _I),
        re.compile(r"INCOME\s+STATEMENT", _I),
    ),
    StatementType.BALANCE_SHEET: (
        re.compile(r"CONSOLIDATED\s+BALANCE\s+SHEETS", _I),
        re.compile(r"BALANCE\s+SHEET", _I),
        re.compile(r"CONSOLIDATED\s+BALANCE\s+SHEET", _I),
        re.compile(r"STATEMENT\s+OF\s+FINANCIAL\s+POSITION", _I),
    ),
    StatementType.CASH_FLOW_STATEMENT: (
        re.compile(r"CONSOLIDATED\s+STATEMENTS\s+OF\s+CASH\s+FLOWS", _I),
        re.compile(r"STATEMENTS\s+OF\s+CASH\s+FLOWS", _I),
        re.compile(r"CASH\s+FLOW\s+STATEMENT", _I),
    ),
})

_SECTION_END_PATTERNS = (
    re.compile(r"CONSOLIDATED\s+STATEMENTS", _I),
    re.compile(r"NOTES\s+TO", _I),
    re.compile(r"Item\s+\d+", _I),
    re.compile(r"PART\s+II", _I),
)


def find_statement_section(
    text: str,
    statement_type: StatementType,
    max_chars: int | None = None,
) -> str | None:
    """Text of the first statement of ``statement_type``, or None.

    Headings are tried in order.  A section runs from its heading to the
    nearest end marker at least ``SECTION_MIN_GAP`` characters past the
    heading, capped at ``max_chars``; sections of ``SECTION_MIN_CHARS`` or
    fewer are rejected.
    """
    if max_chars is None:
        max_chars = get_config().section_max_chars
    for heading in STATEMENT_HEADINGS.get(statement_type, ()):
        start = heading.search(text)
        if start is None:
            continue
        end = len(text)
        for pattern in _SECTION_END_PATTERNS:
            m = pattern.search(text, start.end() + SECTION_MIN_GAP)
            if m is not None:
                end = min(end, m.start())
        section = text[start.start():min(end, start.start() + max_chars)]
        if len(section) > SECTION_MIN_CHARS:
            return section
    return None


def _filter(
    metrics: Iterable[ExtendedFinancialMetric],
    statement_type: StatementType,
) -> list[ExtendedFinancialMetric]:
    allowed = STATEMENT_CATEGORIES[statement_type]
    return [m for m in metrics if m.category in allowed]


def parse_financial_statements(
    text: str,
    *,
    unit: MetricUnit | None = None,
    warnings: list[ExtractionWarning] | None = None,
) -> list[FinancialStatement]:
    """Income statement, balance sheet and cash-flow statement found in ``text``.

    Each located section is read as a table first; the pattern search then
    runs for catalog entries more confident than the table row of their
    category, and the most confident candidate wins.  A unit stated inside a
    section overrides the document unit.
    """
    if not text:
        return []
    cfg = get_config()
    doc_unit = unit if unit is not None else resolve_unit(text, None, warnings)

    statements: list[FinancialStatement] = []
    for statement_type in STATEMENT_CATEGORIES:
        section = find_statement_section(text, statement_type, cfg.section_max_chars)
        if section is None:
            continue
        section_unit = find_unit_phrase(section) or doc_unit
        period = detect_period(section)
        period_type = detect_period_type(section)

        rows = parse_statement_table(section, unit=section_unit, period_type=period_type,
                                     warnings=warnings)
        found = extract_metrics(
            section, unit=section_unit, period=period, period_type=period_type,
            known=best_confidence(rows), warnings=warnings,
        )
        metrics = reconcile(_filter(rows + found, statement_type))
        if not metrics:
            continue
        if period is None:
            period = next((m.period for m in metrics if m.period), None)
        statements.append(FinancialStatement(
            type=statement_type,
            period_ending=period,
            period_type=period_type,
            metrics=metrics,
            raw_section=section[:cfg.raw_section_chars],
        ))
        log.debug("%s: %d metrics", statement_type.value, len(metrics))
    return statements


def build_statements(
    metrics: Iterable[ExtendedFinancialMetric],
    text: str = "",
) -> list[FinancialStatement]:
    """Group reconciled metrics into statements by category family.

    The raw excerpt is the located statement section when there is one,
    otherwise the start of ``text``.
    """
    cfg = get_config()
    reconciled = reconcile(metrics)
    statements: list[FinancialStatement] = []
    for statement_type in STATEMENT_CATEGORIES:
        members = _filter(reconciled, statement_type)
        if not members:
            continue
        section = find_statement_section(text, statement_type, cfg.section_max_chars) if text else None
        excerpt = section if section is not None else text
        statements.append(FinancialStatement(
            type=statement_type,
            period_ending=next((m.period for m in members if m.period), None),
            period_type=next((m.period_type for m in members if m.period_type), None),
            metrics=members,
            raw_section=excerpt[:cfg.raw_section_chars],
        ))
    return statements
