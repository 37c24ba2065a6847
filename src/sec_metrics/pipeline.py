"""End-to-end analysis of one filing document, and a parallel batch runner.

Order of work for one document:
  1. Structured facts when the markup carries inline XBRL; these are
     authoritative for every category they cover
  2. Normalize to text, detect unit and reporting period
  3. Statement sections (table rows, then patterns) for the remaining
     categories
  4. Free-text pattern search for categories not yet found at the
     confidence a catalog entry offers
  5. Reconcile, then compute ratios and group into statements
  6. Revenue by segment from the segment tables
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, Mapping

from sec_metrics.config import Settings, get_config
from sec_metrics.extractor import extract_metrics, parse_statement_table, resolve_unit
from sec_metrics.models import ExtendedFinancialMetric, ExtractionWarning, FilingAnalysis
from sec_metrics.normalizer import has_inline_xbrl, normalize
from sec_metrics.ratios import compute_ratios
from sec_metrics.reconcile import best_confidence, reconcile
from sec_metrics.segments import parse_segment_information
from sec_metrics.statements import build_statements, parse_financial_statements
from sec_metrics.units import detect_period, detect_period_type
from sec_metrics.xbrl import extract_facts

log = logging.getLogger(__name__)


def analyze_filing(raw: str | bytes, *, settings: Settings | None = None) -> FilingAnalysis:
    """Extract metrics, ratios and statements from one filing.

    ``raw`` may be HTML/iXBRL markup or plain text.  Documents longer than
    ``settings.max_document_chars`` are truncated with a logged warning.
    """
    cfg = settings or get_config()
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if len(raw) > cfg.max_document_chars:
        log.warning("Document of %d chars truncated to %d", len(raw), cfg.max_document_chars)
        raw = raw[:cfg.max_document_chars]

    warnings: list[ExtractionWarning] = []

    inline_xbrl = has_inline_xbrl(raw)
    structured: list[ExtendedFinancialMetric] = []
    if inline_xbrl:
        structured = extract_facts(raw, warnings=warnings, currency=cfg.default_currency)
    covered = {m.category for m in structured}

    text = normalize(raw)
    unit = resolve_unit(text, None, warnings)
    period = detect_period(text) or next((m.period for m in structured if m.period), None)
    period_type = detect_period_type(text)

    sections = parse_financial_statements(text, unit=unit, warnings=warnings)
    section_metrics = [m for s in sections for m in s.metrics if m.category not in covered]
    if not sections:
        section_metrics = [
            m for m in parse_statement_table(text, unit=unit, period_type=period_type,
                                             warnings=warnings)
            if m.category not in covered
        ]
    found = extract_metrics(
        text, unit=unit, period=period, period_type=period_type,
        satisfied=covered, known=best_confidence(section_metrics),
        warnings=warnings, currency=cfg.default_currency,
    )

    metrics = reconcile(structured + section_metrics + found)
    ratios = compute_ratios(metrics, warnings=warnings)
    statements = build_statements(metrics, text)
    segments = parse_segment_information(text, unit=unit, currency=cfg.default_currency)

    log.info(
        "Analyzed document: %d metrics (%d structured), %d ratios, %d warnings",
        len(metrics), len(structured), len(ratios), len(warnings),
    )
    return FilingAnalysis(
        metrics=metrics,
        ratios=ratios,
        statements=statements,
        segments=segments,
        warnings=warnings,
        unit=unit,
        period=period,
        period_type=period_type,
        has_inline_xbrl=inline_xbrl,
    )


def analyze_filings_batch(
    documents: Mapping[str, str | bytes] | Iterable[tuple[str, str | bytes]],
    max_workers: int | None = None,
) -> list[dict]:
    """Analyze several documents in parallel.

    ``documents`` maps a caller-chosen document id to its content.  Each
    result is the analysis dumped to JSON-compatible types plus its
    ``document_id``; a document that fails yields
    ``{"document_id": ..., "error": ...}`` instead.  Results are returned in
    completion order.
    """
    items = list(documents.items()) if isinstance(documents, Mapping) else list(documents)
    if not items:
        return []
    workers = max_workers or get_config().batch_max_workers

    results: list[dict] = []
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(analyze_filing, content): doc_id for doc_id, content in items}
        for future in as_completed(futures):
            doc_id = futures[future]
            try:
                analysis = future.result()
                results.append({"document_id": doc_id, **analysis.model_dump(mode="json")})
            except Exception as exc:
                log.warning("Batch analysis failed for %s: %s", doc_id, exc)
                results.append({"document_id": doc_id, "error": str(exc)})
    return results
