"""SEC companyfacts JSON: flattening and latest key values.

The payload is the document served at
``https://data.sec.gov/api/xbrl/companyfacts/CIK##########.json``::

    {"facts": {"us-gaap": {"Assets": {"label": ..., "units": {"USD": [
        {"val": 352583000000, "end": "2024-09-28", "fy": 2024, "fp": "FY",
         "form": "10-K", "filed": "2024-11-01", "accn": "..."}, ...]}}}}}

Fetching it is left to the caller.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

import pandas as pd

from sec_metrics.models import CompanyFact

log = logging.getLogger(__name__)

FRAME_COLUMNS = [
    "concept", "label", "value", "start", "end", "filed",
    "form", "accn", "fy", "fp", "units", "taxonomy",
]

# (concept, display label), in output order
CORE_CONCEPTS: tuple[tuple[str, str], ...] = (
    ("Assets", "Total Assets"),
    ("Liabilities", "Total Liabilities"),
    ("StockholdersEquity", "Total Equity"),
    ("Revenues", "Revenue"),
    ("NetIncomeLoss", "Net Income"),
    ("NetCashProvidedByUsedInOperatingActivities", "Operating Cash Flow"),
    ("CashAndCashEquivalentsAtCarryingValue", "Cash and Cash Equivalents"),
    ("EarningsPerShareBasic", "Basic EPS"),
    ("EarningsPerShareDiluted", "Diluted EPS"),
    ("CommonStockSharesOutstanding", "Shares Outstanding"),
)


def company_facts_frame(
    payload: dict[str, Any],
    taxonomy: str = "us-gaap",
    form_type: str | None = None,
) -> pd.DataFrame:
    """Flatten one taxonomy of a companyfacts payload.

    Each row is one fact (one concept, one unit, one period).  Rows keep
    payload order, and ``units`` records which unit list a row came from.
    Values are left as the payload has them.
    """
    taxonomy_data = (payload or {}).get("facts", {}).get(taxonomy, {})
    rows: list[dict] = []
    for concept_name, concept_data in taxonomy_data.items():
        label = concept_data.get("label") or concept_name
        for unit_name, unit_facts in concept_data.get("units", {}).items():
            for fact in unit_facts:
                if form_type and fact.get("form") != form_type:
                    continue
                rows.append({
                    "concept": concept_name,
                    "label": label,
                    "value": fact.get("val") if "val" in fact else fact.get("value"),
                    "start": fact.get("start"),
                    "end": fact.get("end"),
                    "filed": fact.get("filed"),
                    "form": fact.get("form"),
                    "accn": fact.get("accn"),
                    "fy": fact.get("fy"),
                    "fp": fact.get("fp"),
                    "units": unit_name,
                    "taxonomy": taxonomy,
                })
    # object dtype keeps ints exact and missing fields as None
    return pd.DataFrame(rows, columns=FRAME_COLUMNS, dtype=object)


def _text(value: Any) -> str | None:
    if value is None or pd.isna(value):
        return None
    return str(value)


def _recency_key(row: dict) -> str:
    return _text(row.get("end")) or _text(row.get("fy")) or ""


def _first_unit(payload: dict[str, Any], taxonomy: str, concept: str) -> str | None:
    units = payload.get("facts", {}).get(taxonomy, {}).get(concept, {}).get("units", {})
    return next(iter(units), None)


def latest_company_facts(
    payload: dict[str, Any],
    taxonomy: str = "us-gaap",
) -> list[CompanyFact]:
    """Latest value of each core concept the payload reports.

    Only a concept's first unit is considered.  "Latest" is the greatest
    period end date, falling back to the fiscal year when a fact has no end
    date; the earlier fact wins a tie.  Concepts the payload lacks are
    skipped.
    """
    frame = company_facts_frame(payload, taxonomy)
    if frame.empty:
        return []

    results: list[CompanyFact] = []
    for concept, label in CORE_CONCEPTS:
        unit = _first_unit(payload, taxonomy, concept)
        if unit is None:
            continue
        rows = frame[(frame["concept"] == concept) & (frame["units"] == unit)]
        if rows.empty:
            continue
        latest = max(rows.to_dict("records"), key=_recency_key)
        raw = latest.get("value")
        if raw is None or pd.isna(raw):
            continue
        try:
            value = Decimal(str(raw))
        except InvalidOperation:
            log.warning("Unparseable companyfacts value for %s: %r", concept, raw)
            continue
        results.append(CompanyFact(
            concept=concept,
            label=label,
            unit=unit,
            period_end=_text(latest.get("end")),
            fiscal_year=_text(latest.get("fy")),
            value=value,
        ))
    return results
