"""SEC-Metrics: MCP server for financial metric extraction from filing documents.

Tools
─────
  Text and markup
    1. extract_filing_metrics    : full analysis of one document
    2. extract_xbrl_facts        : structured iXBRL facts only
    3. analyze_filings           : several documents in parallel

  Derived values
    4. compute_financial_ratios  : ratios + health from supplied metrics
    5. get_latest_company_facts  : latest key values from a companyfacts payload
    6. extract_segment_revenue   : revenue by region and product line
    7. analyze_metric_trend      : growth, CAGR, anomaly and margin trend of a series

Documents are passed in by the client; the server makes no network calls.
"""

from __future__ import annotations

import logging
import sys

from fastmcp import FastMCP

from sec_metrics.company_facts import latest_company_facts
from sec_metrics.config import get_config
from sec_metrics.models import ExtendedFinancialMetric, ExtractionWarning
from sec_metrics.normalizer import normalize
from sec_metrics.pipeline import analyze_filing, analyze_filings_batch
from sec_metrics.ratios import compute_ratios
from sec_metrics.segments import parse_segment_information
from sec_metrics.trends import analyze_series
from sec_metrics.xbrl import extract_facts

log = logging.getLogger(__name__)

mcp = FastMCP(name="SEC-Metrics")


@mcp.tool()
def extract_filing_metrics(text: str) -> dict:
    """Extract financial metrics, ratios and statements from a filing.

    Accepts raw HTML / inline-XBRL markup or plain text from a 10-K, 10-Q or
    similar report.  Structured iXBRL facts are used where present; labeled
    amounts in the text fill in the rest.  Returns metrics (one per
    category), ratios with health status, grouped statements, the detected
    unit and period, and any extraction warnings.
    """
    return analyze_filing(text).model_dump(mode="json")


@mcp.tool()
def extract_xbrl_facts(text: str) -> dict:
    """Read tagged inline-XBRL facts (revenue, net income, assets, EPS, ...)
    from filing markup, newest reporting period first."""
    warnings: list[ExtractionWarning] = []
    metrics = extract_facts(text, warnings=warnings, currency=get_config().default_currency)
    return {
        "metrics": [m.model_dump(mode="json") for m in metrics],
        "warnings": [w.model_dump(mode="json") for w in warnings],
    }


@mcp.tool()
def compute_financial_ratios(metrics: list[dict]) -> dict:
    """Compute financial ratios from metrics.

    Each metric needs at least ``name``, ``display_value``, ``raw_value``
    (as a string) and ``category`` (e.g. ``"revenue"``, ``"total_assets"``),
    in the shape ``extract_filing_metrics`` returns them.
    """
    parsed = [ExtendedFinancialMetric.model_validate(m) for m in metrics]
    warnings: list[ExtractionWarning] = []
    ratios = compute_ratios(parsed, warnings=warnings)
    return {
        "ratios": [r.model_dump(mode="json") for r in ratios],
        "warnings": [w.model_dump(mode="json") for w in warnings],
    }


@mcp.tool()
def get_latest_company_facts(company_facts: dict) -> list[dict]:
    """Latest total assets, liabilities, equity, revenue, net income, operating
    cash flow, cash, EPS and shares outstanding from an SEC companyfacts
    JSON payload (data.sec.gov/api/xbrl/companyfacts)."""
    return [f.model_dump(mode="json") for f in latest_company_facts(company_facts)]


@mcp.tool()
def analyze_filings(documents: dict[str, str]) -> list[dict]:
    """Analyze several filings in parallel.

    ``documents`` maps an id of your choice to the document content.  Each
    result carries its ``document_id``; failed documents carry ``error``.
    """
    return analyze_filings_batch(documents)


@mcp.tool()
def extract_segment_revenue(text: str) -> dict:
    """Revenue by geographic region (Americas, Europe, China, ...) and by
    product or service line from the segment tables of a filing, each with
    its share of the total for its segment type."""
    warnings: list[ExtractionWarning] = []
    segments = parse_segment_information(
        normalize(text), currency=get_config().default_currency, warnings=warnings,
    )
    return {
        "segments": [s.model_dump(mode="json") for s in segments],
        "warnings": [w.model_dump(mode="json") for w in warnings],
    }


@mcp.tool()
def analyze_metric_trend(
    name: str,
    values: list[str],
    costs: list[str] | None = None,
    quarterly: bool = False,
) -> dict:
    """Growth analytics for one metric series.

    ``values`` are amounts as strings, oldest period first.  Returns YoY
    (or QoQ with ``quarterly``) growth of the latest period, CAGR over an
    annual series, an anomaly check of the latest value against the earlier
    ones and, when ``costs`` are given in parallel, the margin trend.
    """
    return analyze_series(name, values, costs=costs, quarterly=quarterly).model_dump(mode="json")


# ═══════════════════════════════════════════════════════════════════════════
#  ENTRY POINT
# ═══════════════════════════════════════════════════════════════════════════

def main() -> None:
    cfg = get_config()
    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        # stdout carries the STDIO transport
        stream=sys.stderr,
    )
    # Remote hosting:  python -m sec_metrics.server --sse
    # Default is STDIO for local MCP clients
    if "--sse" in sys.argv:
        log.info("Starting SSE transport on port %d", cfg.port)
        mcp.run(transport="sse", port=cfg.port)
    else:
        mcp.run()


if __name__ == "__main__":
    main()
