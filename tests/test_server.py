"""Tests for the MCP tool layer."""

import pytest

from sec_metrics import server


def _call(tool, *args):
    # the decorator may wrap the function in a tool object
    return getattr(tool, "fn", tool)(*args)


def test_server_name():
    assert server.mcp.name == "SEC-Metrics"


@pytest.mark.integration
def test_extract_filing_metrics(statement_text):
    result = _call(server.extract_filing_metrics, statement_text)
    assert result["unit"] == "millions"
    revenue = next(m for m in result["metrics"] if m["category"] == "revenue")
    assert revenue["raw_value"] == "1200000000"


def test_extract_xbrl_facts(ixbrl_doc):
    result = _call(server.extract_xbrl_facts, ixbrl_doc)
    categories = [m["category"] for m in result["metrics"]]
    assert "revenue" in categories
    assert result["warnings"] == []


def test_compute_financial_ratios():
    result = _call(server.compute_financial_ratios, [
        {"name": "Total current assets", "display_value": "$300", "raw_value": "300",
         "category": "current_assets"},
        {"name": "Total current liabilities", "display_value": "$150", "raw_value": "150",
         "category": "current_liabilities"},
    ])
    current = next(r for r in result["ratios"] if r["name"] == "Current Ratio")
    assert current["formatted_value"] == "2.00x"
    assert current["health_status"] == "excellent"


def test_get_latest_company_facts():
    payload = {"facts": {"us-gaap": {"Assets": {"units": {"USD": [
        {"val": 100, "end": "2023-12-31", "fy": 2023},
        {"val": 200, "end": "2024-12-31", "fy": 2024},
    ]}}}}}
    (fact,) = _call(server.get_latest_company_facts, payload)
    assert fact["value"] == "200"
    assert fact["period_end"] == "2024-12-31"


@pytest.mark.integration
def test_analyze_filings(statement_text):
    results = _call(server.analyze_filings, {"10-K": statement_text})
    assert results[0]["document_id"] == "10-K"


def test_extract_segment_revenue():
    text = ("<p>Revenue by region (in millions)</p><table><tr><td>Americas</td><td>$ 1,500</td></tr>"
            "<tr><td>Europe</td><td>900</td></tr></table>")
    result = _call(server.extract_segment_revenue, text)
    names = [s["name"] for s in result["segments"]]
    assert names == ["Americas", "Europe"]
    assert result["segments"][0]["revenue"] == "1500000000.00"
    assert result["warnings"] == []


def test_analyze_metric_trend():
    result = _call(server.analyze_metric_trend, "Revenue", ["100", "110", "121"])
    assert result["growth"]["growth_pct"] == "10.00"
    assert result["cagr"]["period_label"] == "2Y CAGR"
    assert result["margin_trend"] is None
