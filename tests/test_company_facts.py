"""Tests for companyfacts flattening and latest values."""

from decimal import Decimal

from sec_metrics.company_facts import FRAME_COLUMNS, company_facts_frame, latest_company_facts


def _fact(val, end, fy, form="10-K", **extra):
    return {"val": val, "end": end, "fy": fy, "fp": "FY", "form": form,
            "filed": f"{fy}-11-01", "accn": f"0000320193-{fy}", **extra}


PAYLOAD = {
    "cik": 320193,
    "entityName": "Example Corp",
    "facts": {
        "us-gaap": {
            "Assets": {"label": "Assets", "units": {"USD": [
                _fact(352583000000, "2023-09-30", 2023),
                _fact(364980000000, "2024-09-28", 2024),
                _fact(331612000000, "2024-06-29", 2024, form="10-Q"),
            ]}},
            "Revenues": {"label": "Revenues", "units": {
                "USD": [_fact(383285000000, "2023-09-30", 2023)],
                "EUR": [_fact(999, "2025-09-30", 2025)],
            }},
            "EarningsPerShareDiluted": {"label": "EPS, Diluted", "units": {"USD/shares": [
                _fact(6.08, "2024-09-28", 2024, start="2023-10-01"),
            ]}},
            "GrossProfit": {"label": "Gross Profit", "units": {"USD": [
                _fact(180683000000, "2024-09-28", 2024),
            ]}},
        },
        "dei": {
            "EntityCommonStockSharesOutstanding": {"label": "Shares", "units": {"shares": [
                _fact(15115823000, "2024-10-18", 2024),
            ]}},
        },
    },
}


def test_frame_shape():
    frame = company_facts_frame(PAYLOAD)
    assert list(frame.columns) == FRAME_COLUMNS
    assert len(frame) == 7
    assert set(frame["taxonomy"]) == {"us-gaap"}
    assert frame.iloc[0]["value"] == 352583000000


def test_frame_form_filter():
    frame = company_facts_frame(PAYLOAD, form_type="10-Q")
    assert len(frame) == 1
    assert frame.iloc[0]["end"] == "2024-06-29"


def test_frame_other_taxonomy():
    frame = company_facts_frame(PAYLOAD, taxonomy="dei")
    assert list(frame["concept"]) == ["EntityCommonStockSharesOutstanding"]


def test_empty_payload():
    assert company_facts_frame({}).empty
    assert latest_company_facts({}) == []


def test_latest_values():
    facts = {f.concept: f for f in latest_company_facts(PAYLOAD)}
    # GrossProfit is not a core concept
    assert list(facts) == ["Assets", "Revenues", "EarningsPerShareDiluted"]

    assets = facts["Assets"]
    assert assets.value == Decimal("364980000000")
    assert assets.period_end == "2024-09-28"
    assert assets.fiscal_year == "2024"
    assert assets.label == "Total Assets"
    assert assets.unit == "USD"

    # only the first unit list counts
    assert facts["Revenues"].value == Decimal("383285000000")
    assert facts["Revenues"].unit == "USD"

    assert facts["EarningsPerShareDiluted"].value == Decimal("6.08")


def test_latest_falls_back_to_fiscal_year():
    payload = {"facts": {"us-gaap": {"NetIncomeLoss": {"units": {"USD": [
        {"val": 1, "fy": 2022},
        {"val": 2, "fy": 2024},
        {"val": 3, "fy": 2023},
    ]}}}}}
    (fact,) = latest_company_facts(payload)
    assert fact.value == Decimal("2")
    assert fact.period_end is None
    assert fact.label == "Net Income"
