"""Tests for pattern-based metric extraction and statement tables."""

from decimal import Decimal

from sec_metrics import config
from sec_metrics.extractor import (
    TABLE_SOURCE,
    extract_metrics,
    find_header_years,
    is_valid_label,
    parse_statement_table,
    resolve_unit,
    split_row,
)
from sec_metrics.models import FailureReason, MetricCategory as C, MetricUnit
from sec_metrics.normalizer import normalize
from sec_metrics.reconcile import reconcile


def _by_category(metrics):
    return {m.category: m for m in metrics}


# --- Free-text patterns ---


def test_total_revenue_with_inline_magnitude():
    result = reconcile(extract_metrics("Total Revenue $ 1,234.5 million"))
    assert len(result) == 1
    revenue = result[0]
    assert revenue.category is C.REVENUE
    assert revenue.raw_value == Decimal("1234500000")
    assert revenue.unit is MetricUnit.MILLIONS
    assert revenue.confidence == 1.0
    assert revenue.source == "text pattern: Total Revenue"


def test_parenthesized_net_loss_is_negative():
    result = _by_category(extract_metrics("Net Loss (45,678)", unit=MetricUnit.THOUSANDS))
    net = result[C.NET_INCOME]
    assert net.raw_value == Decimal("-45678000")
    assert net.raw_value < 0
    assert "Net Loss" in net.context


def test_leading_minus_is_negative():
    result = _by_category(extract_metrics("Operating income: -1,200", unit=MetricUnit.DOLLARS))
    assert result[C.OPERATING_INCOME].raw_value == Decimal("-1200")


def test_confidence_decays_with_match_order():
    text = "Total revenue 5,000\nTotal revenue 6,000\nTotal revenue 7,000\n"
    found = [
        m for m in extract_metrics(text, unit=MetricUnit.DOLLARS)
        if m.source == "text pattern: Total Revenue"
    ]
    assert [m.raw_value for m in found] == [Decimal("5000"), Decimal("6000"), Decimal("7000")]
    confidences = [m.confidence for m in found]
    assert confidences == sorted(confidences, reverse=True)
    assert len(set(confidences)) == len(confidences)
    assert confidences[0] == 1.0


def test_repeated_value_reported_once():
    text = "Total revenue 5,000 ... Total revenue 5,000"
    found = [
        m for m in extract_metrics(text, unit=MetricUnit.DOLLARS)
        if m.source == "text pattern: Total Revenue"
    ]
    assert len(found) == 1


def test_satisfied_categories_are_skipped():
    text = "Total revenue 5,000\nTotal assets 9,000"
    result = extract_metrics(text, unit=MetricUnit.DOLLARS, satisfied={C.REVENUE})
    categories = {m.category for m in result}
    assert C.REVENUE not in categories
    assert C.TOTAL_ASSETS in categories


def test_known_confidence_skips_only_weaker_entries():
    text = "Total revenue 5,000 and revenue 6,000"
    result = extract_metrics(text, unit=MetricUnit.DOLLARS, known={C.REVENUE: 0.85})
    assert [(m.source, m.raw_value) for m in result] == [
        ("text pattern: Total Revenue", Decimal("5000")),
    ]
    assert extract_metrics(text, unit=MetricUnit.DOLLARS, known={C.REVENUE: 1.0}) == []


def test_loss_on_neighbouring_row_does_not_flip_sign():
    text = "| Operating income | 12,000 |\n| Loss on sale of assets | (300) |"
    result = _by_category(extract_metrics(text, unit=MetricUnit.DOLLARS))
    assert result[C.OPERATING_INCOME].raw_value == Decimal("12000")


def test_loss_cue_on_same_line_negates():
    text = "Operating income 12,000 reflecting a loss on disposal"
    result = _by_category(extract_metrics(text, unit=MetricUnit.DOLLARS))
    assert result[C.OPERATING_INCOME].raw_value == Decimal("-12000")


def test_cost_lines_are_not_revenue():
    result = extract_metrics("Cost of sales 7,000\nCost of revenue 8,000", unit=MetricUnit.DOLLARS)
    assert C.REVENUE not in {m.category for m in result}
    costs = {m.raw_value for m in result if m.category is C.COST_OF_REVENUE}
    assert costs == {Decimal("7000"), Decimal("8000")}


def test_small_numbers_and_years_are_not_amounts():
    assert extract_metrics("Revenue: 12", unit=MetricUnit.DOLLARS) == []
    assert extract_metrics("Total revenue 2023 increased", unit=MetricUnit.DOLLARS) == []


def test_inline_magnitude_lifts_small_numbers():
    result = _by_category(extract_metrics("Revenue: 12 million", unit=MetricUnit.DOLLARS))
    assert result[C.REVENUE].raw_value == Decimal("12000000")


def test_per_share_values_are_not_scaled():
    result = _by_category(extract_metrics("Diluted EPS $ 6.11", unit=MetricUnit.MILLIONS))
    eps = result[C.EPS_DILUTED]
    assert eps.raw_value == Decimal("6.11")
    assert eps.unit is MetricUnit.PER_SHARE


def test_implausible_amount_is_reported_not_extracted():
    warnings = []
    result = extract_metrics("Total Revenue $ 50,000 billion", warnings=warnings)
    assert not [m for m in result if m.category is C.REVENUE]
    implausible = [w for w in warnings if w.reason is FailureReason.IMPLAUSIBLE_AMOUNT]
    assert implausible
    assert implausible[0].category is C.REVENUE


def test_unit_from_document_phrase():
    warnings = []
    result = _by_category(extract_metrics("(in thousands)\nTotal assets 5,000", warnings=warnings))
    assert result[C.TOTAL_ASSETS].raw_value == Decimal("5000000")
    assert not [w for w in warnings if w.reason is FailureReason.AMBIGUOUS_UNIT]


def test_unstated_unit_is_flagged():
    warnings = []
    unit = resolve_unit("Total assets 5,000", None, warnings)
    assert unit is MetricUnit.MILLIONS
    assert warnings[0].reason is FailureReason.AMBIGUOUS_UNIT
    assert resolve_unit("anything", MetricUnit.DOLLARS, warnings) is MetricUnit.DOLLARS
    assert len(warnings) == 1


def test_empty_text():
    assert extract_metrics("") == []


# --- Statement tables ---


def test_parse_statement_table(statement_text):
    rows = _by_category(parse_statement_table(statement_text))

    revenue = rows[C.REVENUE]
    assert revenue.raw_value == Decimal("1200000000")
    assert revenue.yoy_change == Decimal("20.00")
    assert revenue.confidence == 0.95
    assert revenue.period == "2024"
    assert revenue.source == TABLE_SOURCE

    assert rows[C.COST_OF_REVENUE].yoy_change == Decimal("16.67")
    assert rows[C.NET_INCOME].confidence == 0.85
    assert rows[C.CAPITAL_EXPENDITURES].raw_value == Decimal("-120000000")
    assert rows[C.CURRENT_ASSETS].raw_value == Decimal("300000000")
    assert rows[C.CURRENT_LIABILITIES].raw_value == Decimal("150000000")
    assert rows[C.TOTAL_EQUITY].raw_value == Decimal("800000000")


def test_table_growth_plausibility():
    warnings = []
    rows = parse_statement_table(
        "| Total revenue | 5,000,000 | 1 |", unit=MetricUnit.DOLLARS, warnings=warnings,
    )
    assert rows[0].raw_value == Decimal("5000000")
    assert rows[0].yoy_change is None
    assert any(w.reason is FailureReason.IMPLAUSIBLE_GROWTH for w in warnings)


def test_dash_column_is_not_applicable():
    current_missing = normalize("<tr><td>Inventories</td><td>&mdash;</td><td>1,200</td></tr>")
    assert parse_statement_table(current_missing, unit=MetricUnit.DOLLARS) == []
    assert parse_statement_table("Inventories \u2014 1,200", unit=MetricUnit.DOLLARS) == []

    prior_missing = normalize(
        "<tr><td>Inventories</td><td>$</td><td>1,500</td><td>&ndash;</td></tr>"
    )
    (row,) = parse_statement_table(prior_missing, unit=MetricUnit.DOLLARS)
    assert row.name == "Inventories"
    assert row.raw_value == Decimal("1500")
    assert row.yoy_change is None


def test_split_row():
    assert split_row("| Capital expenditures | (120 | ) | (100) |") == (
        "Capital expenditures", ["(120)", "(100)"],
    )
    assert split_row("| | Inventories | - | $ | 1,200 |") == ("Inventories", [None, "1,200"])
    assert split_row("Total revenue $ 1,200 $ 1,000") == ("Total revenue", ["$ 1,200", "$ 1,000"])


def test_is_valid_label():
    assert is_valid_label("Total revenue")
    assert not is_valid_label("ab")
    assert not is_valid_label("12,345")
    assert not is_valid_label("Page 5 of 90")
    assert not is_valid_label("F-12 notes")
    assert not is_valid_label("1st quarter")
    assert not is_valid_label("-----")


def test_find_header_years():
    assert find_header_years(["Heading", "| | 2024 | 2023 |", "| 2022 | 2021 |"]) == ["2024", "2023"]
    assert find_header_years(["For the year 2024"]) == []


def test_context_window_follows_settings(monkeypatch):
    text = "A preamble sentence. Total Revenue $ 1,234.5 million was reported. Trailing remarks."
    monkeypatch.setattr(config, "_config", config.Settings(context_window_chars=5))
    (narrow,) = reconcile(extract_metrics(text))
    assert "preamble" not in narrow.context
    assert "Trailing" not in narrow.context
    assert "1,234.5" in narrow.context

    monkeypatch.setattr(config, "_config", config.Settings(context_window_chars=100))
    (wide,) = reconcile(extract_metrics(text))
    assert "preamble" in wide.context
    assert "Trailing" in wide.context
