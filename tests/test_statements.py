"""Tests for statement section location and assembly."""

from decimal import Decimal

from sec_metrics.models import MetricCategory as C, PeriodType, StatementType
from sec_metrics.statements import build_statements, find_statement_section, parse_financial_statements


def test_short_section_is_rejected():
    assert find_statement_section("CONSOLIDATED BALANCE SHEETS\nTotal assets 5",
                                  StatementType.BALANCE_SHEET) is None
    assert find_statement_section("no statements here", StatementType.INCOME_STATEMENT) is None


def test_section_bounds(statement_text):
    income = find_statement_section(statement_text, StatementType.INCOME_STATEMENT)
    assert income.startswith("CONSOLIDATED STATEMENTS OF OPERATIONS")
    assert "Net income" in income
    assert "CASH FLOWS" not in income

    balance = find_statement_section(statement_text, StatementType.BALANCE_SHEET)
    assert balance.startswith("CONSOLIDATED BALANCE SHEETS")
    assert "Total stockholders' equity" in balance
    assert "NOTES TO" not in balance


def test_section_is_capped(statement_text):
    income = find_statement_section(statement_text, StatementType.INCOME_STATEMENT, max_chars=220)
    assert len(income) == 220


def test_parse_financial_statements(statement_text):
    statements = parse_financial_statements(statement_text)
    assert [s.type for s in statements] == [
        StatementType.INCOME_STATEMENT,
        StatementType.BALANCE_SHEET,
        StatementType.CASH_FLOW_STATEMENT,
    ]
    income, balance, cash = statements

    by_category = {m.category: m for m in income.metrics}
    assert by_category[C.REVENUE].raw_value == Decimal("1200000000")
    assert by_category[C.NET_INCOME].raw_value == Decimal("150000000")
    assert income.period_ending == "December 31, 2024"
    assert income.period_type is PeriodType.ANNUAL
    assert income.raw_section.startswith("CONSOLIDATED STATEMENTS OF OPERATIONS")

    by_category = {m.category: m for m in balance.metrics}
    assert by_category[C.TOTAL_ASSETS].raw_value == Decimal("2000000000")
    assert by_category[C.TOTAL_EQUITY].raw_value == Decimal("800000000")
    # no period phrase in the section: falls back to the column year
    assert balance.period_ending == "2024"

    # the cash-flow section runs into the balance sheet; only cash-flow lines stay
    categories = {m.category for m in cash.metrics}
    assert C.CAPITAL_EXPENDITURES in categories
    assert C.TOTAL_ASSETS not in categories


def test_parse_financial_statements_empty():
    assert parse_financial_statements("") == []
    assert parse_financial_statements("Revenue was strong this year.") == []


def test_build_statements_groups_by_family(metric):
    statements = build_statements([
        metric(C.TOTAL_ASSETS, "2000"),
        metric(C.REVENUE, "1000", 0.5),
        metric(C.REVENUE, "1100", 0.9),
    ])
    assert [s.type for s in statements] == [StatementType.INCOME_STATEMENT, StatementType.BALANCE_SHEET]
    income, balance = statements
    assert [m.raw_value for m in income.metrics] == [Decimal("1100")]
    assert balance.raw_section == ""


def test_build_statements_uses_located_section(metric, statement_text):
    (income,) = build_statements([metric(C.REVENUE, "1000")], statement_text)
    assert income.raw_section.startswith("CONSOLIDATED STATEMENTS OF OPERATIONS")


def test_stronger_text_match_beats_weaker_table_row():
    text = (
        "CONSOLIDATED STATEMENTS OF OPERATIONS\n"
        "(in millions)\n"
        "| | 2024 | 2023 |\n"
        "| Revenue | 1,500 | 1,400 |\n"
        "Total Revenue $ 1,600 million after the reclassification described below.\n"
        "Prior amounts were reclassified to conform to the current presentation of "
        "product and service lines within the segment.\n"
    )
    (income,) = parse_financial_statements(text)
    revenue = next(m for m in income.metrics if m.category is C.REVENUE)
    assert revenue.raw_value == Decimal("1600000000")
    assert revenue.confidence == 1.0
