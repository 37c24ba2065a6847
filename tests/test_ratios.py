"""Tests for the ratio engine and health assessment."""

from decimal import Decimal

from sec_metrics.models import FailureReason, HealthStatus, MetricCategory as C, RatioCategory
from sec_metrics.ratios import HealthBands, compute_ratios, format_ratio


def _by_name(ratios):
    return {r.name: r for r in ratios}


def test_current_ratio(metric):
    ratios = _by_name(compute_ratios([
        metric(C.CURRENT_ASSETS, "300"),
        metric(C.CURRENT_LIABILITIES, "150"),
    ]))
    current = ratios["Current Ratio"]
    assert current.value == Decimal("2.00")
    assert current.formatted_value == "2.00x"
    assert current.health_status is HealthStatus.EXCELLENT
    assert current.category is RatioCategory.LIQUIDITY
    # no inventory reported: quick assets are all current assets
    assert ratios["Quick Ratio"].value == Decimal("2.00")


def test_roe_bands(metric):
    def roe(net_income):
        ratios = _by_name(compute_ratios([
            metric(C.NET_INCOME, net_income),
            metric(C.TOTAL_EQUITY, "100"),
        ]))
        return ratios["ROE"]

    assert roe("25").health_status is HealthStatus.EXCELLENT
    assert roe("20").health_status is HealthStatus.EXCELLENT
    assert roe("12").health_status is HealthStatus.GOOD
    assert roe("8").health_status is HealthStatus.NEUTRAL
    assert roe("3").health_status is HealthStatus.CAUTION
    assert roe("-5").health_status is HealthStatus.WARNING
    assert roe("25").formatted_value == "25.0%"


def test_implausible_margin_is_dropped(metric):
    warnings = []
    ratios = _by_name(compute_ratios([
        metric(C.REVENUE, "100"),
        metric(C.GROSS_PROFIT, "200"),
        metric(C.NET_INCOME, "10"),
    ], warnings=warnings))
    assert "Gross Margin" not in ratios
    assert ratios["Net Profit Margin"].value == Decimal("10.00")
    assert [w.reason for w in warnings] == [FailureReason.IMPLAUSIBLE_RATIO]


def test_ebitda_margin_has_higher_ceiling(metric):
    warnings = []
    ratios = _by_name(compute_ratios([
        metric(C.REVENUE, "100"),
        metric(C.EBITDA, "140"),
    ], warnings=warnings))
    assert ratios["EBITDA Margin"].value == Decimal("140.00")
    assert warnings == []


def test_zero_or_negative_denominator_yields_nothing(metric):
    assert compute_ratios([metric(C.NET_INCOME, "10"), metric(C.TOTAL_EQUITY, "0")]) == []
    assert compute_ratios([metric(C.NET_INCOME, "10"), metric(C.TOTAL_EQUITY, "-50")]) == []
    assert compute_ratios([]) == []


def test_solvency_ratios_lower_is_better(metric):
    ratios = _by_name(compute_ratios([
        metric(C.TOTAL_LIABILITIES, "1200"),
        metric(C.TOTAL_EQUITY, "800"),
        metric(C.TOTAL_ASSETS, "2000"),
    ]))
    assert ratios["Debt to Equity"].value == Decimal("150.00")
    assert ratios["Debt to Equity"].health_status is HealthStatus.GOOD
    assert ratios["Debt Ratio"].value == Decimal("60.00")
    assert ratios["Debt Ratio"].health_status is HealthStatus.NEUTRAL
    assert ratios["Equity Ratio"].value == Decimal("40.00")


def test_turnover_uses_cost_magnitude(metric):
    ratios = _by_name(compute_ratios([
        metric(C.COST_OF_REVENUE, "-600"),
        metric(C.INVENTORY, "100"),
        metric(C.OPERATING_INCOME, "500"),
        metric(C.INTEREST_EXPENSE, "-50"),
    ]))
    assert ratios["Inventory Turnover"].value == Decimal("6.00")
    assert ratios["Interest Coverage"].value == Decimal("10.00")
    assert ratios["Interest Coverage"].health_status is HealthStatus.EXCELLENT


def test_most_confident_candidate_is_used(metric):
    ratios = _by_name(compute_ratios([
        metric(C.CURRENT_ASSETS, "100", 0.5),
        metric(C.CURRENT_ASSETS, "300", 0.95),
        metric(C.CURRENT_LIABILITIES, "150"),
    ]))
    assert ratios["Current Ratio"].value == Decimal("2.00")


def test_full_ratio_set(metric):
    ratios = compute_ratios([
        metric(C.REVENUE, "1000"),
        metric(C.COST_OF_REVENUE, "600"),
        metric(C.GROSS_PROFIT, "400"),
        metric(C.OPERATING_INCOME, "200"),
        metric(C.NET_INCOME, "150"),
        metric(C.EBITDA, "260"),
        metric(C.INTEREST_EXPENSE, "20"),
        metric(C.TOTAL_ASSETS, "2000"),
        metric(C.CURRENT_ASSETS, "600"),
        metric(C.CASH_AND_EQUIVALENTS, "200"),
        metric(C.ACCOUNTS_RECEIVABLE, "100"),
        metric(C.INVENTORY, "80"),
        metric(C.TOTAL_LIABILITIES, "1200"),
        metric(C.CURRENT_LIABILITIES, "300"),
        metric(C.TOTAL_EQUITY, "800"),
        metric(C.RETAINED_EARNINGS, "400"),
    ])
    assert len(ratios) == 18
    assert all(r.interpretation.startswith(r.name) for r in ratios)


def test_health_bands():
    higher = HealthBands(Decimal("2"), Decimal("1.5"), Decimal("1"), Decimal("0.5"))
    assert higher.assess(Decimal("2")) is HealthStatus.EXCELLENT
    assert higher.assess(Decimal("0.49")) is HealthStatus.WARNING
    lower = HealthBands(Decimal("30"), Decimal("50"), Decimal("70"), Decimal("85"), False)
    assert lower.assess(Decimal("30")) is HealthStatus.EXCELLENT
    assert lower.assess(Decimal("80")) is HealthStatus.CAUTION
    assert lower.assess(Decimal("90")) is HealthStatus.WARNING


def test_format_ratio():
    assert format_ratio(Decimal("33.35"), True) == "33.4%"
    assert format_ratio(Decimal("1.5"), False) == "1.50x"
