"""Tests for unit and reporting period detection."""

from sec_metrics.models import MetricUnit, PeriodType
from sec_metrics.units import (
    DEFAULT_UNIT,
    detect_period,
    detect_period_type,
    detect_unit,
    find_unit_phrase,
)


def test_detect_unit_phrases():
    assert detect_unit("(In millions, except per share data)") is MetricUnit.MILLIONS
    assert detect_unit("(in thousands)") is MetricUnit.THOUSANDS
    assert detect_unit("Amounts in billions of dollars") is MetricUnit.BILLIONS


def test_larger_unit_wins():
    assert detect_unit("$ in millions ... footnote amounts in thousands") is MetricUnit.MILLIONS


def test_unit_default_when_unstated():
    assert find_unit_phrase("Total revenue 1,234") is None
    assert detect_unit("Total revenue 1,234") is DEFAULT_UNIT


def test_per_share_only_means_no_scaling():
    assert detect_unit("Per share data below") is MetricUnit.NONE


def test_detect_period():
    assert detect_period("For the Year Ended December 31, 2024") == "December 31, 2024"
    assert detect_period("Three Months Ended September  28, 2024") == "September 28, 2024"
    assert detect_period("Results for Q3 2024 were strong") == "Q3 2024"
    assert detect_period("FY2023 highlights") == "FY2023"
    assert detect_period("no period here") is None


def test_detect_period_type():
    assert detect_period_type("For the three months ended March 31") is PeriodType.QUARTERLY
    assert detect_period_type("q2 results") is PeriodType.QUARTERLY
    assert detect_period_type("For the fiscal year ended") is PeriodType.ANNUAL
    assert detect_period_type("For the nine months ended") is PeriodType.YTD
    assert detect_period_type("balance at period end") is None
