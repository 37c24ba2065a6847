"""Financial ratios with health assessment.

Ratios are computed from reconciled metrics in exact decimal arithmetic.
A ratio is produced only when every input is present and its denominator
is positive.  Margins above a sanity ceiling are dropped as parsing errors
and reported as IMPLAUSIBLE_RATIO warnings.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, NamedTuple

from sec_metrics.models import (
    ExtendedFinancialMetric,
    ExtractionWarning,
    FailureReason,
    FinancialRatio,
    HealthStatus,
    MetricCategory as C,
    RatioCategory,
)
from sec_metrics.money import percentage_of, ratio
from sec_metrics.reconcile import reconcile

log = logging.getLogger(__name__)

MARGIN_CEILING_PCT = Decimal("100")
EBITDA_MARGIN_CEILING_PCT = Decimal("150")

_CENT = Decimal("0.01")
_TENTH = Decimal("0.1")


class HealthBands(NamedTuple):
    """Lower bounds for EXCELLENT/GOOD/NEUTRAL/CAUTION; anything past the
    last bound is WARNING.  With ``higher_is_better=False`` the bounds are
    upper bounds instead."""
    excellent: Decimal
    good: Decimal
    neutral: Decimal
    caution: Decimal
    higher_is_better: bool = True

    def assess(self, value: Decimal) -> HealthStatus:
        levels = (
            (self.excellent, HealthStatus.EXCELLENT),
            (self.good, HealthStatus.GOOD),
            (self.neutral, HealthStatus.NEUTRAL),
            (self.caution, HealthStatus.CAUTION),
        )
        for bound, status in levels:
            if (value >= bound) if self.higher_is_better else (value <= bound):
                return status
        return HealthStatus.WARNING


def _bands(excellent, good, neutral, caution, higher_is_better=True) -> HealthBands:
    return HealthBands(Decimal(str(excellent)), Decimal(str(good)), Decimal(str(neutral)),
                       Decimal(str(caution)), higher_is_better)


# ═══════════════════════════════════════════════════════════════════════════
#  Ratio definitions
# ═══════════════════════════════════════════════════════════════════════════

class RatioDef(NamedTuple):
    name: str
    description: str
    category: RatioCategory
    bands: HealthBands
    percent: bool                      # False: plain multiple ("2.00x")
    ceiling: Decimal | None = None


GROSS_MARGIN = RatioDef(
    "Gross Margin", "Revenue left after cost of revenue",
    RatioCategory.PROFITABILITY, _bands(75, 50, 30, 0), True, MARGIN_CEILING_PCT)
OPERATING_MARGIN = RatioDef(
    "Operating Margin", "Operating income as a share of revenue",
    RatioCategory.PROFITABILITY, _bands(30, 20, 10, 0), True, MARGIN_CEILING_PCT)
NET_MARGIN = RatioDef(
    "Net Profit Margin", "Net income as a share of revenue",
    RatioCategory.PROFITABILITY, _bands(20, 10, 5, 0), True, MARGIN_CEILING_PCT)
ROA = RatioDef(
    "ROA", "Net income earned per dollar of assets",
    RatioCategory.PROFITABILITY, _bands(10, 5, 2, 0), True)
ROE = RatioDef(
    "ROE", "Net income earned per dollar of shareholders' equity",
    RatioCategory.PROFITABILITY, _bands(20, 10, 7, 0), True)
CURRENT_RATIO = RatioDef(
    "Current Ratio", "Current assets available per dollar of current liabilities",
    RatioCategory.LIQUIDITY, _bands(2.0, 1.5, 1.0, 0.5), False)
QUICK_RATIO = RatioDef(
    "Quick Ratio", "Current assets excluding inventory per dollar of current liabilities",
    RatioCategory.LIQUIDITY, _bands(1.5, 1.0, 0.8, 0.5), False)
CASH_RATIO = RatioDef(
    "Cash Ratio", "Cash and equivalents per dollar of current liabilities",
    RatioCategory.LIQUIDITY, _bands(0.75, 0.5, 0.2, 0.1), False)
DEBT_TO_EQUITY = RatioDef(
    "Debt to Equity", "Total liabilities relative to shareholders' equity",
    RatioCategory.SOLVENCY, _bands(100, 150, 200, 300, higher_is_better=False), True)
DEBT_RATIO = RatioDef(
    "Debt Ratio", "Share of assets financed by liabilities",
    RatioCategory.SOLVENCY, _bands(30, 50, 70, 85, higher_is_better=False), True)
EQUITY_RATIO = RatioDef(
    "Equity Ratio", "Share of assets financed by equity",
    RatioCategory.SOLVENCY, _bands(75, 50, 30, 0), True)
ASSET_TURNOVER = RatioDef(
    "Asset Turnover", "Revenue generated per dollar of assets",
    RatioCategory.EFFICIENCY, _bands(2.25, 1.5, 0.5, 0.25), False)
RECEIVABLES_TURNOVER = RatioDef(
    "Receivables Turnover", "Times receivables are collected per period",
    RatioCategory.EFFICIENCY, _bands(12, 8, 4, 2), False)
INVENTORY_TURNOVER = RatioDef(
    "Inventory Turnover", "Times inventory is sold through per period",
    RatioCategory.EFFICIENCY, _bands(10.5, 7, 3, 1.5), False)
INTEREST_COVERAGE = RatioDef(
    "Interest Coverage", "Operating income available per dollar of interest expense",
    RatioCategory.SOLVENCY, _bands(10, 5, 2.5, 1.5), False)
RETAINED_EARNINGS_RATIO = RatioDef(
    "Retained Earnings Ratio", "Share of equity built from retained earnings",
    RatioCategory.SOLVENCY, _bands(60, 40, 20, 0), True)
EBITDA_MARGIN = RatioDef(
    "EBITDA Margin", "EBITDA as a share of revenue",
    RatioCategory.PROFITABILITY, _bands(30, 20, 10, 0), True, EBITDA_MARGIN_CEILING_PCT)
WORKING_CAPITAL_RATIO = RatioDef(
    "Working Capital Ratio", "Net working capital as a share of assets",
    RatioCategory.LIQUIDITY, _bands(20, 10, 5, 0), True)

_INTERPRETATIONS = {
    HealthStatus.EXCELLENT: "{name} is very strong.",
    HealthStatus.GOOD: "{name} is healthy.",
    HealthStatus.NEUTRAL: "{name} is about average.",
    HealthStatus.CAUTION: "{name} needs attention.",
    HealthStatus.WARNING: "{name} is at a risky level.",
}


def interpret(name: str, health: HealthStatus) -> str:
    return _INTERPRETATIONS[health].format(name=name)


def format_ratio(value: Decimal, percent: bool) -> str:
    """``12.3%`` for percentages, ``2.00x`` for multiples."""
    if percent:
        return f"{value.quantize(_TENTH, rounding=ROUND_HALF_UP)}%"
    return f"{value.quantize(_CENT, rounding=ROUND_HALF_UP)}x"


# ═══════════════════════════════════════════════════════════════════════════
#  Computation
# ═══════════════════════════════════════════════════════════════════════════

def _positive(value: Decimal | None) -> bool:
    return value is not None and value > 0


def _make(
    definition: RatioDef,
    numerator: Decimal | None,
    denominator: Decimal | None,
    warnings: list[ExtractionWarning] | None,
) -> FinancialRatio | None:
    if numerator is None or not _positive(denominator):
        return None
    if definition.percent:
        value = percentage_of(numerator, denominator)
    else:
        value = ratio(numerator, denominator)
        value = value.quantize(_CENT, rounding=ROUND_HALF_UP) if value is not None else None
    if value is None:
        return None

    if definition.ceiling is not None and value > definition.ceiling:
        message = (f"{definition.name} of {value}% exceeds {definition.ceiling}%; "
                   f"inputs are likely misparsed")
        log.warning("%s", message)
        if warnings is not None:
            warnings.append(ExtractionWarning(reason=FailureReason.IMPLAUSIBLE_RATIO, message=message))
        return None

    health = definition.bands.assess(value)
    return FinancialRatio(
        name=definition.name,
        value=value,
        formatted_value=format_ratio(value, definition.percent),
        description=definition.description,
        interpretation=interpret(definition.name, health),
        health_status=health,
        category=definition.category,
    )


def compute_ratios(
    metrics: Iterable[ExtendedFinancialMetric],
    *,
    warnings: list[ExtractionWarning] | None = None,
) -> list[FinancialRatio]:
    """Compute every ratio the available metrics support.

    ``metrics`` may hold several candidates per category; the most
    confident one of each is used.
    """
    m = {metric.category: metric.raw_value for metric in reconcile(metrics)}

    rev = m.get(C.REVENUE)
    cogs = m.get(C.COST_OF_REVENUE)
    gp = m.get(C.GROSS_PROFIT)
    oi = m.get(C.OPERATING_INCOME)
    ni = m.get(C.NET_INCOME)
    ebitda = m.get(C.EBITDA)
    interest = m.get(C.INTEREST_EXPENSE)
    ta = m.get(C.TOTAL_ASSETS)
    ca = m.get(C.CURRENT_ASSETS)
    cash = m.get(C.CASH_AND_EQUIVALENTS)
    ar = m.get(C.ACCOUNTS_RECEIVABLE)
    inv = m.get(C.INVENTORY)
    tl = m.get(C.TOTAL_LIABILITIES)
    cl = m.get(C.CURRENT_LIABILITIES)
    eq = m.get(C.TOTAL_EQUITY)
    re_ = m.get(C.RETAINED_EARNINGS)

    if gp is not None and rev is not None and gp > rev * Decimal("1.5"):
        log.warning("Gross profit %s exceeds 1.5x revenue %s; may indicate a parsing error", gp, rev)

    quick_assets = ca - (inv or Decimal(0)) if ca is not None else None
    working_capital = ca - cl if ca is not None and cl is not None else None

    candidates = [
        _make(GROSS_MARGIN, gp, rev, warnings),
        _make(OPERATING_MARGIN, oi, rev, warnings),
        _make(NET_MARGIN, ni, rev, warnings),
        _make(ROA, ni, ta, warnings),
        _make(ROE, ni, eq, warnings),
        _make(CURRENT_RATIO, ca, cl, warnings),
        _make(QUICK_RATIO, quick_assets, cl, warnings),
        _make(DEBT_TO_EQUITY, tl, eq, warnings),
        _make(EQUITY_RATIO, eq, ta, warnings),
        _make(CASH_RATIO, cash, cl, warnings),
        _make(ASSET_TURNOVER, rev, ta, warnings),
        _make(RECEIVABLES_TURNOVER, rev, ar, warnings),
        # cost of revenue is sometimes reported as a negative line
        _make(INVENTORY_TURNOVER, abs(cogs) if cogs is not None else None, inv, warnings),
        _make(INTEREST_COVERAGE, oi, abs(interest) if interest is not None else None, warnings),
        _make(DEBT_RATIO, tl, ta, warnings),
        _make(RETAINED_EARNINGS_RATIO, re_, eq, warnings),
        _make(EBITDA_MARGIN, ebitda, rev, warnings),
        _make(WORKING_CAPITAL_RATIO, working_capital, ta, warnings),
    ]
    ratios = [r for r in candidates if r is not None]
    log.debug("Computed %d ratios from %d metric categories", len(ratios), len(m))
    return ratios
