"""Pydantic models and enumerations shared by the extractors and tools."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, field_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class MetricCategory(str, Enum):
    """Closed line-item taxonomy.  Declaration order is the canonical
    output order of the reconciler."""

    # Income statement
    REVENUE = "revenue"
    COST_OF_REVENUE = "cost_of_revenue"
    GROSS_PROFIT = "gross_profit"
    OPERATING_EXPENSES = "operating_expenses"
    OPERATING_INCOME = "operating_income"
    NET_INCOME = "net_income"
    EBITDA = "ebitda"
    INTEREST_EXPENSE = "interest_expense"
    RD_EXPENSE = "rd_expense"
    SGA_EXPENSE = "sga_expense"
    PRODUCT_REVENUE = "product_revenue"
    SERVICE_REVENUE = "service_revenue"
    RD_REVENUE = "rd_revenue"
    TOTAL_EXPENSES = "total_expenses"
    INCOME_BEFORE_TAX = "income_before_tax"
    INCOME_TAX = "income_tax"
    INTEREST_INCOME = "interest_income"
    OTHER_INCOME = "other_income"
    DEPRECIATION = "depreciation"
    AMORTIZATION = "amortization"

    # Assets
    TOTAL_ASSETS = "total_assets"
    CURRENT_ASSETS = "current_assets"
    CASH_AND_EQUIVALENTS = "cash_and_equivalents"
    ACCOUNTS_RECEIVABLE = "accounts_receivable"
    INVENTORY = "inventory"
    MARKETABLE_SECURITIES = "marketable_securities"
    LONG_TERM_INVESTMENTS = "long_term_investments"
    PREPAID_EXPENSES = "prepaid_expenses"
    OTHER_CURRENT_ASSETS = "other_current_assets"
    FIXED_ASSETS = "fixed_assets"
    DEFERRED_TAX_ASSETS = "deferred_tax_assets"

    # Inventory detail
    RAW_MATERIALS = "raw_materials"
    WORK_IN_PROCESS = "work_in_process"
    FINISHED_GOODS = "finished_goods"

    # Liabilities
    TOTAL_LIABILITIES = "total_liabilities"
    CURRENT_LIABILITIES = "current_liabilities"
    LONG_TERM_DEBT = "long_term_debt"
    ACCOUNTS_PAYABLE = "accounts_payable"
    ACCRUED_EXPENSES = "accrued_expenses"
    OPERATING_LEASE = "operating_lease"
    LONG_TERM_LEASE = "long_term_lease"
    DEFERRED_REVENUE = "deferred_revenue"

    # Equity
    TOTAL_EQUITY = "total_equity"
    RETAINED_EARNINGS = "retained_earnings"

    # Cash flow
    OPERATING_CASH_FLOW = "operating_cash_flow"
    INVESTING_CASH_FLOW = "investing_cash_flow"
    FINANCING_CASH_FLOW = "financing_cash_flow"
    FREE_CASH_FLOW = "free_cash_flow"
    CAPITAL_EXPENDITURES = "capital_expenditures"
    INVESTMENT_PURCHASES = "investment_purchases"
    INVESTMENT_PROCEEDS = "investment_proceeds"
    DIVIDENDS_PAID = "dividends_paid"
    STOCK_COMPENSATION = "stock_compensation"
    WORKING_CAPITAL_CHANGES = "working_capital_changes"

    # Per share
    EPS_BASIC = "eps_basic"
    EPS_DILUTED = "eps_diluted"
    BOOK_VALUE_PER_SHARE = "book_value_per_share"
    DIVIDENDS_PER_SHARE = "dividends_per_share"

    # Shares
    SHARES_OUTSTANDING = "shares_outstanding"
    SHARES_DILUTED = "shares_diluted"

    # Ratios
    GROSS_MARGIN = "gross_margin"
    OPERATING_MARGIN = "operating_margin"
    NET_MARGIN = "net_margin"
    ROA = "roa"
    ROE = "roe"
    CURRENT_RATIO = "current_ratio"
    DEBT_TO_EQUITY = "debt_to_equity"

    # Other
    EMPLOYEES = "employees"
    OTHER = "other"

    @property
    def ordinal(self) -> int:
        return _CATEGORY_ORDER[self]


_CATEGORY_ORDER: dict[MetricCategory, int] = {c: i for i, c in enumerate(MetricCategory)}


class MetricUnit(str, Enum):
    DOLLARS = "dollars"
    THOUSANDS = "thousands"
    MILLIONS = "millions"
    BILLIONS = "billions"
    PERCENTAGE = "percentage"
    RATIO = "ratio"
    SHARES = "shares"
    PER_SHARE = "per_share"
    NONE = "none"

    @property
    def multiplier(self) -> Decimal:
        """Scale applied once, at extraction time."""
        return _UNIT_MULTIPLIERS.get(self, Decimal(1))


_UNIT_MULTIPLIERS: dict[MetricUnit, Decimal] = {
    MetricUnit.THOUSANDS: Decimal("1000"),
    MetricUnit.MILLIONS: Decimal("1000000"),
    MetricUnit.BILLIONS: Decimal("1000000000"),
}


class PeriodType(str, Enum):
    QUARTERLY = "quarterly"
    ANNUAL = "annual"
    YTD = "ytd"
    TTM = "ttm"


class HealthStatus(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    NEUTRAL = "neutral"
    CAUTION = "caution"
    WARNING = "warning"


class RatioCategory(str, Enum):
    PROFITABILITY = "profitability"
    LIQUIDITY = "liquidity"
    SOLVENCY = "solvency"
    EFFICIENCY = "efficiency"
    VALUATION = "valuation"


class StatementType(str, Enum):
    INCOME_STATEMENT = "income_statement"
    BALANCE_SHEET = "balance_sheet"
    CASH_FLOW_STATEMENT = "cash_flow_statement"
    COMPREHENSIVE_INCOME = "comprehensive_income"
    EQUITY_STATEMENT = "equity_statement"


class FailureReason(str, Enum):
    """Why a value was not produced.  NO_MATCH is the ordinary miss; the
    IMPLAUSIBLE_* reasons flag values rejected by a sanity ceiling."""

    NO_MATCH = "no_match"
    IMPLAUSIBLE_AMOUNT = "implausible_amount"
    IMPLAUSIBLE_GROWTH = "implausible_growth"
    IMPLAUSIBLE_RATIO = "implausible_ratio"
    AMBIGUOUS_UNIT = "ambiguous_unit"
    STRATEGY_EXHAUSTED = "strategy_exhausted"


class SegmentType(str, Enum):
    GEOGRAPHIC = "geographic"
    PRODUCT = "product"
    SERVICE = "service"
    CUSTOMER = "customer"
    OTHER = "other"


class AnomalySeverity(str, Enum):
    NONE = "none"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------

class MonetaryValue(BaseModel):
    """Exact decimal amount tagged with a currency."""
    amount: Decimal
    currency: str = "USD"

    model_config = {"frozen": True}

    @field_validator("amount", mode="before")
    @classmethod
    def reject_binary_float(cls, v):
        # bool is an int subclass; neither belongs in an amount
        if isinstance(v, (float, bool)):
            raise ValueError(
                f"MonetaryValue amount must be a str or Decimal, got {type(v).__name__}"
            )
        return v


class ExtractionWarning(BaseModel):
    """One reportable condition raised during extraction."""
    reason: FailureReason
    message: str
    category: MetricCategory | None = None

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Metrics, facts, ratios
# ---------------------------------------------------------------------------

class ExtendedFinancialMetric(BaseModel):
    name: str
    display_value: str
    raw_value: Decimal
    unit: MetricUnit = MetricUnit.DOLLARS
    period: str | None = None
    period_type: PeriodType | None = None
    category: MetricCategory
    source: str = ""
    confidence: float = 0.0
    context: str = ""
    yoy_change: Decimal | None = None

    model_config = {"frozen": True}

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {v}")
        return v


class XbrlContext(BaseModel):
    """Reporting period a structured fact's contextRef resolves to."""
    id: str
    instant: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    has_dimensions: bool = False

    model_config = {"frozen": True}

    @property
    def has_dates(self) -> bool:
        return bool(self.instant or self.start_date or self.end_date)

    @property
    def period(self) -> str | None:
        return self.instant or self.end_date or self.start_date


class XbrlFact(BaseModel):
    concept: str
    value: MonetaryValue
    unit_ref: str | None = None
    context_ref: str | None = None
    decimals: str | None = None
    scale: int | None = None
    source: str = ""

    model_config = {"frozen": True}


class FinancialRatio(BaseModel):
    name: str
    value: Decimal
    formatted_value: str
    description: str
    interpretation: str
    health_status: HealthStatus
    category: RatioCategory

    model_config = {"frozen": True}


class FinancialStatement(BaseModel):
    type: StatementType
    period_ending: str | None = None
    period_type: PeriodType | None = None
    metrics: list[ExtendedFinancialMetric] = []
    raw_section: str = ""

    model_config = {"frozen": True}


class CompanyFact(BaseModel):
    """Latest reported value for one companyfacts concept."""
    concept: str
    label: str
    unit: str
    period_end: str | None = None
    fiscal_year: str | None = None
    value: Decimal

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Segments and trends
# ---------------------------------------------------------------------------

class SegmentRevenue(BaseModel):
    """Revenue reported for one geographic region or product line."""
    name: str
    segment_type: SegmentType
    revenue: Decimal
    percent_of_total: Decimal | None = None
    operating_income: Decimal | None = None
    source: str = ""

    model_config = {"frozen": True}


class GrowthMetric(BaseModel):
    name: str
    period_label: str                  # "YoY", "QoQ", "5Y CAGR"
    current_value: Decimal
    previous_value: Decimal
    growth_pct: Decimal
    interpretation: str

    model_config = {"frozen": True}


class AnomalyDetection(BaseModel):
    name: str
    value: Decimal
    is_anomaly: bool = False
    severity: AnomalySeverity = AnomalySeverity.NONE
    z_score: Decimal | None = None
    mean: Decimal | None = None
    std_dev: Decimal | None = None
    description: str = ""

    model_config = {"frozen": True}


class MarginTrend(BaseModel):
    """Margin per period, oldest first, with its overall direction."""
    name: str
    margins: list[Decimal]
    direction: TrendDirection
    change_pp: Decimal
    volatility: Decimal
    interpretation: str

    model_config = {"frozen": True}


class TrendReport(BaseModel):
    """Growth, CAGR, anomaly check and margin trend for one series."""
    name: str
    growth: GrowthMetric | None = None
    cagr: GrowthMetric | None = None
    anomaly: AnomalyDetection | None = None
    margin_trend: MarginTrend | None = None
    warnings: list[ExtractionWarning] = []

    model_config = {"frozen": True}


class FilingAnalysis(BaseModel):
    """Full output for one document."""
    metrics: list[ExtendedFinancialMetric] = []
    ratios: list[FinancialRatio] = []
    statements: list[FinancialStatement] = []
    segments: list[SegmentRevenue] = []
    warnings: list[ExtractionWarning] = []
    unit: MetricUnit = MetricUnit.MILLIONS
    period: str | None = None
    period_type: PeriodType | None = None
    has_inline_xbrl: bool = False
