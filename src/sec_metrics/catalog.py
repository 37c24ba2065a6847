"""Static extraction tables: label catalog, label rules, concept map.

All tables are built once at import and are read-only afterwards
(tuples, frozensets and ``MappingProxyType``).

  Layer 1: PATTERN_CATALOG   (label phrase -> category, base confidence)
           searched in filing text by ``extractor.extract_metrics``
  Layer 2: LABEL_RULES       (ordered predicates over a table-row label)
           used by the statement-table parser, first match wins
  Layer 3: CONCEPT_MAP       (taxonomy concept -> category)
           used by the inline-XBRL extractor; unmapped concepts are dropped
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import NamedTuple

from sec_metrics.models import MetricCategory as C
from sec_metrics.models import StatementType


# ═══════════════════════════════════════════════════════════════════════════
#  Pattern catalog
# ═══════════════════════════════════════════════════════════════════════════

class PatternEntry(NamedTuple):
    label: str              # phrase as it appears in filings
    category: C
    confidence: float       # base confidence before match-order decay
    not_after: str = ""     # word that must not precede the label ("Cost of Sales")


def _entries(*rows: tuple) -> tuple[PatternEntry, ...]:
    return tuple(PatternEntry(*r) for r in rows)


REVENUE_PATTERNS = _entries(
    ("Total Revenue", C.REVENUE, 1.0),
    ("Total Revenues", C.REVENUE, 1.0),
    ("Net Revenue", C.REVENUE, 0.95),
    ("Net Revenues", C.REVENUE, 0.95),
    ("Revenue", C.REVENUE, 0.8, "of"),
    ("Revenues", C.REVENUE, 0.8, "of"),
    ("Net Sales", C.REVENUE, 0.9),
    ("Total Net Sales", C.REVENUE, 0.95),
    ("Sales", C.REVENUE, 0.7, "of"),
    ("Total Sales", C.REVENUE, 0.9),
)

COST_PATTERNS = _entries(
    ("Cost of Revenue", C.COST_OF_REVENUE, 1.0),
    ("Cost of Revenues", C.COST_OF_REVENUE, 1.0),
    ("Cost of Sales", C.COST_OF_REVENUE, 0.95),
    ("Cost of Goods Sold", C.COST_OF_REVENUE, 0.95),
    ("COGS", C.COST_OF_REVENUE, 0.9),
)

PROFIT_PATTERNS = _entries(
    ("Gross Profit", C.GROSS_PROFIT, 1.0),
    ("Gross Margin", C.GROSS_PROFIT, 0.9),
    ("Operating Income", C.OPERATING_INCOME, 1.0),
    ("Operating Profit", C.OPERATING_INCOME, 0.95),
    ("Income from Operations", C.OPERATING_INCOME, 0.95),
    ("Net Income", C.NET_INCOME, 1.0),
    ("Net Earnings", C.NET_INCOME, 0.95),
    ("Net Profit", C.NET_INCOME, 0.95),
    ("Net Loss", C.NET_INCOME, 0.9),
    ("Net Income (Loss)", C.NET_INCOME, 1.0),
    ("EBITDA", C.EBITDA, 1.0),
    ("Adjusted EBITDA", C.EBITDA, 0.95),
)

ASSET_PATTERNS = _entries(
    ("Total Assets", C.TOTAL_ASSETS, 1.0),
    ("Total Current Assets", C.CURRENT_ASSETS, 1.0),
    ("Current Assets", C.CURRENT_ASSETS, 0.95),
    ("Cash and Cash Equivalents", C.CASH_AND_EQUIVALENTS, 1.0),
    ("Cash and Equivalents", C.CASH_AND_EQUIVALENTS, 0.95),
    ("Cash", C.CASH_AND_EQUIVALENTS, 0.7),
    ("Accounts Receivable", C.ACCOUNTS_RECEIVABLE, 1.0),
    ("Trade Receivables", C.ACCOUNTS_RECEIVABLE, 0.95),
    ("Inventory", C.INVENTORY, 0.9),
    ("Inventories", C.INVENTORY, 1.0),
    ("Total Inventory", C.INVENTORY, 1.0),
)

LIABILITY_PATTERNS = _entries(
    ("Total Liabilities", C.TOTAL_LIABILITIES, 1.0),
    ("Total Current Liabilities", C.CURRENT_LIABILITIES, 1.0),
    ("Current Liabilities", C.CURRENT_LIABILITIES, 0.95),
    ("Long-term Debt", C.LONG_TERM_DEBT, 1.0),
    ("Long Term Debt", C.LONG_TERM_DEBT, 1.0),
    ("Total Long-term Debt", C.LONG_TERM_DEBT, 1.0),
    ("Total Debt", C.LONG_TERM_DEBT, 0.9),
)

EQUITY_PATTERNS = _entries(
    ("Total Equity", C.TOTAL_EQUITY, 1.0),
    ("Total Stockholders' Equity", C.TOTAL_EQUITY, 1.0),
    ("Total Shareholders' Equity", C.TOTAL_EQUITY, 1.0),
    ("Stockholders' Equity", C.TOTAL_EQUITY, 0.95),
    ("Shareholders' Equity", C.TOTAL_EQUITY, 0.95),
    ("Retained Earnings", C.RETAINED_EARNINGS, 1.0),
    ("Accumulated Deficit", C.RETAINED_EARNINGS, 0.9),
)

CASH_FLOW_PATTERNS = _entries(
    ("Operating Cash Flow", C.OPERATING_CASH_FLOW, 1.0),
    ("Cash from Operations", C.OPERATING_CASH_FLOW, 0.95),
    ("Net Cash from Operating", C.OPERATING_CASH_FLOW, 0.95),
    ("Net Cash Provided by Operating", C.OPERATING_CASH_FLOW, 1.0),
    ("Investing Cash Flow", C.INVESTING_CASH_FLOW, 1.0),
    ("Cash from Investing", C.INVESTING_CASH_FLOW, 0.95),
    ("Net Cash from Investing", C.INVESTING_CASH_FLOW, 0.95),
    ("Financing Cash Flow", C.FINANCING_CASH_FLOW, 1.0),
    ("Cash from Financing", C.FINANCING_CASH_FLOW, 0.95),
    ("Net Cash from Financing", C.FINANCING_CASH_FLOW, 0.95),
    ("Free Cash Flow", C.FREE_CASH_FLOW, 1.0),
    ("Capital Expenditures", C.CAPITAL_EXPENDITURES, 1.0),
    ("CapEx", C.CAPITAL_EXPENDITURES, 0.9),
)

EXPENSE_PATTERNS = _entries(
    ("Interest Expense", C.INTEREST_EXPENSE, 1.0),
    ("Interest Costs", C.INTEREST_EXPENSE, 0.95),
    ("Interest Paid", C.INTEREST_EXPENSE, 0.9),
    ("R&D Expense", C.RD_EXPENSE, 1.0),
    ("Research and Development", C.RD_EXPENSE, 1.0),
    ("SG&A Expense", C.SGA_EXPENSE, 1.0),
    ("Selling, General and Administrative", C.SGA_EXPENSE, 0.95),
)

PER_SHARE_PATTERNS = _entries(
    ("Basic Earnings Per Share", C.EPS_BASIC, 1.0),
    ("Basic EPS", C.EPS_BASIC, 0.95),
    ("Diluted Earnings Per Share", C.EPS_DILUTED, 1.0),
    ("Diluted EPS", C.EPS_DILUTED, 0.95),
    ("Earnings Per Share", C.EPS_BASIC, 0.8),
    ("EPS", C.EPS_BASIC, 0.7),
    ("Book Value Per Share", C.BOOK_VALUE_PER_SHARE, 1.0),
    ("Dividends Per Share", C.DIVIDENDS_PER_SHARE, 1.0),
)

SHARES_PATTERNS = _entries(
    ("Shares Outstanding", C.SHARES_OUTSTANDING, 1.0),
    ("Common Shares Outstanding", C.SHARES_OUTSTANDING, 1.0),
    ("Basic Shares Outstanding", C.SHARES_OUTSTANDING, 0.95),
    ("Diluted Shares Outstanding", C.SHARES_DILUTED, 1.0),
    ("Weighted Average Shares", C.SHARES_OUTSTANDING, 0.9),
)

DETAILED_ASSET_PATTERNS = _entries(
    ("Marketable Securities", C.MARKETABLE_SECURITIES, 1.0),
    ("Short-term Investments", C.MARKETABLE_SECURITIES, 0.95),
    ("Short-term Marketable Securities", C.MARKETABLE_SECURITIES, 0.95),
    ("Long-term Marketable Securities", C.LONG_TERM_INVESTMENTS, 1.0),
    ("Long-term Investments", C.LONG_TERM_INVESTMENTS, 0.95),
    ("Prepaid Expenses", C.PREPAID_EXPENSES, 1.0),
    ("Prepaid Expenses and Other", C.PREPAID_EXPENSES, 0.9),
    ("Other Current Assets", C.OTHER_CURRENT_ASSETS, 0.9),
    ("Fixed Assets", C.FIXED_ASSETS, 1.0),
    ("Net Fixed Assets", C.FIXED_ASSETS, 0.95),
    ("Property, Plant and Equipment", C.FIXED_ASSETS, 1.0),
    ("PP&E", C.FIXED_ASSETS, 0.9),
    ("Machinery and Equipment", C.FIXED_ASSETS, 0.85),
    ("Deferred Tax Assets", C.DEFERRED_TAX_ASSETS, 1.0),
)

INVENTORY_DETAIL_PATTERNS = _entries(
    ("Raw Materials", C.RAW_MATERIALS, 1.0),
    ("Work in Process", C.WORK_IN_PROCESS, 1.0),
    ("Work-in-Process", C.WORK_IN_PROCESS, 1.0),
    ("Finished Goods", C.FINISHED_GOODS, 1.0),
    ("Total Inventories", C.INVENTORY, 1.0),
    ("Inventories, Net", C.INVENTORY, 0.95),
)

DETAILED_LIABILITY_PATTERNS = _entries(
    ("Accounts Payable", C.ACCOUNTS_PAYABLE, 1.0),
    ("Trade Payables", C.ACCOUNTS_PAYABLE, 0.95),
    ("Accrued Expenses", C.ACCRUED_EXPENSES, 1.0),
    ("Accrued Payroll", C.ACCRUED_EXPENSES, 0.9),
    ("Accrued Liabilities", C.ACCRUED_EXPENSES, 0.9),
    ("Operating Lease", C.OPERATING_LEASE, 1.0),
    ("Operating Lease Liability", C.OPERATING_LEASE, 1.0),
    ("Long-term Operating Lease", C.LONG_TERM_LEASE, 1.0),
    ("Deferred Revenue", C.DEFERRED_REVENUE, 1.0),
    ("Unearned Revenue", C.DEFERRED_REVENUE, 0.9),
)

DETAILED_INCOME_PATTERNS = _entries(
    ("Product Sales", C.PRODUCT_REVENUE, 1.0),
    ("Service Revenue", C.SERVICE_REVENUE, 1.0),
    ("Contract Research and Development", C.RD_REVENUE, 1.0),
    ("Total Expenses", C.TOTAL_EXPENSES, 1.0),
    ("Total Operating Expenses", C.TOTAL_EXPENSES, 0.95),
    ("Income Before Taxes", C.INCOME_BEFORE_TAX, 1.0),
    ("Pretax Income", C.INCOME_BEFORE_TAX, 0.95),
    ("Provision for Income Taxes", C.INCOME_TAX, 1.0),
    ("Income Tax Expense", C.INCOME_TAX, 0.95),
    ("Interest Income", C.INTEREST_INCOME, 1.0),
    ("Interest and Other Income", C.INTEREST_INCOME, 0.9),
    ("Other Income", C.OTHER_INCOME, 0.85),
    ("Depreciation", C.DEPRECIATION, 1.0),
    ("Depreciation and Amortization", C.DEPRECIATION, 1.0),
    ("Amortization", C.AMORTIZATION, 1.0),
)

DETAILED_CASH_FLOW_PATTERNS = _entries(
    ("Purchases of Fixed Assets", C.CAPITAL_EXPENDITURES, 1.0),
    ("Purchases of Marketable Securities", C.INVESTMENT_PURCHASES, 1.0),
    ("Proceeds from Maturities", C.INVESTMENT_PROCEEDS, 1.0),
    ("Proceeds from Sale of", C.INVESTMENT_PROCEEDS, 0.85),
    ("Payment of Dividends", C.DIVIDENDS_PAID, 1.0),
    ("Cash Dividends Paid", C.DIVIDENDS_PAID, 1.0),
    ("Stock-based Compensation", C.STOCK_COMPENSATION, 1.0),
    ("Share-based Compensation", C.STOCK_COMPENSATION, 1.0),
    ("Changes in Operating Assets", C.WORKING_CAPITAL_CHANGES, 0.8),
)

PATTERN_CATALOG: tuple[PatternEntry, ...] = (
    REVENUE_PATTERNS
    + COST_PATTERNS
    + PROFIT_PATTERNS
    + ASSET_PATTERNS
    + LIABILITY_PATTERNS
    + EQUITY_PATTERNS
    + CASH_FLOW_PATTERNS
    + EXPENSE_PATTERNS
    + PER_SHARE_PATTERNS
    + SHARES_PATTERNS
    + DETAILED_ASSET_PATTERNS
    + INVENTORY_DETAIL_PATTERNS
    + DETAILED_LIABILITY_PATTERNS
    + DETAILED_INCOME_PATTERNS
    + DETAILED_CASH_FLOW_PATTERNS
)


# ═══════════════════════════════════════════════════════════════════════════
#  Label rules (table rows)
# ═══════════════════════════════════════════════════════════════════════════

class LabelRule(NamedTuple):
    pattern: re.Pattern
    category: C | None      # None: recognised, but not a line item


def _rule(regex: str, category: C | None) -> LabelRule:
    return LabelRule(re.compile(regex), category)


# Evaluated top to bottom against the lower-cased label; first match wins.
# Exact labels are anchored, "contains" rules are unanchored.
LABEL_RULES: tuple[LabelRule, ...] = (
    # Combined totals that would otherwise read as equity
    _rule(r"liabilities\s+and\s+(?:stockholders|shareholders)", None),
    _rule(r"(?:deferred|unearned) revenue", C.DEFERRED_REVENUE),

    # Cost of revenue before the revenue rules ("total cost of sales")
    _rule(r"cost.*(?:revenue|sales|goods)", C.COST_OF_REVENUE),
    _rule(r"^cogs$", C.COST_OF_REVENUE),

    # Revenue
    _rule(r"total.*(?:revenue|sales)", C.REVENUE),
    _rule(r"products?\b.*net sales", C.PRODUCT_REVENUE),
    _rule(r"services?\b.*(?:revenue|sales)", C.SERVICE_REVENUE),
    _rule(r"net.*(?:revenue|sales)", C.REVENUE),
    _rule(r"^(?:revenue|revenues|net sales|total net sales)$", C.REVENUE),

    # Profit
    _rule(r"^gross (?:profit|margin)$", C.GROSS_PROFIT),
    _rule(r"operating income|income from operations|^operating profit$", C.OPERATING_INCOME),
    _rule(r"income before (?:income )?tax|^pretax income", C.INCOME_BEFORE_TAX),
    _rule(r"net income", C.NET_INCOME),
    _rule(r"^net (?:earnings|profit)$|net loss", C.NET_INCOME),
    _rule(r"ebitda", C.EBITDA),

    # Assets
    _rule(r"^total assets$", C.TOTAL_ASSETS),
    _rule(r"total.*current.*assets|current.*assets.*total", C.CURRENT_ASSETS),
    _rule(r"cash and cash equivalents|^cash$", C.CASH_AND_EQUIVALENTS),
    _rule(r"accounts receivable", C.ACCOUNTS_RECEIVABLE),
    _rule(r"inventories|^inventory$", C.INVENTORY),
    _rule(r"marketable securities", C.MARKETABLE_SECURITIES),
    _rule(r"property.*equipment", C.FIXED_ASSETS),
    _rule(r"^prepaid", C.PREPAID_EXPENSES),

    # Liabilities
    _rule(r"^total liabilities$", C.TOTAL_LIABILITIES),
    _rule(r"total.*current.*liabilities", C.CURRENT_LIABILITIES),
    _rule(r"accounts payable", C.ACCOUNTS_PAYABLE),
    _rule(r"^accrued", C.ACCRUED_EXPENSES),
    _rule(r"long.*term.*debt|term debt", C.LONG_TERM_DEBT),

    # Equity
    _rule(r"total.*(?:equity|stockholders|shareholders)", C.TOTAL_EQUITY),
    _rule(r"(?:stockholders|shareholders).*equity", C.TOTAL_EQUITY),
    _rule(r"retained earnings|accumulated deficit", C.RETAINED_EARNINGS),

    # Cash flow
    _rule(r"cash.*(?:provided|generated|used).*operating", C.OPERATING_CASH_FLOW),
    _rule(r"operating.*(?:cash flow|activities)", C.OPERATING_CASH_FLOW),
    _rule(r"cash.*(?:provided|used).*investing", C.INVESTING_CASH_FLOW),
    _rule(r"cash.*(?:provided|used).*financing", C.FINANCING_CASH_FLOW),
    _rule(r"capital expenditures|^capex$", C.CAPITAL_EXPENDITURES),
    _rule(r"free cash flow", C.FREE_CASH_FLOW),
    _rule(r"(?:stock|share)[- ]based compensation", C.STOCK_COMPENSATION),
    _rule(r"dividends paid|payments? of dividends", C.DIVIDENDS_PAID),

    # Expenses
    _rule(r"research and development|r&d", C.RD_EXPENSE),
    _rule(r"selling.*(?:general|admin)|sg&a", C.SGA_EXPENSE),
    _rule(r"^total (?:operating )?(?:costs and )?expenses$", C.TOTAL_EXPENSES),
    _rule(r"interest expense", C.INTEREST_EXPENSE),
    _rule(r"interest income", C.INTEREST_INCOME),
    _rule(r"depreciation", C.DEPRECIATION),
    _rule(r"income tax", C.INCOME_TAX),

    # Per share
    _rule(r"basic.*(?:earnings|eps)", C.EPS_BASIC),
    _rule(r"diluted.*(?:earnings|eps)", C.EPS_DILUTED),
    _rule(r"^(?:earnings per share|eps)$", C.EPS_BASIC),

    # Shares
    _rule(r"shares outstanding|weighted average shares", C.SHARES_OUTSTANDING),
)


def infer_category(label: str) -> C | None:
    """Map a table-row label to a category with the ordered LABEL_RULES."""
    lower = " ".join(label.lower().split())
    for rule in LABEL_RULES:
        if rule.pattern.search(lower):
            return rule.category
    return None


# ═══════════════════════════════════════════════════════════════════════════
#  Taxonomy concept map (inline XBRL)
# ═══════════════════════════════════════════════════════════════════════════

class ConceptMapping(NamedTuple):
    name: str               # display name of the resulting metric
    category: C


# Keyed by the lower-cased local concept name (prefix stripped)
CONCEPT_MAP: MappingProxyType[str, ConceptMapping] = MappingProxyType({
    "revenues": ConceptMapping("Revenue", C.REVENUE),
    "salesrevenuenet": ConceptMapping("Revenue", C.REVENUE),
    "revenuefromcontractwithcustomerexcludingassessedtax": ConceptMapping("Revenue", C.REVENUE),
    "netincomeloss": ConceptMapping("Net Income", C.NET_INCOME),
    "grossprofit": ConceptMapping("Gross Profit", C.GROSS_PROFIT),
    "operatingincomeloss": ConceptMapping("Operating Income", C.OPERATING_INCOME),
    "assets": ConceptMapping("Total Assets", C.TOTAL_ASSETS),
    "liabilities": ConceptMapping("Total Liabilities", C.TOTAL_LIABILITIES),
    "stockholdersequity": ConceptMapping("Total Equity", C.TOTAL_EQUITY),
    "stockholdersequityincludingportionattributabletononcontrollinginterest":
        ConceptMapping("Total Equity", C.TOTAL_EQUITY),
    "cashandcashequivalentsatcarryingvalue":
        ConceptMapping("Cash and Cash Equivalents", C.CASH_AND_EQUIVALENTS),
    "netcashprovidedbyusedinoperatingactivities":
        ConceptMapping("Operating Cash Flow", C.OPERATING_CASH_FLOW),
    "earningspersharebasic": ConceptMapping("EPS (Basic)", C.EPS_BASIC),
    "earningspersharediluted": ConceptMapping("EPS (Diluted)", C.EPS_DILUTED),
})


def local_concept_name(concept: str) -> str:
    """``"us-gaap:NetIncomeLoss"`` -> ``"netincomeloss"``."""
    return concept.rsplit(":", 1)[-1].strip().lower()


def map_concept(concept: str) -> ConceptMapping | None:
    return CONCEPT_MAP.get(local_concept_name(concept))


# ═══════════════════════════════════════════════════════════════════════════
#  Category families
# ═══════════════════════════════════════════════════════════════════════════

PER_SHARE_CATEGORIES = frozenset({
    C.EPS_BASIC, C.EPS_DILUTED, C.BOOK_VALUE_PER_SHARE, C.DIVIDENDS_PER_SHARE,
})

SHARE_COUNT_CATEGORIES = frozenset({C.SHARES_OUTSTANDING, C.SHARES_DILUTED})

# Categories whose sign carries meaning: a "loss"/"deficit" cue near the
# amount makes the value negative
SIGNED_CATEGORIES = frozenset({
    C.OPERATING_INCOME, C.NET_INCOME, C.EBITDA, C.INCOME_BEFORE_TAX,
    C.OTHER_INCOME, C.RETAINED_EARNINGS, C.EPS_BASIC, C.EPS_DILUTED,
})

INCOME_STATEMENT_CATEGORIES = frozenset({
    C.REVENUE, C.PRODUCT_REVENUE, C.SERVICE_REVENUE, C.COST_OF_REVENUE,
    C.GROSS_PROFIT, C.OPERATING_INCOME, C.NET_INCOME, C.EBITDA, C.RD_EXPENSE,
    C.SGA_EXPENSE, C.INTEREST_EXPENSE, C.INCOME_TAX, C.INCOME_BEFORE_TAX,
    C.TOTAL_EXPENSES, C.EPS_BASIC, C.EPS_DILUTED,
})

BALANCE_SHEET_CATEGORIES = frozenset({
    C.TOTAL_ASSETS, C.CURRENT_ASSETS, C.CASH_AND_EQUIVALENTS,
    C.ACCOUNTS_RECEIVABLE, C.INVENTORY, C.MARKETABLE_SECURITIES,
    C.FIXED_ASSETS, C.PREPAID_EXPENSES, C.TOTAL_LIABILITIES,
    C.CURRENT_LIABILITIES, C.ACCOUNTS_PAYABLE, C.ACCRUED_EXPENSES,
    C.LONG_TERM_DEBT, C.DEFERRED_REVENUE, C.TOTAL_EQUITY, C.RETAINED_EARNINGS,
})

CASH_FLOW_CATEGORIES = frozenset({
    C.OPERATING_CASH_FLOW, C.INVESTING_CASH_FLOW, C.FINANCING_CASH_FLOW,
    C.FREE_CASH_FLOW, C.CAPITAL_EXPENDITURES, C.STOCK_COMPENSATION,
    C.DIVIDENDS_PAID,
})

STATEMENT_CATEGORIES: MappingProxyType[StatementType, frozenset[C]] = MappingProxyType({
    StatementType.INCOME_STATEMENT: INCOME_STATEMENT_CATEGORIES,
    StatementType.BALANCE_SHEET: BALANCE_SHEET_CATEGORIES,
    StatementType.CASH_FLOW_STATEMENT: CASH_FLOW_CATEGORIES,
})
