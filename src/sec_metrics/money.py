"""Exact-precision monetary arithmetic.

Every amount is a ``decimal.Decimal`` built from text, never from a binary
float.  Intermediate division runs at ``CALCULATION_SCALE`` fractional
digits and results are rounded to display precision only as the last step.

Validation failures are returned as an ``Outcome`` carrying a
``FailureReason`` instead of being raised, so callers can tell an ordinary
miss (``NO_MATCH``) from a plausibility violation (``IMPLAUSIBLE_*``).
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, NamedTuple

from sec_metrics.models import FailureReason, MetricUnit, MonetaryValue

# Fractional digits kept for intermediate division
CALCULATION_SCALE = 10
# Fractional digits for currency and percentage display
DISPLAY_SCALE = 2
# Fractional digits for plain ratios
RATIO_SCALE = 4

# $10 trillion: larger than any single line item ever filed
MAX_PLAUSIBLE_AMOUNT = Decimal("10000000000000")
# 1000% (10x) period-over-period change
MAX_PLAUSIBLE_GROWTH_PCT = Decimal("1000")

_HUNDRED = Decimal("100")
_PRECISION = 40

_NOT_APPLICABLE = frozenset({"", "-", "\u2014", "\u2013", "n/a", "na", "nm"})
_STRIP_RE = re.compile(r"[$,\s]")
_NUMBER_RE = re.compile(r"^\d+(?:\.\d+)?$|^\.\d+$")


class Outcome(NamedTuple):
    """Either a value or the reason there is none."""
    value: Any = None
    failure: FailureReason | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.value is not None


def _quantum(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


def to_decimal(value: Decimal | MonetaryValue | str | int) -> Decimal:
    """Decimal from text, an int or a MonetaryValue; binary floats raise TypeError."""
    if isinstance(value, MonetaryValue):
        return value.amount
    if isinstance(value, float):
        raise TypeError("binary floats are not accepted; pass a str or Decimal")
    return Decimal(value)


# ═══════════════════════════════════════════════════════════════════════════
#  Parsing
# ═══════════════════════════════════════════════════════════════════════════

def clean_amount_text(text: str) -> str:
    """Remove currency symbols, grouping separators and (non-breaking) spaces."""
    return _STRIP_RE.sub("", text)


def parse_amount(
    text: str | None,
    unit: MetricUnit = MetricUnit.DOLLARS,
    currency: str = "USD",
) -> Outcome:
    """Parse a filing amount such as ``"$ (1,234.5)"`` into a MonetaryValue.

    Parenthesized or ``-``-prefixed amounts are negative.  A bare dash
    (hyphen, en or em dash) or ``n/a`` means "not applicable" and yields
    ``NO_MATCH``.  The unit multiplier is applied before the plausibility
    check; amounts above ``MAX_PLAUSIBLE_AMOUNT`` yield
    ``IMPLAUSIBLE_AMOUNT``.
    """
    if text is None:
        return Outcome(failure=FailureReason.NO_MATCH)
    cleaned = clean_amount_text(text)
    if cleaned.lower() in _NOT_APPLICABLE:
        return Outcome(failure=FailureReason.NO_MATCH)

    negative = False
    if cleaned.startswith("(") and cleaned.endswith(")"):
        negative = True
        cleaned = cleaned[1:-1]
    if cleaned.startswith("-"):
        negative = not negative
        cleaned = cleaned[1:]
    if not _NUMBER_RE.match(cleaned):
        return Outcome(failure=FailureReason.NO_MATCH)

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return Outcome(failure=FailureReason.NO_MATCH)

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        amount = amount * unit.multiplier
        if negative:
            amount = -amount
        if abs(amount) > MAX_PLAUSIBLE_AMOUNT:
            return Outcome(failure=FailureReason.IMPLAUSIBLE_AMOUNT)
        amount = amount.quantize(_quantum(DISPLAY_SCALE), rounding=ROUND_HALF_UP)
    return Outcome(value=MonetaryValue(amount=amount, currency=currency))


# ═══════════════════════════════════════════════════════════════════════════
#  Percentages and ratios
# ═══════════════════════════════════════════════════════════════════════════

def _divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Division at CALCULATION_SCALE fractional digits."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return (numerator / denominator).quantize(
            _quantum(CALCULATION_SCALE), rounding=ROUND_HALF_UP
        )


def percentage_of(numerator, denominator) -> Decimal | None:
    """``numerator / denominator x 100`` rounded to 2 places; None on zero."""
    if numerator is None or denominator is None:
        return None
    num, den = to_decimal(numerator), to_decimal(denominator)
    if den.is_zero():
        return None
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        pct = _divide(num, den) * _HUNDRED
        return pct.quantize(_quantum(DISPLAY_SCALE), rounding=ROUND_HALF_UP)


def percentage_change(current, previous) -> Outcome:
    """Period-over-period change in percent.

    ``(current - previous) / |previous| x 100``, rounded to 2 places.
    A zero ``previous`` has no defined change (``NO_MATCH``); a change
    larger than ``MAX_PLAUSIBLE_GROWTH_PCT`` in magnitude is treated as a
    parsing error (``IMPLAUSIBLE_GROWTH``).
    """
    if current is None or previous is None:
        return Outcome(failure=FailureReason.NO_MATCH)
    cur, prev = to_decimal(current), to_decimal(previous)
    if prev.is_zero():
        return Outcome(failure=FailureReason.NO_MATCH)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        change = _divide(cur - prev, abs(prev)) * _HUNDRED
        if abs(change) > MAX_PLAUSIBLE_GROWTH_PCT:
            return Outcome(failure=FailureReason.IMPLAUSIBLE_GROWTH)
        return Outcome(value=change.quantize(_quantum(DISPLAY_SCALE), rounding=ROUND_HALF_UP))


def ratio(numerator, denominator) -> Decimal | None:
    """Plain ratio at RATIO_SCALE places; None on zero denominator."""
    if numerator is None or denominator is None:
        return None
    num, den = to_decimal(numerator), to_decimal(denominator)
    if den.is_zero():
        return None
    return _divide(num, den).quantize(_quantum(RATIO_SCALE), rounding=ROUND_HALF_UP)


# ═══════════════════════════════════════════════════════════════════════════
#  Formatting
# ═══════════════════════════════════════════════════════════════════════════

_SUFFIXES = (
    (Decimal("1000000000"), "B"),
    (Decimal("1000000"), "M"),
    (Decimal("1000"), "K"),
)


def format_money(value) -> str:
    """Format an amount for display (e.g., $1.23B, $456.00M, -$12.50K)."""
    if value is None:
        return "N/A"
    amount = to_decimal(value)
    sign = "-" if amount < 0 else ""
    av = abs(amount)
    q = _quantum(DISPLAY_SCALE)
    for threshold, suffix in _SUFFIXES:
        if av >= threshold:
            scaled = _divide(av, threshold).quantize(q, rounding=ROUND_HALF_UP)
            return f"{sign}${scaled}{suffix}"
    return f"{sign}${av.quantize(q, rounding=ROUND_HALF_UP)}"


def format_plain(value: Decimal) -> str:
    """Decimal without exponent or trailing zeros (``1200000``, ``1.25``)."""
    normalized = value.normalize()
    if normalized == normalized.to_integral_value():
        return f"{normalized.quantize(Decimal(1)):f}"
    return f"{normalized:f}"
