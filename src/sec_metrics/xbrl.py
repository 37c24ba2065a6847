"""Structured fact extraction from inline XBRL (iXBRL) markup.

Pipeline:
  1. Walk the document with lxml, matching elements by local name so any
     namespace prefix (``ix:``, ``xbrli:``, none) is accepted
  2. If that walk errors or finds no facts, fall back to BeautifulSoup and
     look the prefixed names up directly
  3. Resolve each fact's contextRef to a reporting period
  4. Apply ``sign``/``scale`` and map the concept to a metric category

Facts reported against dimensional contexts (segment or scenario members)
are breakdowns rather than consolidated totals and are skipped.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation, localcontext
from typing import NamedTuple

from bs4 import BeautifulSoup
from lxml import etree
from lxml import html as lxml_html

from sec_metrics.catalog import map_concept
from sec_metrics.extractor import display_value
from sec_metrics.models import (
    ExtendedFinancialMetric,
    ExtractionWarning,
    FailureReason,
    MetricUnit,
    MonetaryValue,
    PeriodType,
    XbrlContext,
    XbrlFact,
)
from sec_metrics.money import MAX_PLAUSIBLE_AMOUNT

log = logging.getLogger(__name__)

STRUCTURED_CONFIDENCE = 0.97
# Longer text is a narrative block, not a number
MAX_FACT_TEXT_CHARS = 200
MAX_FRACTION_DIGITS = 6

_FACT_TAGS = frozenset({"nonfraction", "nonnumeric"})
_DIMENSION_TAGS = frozenset({"explicitmember", "typedmember"})
_DATE_TAGS = frozenset({"instant", "startdate", "enddate"})

_DIGIT_RE = re.compile(r"\d")
_VALUE_STRIP_RE = re.compile(r"[$,\s()]")

_BS_CONTEXT_TAGS = ["xbrli:context", "context"]
_BS_DATE_TAGS = {
    "instant": ["xbrli:instant", "instant"],
    "startdate": ["xbrli:startdate", "startdate"],
    "enddate": ["xbrli:enddate", "enddate"],
}
_BS_DIMENSION_TAGS = ["xbrldi:explicitmember", "xbrldi:typedmember", "explicitmember", "typedmember"]
_BS_FACT_TAGS = ("ix:nonfraction", "ix:nonnumeric")


class _RawFact(NamedTuple):
    concept: str
    text: str
    attrs: dict[str, str]      # lower-cased local attribute names


# ═══════════════════════════════════════════════════════════════════════════
#  Context merging
# ═══════════════════════════════════════════════════════════════════════════

def context_key(cid: str) -> str:
    """Map key for a context id or contextRef: trimmed and case-folded."""
    return cid.strip().casefold()


def _merge_context(contexts: dict[str, XbrlContext], ctx: XbrlContext) -> None:
    """Add ``ctx`` unless an entry with the same id already has dates."""
    key = context_key(ctx.id)
    existing = contexts.get(key)
    if existing is None or (ctx.has_dates and not existing.has_dates):
        contexts[key] = ctx


def _context(cid: str, dates: dict[str, str], has_dimensions: bool) -> XbrlContext:
    return XbrlContext(
        id=cid.strip(),
        instant=dates.get("instant") or None,
        start_date=dates.get("startdate") or None,
        end_date=dates.get("enddate") or None,
        has_dimensions=has_dimensions,
    )


# ═══════════════════════════════════════════════════════════════════════════
#  Strategy (a): lxml tree walk
# ═══════════════════════════════════════════════════════════════════════════

def _local(name: str) -> str:
    """``{ns}nonFraction`` / ``ix:nonFraction`` -> ``nonfraction``."""
    return name.rsplit("}", 1)[-1].rsplit(":", 1)[-1].lower()


def _qualified_tag(el) -> str:
    local = el.tag.rsplit("}", 1)[-1]
    prefix = getattr(el, "prefix", None)
    return f"{prefix}:{local}" if prefix and ":" not in local else local


def _parse_tree(data: bytes):
    parser = etree.XMLParser(recover=True, huge_tree=True)
    root = etree.fromstring(data, parser=parser)
    if root is None:
        # Not well-formed enough for the XML parser; read it as HTML
        root = lxml_html.fromstring(data)
    return root


def _walk_lxml(data: bytes) -> tuple[dict[str, XbrlContext], list[_RawFact]]:
    root = _parse_tree(data)
    contexts: dict[str, XbrlContext] = {}
    facts: list[_RawFact] = []

    for el in root.iter():
        if not isinstance(el.tag, str):
            continue
        local = _local(el.tag)
        attrs = {_local(k): v for k, v in el.attrib.items()}

        if local == "context":
            cid = attrs.get("id")
            if not cid:
                continue
            dates: dict[str, str] = {}
            has_dimensions = False
            for child in el.iter():
                if not isinstance(child.tag, str):
                    continue
                child_local = _local(child.tag)
                if child_local in _DATE_TAGS and child.text:
                    dates.setdefault(child_local, child.text.strip())
                elif child_local in _DIMENSION_TAGS:
                    has_dimensions = True
            _merge_context(contexts, _context(cid, dates, has_dimensions))
            continue

        if "contextref" in attrs or "unitref" in attrs or local in _FACT_TAGS:
            concept = attrs.get("name") or _qualified_tag(el)
            facts.append(_RawFact(concept, "".join(el.itertext()), attrs))

    return contexts, facts


# ═══════════════════════════════════════════════════════════════════════════
#  Strategy (b): BeautifulSoup selectors
# ═══════════════════════════════════════════════════════════════════════════

def _is_bs_fact(tag) -> bool:
    return tag.has_attr("contextref") or tag.has_attr("unitref") or tag.name in _BS_FACT_TAGS


def _walk_soup(soup: BeautifulSoup) -> tuple[dict[str, XbrlContext], list[_RawFact]]:
    contexts: dict[str, XbrlContext] = {}
    for c in soup.find_all(_BS_CONTEXT_TAGS):
        cid = c.get("id")
        if not cid:
            continue
        dates = {}
        for key, names in _BS_DATE_TAGS.items():
            found = c.find(names)
            if found is not None:
                dates[key] = found.get_text(strip=True)
        has_dimensions = c.find(_BS_DIMENSION_TAGS) is not None
        _merge_context(contexts, _context(cid, dates, has_dimensions))

    facts = [
        _RawFact(
            tag.get("name") or tag.name,
            tag.get_text(),
            {k.lower(): v for k, v in tag.attrs.items() if isinstance(v, str)},
        )
        for tag in soup.find_all(_is_bs_fact)
    ]
    return contexts, facts


# ═══════════════════════════════════════════════════════════════════════════
#  Strategy selection
# ═══════════════════════════════════════════════════════════════════════════

def _exhausted(warnings: list[ExtractionWarning] | None, message: str) -> None:
    log.warning("Structured extraction: %s; using selector fallback", message)
    if warnings is not None:
        warnings.append(ExtractionWarning(reason=FailureReason.STRATEGY_EXHAUSTED, message=message))


def _read(
    document: str | bytes | BeautifulSoup,
    warnings: list[ExtractionWarning] | None = None,
) -> tuple[dict[str, XbrlContext], list[_RawFact]]:
    if isinstance(document, BeautifulSoup):
        soup = document
        data = str(document).encode("utf-8")
    else:
        soup = None
        data = document.encode("utf-8") if isinstance(document, str) else document
    if not data or not data.strip():
        return {}, []

    contexts: dict[str, XbrlContext] = {}
    try:
        contexts, facts = _walk_lxml(data)
    except (etree.LxmlError, ValueError) as exc:
        _exhausted(warnings, f"tree walk failed: {exc}")
    else:
        if facts:
            return contexts, facts
        _exhausted(warnings, "tree walk found no facts")

    if soup is None:
        soup = BeautifulSoup(data, "lxml")
    fallback_contexts, facts = _walk_soup(soup)
    for ctx in fallback_contexts.values():
        _merge_context(contexts, ctx)
    return contexts, facts


def parse_contexts(document: str | bytes | BeautifulSoup) -> dict[str, XbrlContext]:
    """Every context in the document, keyed by ``context_key`` of its id."""
    contexts, _ = _read(document)
    return contexts


# ═══════════════════════════════════════════════════════════════════════════
#  Fact values
# ═══════════════════════════════════════════════════════════════════════════

def _parse_scale(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def _fact_amount(text: str, sign: str | None, scale: int | None) -> Decimal | None:
    """Displayed text -> exact amount, with sign and scale applied."""
    text = text.strip()
    negative = (text.startswith("(") and text.endswith(")")) or text.startswith("-")
    cleaned = _VALUE_STRIP_RE.sub("", text).lstrip("-")
    if not cleaned:
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None

    if sign is not None and sign.strip() == "-":
        negative = True
    with localcontext() as ctx:
        ctx.prec = 40
        if scale:
            amount = amount * (Decimal(10) ** scale)
        if negative:
            amount = -amount
        if amount.as_tuple().exponent < -MAX_FRACTION_DIGITS:
            amount = amount.quantize(Decimal(1).scaleb(-MAX_FRACTION_DIGITS))
    return amount


def _to_fact(raw: _RawFact, currency: str) -> XbrlFact | None:
    text = raw.text
    if len(text) > MAX_FACT_TEXT_CHARS or not _DIGIT_RE.search(text):
        return None
    scale = _parse_scale(raw.attrs.get("scale"))
    amount = _fact_amount(text, raw.attrs.get("sign"), scale)
    if amount is None:
        return None
    context_ref = raw.attrs.get("contextref")
    unit_ref = raw.attrs.get("unitref")
    return XbrlFact(
        concept=raw.concept,
        value=MonetaryValue(amount=amount, currency=currency),
        unit_ref=unit_ref,
        context_ref=context_ref.strip() if context_ref else None,
        decimals=raw.attrs.get("decimals"),
        scale=scale,
        source=f"iXBRL:{raw.concept} contextRef={context_ref} unitRef={unit_ref}",
    )


def read_facts(document: str | bytes | BeautifulSoup, currency: str = "USD") -> list[XbrlFact]:
    """Every numeric fact in the document, mapped or not, in document order."""
    _, raw_facts = _read(document)
    return [f for f in (_to_fact(r, currency) for r in raw_facts) if f is not None]


# ═══════════════════════════════════════════════════════════════════════════
#  Facts -> metrics
# ═══════════════════════════════════════════════════════════════════════════

def infer_unit(concept: str, unit_ref: str | None) -> MetricUnit:
    if "earningspershare" in concept.lower():
        return MetricUnit.PER_SHARE
    if not unit_ref:
        return MetricUnit.DOLLARS
    ref = unit_ref.lower()
    if "usd" in ref or "iso4217" in ref:
        return MetricUnit.DOLLARS
    if "shares" in ref:
        return MetricUnit.SHARES
    if "pure" in ref:
        return MetricUnit.NONE
    return MetricUnit.DOLLARS


def _period_type(ctx: XbrlContext | None) -> PeriodType | None:
    """Duration length -> period type; instants have none."""
    if ctx is None or not (ctx.start_date and ctx.end_date):
        return None
    try:
        days = (date.fromisoformat(ctx.end_date) - date.fromisoformat(ctx.start_date)).days
    except ValueError:
        return None
    if 80 <= days <= 100:
        return PeriodType.QUARTERLY
    if 350 <= days <= 380:
        return PeriodType.ANNUAL
    if 170 <= days <= 280:
        return PeriodType.YTD
    return None


def extract_facts(
    document: str | bytes | BeautifulSoup,
    *,
    warnings: list[ExtractionWarning] | None = None,
    currency: str = "USD",
) -> list[ExtendedFinancialMetric]:
    """Mapped iXBRL facts as metrics, newest reporting period first.

    Never raises on malformed markup: a failed or empty tree walk is
    recorded as STRATEGY_EXHAUSTED and the selector fallback is used.
    """
    contexts, raw_facts = _read(document, warnings)
    metrics: list[ExtendedFinancialMetric] = []

    for raw in raw_facts:
        mapping = map_concept(raw.concept)
        if mapping is None:
            continue
        fact = _to_fact(raw, currency)
        if fact is None:
            continue
        ctx = contexts.get(context_key(fact.context_ref)) if fact.context_ref else None
        if ctx is not None and ctx.has_dimensions:
            continue

        unit = infer_unit(fact.concept, fact.unit_ref)
        amount = fact.value.amount
        if unit is not MetricUnit.PER_SHARE and abs(amount) > MAX_PLAUSIBLE_AMOUNT:
            message = f"{fact.concept}: {amount} exceeds the plausible ceiling"
            log.info("%s: %s", FailureReason.IMPLAUSIBLE_AMOUNT.value, message)
            if warnings is not None:
                warnings.append(ExtractionWarning(
                    reason=FailureReason.IMPLAUSIBLE_AMOUNT, message=message,
                    category=mapping.category,
                ))
            continue

        period = ctx.period if ctx is not None else None
        metrics.append(ExtendedFinancialMetric(
            name=mapping.name,
            display_value=display_value(amount, mapping.category),
            raw_value=amount,
            unit=unit,
            period=period,
            period_type=_period_type(ctx),
            category=mapping.category,
            source=fact.source,
            confidence=STRUCTURED_CONFIDENCE,
            context=(f"period={period} unit={fact.unit_ref} "
                     f"decimals={fact.decimals} scale={fact.scale}"),
        ))

    # Stable sort: document order is kept within a period
    metrics.sort(key=lambda m: (m.period is not None, m.period or ""), reverse=True)
    log.debug("Structured extraction produced %d metrics from %d facts",
              len(metrics), len(raw_facts))
    return metrics
