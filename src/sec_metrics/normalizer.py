"""Markup-to-text normalization for SEC filings.

The output keeps table structure searchable: each ``<tr>`` becomes its own
line and cells are separated by ``|`` so column alignment survives as
plain text (``| Total revenue | $ 1,234 | $ 1,100 |``).
"""

from __future__ import annotations

import html
import logging
import re

log = logging.getLogger(__name__)

# Passes before giving up on reaching a fixpoint (nested escaping like
# ``&amp;amp;lt;`` unwraps one level per pass)
MAX_NORMALIZE_PASSES = 16

_FLAGS = re.IGNORECASE | re.DOTALL

# Blocks removed together with their content
_DROP_BLOCKS = [
    re.compile(r"<script\b[^>]*>.*?</script\s*>", _FLAGS),
    re.compile(r"<style\b[^>]*>.*?</style\s*>", _FLAGS),
    re.compile(r"<head\b[^>]*>.*?</head\s*>", _FLAGS),
    re.compile(r"<ix:header\b[^>]*>.*?</ix:header\s*>", _FLAGS),
    re.compile(r"<xbrli:context\b[^>]*>.*?</xbrli:context\s*>", _FLAGS),
    re.compile(r"<xbrli:unit\b[^>]*>.*?</xbrli:unit\s*>", _FLAGS),
    re.compile(r"<!--.*?-->", re.DOTALL),
]

# XBRL wrappers around visible numbers: drop the tag, keep the content
_XBRL_WRAPPER_RE = re.compile(r"</?(?:ix|us-gaap|dei|xbrli):[^>]*>", re.IGNORECASE)

_STRUCTURE = [
    (re.compile(r"<tr\b[^>]*>", re.IGNORECASE), "\n| "),
    (re.compile(r"<t[dh]\b[^>]*>", re.IGNORECASE), " | "),
    (re.compile(r"</t[dh]\s*>", re.IGNORECASE), " "),
    (re.compile(r"</tr\s*>", re.IGNORECASE), " |\n"),
    (re.compile(r"<br\s*/?>", re.IGNORECASE), "\n"),
    (re.compile(r"<p\b[^>]*>", re.IGNORECASE), "\n\n"),
    (re.compile(r"<div\b[^>]*>", re.IGNORECASE), "\n"),
]

# Anything still shaped like a tag; ``a < b`` in prose is left alone
_ANY_TAG_RE = re.compile(r"</?[A-Za-z!?][^<>]*>")

_DASH_ENTITY_RE = re.compile(r"&(?:mdash|ndash|#8211|#8212|#x2013|#x2014);", re.IGNORECASE)
_LEFTOVER_ENTITY_RE = re.compile(r"&(?:#\d+|#x[0-9a-fA-F]+|[a-zA-Z]+);")

_SPACE_TRANSLATION = str.maketrans({
    "\u00a0": " ",
    "\u2007": " ",
    "\u202f": " ",
    "\u2009": " ",
    "\u2013": "-",
    "\u2014": "-",
    "\r": "\n",
    "\f": "\n",
    "\v": "\n",
})

_SPACE_RUN_RE = re.compile(r"[ \t]+")
_BLANK_LINES_RE = re.compile(r"\n[ \t]*(?:\n[ \t]*)+")


def _normalize_once(text: str) -> str:
    for pattern in _DROP_BLOCKS:
        text = pattern.sub(" ", text)
    text = _XBRL_WRAPPER_RE.sub(" ", text)
    for pattern, replacement in _STRUCTURE:
        text = pattern.sub(replacement, text)
    text = _ANY_TAG_RE.sub(" ", text)

    text = _DASH_ENTITY_RE.sub("-", text)
    text = html.unescape(text)
    text = _LEFTOVER_ENTITY_RE.sub(" ", text)
    text = text.replace("\r\n", "\n").translate(_SPACE_TRANSLATION)

    return collapse_whitespace(text)


def collapse_whitespace(text: str) -> str:
    """Collapse spaces/tabs, keep newlines, cap blank-line runs, trim."""
    text = _SPACE_RUN_RE.sub(" ", text)
    text = _BLANK_LINES_RE.sub("\n\n", text)
    return text.strip()


def normalize(raw: str) -> str:
    """Turn filing markup (or already-clean text) into searchable plain text.

    Idempotent: ``normalize(normalize(x)) == normalize(x)``.  A single pass
    can expose new markup (an escaped ``&lt;td&gt;`` decodes into a tag), so
    the pass is repeated until the text stops changing.
    """
    if not raw:
        return ""
    text = raw
    for _ in range(MAX_NORMALIZE_PASSES):
        cleaned = _normalize_once(text)
        if cleaned == text:
            return cleaned
        text = cleaned
    log.warning("Text normalization did not converge after %d passes", MAX_NORMALIZE_PASSES)
    return text


_XBRL_MARKERS = (
    re.compile(r"xmlns(?::\w+)?\s*=\s*[\"'][^\"']*xbrl", re.IGNORECASE),
    re.compile(r"\b(?:contextref|unitref)\s*=", re.IGNORECASE),
    re.compile(r"<ix:\w+", re.IGNORECASE),
)


def has_inline_xbrl(raw: str | bytes) -> bool:
    """True if the markup carries inline-XBRL namespaces, tags or references."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    return any(p.search(raw) for p in _XBRL_MARKERS)
