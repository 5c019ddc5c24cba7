"""Post-structural cleanup: stray commas, fractional amounts and bare scalar values."""

import math
import re
from typing import Callable, List, Optional, Tuple

from recipe_forge.app.services.llm_repair.scanner import (
    find_string_end,
    last_significant,
    next_significant,
)

BARE_SCALAR_KEYS = ("amount", "unit", "notes")
JSON_LITERALS = ("null", "true", "false")

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?")
_FRACTION_RE = re.compile(r"\s*(?:(\d+)\s+)?(\d+(?:\.\d+)?)\s*/\s*(\d+(?:\.\d+)?)")
_BARE_VALUE_END = ",\n}]"

# (text, value_start) -> (replacement, resume_index) or None to leave the value alone
ValueRewrite = Callable[[str, int], Optional[Tuple[str, int]]]


def strip_illegal_commas(text: str) -> str:
    """Drop trailing commas, repeated commas and commas right after an opening bracket."""
    out: List[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            end = find_string_end(text, i)
            if end == -1:
                out.append(text[i:])
                break
            out.append(text[i : end + 1])
            i = end + 1
            continue
        if ch == ",":
            following = next_significant(text, i + 1)
            if following != -1 and text[following] in "}]":
                i += 1
                continue
            if last_significant(out) in (",", "{", "["):
                i += 1
                continue
        out.append(ch)
        i += 1
    return "".join(out)


def _rewrite_values(text: str, keys: Tuple[str, ...], rewrite: ValueRewrite) -> str:
    out: List[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch != '"':
            out.append(ch)
            i += 1
            continue
        end = find_string_end(text, i)
        if end == -1:
            out.append(text[i:])
            break
        prev = last_significant(out)
        out.append(text[i : end + 1])
        key = text[i + 1 : end]
        i = end + 1
        colon = next_significant(text, i)
        if key not in keys or colon == -1 or text[colon] != ":":
            continue
        if prev not in ("", "{", ","):
            continue
        out.append(text[i : colon + 1])
        i = colon + 1
        replaced = rewrite(text, i)
        if replaced is not None:
            replacement, i = replaced
            out.append(replacement)
    return "".join(out)


def _format_decimal(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return repr(round(value, 4))


def _fraction_to_decimal(text: str, start: int) -> Optional[Tuple[str, int]]:
    m = _FRACTION_RE.match(text, start)
    if not m:
        return None
    whole = float(m.group(1) or 0)
    denominator = float(m.group(3))
    if denominator == 0:
        return None
    value = whole + float(m.group(2)) / denominator
    if not math.isfinite(value):
        return None
    return " " + _format_decimal(value), m.end()


def _quote_bare_value(text: str, start: int) -> Optional[Tuple[str, int]]:
    value_start = next_significant(text, start)
    if value_start == -1 or text[value_start] in '"{[':
        return None
    j = value_start
    while j < len(text) and text[j] not in _BARE_VALUE_END:
        j += 1
    raw = text[value_start:j].strip()
    if not raw or raw in JSON_LITERALS or _NUMBER_RE.fullmatch(raw):
        return None
    escaped = raw.replace("\\", "\\\\").replace('"', '\\"')
    return f' "{escaped}"', j


def rewrite_amount_fractions(text: str) -> str:
    """``"amount": 1/2`` -> ``"amount": 0.5`` (also mixed numbers like ``1 1/2``)."""
    return _rewrite_values(text, ("amount",), _fraction_to_decimal)


def quote_bare_scalar_values(text: str) -> str:
    """Quote unquoted tokens such as ``"unit": 适量``; bare ``null`` is kept as null."""
    return _rewrite_values(text, BARE_SCALAR_KEYS, _quote_bare_value)


def repair_literals(text: str) -> str:
    cleaned = strip_illegal_commas(text)
    cleaned = rewrite_amount_fractions(cleaned)
    return quote_bare_scalar_values(cleaned)
