"""Missing-comma repair driven by a bracket stack.

The dominant defect in model output is two members written back to back with
no separator::

    {"titleZh": "麻婆豆腐" "summary": {...}}

While scanning, an opening quote inside an object frame is checked on both
sides: behind it, the last emitted non-whitespace character must end a value;
ahead of it, the string must be followed by ``:`` (so it is a key). When both
hold and no separator is present, a comma is injected. Array frames get the
same treatment for adjacent elements. String contents are copied verbatim.
"""

from typing import List, Optional

from recipe_forge.app.services.llm_repair.models import RepairWarnings
from recipe_forge.app.services.llm_repair.scanner import (
    WHITESPACE,
    FrameKind,
    RepairState,
    find_string_end,
    last_significant,
    next_significant,
)

VALUE_TERMINALS = frozenset('"}]0123456789')
LITERAL_TAILS = ("true", "false", "null")


def _significant_tail(out: List[str], size: int) -> str:
    """Return up to ``size`` trailing characters of ``out``, skipping trailing whitespace."""
    tail = ""
    for chunk in reversed(out):
        tail = chunk + tail
        stripped = tail.rstrip(WHITESPACE)
        if len(stripped) >= size:
            return stripped[-size:]
    return tail.rstrip(WHITESPACE)


def _ends_value(out: List[str], prev: str, terminals: frozenset) -> bool:
    if prev in terminals:
        return True
    if prev in "el":
        return _significant_tail(out, 5).endswith(LITERAL_TAILS)
    return False


def _is_ambiguous(prev: str) -> bool:
    return prev not in '"}]'


def insert_missing_commas(
    text: str,
    extra_terminals: str = "",
    warnings: Optional[RepairWarnings] = None,
) -> str:
    terminals = VALUE_TERMINALS | frozenset(extra_terminals)
    state = RepairState()
    out: List[str] = []
    i = 0
    n = len(text)

    def inject(prev: str, what: str) -> None:
        out.append(",")
        if warnings is not None and _is_ambiguous(prev):
            warnings.add("inserted comma after %r before %s at offset %d", prev, what, i)

    while i < n:
        ch = text[i]
        top = state.top
        if ch == '"':
            close = find_string_end(text, i)
            if top is not None and close != -1:
                prev = last_significant(out)
                if prev not in ("", ",", "{", "[", ":") and _ends_value(out, prev, terminals):
                    following = next_significant(text, close + 1)
                    is_key = following != -1 and text[following] == ":"
                    if top.kind is FrameKind.OBJECT and is_key:
                        inject(prev, "key")
                        top.expecting_key = True
                    elif top.kind is FrameKind.ARRAY and not is_key:
                        inject(prev, "array element")
            if close == -1:
                out.append(text[i:])
                break
            out.append(text[i : close + 1])
            i = close + 1
            continue
        if ch in "{[":
            if top is not None and top.kind is FrameKind.ARRAY:
                prev = last_significant(out)
                if prev not in ("", ",", "[") and _ends_value(out, prev, terminals):
                    inject(prev, "array element")
            state.push(FrameKind.OBJECT if ch == "{" else FrameKind.ARRAY)
        elif ch in "}]":
            state.pop()
        elif ch == ":" and top is not None and top.kind is FrameKind.OBJECT:
            top.expecting_key = False
        elif ch == "," and top is not None and top.kind is FrameKind.OBJECT:
            top.expecting_key = True
        out.append(ch)
        i += 1
    return "".join(out)
