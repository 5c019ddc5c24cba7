"""String-aware text passes: punctuation, raw newlines and quoting.

Every pass walks the text once, tracking whether the cursor is inside a
double-quoted literal. Characters inside literals are copied through untouched.
"""

from typing import List

from recipe_forge.app.services.llm_repair.scanner import (
    WHITESPACE,
    RepairState,
    find_string_end,
    last_significant,
    next_significant,
)

FULLWIDTH_PUNCTUATION = {
    "：": ":",
    "，": ",",
    # An equals sign only ever shows up where a key/value separator belongs
    "＝": ":",
    "｛": "{",
    "｝": "}",
    "［": "[",
    "］": "]",
}
CURLY_QUOTES = "“”"
CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


def normalize_fullwidth_punctuation(text: str) -> str:
    """Rewrite full-width structural punctuation outside string literals.

    Curly quotes outside a literal are treated as string delimiters and become
    ASCII quotes, escaping any plain quote they enclose.
    """
    state = RepairState()
    curly = False
    out: List[str] = []
    for ch in text:
        if state.in_string:
            if curly and not state.escaped:
                if ch in CURLY_QUOTES:
                    out.append('"')
                    state.in_string = False
                    curly = False
                    continue
                if ch == '"':
                    out.append('\\"')
                    continue
            out.append(ch)
            state.step_string(ch)
            continue
        if ch in CURLY_QUOTES:
            out.append('"')
            state.in_string = True
            curly = True
            continue
        out.append(FULLWIDTH_PUNCTUATION.get(ch, ch))
        state.step_string(ch)
    return "".join(out)


def escape_string_newlines(text: str) -> str:
    """Escape raw newlines, carriage returns and tabs found inside string literals."""
    state = RepairState()
    out: List[str] = []
    for ch in text:
        if state.in_string and ch in CONTROL_ESCAPES:
            if state.escaped:
                # backslash already emitted; finish the escape sequence
                out.append(CONTROL_ESCAPES[ch][1])
                state.escaped = False
            else:
                out.append(CONTROL_ESCAPES[ch])
            continue
        out.append(ch)
        state.step_string(ch)
    return "".join(out)


def _single_quote_end(text: str, open_index: int) -> int:
    escaped = False
    for i in range(open_index + 1, len(text)):
        ch = text[i]
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == "'":
            following = next_significant(text, i + 1)
            if following == -1 or text[following] in ",:}]":
                return i
    return -1


def _requote(content: str) -> str:
    res: List[str] = []
    escaped = False
    for ch in content:
        if escaped:
            if ch == "'":
                res[-1] = "'"
            else:
                res.append(ch)
            escaped = False
        elif ch == "\\":
            res.append(ch)
            escaped = True
        elif ch == '"':
            res.append('\\"')
        elif ch in CONTROL_ESCAPES:
            res.append(CONTROL_ESCAPES[ch])
        else:
            res.append(ch)
    return "".join(res)


def convert_single_quotes(text: str) -> str:
    """Turn 'single-quoted' literals in structural positions into double-quoted ones."""
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
        if ch == "'" and last_significant(out) in ("", "{", "[", ",", ":"):
            end = _single_quote_end(text, i)
            if end != -1:
                out.append('"' + _requote(text[i + 1 : end]) + '"')
                i = end + 1
                continue
        out.append(ch)
        i += 1
    return "".join(out)


def _is_key_start(ch: str) -> bool:
    return ch.isalpha() or ch in "_$"


def _is_key_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$-"


def quote_bare_keys(text: str) -> str:
    """Quote identifiers used as object keys, e.g. ``{steps: [...]}``."""
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
        if _is_key_start(ch) and last_significant(out) in ("{", "[", ","):
            j = i
            while j < n and _is_key_char(text[j]):
                j += 1
            following = next_significant(text, j)
            if following != -1 and text[following] == ":":
                out.append('"' + text[i:j] + '"')
            else:
                out.append(text[i:j])
            i = j
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def collapse_doubled_quotes(text: str) -> str:
    """Fix the ``"key": ""value""`` artifact."""
    out: List[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch != '"':
            out.append(ch)
            i += 1
            continue
        inner = i + 2
        if (
            text.startswith('""', i)
            and inner < n
            and text[inner] not in '",}]' + WHITESPACE
            and last_significant(out) == ":"
        ):
            close = find_string_end(text, i + 1)
            if close != -1 and close + 1 < n and text[close + 1] == '"':
                out.append('"' + text[inner:close] + '"')
                i = close + 2
                continue
        end = find_string_end(text, i)
        if end == -1:
            out.append(text[i:])
            break
        out.append(text[i : end + 1])
        i = end + 1
    return "".join(out)


def repair_quotes(text: str) -> str:
    return collapse_doubled_quotes(quote_bare_keys(convert_single_quotes(text)))
