"""Pre-parse cleanup: code fences, surrounding prose, comments, control characters."""

import re

_FENCE_OPEN_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```$")


def strip_invalid_control_chars(text: str) -> str:
    """Remove ASCII control chars that break json.loads (except \\n, \\r, \\t)."""
    return re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F]", "", text)


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    cleaned = _FENCE_OPEN_RE.sub("", cleaned, count=1)
    cleaned = _FENCE_CLOSE_RE.sub("", cleaned, count=1)
    return cleaned.strip()


def trim_to_object(text: str) -> str:
    """Keep only the span from the first '{' to the last '}' when both exist.

    A top-level array of candidates ('[' before the first '{', ']' after the
    last '}') keeps its brackets so the unwrapper can pick a candidate.
    """
    start = text.find("{")
    end = text.rfind("}")
    array_start = text.find("[")
    array_end = text.rfind("]")
    if -1 < array_start < start and array_end > end:
        return text[array_start : array_end + 1]
    if start != -1 and end != -1 and end > start:
        return text[start : end + 1]
    return text


def strip_json_comments(text: str) -> str:
    """Drop // line comments and /* */ block comments that sit outside string literals."""
    out = []
    quote = None
    escaped = False
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if quote:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
            i += 1
            continue
        if ch in "\"'":
            quote = ch
            out.append(ch)
            i += 1
            continue
        if ch == "/" and i + 1 < n and text[i + 1] == "/":
            newline = text.find("\n", i)
            if newline == -1:
                break
            i = newline
            continue
        if ch == "/" and i + 1 < n and text[i + 1] == "*":
            close = text.find("*/", i + 2)
            if close == -1:
                break
            i = close + 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def preprocess(text: str) -> str:
    cleaned = strip_invalid_control_chars(text)
    cleaned = strip_code_fences(cleaned)
    cleaned = trim_to_object(cleaned)
    return strip_json_comments(cleaned).strip()
