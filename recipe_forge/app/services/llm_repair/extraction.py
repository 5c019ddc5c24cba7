"""Fallback object extraction and wrapper removal."""

import logging
from typing import Any, List, Optional

from recipe_forge.app.services.llm_repair.models import RepairWarnings

logger = logging.getLogger(__name__)

WRAPPER_KEYS = ("recipe", "data", "result", "output", "payload")
# Keys that mark an object as the recipe itself rather than a wrapper around it
RECIPE_MARKER_KEYS = ("titleZh", "title", "name", "ingredients", "steps", "summary")


def extract_balanced_object(text: str, start: Optional[int] = None) -> Optional[str]:
    """Return the first brace-balanced ``{...}`` span, ignoring braces inside strings."""
    if start is None:
        start = text.find("{")
    if start < 0 or start >= len(text) or text[start] != "{":
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def _first_candidate(items: List[Any]) -> Any:
    for item in items:
        if isinstance(item, dict):
            return item
    return items[0] if items else None


def _looks_like_recipe(value: dict) -> bool:
    return any(key in value for key in RECIPE_MARKER_KEYS)


def unwrap_payload(value: Any, warnings: Optional[RepairWarnings] = None) -> Any:
    """Strip ``{"recipe": {...}}``-style wrappers and array-of-candidates framing."""
    if isinstance(value, list):
        if len(value) > 1 and warnings is not None:
            warnings.add("model returned %d candidates; using the first object", len(value))
        return _first_candidate(value)
    if not isinstance(value, dict) or _looks_like_recipe(value):
        return value
    for key in WRAPPER_KEYS:
        inner = value.get(key)
        if isinstance(inner, list):
            candidate = _first_candidate(inner)
            if not isinstance(candidate, dict):
                continue
            inner = candidate
        if not isinstance(inner, dict):
            continue
        if warnings is not None:
            warnings.add("unwrapped payload from wrapper key %r", key)
        nested = inner.get("recipe")
        if isinstance(nested, list):
            nested = _first_candidate(nested)
        if isinstance(nested, dict) and not _looks_like_recipe(inner):
            return nested
        return inner
    logger.debug("No wrapper key found among %s", list(value)[:10])
    return value
