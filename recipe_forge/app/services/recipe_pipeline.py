import json
import logging
from typing import Any, Optional, Tuple

from recipe_forge.app.core.config import get_settings
from recipe_forge.app.schemas.recipe import validate_recipe
from recipe_forge.app.services.llm_repair.extraction import extract_balanced_object, unwrap_payload
from recipe_forge.app.services.llm_repair.guarantor import ensure_minimums
from recipe_forge.app.services.llm_repair.literals import repair_literals
from recipe_forge.app.services.llm_repair.models import (
    ParseErrorPosition,
    RecipeParseResult,
    RepairFailure,
    RepairWarnings,
)
from recipe_forge.app.services.llm_repair.normalizer import normalize_recipe
from recipe_forge.app.services.llm_repair.preprocess import preprocess
from recipe_forge.app.services.llm_repair.scanner import find_excess_nesting
from recipe_forge.app.services.llm_repair.string_passes import (
    escape_string_newlines,
    normalize_fullwidth_punctuation,
    repair_quotes,
)
from recipe_forge.app.services.llm_repair.structural import insert_missing_commas

logger = logging.getLogger(__name__)

TEXT_PASSES = (
    normalize_fullwidth_punctuation,
    escape_string_newlines,
    repair_quotes,
)


def repair_text(raw: str, extra_terminals: str = "", warnings: Optional[RepairWarnings] = None) -> str:
    """Run every text-level repair pass in order; the result is what gets handed to json.loads."""
    cleaned = preprocess(raw)
    for repair_pass in TEXT_PASSES:
        cleaned = repair_pass(cleaned)
    cleaned = insert_missing_commas(cleaned, extra_terminals=extra_terminals, warnings=warnings)
    return repair_literals(cleaned)


def format_error_context(text: str, pos: int, width: int) -> str:
    """Line-numbered excerpt of ``text`` around ``pos`` with the offending line marked."""
    start = max(0, pos - width)
    end = min(len(text), pos + width)
    first_line = text.count("\n", 0, start) + 1
    error_line = text.count("\n", 0, pos) + 1
    line_start = text.rfind("\n", 0, start) + 1
    line_end = text.find("\n", end)
    excerpt = text[line_start:] if line_end == -1 else text[line_start:line_end]
    rendered = []
    for offset, line in enumerate(excerpt.split("\n")):
        lineno = first_line + offset
        marker = ">>" if lineno == error_line else "  "
        if len(line) > width * 2:
            column = pos - line_start if lineno == error_line else 0
            lo = max(0, column - width)
            line = line[lo : lo + width * 2]
        rendered.append(f"{marker} {lineno:4d} | {line}")
    return "\n".join(rendered)


def _loads(text: str, max_depth: int) -> Any:
    too_deep = find_excess_nesting(text, max_depth)
    if too_deep != -1:
        raise json.JSONDecodeError("nesting deeper than %d levels" % max_depth, text, too_deep)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        raise
    except (ValueError, RecursionError) as exc:
        # e.g. integer literals past the interpreter's digit limit
        raise json.JSONDecodeError(str(exc), text, 0) from exc


def _parse_with_fallback(cleaned: str, warnings: RepairWarnings, max_depth: int) -> Tuple[Any, bool]:
    try:
        return _loads(cleaned, max_depth), False
    except json.JSONDecodeError as exc:
        candidate = extract_balanced_object(cleaned)
        if candidate is None or candidate == cleaned:
            raise
        logger.info("Direct parse failed at pos %d (%s); retrying on balanced object", exc.pos, exc.msg)
        parsed = _loads(candidate, max_depth)
        warnings.add("parsed the first balanced object after a direct parse failure")
        return parsed, True


def _model_error(parsed: Any) -> Optional[str]:
    if not isinstance(parsed, dict):
        return None
    error = parsed.get("error")
    if isinstance(error, str) and error.strip() and error.strip() != "{":
        return error.strip()
    if isinstance(error, dict) and (error.get("message") or error.get("code")):
        return str(error.get("message") or error.get("code"))
    return None


def parse_recipe_output(raw_text: Any, fallback_title: Optional[str] = None) -> RecipeParseResult:
    """Turn one raw model response into a validated recipe or a structured failure.

    Never raises: syntax errors and validator rejections both come back as
    ``RecipeParseResult(success=False, failure=...)``.
    """
    settings = get_settings()
    text = "" if raw_text is None else raw_text if isinstance(raw_text, str) else str(raw_text)
    title = (fallback_title or "").strip() or settings.recipe_fallback_title
    warnings = RepairWarnings(logger)
    preview = text[: settings.raw_text_preview_chars]

    cleaned = repair_text(text, extra_terminals=settings.repair_extra_value_terminals, warnings=warnings)
    try:
        parsed, used_fallback = _parse_with_fallback(cleaned, warnings, settings.repair_max_nesting_depth)
    except json.JSONDecodeError as exc:
        logger.error("Recipe output could not be parsed: %s (raw preview: %s)", exc, preview[:200])
        failure = RepairFailure(
            kind="syntax",
            message=str(exc),
            raw_text_truncated=preview,
            cleaned_text=cleaned,
            position=ParseErrorPosition(pos=exc.pos, lineno=exc.lineno, colno=exc.colno),
            context=format_error_context(exc.doc, exc.pos, settings.error_context_chars),
        )
        return RecipeParseResult(success=False, failure=failure, warnings=warnings.messages)

    model_error = _model_error(parsed)
    if model_error:
        warnings.add("model returned error: %s", model_error[:200])

    payload = unwrap_payload(parsed, warnings)
    candidate = ensure_minimums(normalize_recipe(payload, warnings), title, warnings)
    outcome = validate_recipe(candidate)
    if not outcome.success:
        logger.error("Recipe candidate failed validation: %s", "; ".join(outcome.issues[:5]))
        failure = RepairFailure(
            kind="schema",
            message="Recipe failed schema validation",
            raw_text_truncated=preview,
            cleaned_text=cleaned,
            best_effort_candidate=candidate,
            validator_issues=outcome.issues,
        )
        return RecipeParseResult(
            success=False,
            failure=failure,
            used_fallback_extraction=used_fallback,
            warnings=warnings.messages,
        )

    logger.info(
        "Recipe parsed: %s (%d sections, %d steps, %d warnings)",
        outcome.data.get("titleZh"),
        len(outcome.data.get("ingredients", [])),
        len(outcome.data.get("steps", [])),
        len(warnings),
    )
    return RecipeParseResult(
        success=True,
        recipe=outcome.data,
        used_fallback_extraction=used_fallback,
        warnings=warnings.messages,
    )
