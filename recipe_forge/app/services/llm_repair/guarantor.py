"""Fill structurally required fields that the model left out.

Placeholders are deliberately generic: they repeat the dish title and say
nothing about taste, technique or ingredients the model never mentioned.
Values already present are never overwritten.
"""

import copy
import logging
from typing import Any, Dict, Optional

from recipe_forge.app.services.llm_repair.models import RepairWarnings
from recipe_forge.app.services.llm_repair.normalizer import (
    DEFAULT_SECTION,
    DEFAULT_UNIT,
    coerce_number,
    derive_step_title,
)
from recipe_forge.app.services.llm_repair.vocabulary import DEFAULT_HEAT, DIFFICULTIES, HEATS, RATIOS

logger = logging.getLogger(__name__)

SUMMARY_DEFAULTS = {"timeTotalMin": 30, "timeActiveMin": 15, "servings": 2}
DEFAULT_DIFFICULTY = "medium"
PLACEHOLDER_SHOT_KEYS = ("cover_main", "cover_detail", "cover_inside")
MIN_IMAGE_SHOTS = len(PLACEHOLDER_SHOT_KEYS)
DEFAULT_TITLE = "未命名菜谱"
PLACEHOLDER_RATIO = "16:9"

ONE_LINE_TEMPLATE = "{title}，一道值得在家动手做的菜。"
HEALING_TONE_TEMPLATE = "慢慢准备，认真享受做{title}的过程。"
STORY_TEMPLATE = "关于{title}的故事，等你在厨房里写下。"
PLACEHOLDER_STEP_ACTION = "按照食材清单准备并处理好{title}所需的食材。"


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _placeholder_shot(key: str) -> Dict[str, Any]:
    return {"key": key, "imagePrompt": "", "ratio": PLACEHOLDER_RATIO, "imageUrl": ""}


def _ensure_summary(record: dict, title: str, warnings: RepairWarnings) -> None:
    summary = record.get("summary")
    if not isinstance(summary, dict):
        summary = {}
    record["summary"] = summary
    if not _text(summary.get("oneLine")):
        summary["oneLine"] = ONE_LINE_TEMPLATE.format(title=title)
        warnings.add("summary.oneLine missing; using templated text")
    if not _text(summary.get("healingTone")):
        summary["healingTone"] = HEALING_TONE_TEMPLATE.format(title=title)
        warnings.add("summary.healingTone missing; using templated text")
    if summary.get("difficulty") not in DIFFICULTIES:
        summary["difficulty"] = DEFAULT_DIFFICULTY
        warnings.add("summary.difficulty missing; using %s", DEFAULT_DIFFICULTY)
    for field, default in SUMMARY_DEFAULTS.items():
        number = coerce_number(summary.get(field), allow_embedded=False)
        if number is None or number <= 0:
            summary[field] = default
            warnings.add("summary.%s missing; using %s", field, default)
        else:
            summary[field] = number


def _ensure_ingredients(record: dict, title: str, warnings: RepairWarnings) -> None:
    sections = record.get("ingredients")
    if isinstance(sections, list):
        sections = [
            section
            for section in sections
            if isinstance(section, dict) and isinstance(section.get("items"), list) and section["items"]
        ]
    if not sections:
        warnings.add("no ingredients recovered; using a placeholder section")
        sections = [{"section": DEFAULT_SECTION, "items": [{"name": title, "amount": 1, "unit": DEFAULT_UNIT}]}]
    for section in sections:
        if not _text(section.get("section")):
            section["section"] = DEFAULT_SECTION
    record["ingredients"] = sections


def _ensure_steps(record: dict, title: str, warnings: RepairWarnings) -> None:
    steps = record.get("steps")
    if isinstance(steps, list):
        steps = [step for step in steps if isinstance(step, dict) and _text(step.get("action"))]
    if not steps:
        warnings.add("no steps recovered; using a generic preparation step")
        action = PLACEHOLDER_STEP_ACTION.format(title=title)
        steps = [{"id": "step01", "title": "准备食材", "action": action, "heat": DEFAULT_HEAT}]
    for index, step in enumerate(steps, start=1):
        if not _text(step.get("id")):
            step["id"] = f"step{index:02d}"
        if not _text(step.get("title")):
            step["title"] = derive_step_title(step["action"])
        if step.get("heat") not in HEATS:
            step["heat"] = DEFAULT_HEAT
    record["steps"] = steps


def _ensure_image_shots(record: dict, warnings: RepairWarnings) -> None:
    shots = record.get("imageShots")
    if not isinstance(shots, list):
        warnings.add("imageShots missing; reserving %d placeholder slots", MIN_IMAGE_SHOTS)
        record["imageShots"] = [_placeholder_shot(key) for key in PLACEHOLDER_SHOT_KEYS]
        return
    shots = [shot for shot in shots if isinstance(shot, dict) and _text(shot.get("key"))]
    for shot in shots:
        if shot.get("ratio") not in RATIOS:
            shot["ratio"] = PLACEHOLDER_RATIO
        if not isinstance(shot.get("imagePrompt"), str):
            shot["imagePrompt"] = ""
    taken = {shot["key"] for shot in shots}
    spare = (key for key in PLACEHOLDER_SHOT_KEYS if key not in taken)
    while len(shots) < MIN_IMAGE_SHOTS:
        key = next(spare, None) or f"shot{len(shots) + 1:02d}"
        shots.append(_placeholder_shot(key))
        warnings.add("padded imageShots with placeholder slot %s", key)
    record["imageShots"] = shots


def ensure_minimums(
    partial: Any,
    fallback_title: str,
    warnings: Optional[RepairWarnings] = None,
) -> Dict[str, Any]:
    """Return a record satisfying every structural invariant of the canonical layout."""
    fallback_title = (fallback_title or "").strip() or DEFAULT_TITLE
    warnings = warnings if warnings is not None else RepairWarnings(logger)
    if isinstance(partial, dict):
        record = copy.deepcopy(partial)
    else:
        warnings.add("no usable object recovered; building a placeholder record")
        record = {}

    title = _text(record.get("titleZh"))
    if title is None:
        title = fallback_title
        record["titleZh"] = fallback_title
        warnings.add("titleZh missing; using fallback title %r", fallback_title)
    title = title.strip()

    _ensure_summary(record, title, warnings)
    _ensure_ingredients(record, title, warnings)
    _ensure_steps(record, title, warnings)
    _ensure_image_shots(record, warnings)

    if not isinstance(record.get("styleGuide"), dict):
        record["styleGuide"] = {}
    story = record.get("story")
    if isinstance(story, dict) and _text(story.get("content")):
        if not _text(story.get("title")):
            story["title"] = title
    elif not _text(story):
        record["story"] = record["summary"]["oneLine"] or STORY_TEMPLATE.format(title=title)
    return record
