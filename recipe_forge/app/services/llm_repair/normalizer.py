"""Map loosely-shaped model output onto the canonical recipe layout.

The model is asked for one exact schema but answers in many dialects:
alternate field names (``title``/``name``/``dishName``), flat ingredient lists,
section maps, bare-string steps, numbers written as text, ratios written as
``"1.78"`` or ``"16x9"``. ``normalize_recipe`` works on the untyped tree and
only rewrites what it recognizes; unknown keys pass through untouched. It never
raises and never mutates its input.
"""

import copy
import json
import logging
import math
import re
import sys
from typing import Any, Dict, Iterable, List, Optional, Tuple

from recipe_forge.app.core.config import get_settings
from recipe_forge.app.services.llm_repair.models import RepairWarnings
from recipe_forge.app.services.llm_repair.scanner import find_excess_nesting
from recipe_forge.app.services.llm_repair.vocabulary import (
    DEFAULT_HEAT,
    default_ratio_for_key,
    map_difficulty,
    map_heat,
    map_icon_key,
    parse_ratio,
)

logger = logging.getLogger(__name__)

DEFAULT_SECTION = "主料"
DEFAULT_UNIT = "份"
VAGUE_UNIT = "适量"
VAGUE_QUANTITIES = ("适量", "少许", "若干", "少量", "一些", "一点", "to taste", "a pinch", "pinch")
STEP_TITLE_MAX_CHARS = 10

TITLE_KEYS = ("titleZh", "title", "name", "recipeName", "dishName")
ONE_LINE_KEYS = ("oneLine", "description", "intro", "tagline", "subtitle")
HEALING_TONE_KEYS = ("healingTone", "tone", "mood", "healingCopy")
DIFFICULTY_KEYS = ("difficulty", "level", "difficultyLevel")
TOTAL_TIME_KEYS = ("timeTotalMin", "totalTimeMin", "totalTime", "timeBudget", "cookingTime", "time")
ACTIVE_TIME_KEYS = ("timeActiveMin", "activeTimeMin", "activeTime", "prepTime", "handsOnTime")
SERVINGS_KEYS = ("servings", "yield", "portions", "serves")
INGREDIENT_KEYS = ("ingredients", "ingredientList", "ingredientGroups", "materials")
STEP_KEYS = ("steps", "instructions", "directions", "method", "procedure")
IMAGE_SHOT_KEYS = ("imageShots", "images", "shots", "imagePlan")

ITEM_NAME_KEYS = ("name", "ingredient", "item", "title", "label")
ITEM_AMOUNT_KEYS = ("amount", "qty", "quantity", "count")
ITEM_UNIT_KEYS = ("unit", "uom", "units", "measure")
ITEM_NOTES_KEYS = ("notes", "note", "remark", "remarks", "comment")
ITEM_ICON_KEYS = ("iconKey", "icon", "category", "type")
SECTION_NAME_KEYS = ("section", "group", "name", "title", "category")
SECTION_ITEMS_KEYS = ("items", "ingredients", "list")

STEP_ACTION_KEYS = ("action", "content", "description", "text", "step", "instruction", "detail")
STEP_TITLE_KEYS = ("title", "name", "summary")
STEP_HEAT_KEYS = ("heat", "fire", "flame", "heatLevel", "火候")
STEP_TIMER_KEYS = ("timerSec", "timer", "timerSeconds", "durationSec", "seconds", "duration")
STEP_CUE_KEYS = ("visualCue", "cue", "doneness", "checkpoint")
STEP_FAILURE_KEYS = ("failurePoints", "pitfalls", "commonMistakes")

SHOT_KEY_KEYS = ("key", "id", "shot", "slot", "name")
SHOT_PROMPT_KEYS = ("imagePrompt", "prompt", "description", "desc")
SHOT_RATIO_KEYS = ("ratio", "aspectRatio", "aspect", "size")
SHOT_URL_KEYS = ("imageUrl", "url", "image")

TROUBLESHOOTING_ALIASES = {
    "problem": ("problem", "issue", "symptom", "question", "问题"),
    "cause": ("cause", "reason", "why", "原因"),
    "fix": ("fix", "solution", "remedy", "answer", "解决", "解决方法"),
}
FAQ_ALIASES = {
    "question": ("question", "q", "问题"),
    "answer": ("answer", "a", "回答", "答案"),
}
NUTRITION_NUMBER_KEYS = ("calories", "protein", "fat", "carbs", "fiber", "sodium")
STRING_LIST_FIELDS = ("aliases", "tips", "notes")

_NUMBER_IN_TEXT_RE = re.compile(r"-?\d+(?:\.\d+)?")
_FRACTION_TEXT_RE = re.compile(r"^\s*(?:(\d+)\s+)?(\d+(?:\.\d+)?)\s*/\s*(\d+(?:\.\d+)?)\s*$")
_AMOUNT_TEXT_RE = re.compile(r"^((?:\d+\s+)?\d+(?:\.\d+)?(?:\s*/\s*\d+(?:\.\d+)?)?)\s*(.*)$")
_ISO_DURATION_RE = re.compile(r"^P(?:T)?(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$", re.I)
_HOURS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:个小时|小时|hours?|hrs?|h\b)", re.I)
_MINUTES_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:分钟|分|minutes?|mins?\b)", re.I)
_SECONDS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:秒钟|秒|seconds?|secs?\b|s\b)", re.I)
_TRAILING_QTY_RE = re.compile(
    r"^(?P<name>.*?\S)\s*(?P<amount>\d+(?:\.\d+)?(?:\s*/\s*\d+)?)\s*(?P<unit>[^\d\s]{0,6})$"
)
_LEADING_QTY_RE = re.compile(
    r"^(?P<amount>\d+(?:\.\d+)?(?:\s*/\s*\d+)?)\s*(?P<unit>[A-Za-z]+\.?|[^\x00-\x7f\s\d]{1,2})?\s+(?P<name>\S.*)$"
)
_LIST_SPLIT_RE = re.compile(r"[,，、;；\n]+")
_LINE_SPLIT_RE = re.compile(r"[\n；;]+")
_STEP_PREFIX_RE = re.compile(
    r"^\s*(?:第\s*\d+\s*步[:：、.]?|步骤\s*\d+[:：、.]?|step\s*\d+[:：.)]?|\d+\s*[.、．:：)）])\s*",
    re.I,
)
_TITLE_BREAK_RE = re.compile(r"[，。,.;；！!？?：:]")


def _clean_text(value: str) -> str:
    return re.sub(r"\s+", " ", value or "").strip()


def _tidy(number: float):
    return int(number) if number.is_integer() else number


def _finite(number: float):
    return _tidy(number) if math.isfinite(number) else None


def coerce_number(value: Any, allow_embedded: bool = True):
    """Best-effort finite number from ints, floats, fractions or text like ``"350 kcal"``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if abs(value) <= sys.float_info.max else None
    if isinstance(value, float):
        return _finite(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    m = _FRACTION_TEXT_RE.match(text)
    if m:
        denominator = float(m.group(3))
        if denominator == 0:
            return None
        return _finite(float(m.group(1) or 0) + float(m.group(2)) / denominator)
    try:
        number = float(text)
    except ValueError:
        number = None
    if number is not None:
        return _finite(number)
    if allow_embedded:
        m = _NUMBER_IN_TEXT_RE.search(text)
        if m:
            return _finite(float(m.group()))
    return None


def coerce_minutes(value: Any):
    """Minutes from numbers, ISO-8601 durations, or text such as ``"1小时30分钟"``."""
    if isinstance(value, str):
        text = value.strip()
        iso = _ISO_DURATION_RE.match(text)
        if iso and any(iso.groups()):
            hours, minutes, seconds = (float(g or 0) for g in iso.groups())
            return _finite(hours * 60 + minutes + (1 if seconds >= 30 else 0))
        hours = _HOURS_RE.search(text)
        minutes = _MINUTES_RE.search(text)
        if hours or minutes:
            total = float(hours.group(1)) * 60 if hours else 0.0
            total += float(minutes.group(1)) if minutes else 0.0
            return _finite(total)
    return coerce_number(value)


def coerce_timer_seconds(value: Any):
    if isinstance(value, str):
        text = value.strip()
        hours = _HOURS_RE.search(text)
        minutes = _MINUTES_RE.search(text)
        seconds = _SECONDS_RE.search(text)
        if hours or minutes or seconds:
            total = float(hours.group(1)) * 3600 if hours else 0.0
            total += float(minutes.group(1)) * 60 if minutes else 0.0
            total += float(seconds.group(1)) if seconds else 0.0
            return _finite(total)
    return coerce_number(value)


def _split_free_text(text: str, pattern: re.Pattern = _LIST_SPLIT_RE) -> List[str]:
    return [part.strip() for part in pattern.split(text) if part.strip()]


def _reparse_json(text: str) -> Any:
    if find_excess_nesting(text, get_settings().repair_max_nesting_depth) != -1:
        return None
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return None


def coerce_array(value: Any, pattern: re.Pattern = _LIST_SPLIT_RE) -> Optional[List[Any]]:
    """Arrays pass through, JSON-looking strings are re-parsed, free text is split."""
    if value is None:
        return None
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        if text[0] in "[{":
            reparsed = _reparse_json(text)
            if isinstance(reparsed, list):
                return reparsed
            if isinstance(reparsed, dict):
                return [reparsed]
        return _split_free_text(text, pattern)
    return [value]


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(_tidy(value)) if math.isfinite(value) else None
    if isinstance(value, dict):
        for key in ("text", "content", "value", "name", "title"):
            text = _as_text(value.get(key))
            if text:
                return text
        return json.dumps(value, ensure_ascii=False)
    return None


def coerce_string_list(value: Any) -> Optional[List[str]]:
    items = coerce_array(value)
    if items is None:
        return None
    texts = (_as_text(item) for item in items)
    return [text for text in texts if text]


def _first(data: dict, keys: Iterable[str]) -> Tuple[Optional[str], Any]:
    """First (key, value) among ``keys`` holding something other than None or blank text."""
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return key, value
    return None, None


def _first_text(data: dict, keys: Iterable[str], strings_only: bool = False) -> Optional[str]:
    for key in keys:
        value = data.get(key)
        if isinstance(value, dict) or (strings_only and not isinstance(value, str)):
            continue
        text = _as_text(value)
        if text:
            return text
    return None


def _without(data: dict, keys: Iterable[str]) -> dict:
    dropped = set(keys)
    return {k: v for k, v in data.items() if k not in dropped}


def _take_top_level(data: dict, keys: Iterable[str], canonical: Optional[str] = None) -> Any:
    """First aliased value at the top level; the alias key is consumed unless it is ``canonical``."""
    key, value = _first(data, keys)
    if key is not None and key != canonical:
        data.pop(key, None)
    return value


# ---------------------------------------------------------------- summary


def _normalize_summary(data: dict, warnings: RepairWarnings) -> dict:
    raw = data.get("summary")
    if isinstance(raw, str):
        summary: Dict[str, Any] = {"oneLine": raw.strip()} if raw.strip() else {}
    elif isinstance(raw, dict):
        summary = dict(raw)
    else:
        summary = {}

    def pick(keys: Tuple[str, ...], canonical: str) -> Any:
        key, value = _first(summary, keys)
        if key is not None:
            if key != canonical:
                summary.pop(key, None)
            return value
        return _take_top_level(data, keys)

    for keys, canonical in ((ONE_LINE_KEYS, "oneLine"), (HEALING_TONE_KEYS, "healingTone")):
        text = _as_text(pick(keys, canonical))
        if text:
            summary[canonical] = text
        else:
            summary.pop(canonical, None)

    difficulty_raw = pick(DIFFICULTY_KEYS, "difficulty")
    difficulty = map_difficulty(difficulty_raw)
    if difficulty:
        summary["difficulty"] = difficulty
    else:
        summary.pop("difficulty", None)
        if difficulty_raw is not None:
            warnings.add("unrecognized difficulty %r left for defaults", difficulty_raw)

    for keys, canonical, coerce in (
        (TOTAL_TIME_KEYS, "timeTotalMin", coerce_minutes),
        (ACTIVE_TIME_KEYS, "timeActiveMin", coerce_minutes),
        (SERVINGS_KEYS, "servings", coerce_number),
    ):
        raw_value = pick(keys, canonical)
        number = coerce(raw_value) if raw_value is not None else None
        if number is not None:
            summary[canonical] = number
        else:
            summary.pop(canonical, None)
            if raw_value is not None:
                warnings.add("could not read %s from %r", canonical, raw_value)

    if "flavorTags" in summary:
        tags = coerce_string_list(summary["flavorTags"])
        if tags is None:
            summary.pop("flavorTags")
        else:
            summary["flavorTags"] = tags
    return summary


# ------------------------------------------------------------ ingredients


def parse_ingredient_line(line: str) -> Optional[Dict[str, Any]]:
    """Split ``"盐 5克"`` / ``"1 cup flour"`` / ``"葱 适量"`` into name, amount and unit."""
    text = _clean_text(line).lstrip("-*•· ")
    if not text:
        return None
    for vague in VAGUE_QUANTITIES:
        if text.endswith(vague) and len(text) > len(vague):
            name = text[: -len(vague)].strip(" :：-")
            if name:
                return {"name": name, "amount": 1, "unit": vague}
    m = _TRAILING_QTY_RE.match(text)
    if m:
        amount = coerce_number(m.group("amount").replace(" ", ""))
        name = m.group("name").strip(" :：-")
        if amount and amount > 0 and name:
            item: Dict[str, Any] = {"name": name, "amount": amount}
            if m.group("unit"):
                item["unit"] = m.group("unit")
            return item
    m = _LEADING_QTY_RE.match(text)
    if m:
        amount = coerce_number(m.group("amount").replace(" ", ""))
        if amount and amount > 0:
            item = {"name": m.group("name").strip(), "amount": amount}
            if m.group("unit"):
                item["unit"] = m.group("unit")
            return item
    return {"name": text, "amount": 1, "unit": VAGUE_UNIT}


def _coerce_amount(raw: Any, unit: Optional[str], name: str, warnings: RepairWarnings):
    if isinstance(raw, dict):
        unit = unit or _as_text(raw.get("unit"))
        raw = raw.get("value", raw.get("amount"))
    if raw is None:
        warnings.add("ingredient %r has no amount; using 1 %s", name, unit or VAGUE_UNIT)
        return 1, unit or VAGUE_UNIT
    if isinstance(raw, str):
        text = raw.strip()
        m = _AMOUNT_TEXT_RE.match(text)
        if m:
            number = coerce_number(m.group(1))
            rest = m.group(2).strip()
            if number is not None and number > 0:
                return number, unit or rest or None
            warnings.add("ingredient %r has unusable amount %r; using 1", name, raw)
            return 1, unit or rest or VAGUE_UNIT
        # non-numeric label such as 适量 becomes the unit
        return 1, unit or text or VAGUE_UNIT
    number = coerce_number(raw)
    if number is None or number <= 0:
        warnings.add("ingredient %r has unusable amount %r; using 1", name, raw)
        return 1, unit or VAGUE_UNIT
    return number, unit


def _normalize_item(raw: Any, warnings: RepairWarnings) -> Optional[Dict[str, Any]]:
    if isinstance(raw, str):
        raw = parse_ingredient_line(raw)
        if raw is None:
            return None
    if not isinstance(raw, dict):
        if raw is not None:
            warnings.add("dropped ingredient entry of type %s", type(raw).__name__)
        return None

    name = _first_text(raw, ITEM_NAME_KEYS)
    if not name:
        text = _first_text(raw, ("text",))
        parsed = parse_ingredient_line(text) if text else None
        if parsed is None:
            warnings.add("dropped ingredient without a name: %r", raw)
            return None
        raw = {**parsed, **_without(raw, ("text",))}
        name = parsed["name"]

    item = _without(raw, ITEM_NAME_KEYS + ITEM_AMOUNT_KEYS + ITEM_UNIT_KEYS + ITEM_NOTES_KEYS + ITEM_ICON_KEYS)
    item["name"] = name
    _, amount_raw = _first(raw, ITEM_AMOUNT_KEYS)
    unit = _first_text(raw, ITEM_UNIT_KEYS)
    amount, unit = _coerce_amount(amount_raw, unit, name, warnings)
    if not unit:
        warnings.add("ingredient %r has no unit; using %s", name, DEFAULT_UNIT)
        unit = DEFAULT_UNIT
    item["amount"] = amount
    item["unit"] = unit

    _, notes = _first(raw, ITEM_NOTES_KEYS)
    notes_text = _as_text(notes)
    if notes_text:
        item["notes"] = notes_text

    icon_field, icon_hint = _first(raw, ITEM_ICON_KEYS)
    if icon_field is not None:
        icon = map_icon_key(icon_hint)
        if icon is None:
            warnings.add("unrecognized iconKey %r for %r; using other", icon_hint, name)
            icon = "other"
        item["iconKey"] = icon
    return item


def _normalize_items(raw: Any, warnings: RepairWarnings) -> List[Dict[str, Any]]:
    if isinstance(raw, dict):
        # {"盐": "5克", "糖": 10}
        entries: List[Any] = []
        for name, amount in raw.items():
            if isinstance(amount, dict):
                entries.append({"name": name, **amount})
            else:
                entries.append({"name": name, "amount": amount})
    else:
        entries = coerce_array(raw) or []
    items = (_normalize_item(entry, warnings) for entry in entries)
    return [item for item in items if item]


def _normalize_ingredients(raw: Any, warnings: RepairWarnings) -> Optional[List[Dict[str, Any]]]:
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = coerce_array(raw)
    sections: List[Dict[str, Any]] = []
    loose: List[Any] = []

    def add_section(name: Any, items: Any, extra: Optional[dict] = None) -> None:
        normalized = _normalize_items(items, warnings)
        label = _as_text(name) or DEFAULT_SECTION
        if not normalized:
            warnings.add("dropped empty ingredient section %r", label)
            return
        section = dict(extra or {})
        section["section"] = label
        section["items"] = normalized
        sections.append(section)

    if isinstance(raw, dict):
        # a lone section or a lone item rather than a section map
        if _first(raw, SECTION_ITEMS_KEYS)[0] is not None or _first(raw, ITEM_AMOUNT_KEYS)[0] is not None:
            raw = [raw]
        else:
            for name, items in raw.items():
                add_section(name, items)
            return sections
    if not isinstance(raw, list):
        raw = [raw]
    for entry in raw:
        if isinstance(entry, dict):
            items_key, items = _first(entry, SECTION_ITEMS_KEYS)
            if items_key is not None and not isinstance(items, (bool, int, float)):
                _, name = _first(entry, SECTION_NAME_KEYS)
                add_section(name, items, _without(entry, SECTION_NAME_KEYS + SECTION_ITEMS_KEYS))
                continue
        loose.append(entry)
    if loose:
        add_section(DEFAULT_SECTION, loose)
    return sections


# ------------------------------------------------------------------ steps


def derive_step_title(action: str) -> str:
    head = _TITLE_BREAK_RE.split(action, 1)[0].strip() or action
    return head[:STEP_TITLE_MAX_CHARS]


def _step_id(raw_id: Any, index: int) -> str:
    if isinstance(raw_id, bool):
        raw_id = None
    if isinstance(raw_id, int) or (isinstance(raw_id, float) and math.isfinite(raw_id)):
        return f"step{int(raw_id):02d}"
    text = _as_text(raw_id) if isinstance(raw_id, str) else None
    return text or f"step{index:02d}"


def _normalize_step(raw: Any, index: int, warnings: RepairWarnings) -> Optional[Dict[str, Any]]:
    if isinstance(raw, str):
        raw = {"action": raw}
    if not isinstance(raw, dict):
        if raw is not None:
            warnings.add("dropped step entry of type %s", type(raw).__name__)
        return None
    action = _first_text(raw, STEP_ACTION_KEYS, strings_only=True)
    if action:
        action = _STEP_PREFIX_RE.sub("", action, count=1).strip() or action
    if not action:
        warnings.add("dropped step %d without an action", index)
        return None

    step = _without(
        raw,
        STEP_ACTION_KEYS + STEP_TITLE_KEYS + STEP_HEAT_KEYS + STEP_TIMER_KEYS + STEP_CUE_KEYS + STEP_FAILURE_KEYS,
    )
    step["id"] = _step_id(raw.get("id"), index)
    step["title"] = _first_text(raw, STEP_TITLE_KEYS, strings_only=True) or derive_step_title(action)
    step["action"] = action

    heat_key, heat_raw = _first(raw, STEP_HEAT_KEYS)
    heat = map_heat(heat_raw)
    if heat is None:
        if heat_key is not None:
            warnings.add("unrecognized heat %r in %s; using %s", heat_raw, step["id"], DEFAULT_HEAT)
        heat = DEFAULT_HEAT
    step["heat"] = heat

    timer_key, timer_raw = _first(raw, STEP_TIMER_KEYS)
    if timer_key is not None:
        seconds = coerce_timer_seconds(timer_raw)
        if seconds is not None and seconds >= 0:
            step["timerSec"] = seconds
        else:
            warnings.add("could not read timer %r in %s", timer_raw, step["id"])

    for field in ("timeMin", "timeMax"):
        if field in step:
            number = coerce_minutes(step[field])
            if number is None or number < 0:
                step.pop(field)
            else:
                step[field] = number

    cue = _first_text(raw, STEP_CUE_KEYS)
    if cue:
        step["visualCue"] = cue
    _, failures = _first(raw, STEP_FAILURE_KEYS)
    failure_points = coerce_string_list(failures)
    if failure_points:
        step["failurePoints"] = failure_points
    if "statusChecks" in step:
        step["statusChecks"] = coerce_string_list(step["statusChecks"]) or []
    for field in ("failPoint", "speechText", "photoBrief", "recovery", "imagePrompt", "negativePrompt"):
        if field in step and not isinstance(step[field], str):
            text = _as_text(step[field])
            if text:
                step[field] = text
            else:
                step.pop(field)
    return step


def _normalize_steps(raw: Any, warnings: RepairWarnings) -> Optional[List[Dict[str, Any]]]:
    if raw is None:
        return None
    if isinstance(raw, dict):
        raw = list(raw.values())
    entries = coerce_array(raw, _LINE_SPLIT_RE) or []
    steps: List[Dict[str, Any]] = []
    for entry in entries:
        step = _normalize_step(entry, len(steps) + 1, warnings)
        if step:
            steps.append(step)
    return steps


# ------------------------------------------------------------ image shots


def _normalize_image_shots(raw: Any, warnings: RepairWarnings) -> Optional[List[Dict[str, Any]]]:
    entries = coerce_array(raw, _LINE_SPLIT_RE)
    if entries is None:
        return None
    shots: List[Dict[str, Any]] = []
    for index, entry in enumerate(entries, start=1):
        if isinstance(entry, str):
            entry = {"imagePrompt": entry}
        if not isinstance(entry, dict):
            warnings.add("dropped image shot entry of type %s", type(entry).__name__)
            continue
        shot = _without(entry, SHOT_KEY_KEYS + SHOT_PROMPT_KEYS + SHOT_RATIO_KEYS + SHOT_URL_KEYS)
        key = _first_text(entry, SHOT_KEY_KEYS) or f"shot{index:02d}"
        shot["key"] = key
        shot["imagePrompt"] = _first_text(entry, SHOT_PROMPT_KEYS) or ""
        ratio_key, ratio_raw = _first(entry, SHOT_RATIO_KEYS)
        ratio = parse_ratio(ratio_raw)
        if ratio is None:
            ratio = default_ratio_for_key(key)
            if ratio_key is not None:
                warnings.add("unresolved ratio %r for shot %s; using %s", ratio_raw, key, ratio)
        shot["ratio"] = ratio
        url = _first_text(entry, SHOT_URL_KEYS)
        if url:
            shot["imageUrl"] = url
        if "negativePrompt" in shot and not isinstance(shot["negativePrompt"], str):
            shot["negativePrompt"] = ", ".join(coerce_string_list(shot["negativePrompt"]) or [])
        shots.append(shot)
    return shots


# ---------------------------------------------------------- other extras


def _remap_entries(
    raw: Any, aliases: Dict[str, Tuple[str, ...]], label: str, warnings: RepairWarnings
) -> Optional[List[Dict[str, Any]]]:
    entries = coerce_array(raw, _LINE_SPLIT_RE)
    if entries is None:
        return None
    used = tuple(alias for group in aliases.values() for alias in group)
    remapped: List[Dict[str, Any]] = []
    for entry in entries:
        if not isinstance(entry, dict):
            warnings.add("dropped %s entry that is not an object: %r", label, entry)
            continue
        fields = {canonical: _first_text(entry, names) for canonical, names in aliases.items()}
        missing = [name for name, value in fields.items() if not value]
        if missing:
            warnings.add("dropped %s entry missing %s: %r", label, ", ".join(missing), entry)
            continue
        remapped.append({**_without(entry, used), **fields})
    return remapped


def _normalize_equipment(raw: Any, warnings: RepairWarnings) -> Optional[List[Dict[str, Any]]]:
    entries = coerce_array(raw)
    if entries is None:
        return None
    equipment: List[Dict[str, Any]] = []
    for entry in entries:
        if isinstance(entry, dict):
            name = _first_text(entry, ("name", "item", "tool", "title"))
            if not name:
                warnings.add("dropped equipment entry without a name: %r", entry)
                continue
            item = _without(entry, ("name", "item", "tool", "title"))
            item["name"] = name
            if "required" in item and not isinstance(item["required"], bool):
                item.pop("required")
            equipment.append(item)
        else:
            name = _as_text(entry)
            if name:
                equipment.append({"name": name})
    return equipment


def _normalize_nutrition(raw: Any, warnings: RepairWarnings) -> Optional[dict]:
    if isinstance(raw, str):
        reparsed = _reparse_json(raw.strip()) if raw.strip().startswith("{") else None
        raw = reparsed
    if not isinstance(raw, dict):
        warnings.add("dropped nutrition block that is not an object")
        return None
    nutrition = dict(raw)

    def numbers(block: dict) -> dict:
        out = dict(block)
        for key in NUTRITION_NUMBER_KEYS:
            if key in out:
                number = coerce_number(out[key])
                if number is None or number < 0:
                    out.pop(key)
                else:
                    out[key] = number
        return out

    nutrition = numbers(nutrition)
    per_serving = nutrition.get("perServing")
    if isinstance(per_serving, dict):
        values = {key: coerce_number(value) for key, value in per_serving.items()}
        nutrition["perServing"] = {k: v for k, v in values.items() if v is not None and v >= 0}
    elif per_serving is not None:
        nutrition.pop("perServing")
    if "dietaryLabels" in nutrition:
        nutrition["dietaryLabels"] = coerce_string_list(nutrition["dietaryLabels"]) or []
    return nutrition


def _normalize_list_block(raw: Any, list_field: str) -> Optional[dict]:
    if raw is None:
        return None
    if isinstance(raw, dict):
        return {k: (coerce_string_list(v) or []) if isinstance(v, (list, str)) else v for k, v in raw.items()}
    items = coerce_string_list(raw)
    return {list_field: items} if items is not None else None


def _normalize_story(raw: Any) -> Any:
    if isinstance(raw, str):
        return raw.strip() or None
    if isinstance(raw, dict):
        story = dict(raw)
        content = _first_text(raw, ("content", "text", "story", "body"))
        if content:
            story = _without(story, ("text", "story", "body"))
            story["content"] = content
        title = _as_text(story.get("title"))
        if title:
            story["title"] = title
        if "tags" in story:
            story["tags"] = coerce_string_list(story["tags"]) or []
        return story
    return None


def _normalize_style_guide(raw: Any) -> Optional[dict]:
    if isinstance(raw, dict):
        guide = dict(raw)
        for key in ("palette", "materials", "props", "compositionRules"):
            if key in guide:
                guide[key] = coerce_string_list(guide[key]) or []
        return guide
    if isinstance(raw, str) and raw.strip():
        return {"theme": raw.strip()}
    if isinstance(raw, list):
        return {"compositionRules": coerce_string_list(raw) or []}
    return None


# ------------------------------------------------------------------ entry


def normalize_recipe(data: Any, warnings: Optional[RepairWarnings] = None) -> Dict[str, Any]:
    """Return a partial record in canonical shape; non-objects yield ``{}``."""
    warnings = warnings if warnings is not None else RepairWarnings(logger)
    if not isinstance(data, dict):
        if data is not None:
            warnings.add("expected a JSON object but got %s", type(data).__name__)
        return {}
    record: Dict[str, Any] = copy.deepcopy(data)

    title_key = next((key for key in TITLE_KEYS if _first_text(record, (key,), strings_only=True)), None)
    if title_key:
        record["titleZh"] = record.pop(title_key).strip()
    else:
        record.pop("titleZh", None)

    if "titleEn" in record and not isinstance(record["titleEn"], str):
        record["titleEn"] = _as_text(record["titleEn"])
    if "schemaVersion" in record and not isinstance(record["schemaVersion"], str):
        record["schemaVersion"] = _as_text(record["schemaVersion"])

    record["summary"] = _normalize_summary(record, warnings)

    ingredients = _normalize_ingredients(_take_top_level(record, INGREDIENT_KEYS, "ingredients"), warnings)
    if ingredients is not None:
        record["ingredients"] = ingredients
    else:
        record.pop("ingredients", None)

    steps = _normalize_steps(_take_top_level(record, STEP_KEYS, "steps"), warnings)
    if steps is not None:
        record["steps"] = steps
    else:
        record.pop("steps", None)

    shots = _normalize_image_shots(_take_top_level(record, IMAGE_SHOT_KEYS, "imageShots"), warnings)
    if shots is not None:
        record["imageShots"] = shots
    else:
        record.pop("imageShots", None)

    for field in STRING_LIST_FIELDS:
        if field in record:
            values = coerce_string_list(record[field])
            if values is None:
                record.pop(field)
            else:
                record[field] = values

    for field, normalize in (
        ("equipment", _normalize_equipment),
        ("nutrition", _normalize_nutrition),
    ):
        if record.get(field) is not None:
            value = normalize(record[field], warnings)
            if value is None:
                record.pop(field)
            else:
                record[field] = value
        else:
            record.pop(field, None)

    if record.get("faq") is not None:
        record["faq"] = _remap_entries(record["faq"], FAQ_ALIASES, "faq", warnings) or []
    else:
        record.pop("faq", None)
    if record.get("troubleshooting") is not None:
        record["troubleshooting"] = (
            _remap_entries(record["troubleshooting"], TROUBLESHOOTING_ALIASES, "troubleshooting", warnings) or []
        )
    else:
        record.pop("troubleshooting", None)

    for field, list_field in (("relatedRecipes", "similar"), ("pairing", "suggestions"), ("tags", "keywords")):
        value = _normalize_list_block(record.get(field), list_field)
        if value is None:
            record.pop(field, None)
        else:
            record[field] = value

    if isinstance(record.get("origin"), str):
        record["origin"] = {"region": record["origin"].strip()}
    elif "origin" in record and not isinstance(record["origin"], dict):
        record.pop("origin")

    story = _normalize_story(record.get("story"))
    if story is None:
        record.pop("story", None)
    else:
        record["story"] = story

    style_guide = _normalize_style_guide(record.get("styleGuide"))
    if style_guide is None:
        record.pop("styleGuide", None)
    else:
        record["styleGuide"] = style_guide
    return record
