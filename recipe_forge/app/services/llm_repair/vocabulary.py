"""Controlled vocabularies: difficulty, heat, ingredient icons and image ratios."""

import difflib
import math
import re
from typing import Any, Optional

DIFFICULTIES = ("easy", "medium", "hard")
HEATS = ("low", "medium-low", "medium", "medium-high", "high")
ICON_KEYS = (
    "meat",
    "veg",
    "fruit",
    "seafood",
    "grain",
    "bean",
    "dairy",
    "egg",
    "spice",
    "sauce",
    "oil",
    "tool",
    "other",
)
RATIOS = {"16:9": 16 / 9, "4:3": 4 / 3, "3:2": 3 / 2}
RATIO_TOLERANCE = 0.15
DEFAULT_HEAT = "medium"

DIFFICULTY_TERMS = {
    "easy": "easy",
    "simple": "easy",
    "beginner": "easy",
    "basic": "easy",
    "quick": "easy",
    "low": "easy",
    "简单": "easy",
    "容易": "easy",
    "初级": "easy",
    "入门": "easy",
    "新手": "easy",
    "不难": "easy",
    "易": "easy",
    "medium": "medium",
    "moderate": "medium",
    "intermediate": "medium",
    "normal": "medium",
    "average": "medium",
    "中等": "medium",
    "适中": "medium",
    "一般": "medium",
    "中级": "medium",
    "普通": "medium",
    "中": "medium",
    "hard": "hard",
    "difficult": "hard",
    "advanced": "hard",
    "challenging": "hard",
    "expert": "hard",
    "high": "hard",
    "困难": "hard",
    "较难": "hard",
    "复杂": "hard",
    "高级": "hard",
    "高难": "hard",
    "难": "hard",
}

HEAT_TERMS = {
    "medium-low": "medium-low",
    "medium low": "medium-low",
    "low-medium": "medium-low",
    "中小火": "medium-low",
    "小中火": "medium-low",
    "中低火": "medium-low",
    "中偏小火": "medium-low",
    "medium-high": "medium-high",
    "medium high": "medium-high",
    "high-medium": "medium-high",
    "中大火": "medium-high",
    "大中火": "medium-high",
    "中高火": "medium-high",
    "中偏大火": "medium-high",
    "low": "low",
    "gentle": "low",
    "simmer": "low",
    "off": "low",
    "none": "low",
    "no heat": "low",
    "小火": "low",
    "微火": "low",
    "文火": "low",
    "慢火": "low",
    "低温": "low",
    "关火": "low",
    "离火": "low",
    "无需加热": "low",
    "不开火": "low",
    "medium": "medium",
    "moderate": "medium",
    "中火": "medium",
    "中温": "medium",
    "中": "medium",
    "high": "high",
    "strong": "high",
    "intense": "high",
    "sear": "high",
    "大火": "high",
    "猛火": "high",
    "旺火": "high",
    "武火": "high",
    "急火": "high",
    "高温": "high",
    "爆炒": "high",
}

ICON_SYNONYMS = {
    "vegetable": "veg",
    "vegetables": "veg",
    "veggie": "veg",
    "greens": "veg",
    "蔬菜": "veg",
    "菜": "veg",
    "meats": "meat",
    "pork": "meat",
    "beef": "meat",
    "chicken": "meat",
    "poultry": "meat",
    "肉": "meat",
    "肉类": "meat",
    "fish": "seafood",
    "shrimp": "seafood",
    "shellfish": "seafood",
    "海鲜": "seafood",
    "水产": "seafood",
    "fruits": "fruit",
    "水果": "fruit",
    "rice": "grain",
    "noodle": "grain",
    "noodles": "grain",
    "flour": "grain",
    "grains": "grain",
    "staple": "grain",
    "谷物": "grain",
    "主食": "grain",
    "米面": "grain",
    "beans": "bean",
    "tofu": "bean",
    "legume": "bean",
    "豆": "bean",
    "豆制品": "bean",
    "milk": "dairy",
    "cheese": "dairy",
    "奶": "dairy",
    "乳制品": "dairy",
    "eggs": "egg",
    "蛋": "egg",
    "蛋类": "egg",
    "spices": "spice",
    "seasoning": "spice",
    "herb": "spice",
    "herbs": "spice",
    "调料": "spice",
    "香料": "spice",
    "调味料": "spice",
    "sauces": "sauce",
    "condiment": "sauce",
    "酱": "sauce",
    "酱料": "sauce",
    "oils": "oil",
    "fat": "oil",
    "油": "oil",
    "油脂": "oil",
    "tools": "tool",
    "utensil": "tool",
    "工具": "tool",
    "其他": "other",
}

NAMED_RATIOS = {
    "wide": "16:9",
    "widescreen": "16:9",
    "cinematic": "16:9",
    "landscape": "16:9",
    "hd": "16:9",
    "宽屏": "16:9",
    "横屏": "16:9",
    "standard": "4:3",
    "classic": "4:3",
    "fullscreen": "4:3",
    "标准": "4:3",
    "photo": "3:2",
    "dslr": "3:2",
    "35mm": "3:2",
    "相机": "3:2",
}

_RATIO_PAIR_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*(?::|：|x|×|/|-|比)\s*(\d+(?:\.\d+)?)$")
_DECIMAL_RE = re.compile(r"^\d+(?:\.\d+)?$")


def _clean_term(value: Any) -> str:
    return str(value).strip().lower().replace("_", "-")


def _match_terms(term: str, table: dict) -> Optional[str]:
    if term in table:
        return table[term]
    # Longest terms first so 中小火 wins over 小火
    for key in sorted(table, key=len, reverse=True):
        if key in term:
            return table[key]
    return None


def map_difficulty(value: Any) -> Optional[str]:
    """Map free-text (Chinese or English) difficulty onto easy/medium/hard."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if (isinstance(value, float) and not math.isfinite(value)) or value <= 0:
            return None
        if value <= 1:
            return "easy"
        return "medium" if value <= 2 else "hard"
    term = _clean_term(value)
    if not term:
        return None
    if term.isdecimal():
        return map_difficulty(float(term))
    if set(term) <= set("★☆*"):
        return map_difficulty(term.count("★") + term.count("*"))
    return _match_terms(term, DIFFICULTY_TERMS)


def map_heat(value: Any) -> Optional[str]:
    """Map a heat descriptor onto the five-step heat scale, or None when unrecognized."""
    if value is None or isinstance(value, (bool, int, float)):
        return None
    term = _clean_term(value)
    if not term:
        return None
    if term in HEATS:
        return term
    return _match_terms(term, HEAT_TERMS)


def map_icon_key(value: Any) -> Optional[str]:
    """Map an icon hint onto the icon enum with light fuzzy correction."""
    if value is None or not isinstance(value, str):
        return None
    term = value.strip().lower()
    if not term:
        return None
    if term in ICON_KEYS:
        return term
    if term in ICON_SYNONYMS:
        return ICON_SYNONYMS[term]
    close = difflib.get_close_matches(term, ICON_KEYS + tuple(ICON_SYNONYMS), n=1, cutoff=0.75)
    if close:
        match = close[0]
        return ICON_SYNONYMS.get(match, match)
    return None


def bucket_ratio(decimal: float) -> Optional[str]:
    if not math.isfinite(decimal) or decimal <= 0:
        return None
    label, target = min(RATIOS.items(), key=lambda item: abs(item[1] - decimal))
    if abs(target - decimal) <= RATIO_TOLERANCE:
        return label
    return None


def parse_ratio(value: Any) -> Optional[str]:
    """Resolve colon/x/slash/dash ratios, named ratios or bare decimals to 16:9, 4:3 or 3:2."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return bucket_ratio(float(value))
        except OverflowError:
            return None
    term = str(value).strip().lower()
    if not term:
        return None
    if term in RATIOS:
        return term
    if term in NAMED_RATIOS:
        return NAMED_RATIOS[term]
    m = _RATIO_PAIR_RE.match(term)
    if m:
        width, height = float(m.group(1)), float(m.group(2))
        if height == 0:
            return None
        return bucket_ratio(width / height)
    if _DECIMAL_RE.match(term):
        return bucket_ratio(float(term))
    return None


def default_ratio_for_key(key: Any) -> str:
    name = str(key or "").strip().lower()
    if name.startswith("step"):
        return "4:3"
    if name.startswith(("ingredient", "flat")):
        return "3:2"
    return "16:9"
