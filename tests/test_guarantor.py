import pytest

from recipe_forge.app.schemas.recipe import validate_recipe
from recipe_forge.app.services.llm_repair.guarantor import ensure_minimums
from recipe_forge.app.services.llm_repair.models import RepairWarnings


@pytest.mark.parametrize("partial", [None, {}, "炖菜", ["a", 1], 42, {"titleZh": "   "}])
def test_ensure_minimums_is_total(partial):
    record = ensure_minimums(partial, "兜底菜名")
    outcome = validate_recipe(record)
    assert outcome.success, outcome.issues
    assert record["titleZh"].strip()
    assert record["ingredients"][0]["items"]
    assert record["steps"][0]["heat"] == "medium"
    assert len(record["imageShots"]) == 3


def test_synthetic_record_uses_fallback_title():
    warnings = RepairWarnings()
    record = ensure_minimums(None, "番茄炒蛋", warnings)
    assert record["titleZh"] == "番茄炒蛋"
    assert "番茄炒蛋" in record["summary"]["oneLine"]
    assert "番茄炒蛋" in record["summary"]["healingTone"]
    assert record["summary"]["timeTotalMin"] == 30
    assert record["summary"]["timeActiveMin"] == 15
    assert record["summary"]["servings"] == 2
    assert record["summary"]["difficulty"] == "medium"
    assert record["ingredients"] == [{"section": "主料", "items": [{"name": "番茄炒蛋", "amount": 1, "unit": "份"}]}]
    assert record["steps"][0]["id"] == "step01"
    assert [shot["key"] for shot in record["imageShots"]] == ["cover_main", "cover_detail", "cover_inside"]
    assert all(shot["ratio"] == "16:9" and shot["imagePrompt"] == "" for shot in record["imageShots"])
    assert record["styleGuide"] == {}
    assert record["story"] == record["summary"]["oneLine"]
    assert len(warnings) > 0


def test_templates_follow_existing_title():
    record = ensure_minimums({"titleZh": "酸辣汤"}, "兜底")
    assert record["titleZh"] == "酸辣汤"
    assert "酸辣汤" in record["summary"]["oneLine"]
    assert record["ingredients"][0]["items"][0]["name"] == "酸辣汤"


def test_blank_fallback_title_still_yields_title():
    record = ensure_minimums({}, "  ")
    assert record["titleZh"] == "未命名菜谱"


def test_present_values_are_not_overwritten():
    partial = {
        "titleZh": "麻婆豆腐",
        "summary": {
            "oneLine": "麻辣鲜香",
            "healingTone": "热辣治愈",
            "difficulty": "hard",
            "timeTotalMin": 40,
            "timeActiveMin": 20,
            "servings": 3,
        },
        "ingredients": [{"section": "主料", "items": [{"name": "豆腐", "amount": 1, "unit": "块"}]}],
        "steps": [{"id": "a1", "title": "切", "action": "切块", "heat": "low"}],
        "styleGuide": {"theme": "家常"},
        "story": "一个故事",
        "imageShots": [
            {"key": "hero", "imagePrompt": "x", "ratio": "3:2"},
            {"key": "s1", "imagePrompt": "y", "ratio": "4:3"},
            {"key": "s2", "imagePrompt": "z", "ratio": "4:3"},
        ],
    }
    warnings = RepairWarnings()
    assert ensure_minimums(partial, "兜底", warnings) == partial
    assert len(warnings) == 0


def test_short_image_shot_list_is_padded():
    record = ensure_minimums({"imageShots": [{"key": "cover_main", "imagePrompt": "hero", "ratio": "4:3"}]}, "汤")
    assert [shot["key"] for shot in record["imageShots"]] == ["cover_main", "cover_detail", "cover_inside"]
    assert record["imageShots"][0]["imagePrompt"] == "hero"


def test_step_fields_revalidated():
    record = ensure_minimums({"steps": [{"action": "炒匀", "heat": "nuclear"}, {"id": "", "action": "出锅"}]}, "菜")
    assert [step["id"] for step in record["steps"]] == ["step01", "step02"]
    assert [step["title"] for step in record["steps"]] == ["炒匀", "出锅"]
    assert all(step["heat"] == "medium" for step in record["steps"])


def test_empty_sections_are_replaced():
    record = ensure_minimums({"ingredients": [{"section": "主料", "items": []}]}, "菜")
    assert record["ingredients"][0]["items"] == [{"name": "菜", "amount": 1, "unit": "份"}]


def test_story_block_without_title_gets_one():
    record = ensure_minimums({"titleZh": "粽子", "story": {"content": "端午节的传统食物"}}, "兜底")
    assert record["story"] == {"content": "端午节的传统食物", "title": "粽子"}
