import json
import sys

import pytest

from recipe_forge.app.core.config import get_settings
from recipe_forge.app.schemas.recipe import validate_recipe
from recipe_forge.app.services.recipe_pipeline import format_error_context, parse_recipe_output, repair_text


def test_fenced_output_with_missing_comma():
    raw = '```json\n{"titleZh": "麻婆豆腐" "summary": {"servings": 2}}\n```'
    result = parse_recipe_output(raw)
    assert result.success is True
    recipe = result.recipe
    assert recipe["titleZh"] == "麻婆豆腐"
    assert recipe["summary"]["servings"] == 2
    assert recipe["summary"]["timeTotalMin"] == 30
    assert len(recipe["ingredients"]) == 1
    assert recipe["ingredients"][0]["section"] == "主料"
    assert len(recipe["imageShots"]) == 3


def test_single_quotes_and_bare_keys():
    result = parse_recipe_output("{'name': '宫保鸡丁', steps: ['焯水', '爆炒']}")
    assert result.success is True
    recipe = result.recipe
    assert recipe["titleZh"] == "宫保鸡丁"
    assert [step["id"] for step in recipe["steps"]] == ["step01", "step02"]
    assert [step["action"] for step in recipe["steps"]] == ["焯水", "爆炒"]
    assert all(step["heat"] == "medium" for step in recipe["steps"])


def test_fractional_amount_is_rewritten():
    raw = '{"titleZh": "糖水", "ingredients": [{"section": "主料", "items": [{"name": "冰糖", "amount": 1/2, "unit": "勺"}]}]}'
    assert '"amount": 0.5' in repair_text(raw)
    result = parse_recipe_output(raw)
    assert result.success is True
    assert result.recipe["ingredients"][0]["items"][0]["amount"] == 0.5


def test_trailing_comma_is_dropped():
    assert json.loads(repair_text('{"a":1,"b":2,}')) == {"a": 1, "b": 2}


def test_wrapper_key_is_unwrapped():
    raw = json.dumps({"recipe": {"titleZh": "酸菜鱼", "steps": ["片鱼"]}}, ensure_ascii=False)
    result = parse_recipe_output(raw)
    assert result.success is True
    assert result.recipe["titleZh"] == "酸菜鱼"
    assert "recipe" not in result.recipe
    assert any("wrapper" in message for message in result.warnings)


def test_truncated_output_is_a_syntax_failure():
    raw = '{"titleZh": "红烧肉", "summary": {"oneLine": "肥而不腻", "servings": 2'
    result = parse_recipe_output(raw)
    assert result.success is False
    failure = result.failure
    assert failure.kind == "syntax"
    assert failure.raw_text_truncated == raw
    assert failure.cleaned_text
    assert failure.position is not None
    assert failure.position.lineno == 1
    assert failure.context and ">>" in failure.context


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "   ",
        "抱歉，我无法回答",
        None,
        12345,
        "[1, 2",
        '{"titleZh": "汤", "servings": ' + "1" * 5000 + "}",
        '{"titleZh": "汤", "summary": {"servings": 1' + "0" * 400 + "}}",
        '{"titleZh": "汤", "imageShots": [{"key": "cover", "ratio": 1' + "0" * 400 + "}]}",
        '{"titleZh": "汤", "tags": "' + "[" * 900 + "]" * 900 + '"}',
    ],
)
def test_garbage_never_raises(raw):
    result = parse_recipe_output(raw)
    assert result.success is False or result.recipe is not None


def test_round_trip_of_canonical_record(canonical_recipe, canonical_text):
    result = parse_recipe_output(canonical_text)
    assert result.success is True
    assert result.warnings == []
    assert result.recipe == canonical_recipe
    reparsed = parse_recipe_output(json.dumps(result.recipe, ensure_ascii=False))
    assert reparsed.recipe == result.recipe


def test_repair_text_is_noop_for_valid_json(canonical_text):
    assert json.loads(repair_text(canonical_text)) == json.loads(canonical_text)


def test_fallback_extraction_after_trailing_garbage():
    raw = '{"titleZh": "凉拌黄瓜", "steps": ["拍黄瓜"]}\n备注：{"note": 1}'
    result = parse_recipe_output(raw)
    assert result.success is True
    assert result.used_fallback_extraction is True
    assert result.recipe["titleZh"] == "凉拌黄瓜"


def test_fallback_title_used_when_missing():
    result = parse_recipe_output('{"steps": ["煮面"]}', fallback_title="阳春面")
    assert result.success is True
    assert result.recipe["titleZh"] == "阳春面"


def test_model_error_payload_is_reported():
    result = parse_recipe_output('{"error": "cannot generate this dish"}', fallback_title="怪菜")
    assert result.success is True
    assert result.recipe["titleZh"] == "怪菜"
    assert any(message.startswith("model returned error") for message in result.warnings)


def test_messy_realistic_output():
    raw = """好的，以下是菜谱：
```json
{
  titleZh: "番茄炒蛋"，
  "summary": {"oneLine": "家常快手菜" "difficulty": "简单", "timeTotalMin": "15分钟", "servings": "2"},
  // 食材
  "ingredients": ["番茄 2个", "鸡蛋 3个", "盐 适量",],
  "steps": [
    {"action": "番茄切块，
鸡蛋打散", "heat": "中火"}
    {"action": "炒蛋后加入番茄翻炒", "heat": "大火", "timerSec": "120"}
  ],
  "imageShots": [{"key": "hero", "ratio": "1.78"}]
}
```
希望你喜欢！"""
    result = parse_recipe_output(raw)
    assert result.success is True, result.failure
    recipe = result.recipe
    assert recipe["titleZh"] == "番茄炒蛋"
    assert recipe["summary"]["difficulty"] == "easy"
    assert recipe["summary"]["timeTotalMin"] == 15
    assert recipe["steps"][0]["action"] == "番茄切块，\n鸡蛋打散"
    assert recipe["steps"][1]["heat"] == "high"
    assert recipe["steps"][1]["timerSec"] == 120
    assert [shot["key"] for shot in recipe["imageShots"]] == ["hero", "cover_main", "cover_detail"]
    assert recipe["imageShots"][0]["ratio"] == "16:9"


def test_schema_failure_carries_candidate_and_issues(monkeypatch):
    from recipe_forge.app.services import recipe_pipeline

    def reject_everything(record):
        record["summary"]["servings"] = -1
        return validate_recipe(record)

    monkeypatch.setattr(recipe_pipeline, "validate_recipe", reject_everything)
    result = parse_recipe_output('{"titleZh": "汤"}')
    assert result.success is False
    assert result.failure.kind == "schema"
    assert result.failure.best_effort_candidate["titleZh"] == "汤"
    assert any(issue.startswith("summary.servings:") for issue in result.failure.validator_issues)


def test_format_error_context_marks_error_line():
    text = 'line one\nline two has the error\nline three'
    context = format_error_context(text, text.index("error"), 50)
    lines = context.split("\n")
    assert lines[1].startswith(">>")
    assert "2 | line two" in lines[1]
    assert lines[0].startswith("  ")


def test_pretty_printed_literal_before_next_key():
    raw = '{\n  "titleZh": "汤",\n  "optional": false\n  "steps": ["煮"]\n}'
    result = parse_recipe_output(raw)
    assert result.success is True, result.failure
    assert result.recipe["optional"] is False
    assert result.recipe["steps"][0]["action"] == "煮"


def test_excess_nesting_is_a_syntax_failure():
    raw = '{"titleZh": "汤", "x": ' + "[" * 900 + "]" * 900 + "}"
    result = parse_recipe_output(raw)
    assert result.success is False
    failure = result.failure
    assert failure.kind == "syntax"
    assert "nesting" in failure.message
    assert failure.position.pos == failure.cleaned_text.index("[") + 99


def test_nesting_limit_is_configurable(monkeypatch):
    monkeypatch.setattr(get_settings(), "repair_max_nesting_depth", 3)
    result = parse_recipe_output('{"titleZh": "汤", "a": {"b": {"c": {"d": 1}}}}')
    assert result.success is False
    assert result.failure.kind == "syntax"
    assert parse_recipe_output('{"titleZh": "汤", "a": {"b": 1}}').success is True


@pytest.mark.skipif(not hasattr(sys, "get_int_max_str_digits"), reason="interpreter has no integer digit limit")
def test_oversized_integer_literal_is_a_syntax_failure():
    result = parse_recipe_output('{"titleZh": "汤", "servings": ' + "1" * 5000 + "}")
    assert result.success is False
    assert result.failure.kind == "syntax"
    assert "digits" in result.failure.message
