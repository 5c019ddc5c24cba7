import json

import pytest

from recipe_forge.app.services.llm_repair.extraction import extract_balanced_object, unwrap_payload
from recipe_forge.app.services.llm_repair.literals import (
    quote_bare_scalar_values,
    repair_literals,
    rewrite_amount_fractions,
    strip_illegal_commas,
)
from recipe_forge.app.services.llm_repair.models import RepairWarnings
from recipe_forge.app.services.llm_repair.scanner import find_excess_nesting
from recipe_forge.app.services.llm_repair.structural import insert_missing_commas


@pytest.mark.parametrize(
    "text, expected",
    [
        ('{"a": 1 "b": 2}', {"a": 1, "b": 2}),
        ('{"a": "x" "b": "y"}', {"a": "x", "b": "y"}),
        ('{"a": {"x": 1 "y": [1, 2]} "b": 3}', {"a": {"x": 1, "y": [1, 2]}, "b": 3}),
        ('{"a": [{"c": true "d": null}] "b": false "e": 0}', {"a": [{"c": True, "d": None}], "b": False, "e": 0}),
        ('{"outer": {"inner": {"deep": {"k": "v" "n": 1} "m": [] } "z": {}}}',
         {"outer": {"inner": {"deep": {"k": "v", "n": 1}, "m": []}, "z": {}}}),
        ('{\n  "a": true\n  "b": 1\n}', {"a": True, "b": 1}),
        ('{\n    "a": false\n        "b": null\n    "c": [true\n      "x"]\n}',
         {"a": False, "b": None, "c": [True, "x"]}),
    ],
)
def test_insert_missing_commas_between_members(text, expected):
    assert json.loads(insert_missing_commas(text)) == expected


def test_insert_missing_commas_between_array_elements():
    text = '{"tags": ["a" "b"], "items": [{"n": 1} {"n": 2}]}'
    assert json.loads(insert_missing_commas(text)) == {"tags": ["a", "b"], "items": [{"n": 1}, {"n": 2}]}


def test_insert_missing_commas_leaves_string_contents():
    text = '{"action": "先放\\"盐\\" 再放 \\"糖\\"" "next": 1}'
    assert json.loads(insert_missing_commas(text)) == {"action": '先放"盐" 再放 "糖"', "next": 1}


def test_insert_missing_commas_noop_on_valid_json():
    text = json.dumps({"a": [1, {"b": "c"}], "d": None, "e": {"f": True}}, ensure_ascii=False)
    assert insert_missing_commas(text) == text


def test_ambiguous_comma_insertion_is_reported():
    warnings = RepairWarnings()
    repaired = insert_missing_commas('{"servings": 2 "titleZh": "汤"}', warnings=warnings)
    assert json.loads(repaired) == {"servings": 2, "titleZh": "汤"}
    assert len(warnings) == 1
    assert "inserted comma" in warnings.messages[0]


def test_quote_terminated_insertion_is_not_reported():
    warnings = RepairWarnings()
    insert_missing_commas('{"a": "x" "b": "y"}', warnings=warnings)
    assert len(warnings) == 0


def test_extra_value_terminals():
    text = '{"unit": 克 "amount": 2}'
    assert insert_missing_commas(text) == text
    assert insert_missing_commas(text, extra_terminals="克") == '{"unit": 克 ,"amount": 2}'


def test_strip_illegal_commas():
    assert json.loads(strip_illegal_commas('{"a":1,"b":2,}')) == {"a": 1, "b": 2}
    assert json.loads(strip_illegal_commas('{"a": [1,, 2,], "b": {,"c": 3}}')) == {"a": [1, 2], "b": {"c": 3}}


def test_strip_illegal_commas_keeps_commas_in_strings():
    text = '{"a": "x,}", "b": ",]"}'
    assert strip_illegal_commas(text) == text


@pytest.mark.parametrize(
    "text, expected",
    [
        ('{"amount": 1/2, "unit": "勺"}', 0.5),
        ('{"amount": 1 1/2, "unit": "杯"}', 1.5),
        ('{"amount": 3/4}', 0.75),
        ('{"amount": 2/1}', 2),
        ('{"amount": 1/3}', 0.3333),
    ],
)
def test_rewrite_amount_fractions(text, expected):
    assert json.loads(rewrite_amount_fractions(text))["amount"] == expected


def test_rewrite_amount_fractions_ignores_zero_denominator_and_other_keys():
    text = '{"ratio": "1/2", "serving": 1/2, "amount": 1/0}'
    assert rewrite_amount_fractions(text) == text


def test_quote_bare_scalar_values():
    text = '{"amount": 适量, "unit": 克, "notes": null, "name": "盐"}'
    assert json.loads(quote_bare_scalar_values(text)) == {
        "amount": "适量",
        "unit": "克",
        "notes": None,
        "name": "盐",
    }


def test_repair_literals_combined():
    text = '{"items": [{"name": "糖", "amount": 1/2, "unit": 勺,},]}'
    assert json.loads(repair_literals(text)) == {"items": [{"name": "糖", "amount": 0.5, "unit": "勺"}]}


@pytest.mark.parametrize(
    "prefix, suffix",
    [
        ("Here you go: ", " hope it helps"),
        ("", "\n\n以上就是菜谱。"),
        ("说明文字\n", ""),
    ],
)
def test_extract_balanced_object(prefix, suffix):
    body = '{"a": {"b": "}{ not structure"}, "c": ["{", "}"], "d": "\\"}"}'
    assert extract_balanced_object(prefix + body + suffix) == body


def test_extract_balanced_object_returns_first_object():
    assert extract_balanced_object('{"a": 1} {"b": 2}') == '{"a": 1}'


def test_extract_balanced_object_unbalanced():
    assert extract_balanced_object('{"a": {"b": 1}') is None
    assert extract_balanced_object("no json here") is None


def test_unwrap_payload_wrapper_key():
    warnings = RepairWarnings()
    payload = {"recipe": {"titleZh": "酸菜鱼", "steps": []}}
    assert unwrap_payload(payload, warnings) == {"titleZh": "酸菜鱼", "steps": []}
    assert len(warnings) == 1


def test_unwrap_payload_nested_recipe():
    payload = {"data": {"recipe": {"titleZh": "酸菜鱼"}}}
    assert unwrap_payload(payload) == {"titleZh": "酸菜鱼"}


def test_unwrap_payload_array_of_candidates():
    payload = ["note", {"titleZh": "a"}, {"titleZh": "b"}]
    assert unwrap_payload(payload) == {"titleZh": "a"}
    assert unwrap_payload({"result": [{"titleZh": "c"}]}) == {"titleZh": "c"}


def test_unwrap_payload_leaves_recipe_untouched():
    payload = {"titleZh": "酸菜鱼", "data": {"source": "x"}}
    assert unwrap_payload(payload) is payload
    plain = {"foo": 1}
    assert unwrap_payload(plain) is plain


def test_find_excess_nesting():
    assert find_excess_nesting('{"a": [[1]]}', 3) == -1
    assert find_excess_nesting('{"a": [[[1]]]}', 3) == 8
    assert find_excess_nesting('{"a": "[[[[[[", "b": {}}', 2) == -1
    assert find_excess_nesting('[{}, {}, {}]', 2) == -1
