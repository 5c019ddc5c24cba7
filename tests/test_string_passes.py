import json

import pytest

from recipe_forge.app.services.llm_repair.preprocess import (
    preprocess,
    strip_code_fences,
    strip_invalid_control_chars,
    strip_json_comments,
    trim_to_object,
)
from recipe_forge.app.services.llm_repair.string_passes import (
    collapse_doubled_quotes,
    convert_single_quotes,
    escape_string_newlines,
    normalize_fullwidth_punctuation,
    quote_bare_keys,
    repair_quotes,
)


def test_strip_code_fences_removes_language_tag():
    text = '```json\n{"a": 1}\n```'
    assert strip_code_fences(text) == '{"a": 1}'


def test_trim_to_object_drops_surrounding_prose():
    text = 'Sure! Here is the recipe:\n{"a": {"b": 1}}\nEnjoy.'
    assert trim_to_object(text) == '{"a": {"b": 1}}'


def test_trim_to_object_keeps_candidate_array():
    text = 'Two options: [{"a": 1}, {"a": 2}] done'
    assert trim_to_object(text) == '[{"a": 1}, {"a": 2}]'


def test_strip_json_comments_keeps_urls_inside_strings():
    text = '{\n  "url": "http://example.com/a", // source\n  /* block */ "b": 2\n}'
    cleaned = strip_json_comments(text)
    assert json.loads(cleaned) == {"url": "http://example.com/a", "b": 2}


def test_strip_invalid_control_chars_keeps_whitespace():
    assert strip_invalid_control_chars('{"a":\x00 "b\x07"}\n') == '{"a": "b"}\n'


def test_preprocess_chains_cleanups():
    text = '```json\n// comment\n{"titleZh": "汤"}\n```'
    assert preprocess(text) == '{"titleZh": "汤"}'


def test_fullwidth_punctuation_outside_strings():
    text = '{"titleZh"："红烧肉"，"summary"：｛"servings"：2｝}'
    assert json.loads(normalize_fullwidth_punctuation(text)) == {
        "titleZh": "红烧肉",
        "summary": {"servings": 2},
    }


def test_fullwidth_punctuation_inside_strings_untouched():
    text = '{"oneLine": "时间：20分钟，简单易做"}'
    assert normalize_fullwidth_punctuation(text) == text


def test_curly_quotes_become_delimiters():
    text = '{“titleZh”: “鱼香肉丝”}'
    assert json.loads(normalize_fullwidth_punctuation(text)) == {"titleZh": "鱼香肉丝"}


def test_curly_quotes_inside_ascii_string_are_kept():
    text = '{"tip": "记住“少油”原则"}'
    assert normalize_fullwidth_punctuation(text) == text


def test_escape_string_newlines():
    text = '{"action": "第一行\n第二行\t结束"}'
    repaired = escape_string_newlines(text)
    assert json.loads(repaired) == {"action": "第一行\n第二行\t结束"}


def test_escape_string_newlines_leaves_structure_whitespace():
    text = '{\n  "a": "x"\n}'
    assert escape_string_newlines(text) == text


@pytest.mark.parametrize(
    "text",
    [
        '{"a"："值：一，二"，"b": "行\n行"}',
        '{“a”: “x”, "b": "y\r\n"}',
        '{"a": "已经转义\\n的换行"}',
    ],
)
def test_punctuation_and_newline_passes_are_idempotent(text):
    once = escape_string_newlines(normalize_fullwidth_punctuation(text))
    twice = escape_string_newlines(normalize_fullwidth_punctuation(once))
    assert once == twice


def test_convert_single_quotes():
    text = "{'name': 'Tom\\'s 汤', 'tags': ['a', 'b']}"
    assert json.loads(convert_single_quotes(text)) == {"name": "Tom's 汤", "tags": ["a", "b"]}


def test_convert_single_quotes_ignores_apostrophes_in_strings():
    text = '{"tip": "don\'t stir"}'
    assert convert_single_quotes(text) == text


def test_quote_bare_keys():
    text = '{name: "宫保鸡丁", steps: ["a"], ok: true}'
    assert json.loads(quote_bare_keys(text)) == {"name": "宫保鸡丁", "steps": ["a"], "ok": True}


def test_quote_bare_keys_leaves_literals_alone():
    text = '{"a": [true, false, null]}'
    assert quote_bare_keys(text) == text


def test_collapse_doubled_quotes():
    text = '{"unit": ""克"", "notes": ""}'
    assert json.loads(collapse_doubled_quotes(text)) == {"unit": "克", "notes": ""}


def test_repair_quotes_mixed_styles():
    text = "{'name': '宫保鸡丁', steps: ['焯水', '爆炒']}"
    assert json.loads(repair_quotes(text)) == {"name": "宫保鸡丁", "steps": ["焯水", "爆炒"]}


def test_string_contents_survive_all_passes():
    value = "火候：中火，\n炒到\"出香\"为止"
    text = json.dumps({"action": value}, ensure_ascii=False)
    repaired = repair_quotes(escape_string_newlines(normalize_fullwidth_punctuation(text)))
    assert json.loads(repaired) == {"action": value}
