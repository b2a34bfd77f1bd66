"""Tests for critiq_core.parsing: normalize and repair."""

import json

import pytest

from critiq_core.parsing import normalize, repair


# ---------------------------------------------------------------------------
# normalize
# ---------------------------------------------------------------------------


class TestNormalize:
    def test_valid_json_unchanged(self):
        text = '{"score": 8, "issues": [{"severity": "low"}]}'
        assert normalize(text) == text

    def test_strips_wrapping_fence(self):
        assert normalize('```json\n{"score": 8}\n```') == '{"score": 8}'

    def test_strips_bare_fence(self):
        assert normalize('```\n{"score": 8}\n```\n') == '{"score": 8}'

    def test_drops_leading_prose_and_trailing_chatter(self):
        raw = 'Here is my review:\n{"score": 7, "summary": "ok"}\nHope it helps!'
        assert normalize(raw) == '{"score": 7, "summary": "ok"}'

    def test_stops_at_fence_after_object(self):
        raw = '```json\n{"score": 8}\n```\nLet me know if you need more detail.'
        assert normalize(raw) == '{"score": 8}'

    def test_single_quotes_become_double(self):
        data = json.loads(normalize("{'score': 7, 'summary': 'say \"hi\"'}"))
        assert data == {"score": 7, "summary": 'say "hi"'}

    def test_escaped_single_quote(self):
        data = json.loads(normalize("{'summary': 'it\\'s fine'}"))
        assert data == {"summary": "it's fine"}

    def test_bareword_keys_are_quoted(self):
        data = json.loads(normalize('{score: 8, summary: "ok", issues: []}'))
        assert data == {"score": 8, "summary": "ok", "issues": []}

    def test_bareword_values_left_alone(self):
        data = json.loads(normalize("{flags: [true, false, null]}"))
        assert data == {"flags": [True, False, None]}

    def test_trailing_commas_removed(self):
        assert normalize('{"a": [1, 2,], "b": 3,}') == '{"a": [1, 2], "b": 3}'

    def test_braces_inside_strings_ignored(self):
        text = '{"summary": "use {x} and }"}'
        assert normalize(text) == text

    def test_backticks_inside_strings_kept(self):
        text = '{"summary": "wrap it in ```code``` please"}'
        assert normalize(text) == text

    def test_text_without_object_is_returned_stripped(self):
        assert normalize("  no json here \n") == "no json here"

    @pytest.mark.parametrize("raw", ["", None])
    def test_empty_input(self, raw):
        assert normalize(raw) == ""


# ---------------------------------------------------------------------------
# repair
# ---------------------------------------------------------------------------


class TestRepair:
    def test_valid_pretty_json_unchanged(self):
        text = '{\n  "score": 8,\n  "issues": []\n}'
        assert repair(text) == text

    def test_valid_single_line_json_unchanged(self):
        assert repair('{"a": 1, "b": ["x"]}') == '{"a": 1, "b": ["x"]}'

    def test_truncated_multiline_object(self):
        text = (
            "{\n"
            '  "score": 7,\n'
            '  "confidence": 8,\n'
            '  "summary": "Adds a cache",\n'
            '  "issues": [\n'
            "    {\n"
            '      "severity": "high",\n'
            '      "description": "Cache never evi'
        )
        data = json.loads(repair(text))
        assert data == {
            "score": 7,
            "confidence": 8,
            "summary": "Adds a cache",
            "issues": [{"severity": "high"}],
        }

    def test_dangling_comma_after_last_member(self):
        data = json.loads(repair('{\n  "score": 7,\n  "summary": "ok",\n'))
        assert data == {"score": 7, "summary": "ok"}

    def test_single_line_partial_string_is_closed(self):
        data = json.loads(repair('{"score": 6, "summary": "The change looks'))
        assert data == {"score": 6, "summary": "The change looks"}

    def test_partial_string_with_dangling_backslash(self):
        data = json.loads(repair('{"summary": "ends with \\'))
        assert data == {"summary": "ends with "}

    def test_dangling_key_is_dropped(self):
        assert json.loads(repair('{"score": 6, "summ')) == {"score": 6}

    def test_key_without_value_is_dropped(self):
        assert json.loads(repair('{"score": 6, "summary":')) == {"score": 6}

    def test_partial_literal_is_dropped(self):
        assert json.loads(repair('{"score": 7, "auto": tru')) == {"score": 7}

    def test_open_array_is_closed(self):
        data = json.loads(repair('{"security": ["one", "two"'))
        assert data == {"security": ["one", "two"]}

    def test_nested_containers_closed_in_order(self):
        data = json.loads(repair('{"issues": [{"severity": "low", "tags": ["a"'))
        assert data == {"issues": [{"severity": "low", "tags": ["a"]}]}

    def test_empty(self):
        assert repair("") == ""
