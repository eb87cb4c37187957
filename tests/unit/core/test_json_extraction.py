"""Unit tests for the tolerant JSON extraction helpers."""

from codeloop.core.domain.json_extraction import (
    extract_array,
    extract_flat_parameters,
    extract_json_block,
    extract_object,
    extract_scalar_field,
    extract_string_field,
    find_matching_bracket,
    remove_object,
    split_objects,
    strip_trailing_commas,
)


class TestExtractJsonBlock:
    def test_fenced_block_wins(self):
        text = 'Sure! {"ignored": 1}\n```json\n{"thinking": "x"}\n```\nDone.'
        assert extract_json_block(text) == '{"thinking": "x"}'

    def test_first_to_last_brace(self):
        text = 'Here you go: {"a": {"b": 1}} hope that helps'
        assert extract_json_block(text) == '{"a": {"b": 1}}'

    def test_no_object(self):
        assert extract_json_block("no json here") is None
        assert extract_json_block("") is None


class TestBrackets:
    def test_find_matching_bracket_ignores_braces_in_strings(self):
        text = '{"a": "}{", "b": [1, 2]}'
        assert find_matching_bracket(text, 0) == len(text) - 1

    def test_find_matching_bracket_unbalanced(self):
        assert find_matching_bracket('{"a": 1', 0) == -1
        assert find_matching_bracket("abc", 0) == -1

    def test_split_objects(self):
        array = '[{"a": 1}, {"b": {"c": 2}},]'
        assert split_objects(array) == ['{"a": 1}', '{"b": {"c": 2}}']

    def test_extract_array_and_object(self):
        text = '{"tasks": [{"x": 1}], "action": {"tool": "t"}}'
        assert extract_array(text, "tasks") == '[{"x": 1}]'
        assert extract_object(text, "action") == '{"tool": "t"}'
        assert extract_array(text, "missing") is None

    def test_remove_object(self):
        text = '{"action": {"tool": "inner"}, "tool": "outer"}'
        assert extract_string_field(remove_object(text, "action"), "tool") == "outer"


class TestFieldExtraction:
    def test_string_field_with_escapes(self):
        text = r'{"content": "line1\nline2 \"quoted\""}'
        assert extract_string_field(text, "content") == 'line1\nline2 "quoted"'

    def test_scalar_fields(self):
        text = '{"continue_cycle": false, "count": 3, "ratio": 0.5, "none": null}'
        assert extract_scalar_field(text, "continue_cycle") is False
        assert extract_scalar_field(text, "count") == 3
        assert extract_scalar_field(text, "ratio") == 0.5
        assert extract_scalar_field(text, "none") is None

    def test_flat_parameters_skip_nested(self):
        text = '{"file_path": "a.py", "backup": true, "retries": 2, "nested": {"x": "y"}, "list": [1]}'
        assert extract_flat_parameters(text) == {"file_path": "a.py", "backup": True, "retries": 2}

    def test_flat_parameters_empty(self):
        assert extract_flat_parameters(None) == {}
        assert extract_flat_parameters("{}") == {}

    def test_strip_trailing_commas(self):
        assert strip_trailing_commas('{"a": [1, 2,], }') == '{"a": [1, 2] }'
        assert strip_trailing_commas('{"a": 1}') == '{"a": 1}'

    def test_strip_trailing_commas_keeps_string_contents(self):
        text = '{"a": "x,]", "b": "say \\",}\\"",}'
        assert strip_trailing_commas(text) == '{"a": "x,]", "b": "say \\",}\\""}'
