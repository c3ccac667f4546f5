"""Tests for JSON extraction from model output."""

import pytest

from genui.core.json import (
    JSONParseError,
    extract_json,
    safe_json_dumps,
    strip_fences,
    validate_json_depth,
    validate_json_size,
)


class TestExtractJSON:
    """Test JSON extraction with fallbacks."""

    def test_plain_object(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_fenced_object(self):
        text = 'Here you go:\n```json\n{"component_type": "Text"}\n```\nEnjoy.'
        assert extract_json(text) == {"component_type": "Text"}

    def test_object_inside_prose(self):
        assert extract_json('Sure! {"intent": "weather"} hope that helps') == {"intent": "weather"}

    def test_repairs_trailing_comma(self):
        assert extract_json('{"a": 1, "b": [1, 2,],}') == {"a": 1, "b": [1, 2]}

    def test_no_object(self):
        with pytest.raises(JSONParseError):
            extract_json("no json here")

    def test_repair_disabled(self):
        with pytest.raises(JSONParseError):
            extract_json('{"a": 1,}', repair=False)

    def test_keeps_unicode(self):
        assert extract_json('{"city": "上海"}') == {"city": "上海"}


class TestHelpers:
    """Test encoding and limit helpers."""

    def test_strip_fences_without_fence(self):
        assert strip_fences("plain") == "plain"

    def test_strip_fences_unterminated(self):
        assert strip_fences('```json\n{"a": 1}') == '{"a": 1}'

    def test_dumps_compact_and_unicode(self):
        assert safe_json_dumps({"city": "上海"}) == '{"city":"上海"}'

    def test_dumps_indent(self):
        assert safe_json_dumps({"a": 1}, indent=2) == '{\n  "a": 1\n}'

    def test_size_limit(self):
        validate_json_size("{}", 10)
        with pytest.raises(JSONParseError):
            validate_json_size("x" * 11, 10)

    def test_depth_limit(self):
        nested: dict = {}
        current = nested
        for _ in range(5):
            current["a"] = {}
            current = current["a"]

        validate_json_depth(nested, max_depth=5)
        with pytest.raises(JSONParseError):
            validate_json_depth(nested, max_depth=3)
