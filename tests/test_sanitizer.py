"""
Tests for structured-response sanitizing.
"""

import pytest

from studio.services.errors import ErrorKind, StudioError
from studio.utils.sanitizer import parse_json_response, sanitize_json_text


class TestSanitizeJsonText:
    def test_json_fence(self):
        raw = 'Here you go:\n```json\n{"a":1}\n```\nthanks'
        assert sanitize_json_text(raw) == '{"a":1}'

    def test_prose_around_array(self):
        assert sanitize_json_text('prefix [1,2,3] suffix') == "[1,2,3]"

    def test_no_brackets_returns_trimmed_input(self):
        assert sanitize_json_text("  no json here  ") == "no json here"

    def test_bare_fence(self):
        assert sanitize_json_text('```\n{"b": [1]}\n```') == '{"b": [1]}'

    def test_nested_brackets_use_outermost_pair(self):
        raw = 'Result: {"scenes": [{"id": 1}, {"id": 2}]} done.'
        assert sanitize_json_text(raw) == '{"scenes": [{"id": 1}, {"id": 2}]}'

    def test_array_of_objects(self):
        assert sanitize_json_text('x [{"a": 1}] y') == '[{"a": 1}]'

    def test_empty(self):
        assert sanitize_json_text("") == ""
        assert sanitize_json_text(None) == ""

    def test_never_longer_than_input(self):
        raw = '  ```json {"k": "v"} ```  '
        assert len(sanitize_json_text(raw)) <= len(raw)


class TestParseJsonResponse:
    def test_parses_fenced_payload(self):
        assert parse_json_response('```json\n{"a": 1}\n```') == {"a": 1}

    def test_default_for_empty(self):
        assert parse_json_response("", default=[]) == []

    def test_malformed_raises(self):
        with pytest.raises(StudioError) as exc_info:
            parse_json_response("{not json}")
        assert exc_info.value.kind is ErrorKind.MALFORMED_RESPONSE

    def test_no_json_raises(self):
        with pytest.raises(StudioError):
            parse_json_response("the model refused")
