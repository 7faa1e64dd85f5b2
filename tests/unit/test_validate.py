"""Tests for docloom.validate: Draft 7 validation into field-level violations."""

from __future__ import annotations

import pytest
from jsonschema.exceptions import SchemaError

from docloom.templates.defaults import ARCHITECTURE_VISION_SCHEMA as SCHEMA
from docloom.validate.validator import ROOT_PATH, check_schema, json_type, parse_document, validate, validate_text


class TestValidate:
    def test_conforming_document(self):
        assert validate({"document": {"title": "T", "content": "C"}}, SCHEMA) == []

    def test_missing_required_reported_at_field_path(self):
        violations = validate({"document": {"title": "T"}}, SCHEMA)

        assert len(violations) == 1
        v = violations[0]
        assert v.path == "document.content"
        assert v.message == "is required"
        assert (v.expected, v.actual) == ("present", "missing")
        assert v.describe() == "document.content: is required (expected present, got missing)"

    def test_missing_top_level_required(self):
        violations = validate({}, SCHEMA)
        assert [v.path for v in violations] == ["document"]

    def test_type_mismatch_carries_json_types(self):
        violations = validate({"document": {"title": 5, "content": "C"}}, SCHEMA)

        assert len(violations) == 1
        assert violations[0].path == "document.title"
        assert violations[0].expected == "string"
        assert violations[0].actual == "integer"

    def test_array_indices_in_path(self):
        doc = {"document": {"title": "T", "content": "C", "decisions": ["ok", 3]}}
        violations = validate(doc, SCHEMA)
        assert [v.path for v in violations] == ["document.decisions.1"]

    def test_violations_sorted_by_path(self):
        violations = validate({"document": {"title": "", "content": 1}}, SCHEMA)
        assert [v.path for v in violations] == sorted(v.path for v in violations)
        assert {v.path for v in violations} == {"document.content", "document.title"}

    def test_non_object_root(self):
        violations = validate([1, 2], SCHEMA)
        assert violations[0].path == ROOT_PATH


class TestParseDocument:
    def test_plain_json(self):
        assert parse_document('{"a": 1}') == ({"a": 1}, [])

    def test_fenced_json(self):
        data, violations = parse_document('```json\n{"a": 1}\n```')
        assert data == {"a": 1}
        assert violations == []

    def test_invalid_json(self):
        data, violations = parse_document("Sure! Here is the document.")
        assert data is None
        assert violations[0].path == ROOT_PATH
        assert violations[0].message.startswith("invalid JSON")

    def test_non_object(self):
        data, violations = parse_document("[1, 2]")
        assert data is None
        assert (violations[0].expected, violations[0].actual) == ("object", "array")

    def test_validate_text_only_returns_conforming_fields(self):
        fields, violations = validate_text('{"document": {"title": "T"}}', SCHEMA)
        assert fields is None
        assert violations


class TestHelpers:
    def test_check_schema_rejects_invalid(self):
        with pytest.raises(SchemaError):
            check_schema({"type": "not-a-type"})

    @pytest.mark.parametrize(("value", "name"), [
        (None, "null"), (True, "boolean"), (1, "integer"), (1.5, "number"),
        ("s", "string"), ([], "array"), ({}, "object"),
    ])
    def test_json_type(self, value, name):
        assert json_type(value) == name
