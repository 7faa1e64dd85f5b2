"""JSON Schema (Draft 7) validation returning ordered, field-level violations."""

from __future__ import annotations

import json
import re
from typing import Any

from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError

from docloom.types.documents import Violation

ROOT_PATH = "(root)"

_FENCE = re.compile(r"^```[A-Za-z0-9_-]*\s*\n(?P<body>.*?)\n?```\s*$", re.DOTALL)

_JSON_TYPES: tuple[tuple[type, str], ...] = (
    (bool, "boolean"),
    (int, "integer"),
    (float, "number"),
    (str, "string"),
    (list, "array"),
    (dict, "object"),
)


def check_schema(schema: dict[str, Any]) -> None:
    """Raise :class:`jsonschema.exceptions.SchemaError` if *schema* is not valid Draft 7."""
    Draft7Validator.check_schema(schema)


def validate(document: Any, schema: dict[str, Any]) -> list[Violation]:
    """Validate *document* against *schema*.

    Returns an empty list when the document conforms, otherwise the
    violations sorted by field path.  A missing required property is reported
    at the path of the property itself (``document.content``), not its
    parent.
    """
    validator = Draft7Validator(schema)
    seen: set[tuple[str, str]] = set()
    violations: list[Violation] = []
    for error in validator.iter_errors(document):
        for violation in _to_violations(error):
            key = (violation.path, violation.message)
            if key not in seen:
                seen.add(key)
                violations.append(violation)
    violations.sort(key=lambda v: (v.path, v.message))
    return violations


def parse_document(text: str) -> tuple[dict[str, Any] | None, list[Violation]]:
    """Parse model output as a JSON object.

    A single surrounding Markdown code fence is tolerated.  Returns the parsed
    object and no violations, or ``None`` and one root-level violation.
    """
    body = text.strip()
    if match := _FENCE.match(body):
        body = match.group("body").strip()
    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        return None, [Violation(
            path=ROOT_PATH,
            message=f"invalid JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})",
        )]
    if not isinstance(data, dict):
        return None, [Violation(
            path=ROOT_PATH,
            message="document must be a JSON object",
            expected="object",
            actual=json_type(data),
        )]
    return data, []


def validate_text(text: str, schema: dict[str, Any]) -> tuple[dict[str, Any] | None, list[Violation]]:
    """Parse then validate; fields are only returned when the document conforms."""
    data, violations = parse_document(text)
    if data is None:
        return None, violations
    violations = validate(data, schema)
    return (None if violations else data), violations


def json_type(value: Any) -> str:
    if value is None:
        return "null"
    for py_type, name in _JSON_TYPES:
        if isinstance(value, py_type):
            return name
    return type(value).__name__


def _to_violations(error: ValidationError) -> list[Violation]:
    base = [str(p) for p in error.absolute_path]

    if error.validator == "required" and isinstance(error.instance, dict):
        missing = [p for p in error.validator_value if p not in error.instance]
        return [
            Violation(
                path=".".join([*base, str(name)]),
                message="is required",
                expected="present",
                actual="missing",
            )
            for name in missing
        ]

    path = ".".join(base) or ROOT_PATH
    if error.validator == "type":
        expected = error.validator_value
        expected_text = " or ".join(expected) if isinstance(expected, list) else str(expected)
        return [Violation(
            path=path,
            message=error.message,
            expected=expected_text,
            actual=json_type(error.instance),
        )]
    return [Violation(path=path, message=error.message)]
