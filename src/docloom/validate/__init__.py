"""Schema validation."""

from docloom.validate.validator import check_schema, parse_document, validate, validate_text

__all__ = ["check_schema", "parse_document", "validate", "validate_text"]
