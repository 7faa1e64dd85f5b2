"""Marker substitution for HTML templates, plus the JSON sidecar writer."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

FIELD_MARKER = re.compile(r'<!--\s*data-field="([^"]+)"\s*-->')

_MISSING = object()


def render_html(template_html: str, fields: dict[str, Any]) -> str:
    """Replace every ``<!-- data-field="a.b.c" -->`` marker with its value.

    Strings are inserted verbatim; numbers, booleans, null and lists are
    JSON-encoded.  Markers whose path is missing or points at an object are
    left untouched.  The output depends only on the inputs.
    """

    def repl(match: re.Match[str]) -> str:
        path = match.group(1)
        value = lookup(fields, path)
        if value is _MISSING or isinstance(value, dict):
            logger.debug("No value for field %r, leaving marker", path)
            return match.group(0)
        if isinstance(value, str):
            return value
        return json.dumps(value, ensure_ascii=False)

    return FIELD_MARKER.sub(repl, template_html)


def lookup(fields: dict[str, Any], path: str) -> Any:
    """Resolve a dotted *path*; returns a sentinel when any segment is missing."""
    current: Any = fields
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return _MISSING
    return current


def marker_paths(template_html: str) -> list[str]:
    """Field paths referenced by *template_html*, in order of first use."""
    return list(dict.fromkeys(FIELD_MARKER.findall(template_html)))


def sidecar_path(output_path: Path) -> Path:
    return output_path.with_suffix(".json")


def write_document(html: str, fields: dict[str, Any], output_path: Path) -> Path:
    """Write the rendered *html* and its field sidecar; returns the sidecar path."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(html, encoding="utf-8")
    sidecar = sidecar_path(output_path)
    sidecar.write_text(json.dumps(fields, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    logger.info("Wrote %s and %s", output_path, sidecar)
    return sidecar
