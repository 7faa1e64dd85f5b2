"""Template registry: built-ins plus directory-loaded templates.

A template directory looks like::

    my-template/
        template.json     {"description": ..., "analysis": {"system_prompt": ..., "initial_user_prompt": ...}}
        my-template.html  HTML with <!-- data-field="..." --> markers
        schema.json       JSON Schema (Draft 7) for the fields
        prompt.txt        optional generation instructions
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from jsonschema.exceptions import SchemaError

from docloom.errors import DocloomError, TemplateNotFoundError
from docloom.templates.defaults import DEFAULT_TEMPLATES
from docloom.types.documents import Template
from docloom.validate.validator import check_schema

logger = logging.getLogger(__name__)


class TemplateError(DocloomError):
    """A template directory is incomplete or its schema is invalid."""


class TemplateRegistry:
    """Name-indexed collection of templates."""

    def __init__(self, *, load_defaults: bool = True) -> None:
        self._templates: dict[str, Template] = {}
        if load_defaults:
            for template in DEFAULT_TEMPLATES:
                self._templates[template.name] = template

    def register(self, template: Template, *, replace: bool = False) -> None:
        if template.name in self._templates and not replace:
            raise TemplateError(f"Template {template.name!r} already exists")
        self._templates[template.name] = template

    def get(self, name: str) -> Template:
        try:
            return self._templates[name]
        except KeyError:
            raise TemplateNotFoundError(name, list(self._templates)) from None

    def list(self) -> list[Template]:
        return sorted(self._templates.values(), key=lambda t: t.name)

    def load_directory(self, root: Path) -> int:
        """Load every template found under *root*; returns how many were loaded.

        Directory templates replace built-ins of the same name.
        """
        count = 0
        for manifest in sorted(Path(root).rglob("template.json")):
            template = load_template_dir(manifest.parent)
            self.register(template, replace=True)
            count += 1
        logger.debug("Loaded %d template(s) from %s", count, root)
        return count


def load_template_dir(directory: Path) -> Template:
    name = directory.name
    html_path = directory / f"{name}.html"
    schema_path = directory / "schema.json"
    prompt_path = directory / "prompt.txt"

    try:
        manifest = json.loads((directory / "template.json").read_text())
        html = html_path.read_text()
        schema = json.loads(schema_path.read_text())
    except (OSError, ValueError) as exc:
        raise TemplateError(f"Template {name!r} in {directory}: {exc}") from exc

    try:
        check_schema(schema)
    except SchemaError as exc:
        raise TemplateError(f"Template {name!r} has an invalid schema: {exc.message}") from exc

    analysis = manifest.get("analysis") or {}
    return Template(
        name=name,
        description=str(manifest.get("description", "")),
        html=html,
        schema=schema,
        prompt=prompt_path.read_text().strip() if prompt_path.exists() else str(manifest.get("prompt", "")),
        analysis_system_prompt=str(analysis.get("system_prompt", "")),
        analysis_user_prompt=str(analysis.get("initial_user_prompt", "")),
    )
