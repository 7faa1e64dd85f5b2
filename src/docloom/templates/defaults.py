"""Built-in document templates."""

from __future__ import annotations

from docloom.types.documents import Template

ARCHITECTURE_VISION_HTML = """\
<!DOCTYPE html>
<html>
<head><title>Architecture Vision</title></head>
<body>
<h1><!-- data-field="document.title" --></h1>
<section class="content"><!-- data-field="document.content" --></section>
<section class="decisions"><!-- data-field="document.decisions" --></section>
</body>
</html>
"""

ARCHITECTURE_VISION_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["document"],
    "properties": {
        "document": {
            "type": "object",
            "required": ["title", "content"],
            "properties": {
                "title": {"type": "string", "minLength": 1},
                "content": {"type": "string", "minLength": 1},
                "decisions": {"type": "array", "items": {"type": "string"}},
            },
        },
    },
}

TECHNICAL_DEBT_HTML = """\
<!DOCTYPE html>
<html>
<head><title>Technical Debt Summary</title></head>
<body>
<h1><!-- data-field="summary.title" --></h1>
<section class="items"><!-- data-field="summary.items" --></section>
</body>
</html>
"""

TECHNICAL_DEBT_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["summary"],
    "properties": {
        "summary": {
            "type": "object",
            "required": ["title", "items"],
            "properties": {
                "title": {"type": "string", "minLength": 1},
                "items": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "required": ["title", "severity"],
                        "properties": {
                            "title": {"type": "string"},
                            "severity": {"type": "string", "enum": ["low", "medium", "high", "critical"]},
                            "location": {"type": "string"},
                            "recommendation": {"type": "string"},
                        },
                    },
                },
            },
        },
    },
}

REFERENCE_ARCHITECTURE_HTML = """\
<!DOCTYPE html>
<html>
<head><title>Reference Architecture</title></head>
<body>
<h1><!-- data-field="architecture.name" --></h1>
<section class="components"><!-- data-field="architecture.components" --></section>
</body>
</html>
"""

REFERENCE_ARCHITECTURE_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["architecture"],
    "properties": {
        "architecture": {
            "type": "object",
            "required": ["name", "components"],
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "components": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "required": ["name"],
                        "properties": {
                            "name": {"type": "string"},
                            "responsibility": {"type": "string"},
                        },
                    },
                },
            },
        },
    },
}

ARCHITECTURE_VISION_ANALYSIS_SYSTEM = """\
You are an expert software architect analyzing a codebase to create an Architecture Vision document.
Your goal is to understand the system's structure, design patterns, and architectural decisions.
Use the available tools to explore the repository systematically, starting with high-level structure \
and drilling down into details as needed."""

ARCHITECTURE_VISION_ANALYSIS_USER = """\
Please analyze this repository to create a comprehensive Architecture Vision document. Follow these steps:
1. First, use tools to understand the overall repository structure
2. Identify key architectural patterns and design decisions
3. Analyze the technology stack and dependencies
4. Examine the system's components and their relationships
5. Generate a complete Architecture Vision document according to the schema

Focus on system purpose, key architectural decisions and their rationale, component structure, \
technology choices and quality attributes."""

TECHNICAL_DEBT_ANALYSIS_SYSTEM = """\
You are a senior engineer conducting a technical debt assessment.
Your role is to identify areas of technical debt, code quality issues, and improvement opportunities.
Use the available tools to analyze code quality, identify anti-patterns, and assess maintainability."""

TECHNICAL_DEBT_ANALYSIS_USER = """\
Please analyze this repository to create a Technical Debt Summary. Follow these steps:
1. Examine the codebase structure for complexity and organization issues
2. Identify duplicated code, long methods, and large classes
3. Check for outdated dependencies and security vulnerabilities
4. Analyze test coverage and quality
5. Generate a prioritized technical debt report"""

REFERENCE_ARCHITECTURE_ANALYSIS_SYSTEM = """\
You are a principal architect creating a reference architecture document.
Your goal is to extract reusable patterns, best practices, and architectural guidelines from the codebase.
Use the available tools to identify exemplary implementations and patterns worth documenting."""

REFERENCE_ARCHITECTURE_ANALYSIS_USER = """\
Please analyze this repository to create a Reference Architecture document. Follow these steps:
1. Identify and document architectural patterns used
2. Extract reusable components and frameworks
3. Document best practices and conventions
4. Analyze cross-cutting concerns (security, logging, error handling)
5. Generate a comprehensive reference architecture guide"""


DEFAULT_TEMPLATES: tuple[Template, ...] = (
    Template(
        name="architecture-vision",
        description="Architecture Vision document",
        html=ARCHITECTURE_VISION_HTML,
        schema=ARCHITECTURE_VISION_SCHEMA,
        prompt="Generate an architecture vision document based on the provided sources.",
        analysis_system_prompt=ARCHITECTURE_VISION_ANALYSIS_SYSTEM,
        analysis_user_prompt=ARCHITECTURE_VISION_ANALYSIS_USER,
    ),
    Template(
        name="technical-debt-summary",
        description="Technical Debt Summary",
        html=TECHNICAL_DEBT_HTML,
        schema=TECHNICAL_DEBT_SCHEMA,
        prompt="Analyze technical debt from the provided sources.",
        analysis_system_prompt=TECHNICAL_DEBT_ANALYSIS_SYSTEM,
        analysis_user_prompt=TECHNICAL_DEBT_ANALYSIS_USER,
    ),
    Template(
        name="reference-architecture",
        description="Reference Architecture guide",
        html=REFERENCE_ARCHITECTURE_HTML,
        schema=REFERENCE_ARCHITECTURE_SCHEMA,
        prompt="Create a reference architecture based on the provided sources.",
        analysis_system_prompt=REFERENCE_ARCHITECTURE_ANALYSIS_SYSTEM,
        analysis_user_prompt=REFERENCE_ARCHITECTURE_ANALYSIS_USER,
    ),
)
