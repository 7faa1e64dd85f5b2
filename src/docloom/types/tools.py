"""Tool definition types shared by agents, the analysis loop and providers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ToolParam:
    """A parameter for a tool."""

    name: str
    type: str  # "string", "integer", "boolean", "array", "object"
    description: str = ""
    required: bool = False
    enum: tuple[str, ...] | None = None
    default: Any = None
    items: dict[str, Any] | None = None  # For array types: JSON Schema for items


@dataclass(frozen=True, slots=True)
class ToolDef:
    """Definition of a tool advertised to the model."""

    name: str
    description: str
    parameters: tuple[ToolParam, ...] = ()


@dataclass(slots=True)
class ToolResultData:
    """Data returned from tool execution.

    ``content`` is the JSON-encoded artifact on success, or error text when
    ``is_error`` is set.
    """

    content: str
    is_error: bool = False
    display: str | None = None  # Optional short summary for the UI
