"""Docloom: schema-validated technical documents from LLMs and research agents.

Usage:
    import docloom
    from pathlib import Path

    request = docloom.GenerateRequest(
        template="architecture-vision",
        sources=("docs/",),
        output=Path("vision.html"),
    )
    async for msg in docloom.generate(request):
        match msg:
            case docloom.ToolUse(name=name):
                print(f"tool: {name}")
            case docloom.GenerationResult(output_path=path):
                print(f"Wrote {path}")
"""

from docloom.core.engine import generate
from docloom.errors import (
    AgentExecutionError,
    AnalysisError,
    DocloomError,
    PreconditionError,
    RepairExhaustedError,
    TransportError,
)
from docloom.types.agents import AgentDef
from docloom.types.config import GenerateRequest, Settings
from docloom.types.documents import Template, Violation
from docloom.types.messages import (
    AnalysisOutcome,
    AnalysisStatus,
    GenerationResult,
    Message,
    SystemEvent,
    TextMessage,
    ToolResult,
    ToolUse,
)

__version__ = "0.4.0"

__all__ = [
    # Core API
    "generate",
    # Message types
    "AnalysisOutcome",
    "AnalysisStatus",
    "GenerationResult",
    "Message",
    "SystemEvent",
    "TextMessage",
    "ToolResult",
    "ToolUse",
    # Configuration
    "AgentDef",
    "GenerateRequest",
    "Settings",
    "Template",
    "Violation",
    # Errors
    "AgentExecutionError",
    "AnalysisError",
    "DocloomError",
    "PreconditionError",
    "RepairExhaustedError",
    "TransportError",
]
