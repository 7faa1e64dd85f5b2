"""Type definitions for docloom."""

from docloom.types.agents import AgentDef, AgentParam, AgentRunResult, AgentTool
from docloom.types.config import GenerateRequest, Settings
from docloom.types.documents import GenerationAttempt, RunArtifactDirectory, Template, Violation
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
from docloom.types.providers import (
    ChatMessage,
    ModelInfo,
    ModelReply,
    ProviderAdapter,
    StreamEvent,
    ToolCall,
)
from docloom.types.tools import ToolDef, ToolParam, ToolResultData

__all__ = [
    "AgentDef",
    "AgentParam",
    "AgentRunResult",
    "AgentTool",
    "AnalysisOutcome",
    "AnalysisStatus",
    "ChatMessage",
    "GenerateRequest",
    "GenerationAttempt",
    "GenerationResult",
    "Message",
    "ModelInfo",
    "ModelReply",
    "ProviderAdapter",
    "RunArtifactDirectory",
    "Settings",
    "StreamEvent",
    "SystemEvent",
    "Template",
    "TextMessage",
    "ToolCall",
    "ToolDef",
    "ToolParam",
    "ToolResult",
    "ToolResultData",
    "ToolUse",
    "Violation",
]
