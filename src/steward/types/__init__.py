"""Type definitions for steward."""

from steward.types.agents import AgentDef
from steward.types.config import PermissionMode, RunConfig
from steward.types.events import (
    AgentEvent,
    RunResult,
    StartEvent,
    StopEvent,
    StopReason,
    TextChunk,
    TextComplete,
    ToolEnd,
    ToolStart,
    TurnComplete,
    WarningEvent,
)
from steward.types.hooks import AnyHook, CommandHook, Hook, HookErrorRecord, HookEvent, HookResult
from steward.types.messages import Content, TextContent, ToolRequest, ToolResult, Turn
from steward.types.providers import ModelInfo, ProviderAdapter, StreamEvent
from steward.types.tools import (
    Tool,
    ToolAnnotations,
    ToolContext,
    ToolDef,
    ToolParam,
    ToolResultData,
)

__all__ = [
    "AgentDef",
    "AgentEvent",
    "AnyHook",
    "CommandHook",
    "Content",
    "Hook",
    "HookErrorRecord",
    "HookEvent",
    "HookResult",
    "ModelInfo",
    "PermissionMode",
    "ProviderAdapter",
    "RunConfig",
    "RunResult",
    "StartEvent",
    "StopEvent",
    "StopReason",
    "StreamEvent",
    "TextChunk",
    "TextComplete",
    "TextContent",
    "Tool",
    "ToolAnnotations",
    "ToolContext",
    "ToolDef",
    "ToolEnd",
    "ToolParam",
    "ToolRequest",
    "ToolResult",
    "ToolResultData",
    "ToolStart",
    "Turn",
    "TurnComplete",
    "WarningEvent",
]
