"""Steward: an agent execution engine with permissions, hooks and budgets.

Usage:
    import steward

    agent = steward.Agent(provider, tools=[...], policy=steward.Policy.standard())
    async for event in agent.run("Fix the bug"):
        match event:
            case steward.TextChunk(text=t):
                print(t, end="")
            case steward.StopEvent(reason=r):
                print(f"Done: {r.value}")
"""

from steward.agents.manager import AgentManager, LeadAgent
from steward.core.agent import Agent
from steward.core.engine import create_agent, run
from steward.core.stream import EventStream
from steward.errors import (
    BudgetExceededError,
    ConfigError,
    HookError,
    PermissionDeniedError,
    ProviderError,
    SessionError,
    SessionLoadError,
    SessionSaveError,
    StewardError,
    ToolExecutionError,
    TurnLimitError,
)
from steward.permissions.gate import PermissionGate
from steward.permissions.policy import Policy
from steward.permissions.results import Allow, Deny, PermissionResult
from steward.tools.base import FunctionTool, tool
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
from steward.types.hooks import (
    CommandHook,
    Hook,
    HookEvent,
    PostToolUseResult,
    PreCompactResult,
    PreToolUseResult,
    SessionEndResult,
    SessionStartResult,
    StopResult,
    SubagentStopResult,
    UserPromptSubmitResult,
)
from steward.types.tools import ToolAnnotations, ToolContext, ToolDef, ToolParam, ToolResultData

__version__ = "0.1.0"

__all__ = [
    # Core API
    "Agent",
    "AgentManager",
    "EventStream",
    "LeadAgent",
    "create_agent",
    "run",
    # Permissions
    "Allow",
    "Deny",
    "PermissionGate",
    "PermissionMode",
    "PermissionResult",
    "Policy",
    # Events
    "AgentEvent",
    "RunResult",
    "StartEvent",
    "StopEvent",
    "StopReason",
    "TextChunk",
    "TextComplete",
    "ToolEnd",
    "ToolStart",
    "TurnComplete",
    "WarningEvent",
    # Hooks
    "CommandHook",
    "Hook",
    "HookEvent",
    "PostToolUseResult",
    "PreCompactResult",
    "PreToolUseResult",
    "SessionEndResult",
    "SessionStartResult",
    "StopResult",
    "SubagentStopResult",
    "UserPromptSubmitResult",
    # Configuration
    "AgentDef",
    "RunConfig",
    # Tools
    "FunctionTool",
    "ToolAnnotations",
    "ToolContext",
    "ToolDef",
    "ToolParam",
    "ToolResultData",
    "tool",
    # Errors
    "BudgetExceededError",
    "ConfigError",
    "HookError",
    "PermissionDeniedError",
    "ProviderError",
    "SessionError",
    "SessionLoadError",
    "SessionSaveError",
    "StewardError",
    "ToolExecutionError",
    "TurnLimitError",
]
