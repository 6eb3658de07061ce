"""Hook types for the steward lifecycle event system."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal


class HookEvent(Enum):
    """Events that can trigger hooks."""

    PRE_TOOL_USE = "PreToolUse"
    POST_TOOL_USE = "PostToolUse"
    STOP = "Stop"
    SESSION_START = "SessionStart"
    SESSION_END = "SessionEnd"
    SUBAGENT_STOP = "SubagentStop"
    PRE_COMPACT = "PreCompact"
    USER_PROMPT_SUBMIT = "UserPromptSubmit"


@dataclass(frozen=True, slots=True)
class Hook:
    """A Python callback fired on an event.

    ``matcher`` is a regular expression searched against the tool name.
    ``timeout=0`` runs the callback inline; any positive timeout runs it in
    a separate process that is killed at the deadline.
    """

    event: HookEvent | str
    callback: Callable[..., Any]
    matcher: str | None = None
    timeout: float = 30.0


@dataclass(frozen=True, slots=True)
class CommandHook:
    """A shell command fired on an event.

    The command's stdout, when it is a JSON object, is parsed into the
    event's result type. Empty output means the hook abstains.
    """

    event: HookEvent | str
    command: str
    matcher: str | None = None
    timeout: float = 30.0


AnyHook = Hook | CommandHook


@dataclass(frozen=True, slots=True)
class PreToolUseResult:
    permission: Literal["allow", "deny"] = "allow"
    reason: str | None = None
    continue_: bool = True

    @property
    def stop_requested(self) -> bool:
        return not self.continue_


@dataclass(frozen=True, slots=True)
class PostToolUseResult:
    continue_: bool = True

    @property
    def stop_requested(self) -> bool:
        return not self.continue_


@dataclass(frozen=True, slots=True)
class StopResult:
    handled: bool = True

    @property
    def stop_requested(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class SessionStartResult:
    continue_: bool = True

    @property
    def stop_requested(self) -> bool:
        return not self.continue_


@dataclass(frozen=True, slots=True)
class SessionEndResult:
    handled: bool = True

    @property
    def stop_requested(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class SubagentStopResult:
    continue_: bool = True

    @property
    def stop_requested(self) -> bool:
        return not self.continue_


@dataclass(frozen=True, slots=True)
class PreCompactResult:
    """``continue_=False`` cancels compaction; ``summary`` replaces the generated one."""

    continue_: bool = True
    summary: str | None = None

    @property
    def stop_requested(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class UserPromptSubmitResult:
    continue_: bool = True

    @property
    def stop_requested(self) -> bool:
        return not self.continue_


HookResult = (
    PreToolUseResult
    | PostToolUseResult
    | StopResult
    | SessionStartResult
    | SessionEndResult
    | SubagentStopResult
    | PreCompactResult
    | UserPromptSubmitResult
)

RESULT_TYPES: dict[HookEvent, type] = {
    HookEvent.PRE_TOOL_USE: PreToolUseResult,
    HookEvent.POST_TOOL_USE: PostToolUseResult,
    HookEvent.STOP: StopResult,
    HookEvent.SESSION_START: SessionStartResult,
    HookEvent.SESSION_END: SessionEndResult,
    HookEvent.SUBAGENT_STOP: SubagentStopResult,
    HookEvent.PRE_COMPACT: PreCompactResult,
    HookEvent.USER_PROMPT_SUBMIT: UserPromptSubmitResult,
}


@dataclass(frozen=True, slots=True)
class HookErrorRecord:
    """A hook failure that did not block execution."""

    event: HookEvent
    error: str
    tool_name: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
