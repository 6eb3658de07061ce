"""Error taxonomy for steward.

Every error raised by the library derives from :class:`StewardError` and
carries structured attributes so callers can branch on them without parsing
messages.
"""

from __future__ import annotations

from typing import Any


class StewardError(Exception):
    """Base class for all steward errors."""


class PermissionDeniedError(StewardError):
    """A tool call was blocked by the policy."""

    def __init__(
        self, message: str, *, tool_name: str | None = None, reason: str | None = None,
    ) -> None:
        super().__init__(message)
        self.tool_name = tool_name
        self.reason = reason


class ToolExecutionError(StewardError):
    """A tool ran but failed."""

    def __init__(
        self, message: str, *, tool_name: str, tool_input: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.tool_name = tool_name
        self.tool_input = tool_input or {}


class BudgetExceededError(StewardError):
    """The cost ceiling was reached."""

    def __init__(
        self, message: str, *, current_cost: float = 0.0, max_cost: float | None = None,
    ) -> None:
        super().__init__(message)
        self.current_cost = current_cost
        self.max_cost = max_cost


class TurnLimitError(StewardError):
    """The turn ceiling was reached."""

    def __init__(
        self, message: str, *, current_turns: int = 0, max_turns: int | None = None,
    ) -> None:
        super().__init__(message)
        self.current_turns = current_turns
        self.max_turns = max_turns


class ProviderError(StewardError):
    """The LLM transport failed on both the streaming and blocking paths."""

    def __init__(
        self, message: str, *, provider_name: str | None = None, model: str | None = None,
    ) -> None:
        super().__init__(message)
        self.provider_name = provider_name
        self.model = model


class HookError(StewardError):
    """A hook callback failed, timed out, or returned the wrong result type."""

    def __init__(self, message: str, *, hook_event: str | None = None) -> None:
        super().__init__(message)
        self.hook_event = hook_event


class SessionError(StewardError):
    """Base for session persistence failures."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class SessionLoadError(SessionError):
    """A session file could not be read or is invalid."""


class SessionSaveError(SessionError):
    """A session file could not be written."""


class ConfigError(StewardError):
    """Configuration or policy input is invalid."""
