"""Conversation data model: turns and their content items."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

Role = Literal["user", "assistant", "system"]


@dataclass(frozen=True, slots=True)
class TextContent:
    """A text fragment inside a turn."""

    text: str


@dataclass(frozen=True, slots=True)
class ToolRequest:
    """Model requests a tool call."""

    id: str
    name: str
    args: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Outcome of a tool call, fed back to the model.

    Exactly one of ``value`` / ``error`` is normally set.
    """

    request_id: str
    value: str | None = None
    error: str | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def content(self) -> str:
        """Text the model sees for this result."""
        if self.error is not None:
            return self.error
        return self.value or ""


Content = TextContent | ToolRequest | ToolResult


@dataclass(frozen=True, slots=True)
class Turn:
    """One exchange unit in the conversation. Immutable once produced."""

    role: Role
    contents: tuple[Content, ...] = ()
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0

    @classmethod
    def user(cls, text: str) -> Turn:
        return cls(role="user", contents=(TextContent(text),))

    @property
    def text(self) -> str:
        return "".join(c.text for c in self.contents if isinstance(c, TextContent))

    @property
    def tool_requests(self) -> tuple[ToolRequest, ...]:
        return tuple(c for c in self.contents if isinstance(c, ToolRequest))

    @property
    def tool_results(self) -> tuple[ToolResult, ...]:
        return tuple(c for c in self.contents if isinstance(c, ToolResult))

    @property
    def has_tool_requests(self) -> bool:
        return any(isinstance(c, ToolRequest) for c in self.contents)
