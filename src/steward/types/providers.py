"""Provider adapter protocol and stream event types."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from steward.types.messages import Turn
from steward.types.tools import ToolDef


@dataclass(frozen=True, slots=True)
class StreamEvent:
    """A single event from a streaming provider response."""

    type: str  # "text_delta", "tool_use_start", "tool_use_delta", "tool_use_end", "message_end"
    text: str | None = None
    tool_use_id: str | None = None
    tool_name: str | None = None
    tool_args_json: str | None = None
    stop_reason: str | None = None
    usage: dict[str, int] | None = None
    cost: float | None = None  # Set by providers that price the turn themselves


@runtime_checkable
class ProviderAdapter(Protocol):
    """Protocol that all provider adapters must implement."""

    def stream(
        self,
        turns: list[Turn],
        tools: list[ToolDef],
        system: str,
        max_tokens: int,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a completion for the conversation so far."""
        ...

    async def complete(
        self,
        turns: list[Turn],
        tools: list[ToolDef],
        system: str,
        max_tokens: int,
    ) -> Turn:
        """Blocking (non-streaming) completion returning the assistant turn."""
        ...

    @property
    def name(self) -> str:
        """Provider name, e.g. ``"anthropic"``."""
        ...

    @property
    def model_id(self) -> str:
        """The model identifier being used."""
        ...

    def estimate_tokens(self, text: str) -> int:
        """Rough token count estimate for a text string."""
        ...


@dataclass(frozen=True, slots=True)
class ModelInfo:
    """Information about a supported model."""

    id: str
    provider: str
    display_name: str
    context_window: int
    max_output_tokens: int
    supports_tools: bool = True
    supports_streaming: bool = True
    input_cost_per_mtok: float = 0.0
    output_cost_per_mtok: float = 0.0
    aliases: tuple[str, ...] = ()

    def cost(self, input_tokens: int, output_tokens: int) -> float:
        """USD cost of a single call."""
        return (
            input_tokens * self.input_cost_per_mtok
            + output_tokens * self.output_cost_per_mtok
        ) / 1_000_000
