"""Progress events emitted by the execution loop, and the final run result."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar

from steward.errors import BudgetExceededError, StewardError, TurnLimitError
from steward.types.messages import Turn


class StopReason(str, Enum):
    """Why a run ended. Exactly one is assigned per run."""

    COMPLETE = "complete"
    MAX_TURNS = "max_turns"
    COST_LIMIT = "cost_limit"
    HOOK_REQUESTED_STOP = "hook_requested_stop"
    ERROR = "error"
    CANCELLED = "cancelled"


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class StartEvent:
    """The run has started."""

    type: ClassVar[str] = "start"
    task: str
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True, slots=True)
class TextChunk:
    """Partial text streamed from the model."""

    type: ClassVar[str] = "text"
    text: str
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True, slots=True)
class TextComplete:
    """Full text of the model's turn."""

    type: ClassVar[str] = "text_complete"
    text: str
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True, slots=True)
class ToolStart:
    """An allowed tool call is about to execute."""

    type: ClassVar[str] = "tool_start"
    id: str
    name: str
    args: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True, slots=True)
class ToolEnd:
    """A tool call finished (or was rejected)."""

    type: ClassVar[str] = "tool_end"
    id: str
    name: str
    content: str
    is_error: bool = False
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True, slots=True)
class TurnComplete:
    """An assistant turn and its tool round trip are done."""

    type: ClassVar[str] = "turn"
    turn: Turn
    turn_number: int
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True, slots=True)
class WarningEvent:
    """Non-fatal condition surfaced to the caller.

    ``kind`` is one of ``cost``, ``stall``, ``stream_fallback``,
    ``provider_error``, ``hook_error``, ``permission_denied``.
    """

    type: ClassVar[str] = "warning"
    kind: str
    message: str
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True, slots=True)
class StopEvent:
    """The run ended. Always the last event of a run."""

    type: ClassVar[str] = "stop"
    reason: StopReason
    turns: int = 0
    cost: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    error: str | None = None
    timestamp: datetime = field(default_factory=_now)


AgentEvent = (
    StartEvent
    | TextChunk
    | TextComplete
    | ToolStart
    | ToolEnd
    | TurnComplete
    | WarningEvent
    | StopEvent
)


@dataclass(frozen=True, slots=True)
class RunResult:
    """Everything a blocking run produced."""

    response: str | None
    events: tuple[AgentEvent, ...]
    turns: int = 0
    cost: float = 0.0
    duration: float = 0.0
    stop_reason: StopReason = StopReason.COMPLETE
    error: StewardError | None = None

    @property
    def is_success(self) -> bool:
        return self.stop_reason is StopReason.COMPLETE

    def tool_calls(self) -> list[ToolStart]:
        return [e for e in self.events if isinstance(e, ToolStart)]

    def text_chunks(self) -> list[str]:
        return [e.text for e in self.events if isinstance(e, TextChunk)]

    def warnings(self, kind: str | None = None) -> list[WarningEvent]:
        return [
            e for e in self.events
            if isinstance(e, WarningEvent) and (kind is None or e.kind == kind)
        ]

    def raise_for_stop(self) -> None:
        """Raise the error matching a non-successful stop reason, if any."""
        if self.stop_reason is StopReason.COST_LIMIT:
            raise BudgetExceededError(
                f"Run stopped at cost limit (${self.cost:.4f})", current_cost=self.cost,
            )
        if self.stop_reason is StopReason.MAX_TURNS:
            raise TurnLimitError(
                f"Run stopped after {self.turns} turns", current_turns=self.turns,
            )
        if self.error is not None:
            raise self.error
