"""Test fixtures including MockProvider for deterministic testing."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from steward.tools.base import FunctionTool
from steward.types.messages import TextContent, ToolRequest, Turn
from steward.types.providers import StreamEvent
from steward.types.tools import ToolAnnotations, ToolDef, ToolParam


@dataclass
class MockTurn:
    """A scripted turn for MockProvider.

    Specify text, tool_uses, or both for what the model should "respond" with.
    """

    text: str = ""
    tool_uses: list[dict[str, Any]] = field(default_factory=list)
    # Each tool_use: {"id": "tu1", "name": "read_file", "args": {"path": "foo.py"}}
    cost: float | None = None
    input_tokens: int = 100
    output_tokens: int = 50


class MockProvider:
    """A deterministic mock provider for testing.

    Usage:
        provider = MockProvider(turns=[
            MockTurn(tool_uses=[{"id": "tu1", "name": "read_file", "args": {"path": "a.py"}}]),
            MockTurn(text="The file contains test code."),
        ])

    Every call (streaming or blocking) consumes the next scripted turn.
    The system prompts and histories it was called with are recorded.
    """

    name = "mock"

    def __init__(self, turns: list[MockTurn] | None = None, model: str = "mock-model"):
        self._turns = list(turns or [])
        self._turn_index = 0
        self._model = model
        self.systems: list[str] = []
        self.histories: list[list[Turn]] = []
        self.complete_calls = 0

    @property
    def model_id(self) -> str:
        return self._model

    def estimate_tokens(self, text: str) -> int:
        return max(1, len(text) // 4)

    def _next(self, turns: list[Turn], system: str) -> MockTurn | None:
        self.systems.append(system)
        self.histories.append(list(turns))
        if self._turn_index >= len(self._turns):
            return None
        turn = self._turns[self._turn_index]
        self._turn_index += 1
        return turn

    async def stream(
        self,
        turns: list[Turn],
        tools: list[ToolDef],
        system: str,
        max_tokens: int,
    ) -> AsyncIterator[StreamEvent]:
        """Yield scripted StreamEvents for the current turn."""
        turn = self._next(turns, system)
        if turn is None:
            yield StreamEvent(
                type="message_end", stop_reason="end_turn",
                usage={"input_tokens": 10, "output_tokens": 5},
            )
            return

        if turn.text:
            yield StreamEvent(type="text_delta", text=turn.text)

        for tu in turn.tool_uses:
            yield StreamEvent(type="tool_use_start", tool_use_id=tu["id"], tool_name=tu["name"])
            yield StreamEvent(type="tool_use_delta", tool_args_json=json.dumps(tu.get("args", {})))
            yield StreamEvent(type="tool_use_end")

        yield StreamEvent(
            type="message_end",
            stop_reason="tool_use" if turn.tool_uses else "end_turn",
            usage={"input_tokens": turn.input_tokens, "output_tokens": turn.output_tokens},
            cost=turn.cost,
        )

    async def complete(
        self,
        turns: list[Turn],
        tools: list[ToolDef],
        system: str,
        max_tokens: int,
    ) -> Turn:
        self.complete_calls += 1
        turn = self._next(turns, system)
        if turn is None:
            return Turn(role="assistant")
        contents: list[Any] = []
        if turn.text:
            contents.append(TextContent(turn.text))
        contents.extend(
            ToolRequest(tu["id"], tu["name"], tu.get("args", {})) for tu in turn.tool_uses
        )
        return Turn(
            role="assistant",
            contents=tuple(contents),
            input_tokens=turn.input_tokens,
            output_tokens=turn.output_tokens,
            cost=turn.cost or 0.0,
        )


class FailingStreamProvider(MockProvider):
    """Streaming always raises ConnectionError; optionally the blocking call too."""

    def __init__(self, turns: list[MockTurn] | None = None, *, fail_complete: bool = False, **kwargs: Any):
        super().__init__(turns, **kwargs)
        self._fail_complete = fail_complete
        self.stream_calls = 0

    async def stream(
        self,
        turns: list[Turn],
        tools: list[ToolDef],
        system: str,
        max_tokens: int,
    ) -> AsyncIterator[StreamEvent]:
        self.stream_calls += 1
        raise ConnectionError(f"Simulated stream failure #{self.stream_calls}")
        yield  # pragma: no cover

    async def complete(
        self,
        turns: list[Turn],
        tools: list[ToolDef],
        system: str,
        max_tokens: int,
    ) -> Turn:
        if self._fail_complete:
            raise ConnectionError("Simulated blocking failure")
        return await super().complete(turns, tools, system, max_tokens)


def make_tool(
    name: str,
    result: str = "ok",
    *,
    annotations: ToolAnnotations | None = None,
    calls: list[dict[str, Any]] | None = None,
) -> FunctionTool:
    """A scripted tool that records its arguments and returns *result*."""

    def fn(**kwargs: Any) -> str:
        if calls is not None:
            calls.append(kwargs)
        return result

    return FunctionTool(
        fn,
        name=name,
        description=f"Scripted {name}",
        parameters=(ToolParam(name="path", type="string", description="Path", required=False),),
        annotations=annotations,
    )


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """Create a temporary project directory with sample files."""
    (tmp_path / "README.md").write_text("# Test Project\n\nA test project.\n")
    src = tmp_path / "src"
    src.mkdir()
    (src / "utils.py").write_text("def add(a, b):\n    return a + b\n")
    return tmp_path


@pytest.fixture
def mock_provider() -> MockProvider:
    """A simple mock provider that responds with text."""
    return MockProvider(turns=[MockTurn(text="I can help with that.")])
