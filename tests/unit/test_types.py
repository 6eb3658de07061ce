"""Tests for the core data types."""

from __future__ import annotations

import dataclasses

import pytest

from steward.errors import BudgetExceededError, ProviderError, TurnLimitError
from steward.types.events import RunResult, StopReason, TextChunk, ToolStart, WarningEvent
from steward.types.hooks import (
    RESULT_TYPES,
    HookEvent,
    PostToolUseResult,
    PreCompactResult,
    PreToolUseResult,
    StopResult,
)
from steward.types.messages import TextContent, ToolRequest, ToolResult, Turn


class TestTurn:
    def test_user_helper(self):
        turn = Turn.user("hello")
        assert turn.role == "user"
        assert turn.text == "hello"
        assert not turn.has_tool_requests

    def test_accessors(self):
        turn = Turn(role="assistant", contents=(
            TextContent("a"), ToolRequest("t1", "read_file"), TextContent("b"),
        ))
        assert turn.text == "ab"
        assert turn.tool_requests == (ToolRequest("t1", "read_file"),)
        assert turn.has_tool_requests

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            Turn.user("x").role = "assistant"  # type: ignore[misc]

    def test_tool_result_content(self):
        assert ToolResult("t1", value="ok").content == "ok"
        assert ToolResult("t1", value=None).content == ""
        failed = ToolResult("t1", error="bad")
        assert failed.is_error and failed.content == "bad"


class TestRunResult:
    def _result(self, reason: StopReason, **kwargs) -> RunResult:
        return RunResult(response=None, events=(), stop_reason=reason, **kwargs)

    def test_raise_for_stop(self):
        self._result(StopReason.COMPLETE).raise_for_stop()
        self._result(StopReason.HOOK_REQUESTED_STOP).raise_for_stop()
        with pytest.raises(BudgetExceededError) as exc_info:
            self._result(StopReason.COST_LIMIT, cost=1.5).raise_for_stop()
        assert exc_info.value.current_cost == 1.5
        with pytest.raises(TurnLimitError):
            self._result(StopReason.MAX_TURNS, turns=5).raise_for_stop()
        with pytest.raises(ProviderError):
            self._result(StopReason.ERROR, error=ProviderError("down")).raise_for_stop()

    def test_event_helpers(self):
        result = RunResult(response="x", events=(
            TextChunk(text="a"),
            ToolStart(id="t1", name="read_file"),
            WarningEvent(kind="stall", message="m"),
            WarningEvent(kind="cost", message="m"),
        ))
        assert result.text_chunks() == ["a"]
        assert [c.name for c in result.tool_calls()] == ["read_file"]
        assert len(result.warnings()) == 2
        assert [w.kind for w in result.warnings("cost")] == ["cost"]
        assert result.is_success


class TestHookResults:
    def test_every_event_has_a_result_type(self):
        assert set(RESULT_TYPES) == set(HookEvent)

    def test_stop_requested(self):
        assert PreToolUseResult(continue_=False).stop_requested
        assert not PreToolUseResult(permission="deny").stop_requested
        assert PostToolUseResult(continue_=False).stop_requested
        assert not StopResult().stop_requested
        assert not PreCompactResult(continue_=False).stop_requested
