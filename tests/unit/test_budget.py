"""Tests for steward.core.budget and steward.core.stall."""

from __future__ import annotations

import pytest

from steward.core.budget import BudgetTracker
from steward.core.stall import StallDetector
from steward.types.events import StopReason
from steward.types.messages import TextContent, ToolRequest, Turn


def _assistant(text: str = "", *requests: ToolRequest) -> Turn:
    contents = ((TextContent(text),) if text else ()) + requests
    return Turn(role="assistant", contents=contents)


class TestBudgetTracker:
    def test_counters_are_monotonic(self):
        budget = BudgetTracker(max_turns=10)
        budget.start_run()
        seen = []
        for cost in (0.1, 0.0, -5.0, 0.2):
            snapshot = budget.record_turn(cost, input_tokens=10, output_tokens=-3)
            seen.append((snapshot.turns_used, snapshot.cost_used))
        assert [t for t, _ in seen] == [1, 2, 3, 4]
        costs = [c for _, c in seen]
        assert costs == sorted(costs)
        assert budget.snapshot().input_tokens == 40
        assert budget.snapshot().output_tokens == 0

    def test_turn_limit(self):
        budget = BudgetTracker(max_turns=2)
        budget.start_run()
        budget.record_turn()
        assert not budget.check().breached
        budget.record_turn()
        assert budget.check().stop_reason is StopReason.MAX_TURNS

    def test_cost_limit_takes_precedence(self):
        budget = BudgetTracker(max_turns=1, max_cost_usd=1.0)
        budget.start_run()
        budget.record_turn(1.5)
        assert budget.check().stop_reason is StopReason.COST_LIMIT

    def test_warning_fires_once_at_ninety_percent(self):
        budget = BudgetTracker(max_cost_usd=1.0)
        budget.start_run()
        budget.record_turn(0.5)
        assert not budget.check().warn
        budget.record_turn(0.45)
        assert budget.check().warn
        assert not budget.check().warn
        budget.record_turn(0.01)
        assert not budget.check().warn

    def test_start_run_resets_and_overrides(self):
        budget = BudgetTracker(max_turns=5, max_cost_usd=2.0)
        budget.start_run(max_turns=1)
        budget.record_turn(1.9)
        assert budget.check().warn
        assert budget.check().stop_reason is StopReason.MAX_TURNS
        budget.start_run()
        snapshot = budget.snapshot()
        assert snapshot.turns_used == 0
        assert snapshot.max_turns == 5
        assert snapshot.cost_remaining == 2.0
        budget.record_turn(1.9)
        assert budget.check().warn

    def test_unlimited(self):
        budget = BudgetTracker(max_turns=None)
        budget.start_run()
        for _ in range(100):
            budget.record_turn(10.0)
        assert not budget.check().breached
        assert budget.snapshot().cost_remaining is None


class TestStallDetector:
    def test_window_must_be_at_least_two(self):
        with pytest.raises(ValueError):
            StallDetector(window=1)

    def test_identical_text_is_a_stall(self):
        detector = StallDetector()
        assert not detector.observe(_assistant("Let me check"))
        assert detector.observe(_assistant("  let me   CHECK "))

    def test_different_tool_calls_are_progress(self):
        detector = StallDetector()
        detector.observe(_assistant("Reading", ToolRequest("1", "read_file", {"path": "a"})))
        assert not detector.observe(_assistant("Reading", ToolRequest("2", "read_file", {"path": "b"})))
        # Request ids do not matter, only name and arguments
        assert detector.observe(_assistant("Reading", ToolRequest("3", "read_file", {"path": "b"})))

    def test_empty_text_never_stalls(self):
        detector = StallDetector()
        call = ToolRequest("1", "list_files", {})
        detector.observe(_assistant("", call))
        assert not detector.observe(_assistant("", call))

    def test_larger_window_and_reset(self):
        detector = StallDetector(window=3)
        assert not detector.observe(_assistant("same"))
        assert not detector.observe(_assistant("same"))
        detector.reset()
        assert not detector.observe(_assistant("same"))
        assert not detector.observe(_assistant("same"))
        assert detector.observe(_assistant("same"))
