"""Tests for the metrics module."""

from __future__ import annotations

from pathlib import Path

import pytest

from steward.core.agent import Agent
from steward.observability.metrics import (
    record_hook_error,
    record_provider_latency,
    record_stop,
    record_tool_call,
    record_turn,
    reset_instruments,
    timed_operation,
)
from steward.observability import metrics as metrics_module
from tests.conftest import MockProvider, MockTurn, make_tool


class TestMetrics:
    """Recording never fails, with or without an OpenTelemetry SDK."""

    def test_metric_functions(self) -> None:
        record_turn(100, 50, 0.01, provider="test", model="test")
        record_tool_call("read_file", is_error=False)
        record_tool_call("run_bash", is_error=True, denied=True)
        record_hook_error("PreToolUse")
        record_stop("complete")
        record_provider_latency(100.0, provider="test", model="test")

    def test_timed_operation(self) -> None:
        with timed_operation(provider="test", model="test"):
            pass

    def test_timed_operation_records_on_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        seen: list[float] = []
        monkeypatch.setattr(
            metrics_module, "record_provider_latency",
            lambda latency_ms, **kw: seen.append(latency_ms),
        )
        with pytest.raises(RuntimeError):
            with timed_operation(provider="test"):
                raise RuntimeError("provider down")
        assert len(seen) == 1 and seen[0] >= 0

    def test_reset_instruments(self) -> None:
        reset_instruments()
        record_turn(10, 5, provider="test", model="test")
        reset_instruments()
        assert metrics_module._meter is None

    @pytest.mark.asyncio
    async def test_loop_records_outcomes(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        tools: list[tuple[str, bool, bool]] = []
        stops: list[str] = []
        monkeypatch.setattr(
            "steward.core.loop.record_tool_call",
            lambda name, *, is_error=False, denied=False: tools.append((name, is_error, denied)),
        )
        monkeypatch.setattr("steward.core.loop.record_stop", stops.append)
        provider = MockProvider([
            MockTurn(tool_uses=[
                {"id": "a", "name": "read_file", "args": {}},
                {"id": "b", "name": "run_bash", "args": {}},
            ]),
            MockTurn(text="done"),
        ])
        agent = Agent(provider, [make_tool("read_file")], working_dir=tmp_path)
        await agent.run_sync("x")
        assert tools == [("read_file", False, False), ("run_bash", True, True)]
        assert stops == ["complete"]
