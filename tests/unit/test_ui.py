"""Tests for steward.ui.console: Rich rendering of agent events."""

from __future__ import annotations

from io import StringIO
from pathlib import Path

import pytest
from rich.console import Console

from steward.core.agent import Agent
from steward.types.events import (
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
from steward.types.messages import Turn
from steward.ui.console import EventPrinter, print_result, tool_detail
from tests.conftest import MockProvider, MockTurn, make_tool


class TestEventPrinter:
    def _make_printer(self, **kwargs):
        """Create an EventPrinter with captured console output."""
        stderr_buf = StringIO()
        stdout_buf = StringIO()
        printer = EventPrinter(
            console=Console(file=stderr_buf, width=120),
            stdout=Console(file=stdout_buf, width=120),
            **kwargs,
        )
        return printer, stderr_buf, stdout_buf

    def test_streamed_text_goes_to_stdout(self):
        printer, stderr_buf, stdout_buf = self._make_printer()
        printer.print_event(TextChunk(text="Hel"))
        printer.print_event(TextChunk(text="lo"))
        printer.print_event(TextComplete(text="Hello"))
        assert stdout_buf.getvalue() == "Hello\n"
        assert stderr_buf.getvalue() == ""

    def test_complete_text_without_chunks(self):
        printer, _, stdout_buf = self._make_printer()
        printer.print_event(TextComplete(text="Whole answer"))
        assert stdout_buf.getvalue() == "Whole answer\n"

    def test_shell_tool_start(self):
        printer, stderr_buf, _ = self._make_printer()
        printer.print_event(ToolStart(id="t1", name="run_bash", args={"command": "ls -la"}))
        output = stderr_buf.getvalue()
        assert "run_bash" in output
        assert "$ ls -la" in output

    def test_tool_error(self):
        printer, stderr_buf, _ = self._make_printer()
        printer.print_event(ToolEnd(id="t1", name="write_file", content="not allowed", is_error=True))
        assert "✗ not allowed" in stderr_buf.getvalue()

    def test_short_success_is_quiet(self):
        printer, stderr_buf, _ = self._make_printer()
        printer.print_event(ToolEnd(id="t1", name="read_file", content="short"))
        assert stderr_buf.getvalue() == ""
        printer.print_event(ToolEnd(id="t2", name="read_file", content="x" * 400))
        assert "…" in stderr_buf.getvalue()

    def test_warning(self):
        printer, stderr_buf, _ = self._make_printer()
        printer.print_event(WarningEvent(kind="cost", message="90% of budget used"))
        assert "! cost: 90% of budget used" in stderr_buf.getvalue()

    def test_turns_only_when_enabled(self):
        printer, stderr_buf, _ = self._make_printer()
        event = TurnComplete(turn=Turn(role="assistant", cost=0.0123), turn_number=1)
        printer.print_event(event)
        assert stderr_buf.getvalue() == ""
        printer, stderr_buf, _ = self._make_printer(show_turns=True)
        printer.print_event(event)
        assert "turn 1" in stderr_buf.getvalue()
        assert "$0.0123" in stderr_buf.getvalue()

    def test_stop_summary(self):
        printer, stderr_buf, _ = self._make_printer()
        printer.print_event(StartEvent(task="Fix tests"))
        printer.print_event(StopEvent(
            reason=StopReason.COST_LIMIT, turns=3, cost=1.25,
            input_tokens=1200, output_tokens=300, error=None,
        ))
        output = stderr_buf.getvalue()
        assert "Fix tests" in output
        assert "cost_limit" in output
        assert "1,200 in / 300 out" in output
        assert "$1.2500" in output

    def test_stop_closes_open_stream_line(self):
        printer, _, stdout_buf = self._make_printer()
        printer.print_event(TextChunk(text="partial"))
        printer.print_event(StopEvent(reason=StopReason.ERROR, error="boom"))
        assert stdout_buf.getvalue() == "partial\n"

    @pytest.mark.asyncio
    async def test_consume_run(self, tmp_path: Path):
        provider = MockProvider([
            MockTurn(tool_uses=[{"id": "t1", "name": "read_file", "args": {"path": "notes.md"}}]),
            MockTurn(text="All read."),
        ])
        agent = Agent(provider, [make_tool("read_file")], working_dir=tmp_path)
        printer, stderr_buf, stdout_buf = self._make_printer()
        await printer.consume(agent.run("read notes"))
        assert "notes.md" in stderr_buf.getvalue()
        assert "complete" in stderr_buf.getvalue()
        assert "All read." in stdout_buf.getvalue()


class TestHelpers:
    def test_tool_detail(self):
        assert tool_detail("read_file", {"path": "a.py"}) == "a.py"
        assert tool_detail("edit_file", {"file_path": "b.py"}) == "b.py"
        assert tool_detail("run_bash", {"command": "x" * 200}).endswith("...")
        assert tool_detail("delegate_to_agent", {"agent_name": "researcher", "task": "dig"}) == "[researcher] dig"
        assert tool_detail("custom", {"n": 1}) == ""

    def test_print_result(self):
        buf = StringIO()
        result = RunResult(
            response="Done.", events=(), turns=2, cost=0.5, duration=1.25,
            stop_reason=StopReason.COMPLETE,
        )
        print_result(result, Console(file=buf, width=120))
        output = buf.getvalue()
        assert "complete" in output
        assert "$0.5000" in output
        assert "Done." in output
