"""Rich-powered rendering of agent events."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from steward.types.events import (
    AgentEvent,
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

# ── Palette ──────────────────────────────────────────────────────────────────

TOOL_ICONS: dict[str, str] = {
    "run_bash": "█",           # █  shell commands
    "bash": "█",
    "read_file": "▸",          # ▸  file access
    "write_file": "▸",
    "edit_file": "▸",
    "list_files": "○",         # ○  listing
    "delegate_to_agent": "◆",  # ◆  sub-agent
    "web_fetch": "◆",
}
DEFAULT_ICON = "▸"

STYLE_TOOL_NAME = "bold #a78bfa"
STYLE_TOOL_DETAIL = "#7c7c8a"
STYLE_TOOL_SHELL_CMD = "bold #e2e8f0"
STYLE_ERROR_LABEL = "bold #f87171"
STYLE_ERROR_BODY = "#f87171"
STYLE_WARNING = "#fbbf24"
STYLE_RESULT_DIM = "dim #7c7c8a"
STYLE_RESULT_LABEL = "bold #94a3b8"
STYLE_RESULT_VALUE = "#e2e8f0"
STYLE_COST_VALUE = "#34d399"

STOP_STYLES: dict[StopReason, str] = {
    StopReason.COMPLETE: "#34d399",
    StopReason.MAX_TURNS: "#fbbf24",
    StopReason.COST_LIMIT: "#fbbf24",
    StopReason.HOOK_REQUESTED_STOP: "#fbbf24",
    StopReason.ERROR: "#f87171",
    StopReason.CANCELLED: "#94a3b8",
}

_RESULT_PREVIEW = 300


class EventPrinter:
    """Prints agent events to the terminal.

    Assistant text goes to stdout; tool activity, warnings and the run
    summary go to stderr. Pass *show_turns* to print a line per turn.
    """

    def __init__(
        self,
        console: Console | None = None,
        stdout: Console | None = None,
        *,
        show_turns: bool = False,
    ) -> None:
        self._console = console or Console(stderr=True)
        self._stdout = stdout or Console()
        self._show_turns = show_turns
        self._streaming = False

    def print_event(self, event: AgentEvent) -> None:
        match event:
            case StartEvent(task=task):
                self._console.print(Text(f"▶ {task}", style=STYLE_RESULT_LABEL))

            case TextChunk(text=text):
                self._streaming = True
                self._stdout.print(text, end="", highlight=False)

            case TextComplete(text=text):
                if self._streaming:
                    self._stdout.print()
                    self._streaming = False
                elif text:
                    self._stdout.print(text, highlight=False)

            case ToolStart(name=name, args=args):
                self._print_tool_start(name, args)

            case ToolEnd(content=content, is_error=is_error):
                self._print_tool_end(content, is_error)

            case TurnComplete(turn_number=number, turn=turn):
                if self._show_turns:
                    self._console.print(
                        Text(f"  turn {number}  ${turn.cost:.4f}", style=STYLE_RESULT_DIM),
                    )

            case WarningEvent(kind=kind, message=message):
                line = Text(f"  ! {kind}: ", style=STYLE_WARNING)
                line.append(message, style=STYLE_TOOL_DETAIL)
                self._console.print(line)

            case StopEvent() as stop:
                self._print_stop(stop)

    async def consume(self, events: Any) -> None:
        """Print every event of an async iterable (e.g. an ``EventStream``)."""
        async for event in events:
            self.print_event(event)

    # ── Tools ────────────────────────────────────────────────────────────────

    def _print_tool_start(self, name: str, args: Mapping[str, Any]) -> None:
        icon = TOOL_ICONS.get(name, DEFAULT_ICON)
        line = Text()
        line.append(f"  {icon} {name}", style=STYLE_TOOL_NAME)
        detail = tool_detail(name, args)
        if detail:
            style = STYLE_TOOL_SHELL_CMD if name in ("run_bash", "bash") else STYLE_TOOL_DETAIL
            line.append(f"  {detail}", style=style)
        self._console.print(line)

    def _print_tool_end(self, content: str, is_error: bool) -> None:
        # Errors are prominent, success stays quiet unless long
        if is_error:
            label = Text("    ✗ ", style=STYLE_ERROR_LABEL)
            label.append(content[:_RESULT_PREVIEW], style=STYLE_ERROR_BODY)
            self._console.print(label)
        elif len(content) > _RESULT_PREVIEW:
            self._console.print(
                Text(f"    {content[:_RESULT_PREVIEW]}…", style=STYLE_RESULT_DIM),
            )

    # ── Summary ──────────────────────────────────────────────────────────────

    def _print_stop(self, stop: StopEvent) -> None:
        if self._streaming:
            self._stdout.print()
            self._streaming = False
        self._console.print()

        tbl = Table(show_header=False, show_edge=False, show_lines=False, padding=(0, 1))
        tbl.add_column(style=STYLE_RESULT_LABEL, justify="right", no_wrap=True)
        tbl.add_column(style=STYLE_RESULT_VALUE, no_wrap=True)

        tbl.add_row("Stop", Text(stop.reason.value, style=STOP_STYLES[stop.reason]))
        tbl.add_row("Turns", str(stop.turns))
        if stop.input_tokens or stop.output_tokens:
            tbl.add_row("Tokens", f"{stop.input_tokens:,} in / {stop.output_tokens:,} out")
        if stop.cost:
            tbl.add_row("Cost", Text(f"${stop.cost:.4f}", style=STYLE_COST_VALUE))
        if stop.error:
            tbl.add_row("Error", Text(stop.error, style=STYLE_ERROR_BODY))

        self._console.print(Panel(tbl, border_style="#3f3f50", expand=False, padding=(0, 1)))


def tool_detail(name: str, args: Mapping[str, Any]) -> str:
    """One-line summary of a tool call's arguments."""
    if name in ("run_bash", "bash") and "command" in args:
        cmd = str(args["command"])
        return f"$ {cmd}" if len(cmd) <= 120 else f"$ {cmd[:117]}..."
    for key in ("path", "file_path", "url"):
        if key in args:
            return str(args[key])
    if name == "delegate_to_agent":
        task = str(args.get("task", ""))
        snippet = task[:60] + ("…" if len(task) > 60 else "")
        return f"[{args.get('agent_name', '?')}] {snippet}"
    return ""


def print_result(result: RunResult, console: Console | None = None) -> None:
    """Print a :class:`RunResult` summary panel."""
    console = console or Console(stderr=True)
    tbl = Table(show_header=False, show_edge=False, padding=(0, 1))
    tbl.add_column(style=STYLE_RESULT_LABEL, justify="right", no_wrap=True)
    tbl.add_column(style=STYLE_RESULT_VALUE)
    tbl.add_row("Stop", Text(result.stop_reason.value, style=STOP_STYLES[result.stop_reason]))
    tbl.add_row("Turns", str(result.turns))
    tbl.add_row("Cost", Text(f"${result.cost:.4f}", style=STYLE_COST_VALUE))
    tbl.add_row("Duration", f"{result.duration:.1f}s")
    if result.response:
        tbl.add_row("Response", result.response[:_RESULT_PREVIEW])
    console.print(Panel(tbl, border_style="#3f3f50", expand=False, padding=(0, 1)))
