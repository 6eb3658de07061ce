"""Conversation state and JSONL session persistence."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from steward.errors import SessionLoadError, SessionSaveError
from steward.types.messages import Content, TextContent, ToolRequest, ToolResult, Turn

logger = logging.getLogger(__name__)

SESSION_FORMAT_VERSION = 1

_REQUIRED_METADATA = ("system_prompt", "working_dir")


class Session:
    """The conversation an agent carries between runs.

    Holds the turn history, the current system prompt and the agent's
    cumulative usage. Only the execution loop and compaction change it.
    """

    def __init__(self, system_prompt: str = "", working_dir: str | Path = ".") -> None:
        self.system_prompt = system_prompt
        self.working_dir = Path(working_dir)
        self._turns: list[Turn] = []
        self.total_cost = 0.0
        self.total_input_tokens = 0
        self.total_output_tokens = 0
        self.compact_count = 0

    @property
    def turns(self) -> list[Turn]:
        return list(self._turns)

    def add_turn(self, turn: Turn) -> None:
        self._turns.append(turn)

    def record_usage(self, turn: Turn) -> None:
        self.total_cost += turn.cost
        self.total_input_tokens += turn.input_tokens
        self.total_output_tokens += turn.output_tokens

    def set_turns(self, turns: list[Turn]) -> None:
        """Replace the history (used after compaction)."""
        self._turns = list(turns)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, path: str | Path, *, provider: dict[str, str] | None = None) -> Path:
        """Write the session as JSONL: a metadata line, then one line per turn."""
        from steward import __version__

        path = Path(path)
        metadata = {
            "format_version": SESSION_FORMAT_VERSION,
            "steward_version": __version__,
            "saved_at": datetime.now(UTC).isoformat(),
            "system_prompt": self.system_prompt,
            "working_dir": str(self.working_dir),
            "provider": provider or {},
            "total_cost": self.total_cost,
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "compact_count": self.compact_count,
        }
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(json.dumps({"type": "metadata", "data": metadata}) + "\n")
                for turn in self._turns:
                    f.write(json.dumps({"type": "turn", "data": turn_to_dict(turn)}, default=str) + "\n")
        except OSError as exc:
            raise SessionSaveError(f"Failed to write session: {exc}", path=str(path)) from exc
        return path

    def load(self, path: str | Path) -> None:
        """Replace this session's state with the contents of *path*."""
        from steward import __version__

        path = Path(path)
        if not path.exists():
            raise SessionLoadError(f"Session file not found: {path}", path=str(path))

        metadata: dict[str, Any] | None = None
        turns: list[Turn] = []
        try:
            with open(path, encoding="utf-8") as f:
                for lineno, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    entry = json.loads(line)
                    if entry.get("type") == "metadata":
                        metadata = entry.get("data", {})
                    elif entry.get("type") == "turn":
                        turns.append(turn_from_dict(entry["data"]))
                    else:
                        raise ValueError(f"unknown entry on line {lineno}")
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise SessionLoadError(f"Failed to load session file: {exc}", path=str(path)) from exc

        if metadata is None:
            raise SessionLoadError("Invalid session file - no metadata line", path=str(path))
        missing = [name for name in _REQUIRED_METADATA if name not in metadata]
        if missing:
            raise SessionLoadError(
                f"Invalid session file - missing required fields: {', '.join(missing)}",
                path=str(path),
            )

        saved_version = metadata.get("steward_version")
        if saved_version and saved_version != __version__:
            logger.warning(
                "Session %s was saved by steward %s (current %s); it may not load cleanly",
                path, saved_version, __version__,
            )

        self.system_prompt = metadata["system_prompt"] or ""
        self.working_dir = Path(metadata["working_dir"])
        self.total_cost = float(metadata.get("total_cost", 0.0))
        self.total_input_tokens = int(metadata.get("total_input_tokens", 0))
        self.total_output_tokens = int(metadata.get("total_output_tokens", 0))
        self.compact_count = int(metadata.get("compact_count", 0))
        self._turns = turns


def turn_to_dict(turn: Turn) -> dict[str, Any]:
    contents: list[dict[str, Any]] = []
    for item in turn.contents:
        match item:
            case TextContent(text=text):
                contents.append({"type": "text", "text": text})
            case ToolRequest(id=id_, name=name, args=args):
                contents.append({"type": "tool_request", "id": id_, "name": name, "args": dict(args)})
            case ToolResult(request_id=request_id, value=value, error=error):
                contents.append({
                    "type": "tool_result", "request_id": request_id, "value": value, "error": error,
                })
    return {
        "role": turn.role,
        "contents": contents,
        "input_tokens": turn.input_tokens,
        "output_tokens": turn.output_tokens,
        "cost": turn.cost,
    }


def turn_from_dict(data: dict[str, Any]) -> Turn:
    contents: list[Content] = []
    for item in data.get("contents", []):
        match item.get("type"):
            case "text":
                contents.append(TextContent(item["text"]))
            case "tool_request":
                contents.append(ToolRequest(item["id"], item["name"], item.get("args", {})))
            case "tool_result":
                contents.append(ToolResult(item["request_id"], item.get("value"), item.get("error")))
            case other:
                raise ValueError(f"unknown content type {other!r}")
    role = data["role"]
    if role not in ("user", "assistant", "system"):
        raise ValueError(f"invalid role {role!r}")
    return Turn(
        role=role,
        contents=tuple(contents),
        input_tokens=int(data.get("input_tokens", 0)),
        output_tokens=int(data.get("output_tokens", 0)),
        cost=float(data.get("cost", 0.0)),
    )
