"""Hook context builder for event data."""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from typing import Any

from steward.types.tools import ToolAnnotations


def annotations_dict(annotations: ToolAnnotations | None) -> dict[str, bool | None] | None:
    """Flatten tool annotations so they can cross a process boundary."""
    return asdict(annotations) if annotations is not None else None


def build_hook_context(working_dir: str | Path, **extra: Any) -> dict[str, Any]:
    """Build the ``context`` mapping passed to hook callbacks.

    ``working_dir`` is always present; callers add event-specific keys
    (``tool_annotations``, ``total_turns``, ``cost``, ``provider``, ...).
    """
    context: dict[str, Any] = {"working_dir": str(working_dir)}
    context.update(extra)
    return context
