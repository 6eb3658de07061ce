"""Ready-made hooks for common needs.

All of them run inline (``timeout=0``). The PreToolUse hooks return
``None`` for calls they have no objection to, so later hooks still run.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from steward.permissions.paths import is_path_within
from steward.types.hooks import Hook, HookEvent, PostToolUseResult, PreToolUseResult

logger = logging.getLogger(__name__)

DANGEROUS_SHELL_PATTERNS: tuple[str, ...] = (
    r"rm\s+-rf",
    r"sudo",
    r"chmod\s+777",
    r"mkfs",
    r"dd\s+if=",
    r">\s*/dev/",
)

SHELL_TOOL_MATCHER = r"(?i)^(tool_)?(run_bash|bash)$"
WRITE_TOOL_MATCHER = r"(?i)^(tool_)?(write_file|edit_file)$"


def log_tools_hook(verbose: bool = False) -> Hook:
    """Log every tool outcome at INFO (failures at WARNING)."""

    def callback(tool_name: str, tool_result: Any, tool_error: str | None, context: dict) -> PostToolUseResult:
        if tool_error is not None:
            logger.warning("Tool %s failed: %s", tool_name, tool_error)
        else:
            logger.info("Tool %s completed", tool_name)
            if verbose and tool_result is not None:
                preview = str(tool_result)
                if len(preview) > 100:
                    preview = preview[:97] + "..."
                logger.info("Result: %s", preview)
        return PostToolUseResult()

    return Hook(event=HookEvent.POST_TOOL_USE, callback=callback, timeout=0)


def block_dangerous_shell_hook(patterns: Sequence[str] = DANGEROUS_SHELL_PATTERNS) -> Hook:
    """Deny shell commands matching any of *patterns* (case-insensitive)."""
    combined = re.compile("|".join(f"(?:{p})" for p in patterns), re.IGNORECASE)

    def callback(tool_name: str, tool_input: dict, context: dict) -> PreToolUseResult | None:
        command = str(tool_input.get("command") or "")
        if combined.search(command):
            return PreToolUseResult(
                permission="deny",
                reason="Blocked: potentially dangerous command pattern detected",
            )
        return None

    return Hook(
        event=HookEvent.PRE_TOOL_USE, callback=callback, matcher=SHELL_TOOL_MATCHER, timeout=0,
    )


def limit_file_writes_hook(allowed_dir: str | Path) -> Hook:
    """Deny file writes that resolve outside *allowed_dir*."""
    root = str(Path(allowed_dir).resolve())

    def callback(tool_name: str, tool_input: dict, context: dict) -> PreToolUseResult | None:
        path = tool_input.get("path") or tool_input.get("file_path") or ""
        if not path or not is_path_within(path, root, base=context.get("working_dir")):
            return PreToolUseResult(
                permission="deny", reason=f"File writes only allowed in: {root}",
            )
        return None

    return Hook(
        event=HookEvent.PRE_TOOL_USE, callback=callback, matcher=WRITE_TOOL_MATCHER, timeout=0,
    )
