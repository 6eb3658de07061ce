"""PermissionGate: decides whether a tool call may run.

Evaluation order, first match wins:

1. Deny-list (beats the allow-list and bypass mode)
2. BYPASS mode
3. Allow-list (the permission-prompt tool is always a member)
4. READ_ONLY mode: annotations first, then static name classes
5. ``can_use_tool`` callback (fails closed)
6. Per-capability rules, then annotations for unknown tools
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from steward.permissions.paths import has_path_traversal, is_path_within
from steward.permissions.policy import Policy
from steward.permissions.results import Allow, Deny, PermissionResult
from steward.permissions.tools import (
    MUTATING_TOOLS,
    ToolClass,
    classify,
    matches_any,
    normalize_tool_name,
)
from steward.types.config import PermissionMode

logger = logging.getLogger(__name__)

CALLBACK_ERROR_REASON = "Permission callback error: denied by default"

_FLAG_DENIALS: dict[ToolClass, tuple[str, str]] = {
    ToolClass.FILE_READ: ("file_read", "File reading is not allowed"),
    ToolClass.SHELL: ("shell", "Shell command execution is not allowed"),
    ToolClass.CODE_EXEC: ("code_exec", "Code execution is not allowed"),
    ToolClass.WEB: ("web", "Web access is not allowed"),
    ToolClass.INSTALL: ("install_packages", "Package installation is not allowed"),
}


def _hint(annotations: Any, name: str) -> bool:
    """Read an annotation flag from a ToolAnnotations or a plain mapping."""
    if annotations is None:
        return False
    if isinstance(annotations, Mapping):
        value = annotations.get(name, annotations.get(f"{name}_hint"))
    else:
        value = getattr(annotations, name, None)
    return value is True


class PermissionGate:
    """Evaluates tool calls against an immutable :class:`Policy`.

    ``check`` has no side effects beyond debug logging, so repeated calls
    with the same arguments give equal results.
    """

    def __init__(self, policy: Policy | None = None) -> None:
        self._policy = policy or Policy()

    @property
    def policy(self) -> Policy:
        return self._policy

    def check(
        self,
        tool_name: str,
        tool_input: Mapping[str, Any] | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> PermissionResult:
        result = self._evaluate(tool_name, tool_input or {}, context or {})
        logger.debug("Permission %s for %s", type(result).__name__.lower(), tool_name)
        return result

    def _evaluate(
        self, tool_name: str, tool_input: Mapping[str, Any], context: Mapping[str, Any],
    ) -> PermissionResult:
        policy = self._policy
        annotations = context.get("tool_annotations")

        # Checked before the permission-prompt exemption
        if matches_any(tool_name, policy.deny_tools):
            return Deny(f"Tool '{tool_name}' is on the deny list")

        if policy.mode is PermissionMode.BYPASS:
            return Allow()

        if policy.allow_tools is not None and not self._is_prompt_tool(tool_name):
            if not matches_any(tool_name, policy.allow_tools):
                return Deny(f"Tool '{tool_name}' is not on the allow list")

        if policy.mode is PermissionMode.READ_ONLY:
            if _hint(annotations, "read_only"):
                return Allow()
            if _hint(annotations, "destructive"):
                return Deny("Permission denied: tool is destructive and read-only mode is active")
            if normalize_tool_name(tool_name) in MUTATING_TOOLS:
                return Deny("Permission denied: read-only mode is active")
            return Allow()

        if policy.can_use_tool is not None:
            try:
                result = policy.can_use_tool(tool_name, dict(tool_input), dict(context))
            except Exception as exc:
                logger.warning("can_use_tool raised for %s: %s", tool_name, exc)
                return Deny(CALLBACK_ERROR_REASON)
            if not isinstance(result, Allow | Deny):
                logger.warning(
                    "can_use_tool returned %s for %s, expected Allow or Deny",
                    type(result).__name__, tool_name,
                )
                return Deny(CALLBACK_ERROR_REASON)
            return result

        return self._check_capability(tool_name, tool_input, context, annotations)

    def _is_prompt_tool(self, tool_name: str) -> bool:
        prompt_tool = self._policy.permission_prompt_tool
        return prompt_tool is not None and matches_any(tool_name, (prompt_tool,))

    def _check_capability(
        self,
        tool_name: str,
        tool_input: Mapping[str, Any],
        context: Mapping[str, Any],
        annotations: Any,
    ) -> PermissionResult:
        policy = self._policy
        tool_class = classify(tool_name)

        match tool_class:
            case ToolClass.FILE_WRITE:
                return self._check_write(tool_input, context)
            case None:
                pass
            case _:
                flag, reason = _FLAG_DENIALS[tool_class]
                return Allow() if getattr(policy, flag) else Deny(reason)

        # Unknown tool: fall back to declared annotations
        if _hint(annotations, "destructive") and not policy.writes_enabled and not policy.shell:
            return Deny("Tool is marked as destructive and write operations are disabled")
        if _hint(annotations, "read_only"):
            return Allow()
        if _hint(annotations, "open_world") and not policy.web:
            return Deny("Tool can access external resources but web access is not allowed")
        return Allow()

    def _check_write(
        self, tool_input: Mapping[str, Any], context: Mapping[str, Any],
    ) -> PermissionResult:
        policy = self._policy
        accept_edits = policy.mode is PermissionMode.ACCEPT_EDITS
        if not policy.writes_enabled and not accept_edits:
            return Deny("File writing is not allowed")

        root = policy.write_root
        if root is None:
            return Allow()

        path = tool_input.get("path", tool_input.get("file_path"))
        if path is None:
            return Allow()
        if not isinstance(path, str) or has_path_traversal(path):
            return Deny("Path traversal patterns are not allowed in file paths")
        if not is_path_within(path, root, base=context.get("working_dir")):
            return Deny(f"File writing is only allowed in: {root}")
        return Allow()
