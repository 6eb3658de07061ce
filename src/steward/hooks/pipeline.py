"""HookPipeline: ordered, isolated execution of lifecycle hooks."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import re
import shlex
from typing import Any

from steward.errors import HookError
from steward.hooks.isolation import run_isolated
from steward.observability.metrics import record_hook_error
from steward.types.hooks import (
    RESULT_TYPES,
    AnyHook,
    CommandHook,
    Hook,
    HookErrorRecord,
    HookEvent,
    HookResult,
    PreToolUseResult,
)

logger = logging.getLogger(__name__)

HOOK_ERROR_REASON = "hook callback error"

# JSON keys accepted from command hooks, mapped to result fields
_JSON_FIELDS = {
    "permission": "permission",
    "decision": "permission",
    "reason": "reason",
    "continue": "continue_",
    "continue_": "continue_",
    "handled": "handled",
    "summary": "summary",
}


def _as_event(event: HookEvent | str) -> HookEvent:
    return event if isinstance(event, HookEvent) else HookEvent(event)


class HookPipeline:
    """Registers hooks and fires them for lifecycle events.

    ``fire`` runs the matching hooks one at a time in registration order
    and returns the first non-``None`` result. Failures never escape:
    ``PreToolUse`` failures become a deny, other failures are recorded in
    :attr:`errors` and the hook is treated as abstaining.
    """

    def __init__(self, hooks: list[AnyHook] | None = None) -> None:
        self._hooks: list[AnyHook] = []
        self._errors: list[HookErrorRecord] = []
        for hook in hooks or ():
            self.register(hook)

    def register(self, hook: AnyHook) -> None:
        """Add a hook. Its event name and matcher are validated here."""
        _as_event(hook.event)
        if hook.matcher is not None:
            re.compile(hook.matcher)
        if hook.timeout < 0:
            raise ValueError("Hook timeout must be >= 0")
        self._hooks.append(hook)

    @property
    def errors(self) -> list[HookErrorRecord]:
        return list(self._errors)

    def clear_errors(self) -> None:
        self._errors.clear()

    def count(self) -> int:
        return len(self._hooks)

    def hooks_for(self, event: HookEvent | str, tool_name: str | None = None) -> list[AnyHook]:
        """Hooks that would fire for *event* and *tool_name*, in order."""
        event = _as_event(event)
        return [
            hook for hook in self._hooks
            if _as_event(hook.event) is event and self._matches(hook, tool_name)
        ]

    @staticmethod
    def _matches(hook: AnyHook, tool_name: str | None) -> bool:
        if hook.matcher is None:
            return True
        if tool_name is None:
            return False
        return re.search(hook.matcher, tool_name) is not None

    async def fire(
        self, event: HookEvent | str, tool_name: str | None = None, **payload: Any,
    ) -> HookResult | None:
        """Fire hooks for *event*; return the first non-``None`` result."""
        event = _as_event(event)
        kwargs = dict(payload)
        if tool_name is not None:
            kwargs = {"tool_name": tool_name, **kwargs}

        for hook in self.hooks_for(event, tool_name):
            try:
                result = await self._execute(hook, event, kwargs)
                expected = RESULT_TYPES[event]
                if result is not None and not isinstance(result, expected):
                    raise HookError(
                        f"Hook returned {type(result).__name__}, expected {expected.__name__}",
                        hook_event=event.value,
                    )
            except Exception as exc:
                if event is HookEvent.PRE_TOOL_USE:
                    logger.warning("PreToolUse hook failed for %s, denying: %s", tool_name, exc)
                    return PreToolUseResult(permission="deny", reason=HOOK_ERROR_REASON)
                self._record_error(event, tool_name, exc)
                continue

            if result is not None:
                return result
        return None

    def _record_error(self, event: HookEvent, tool_name: str | None, exc: Exception) -> None:
        message = str(exc) or type(exc).__name__
        self._errors.append(HookErrorRecord(event=event, error=message, tool_name=tool_name))
        record_hook_error(event.value)
        logger.warning("%s hook failed%s: %s", event.value,
                       f" for {tool_name}" if tool_name else "", message)

    async def _execute(self, hook: AnyHook, event: HookEvent, kwargs: dict[str, Any]) -> Any:
        match hook:
            case CommandHook():
                return await self._run_command(hook, event, kwargs)
            case Hook(timeout=0):
                result = hook.callback(**kwargs)
                if inspect.isawaitable(result):
                    result = await result
                return result
            case Hook():
                return await run_isolated(
                    hook.callback, kwargs, hook.timeout, event=event.value,
                )
            case _:
                raise HookError(f"Unsupported hook type {type(hook).__name__}")

    # -- Shell command hooks ----------------------------------------------

    @staticmethod
    def _expand_command(command: str, event: HookEvent, kwargs: dict[str, Any]) -> str:
        """Expand template variables in the hook command."""
        context = kwargs.get("context") or {}
        tool_input = kwargs.get("tool_input") or {}
        replacements: dict[str, str] = {
            "{tool_name}": kwargs.get("tool_name") or "",
            "{cwd}": str(context.get("working_dir", "")),
            "{event}": event.value,
            "{file_path}": str(tool_input.get("file_path", tool_input.get("path", ""))),
            "{command}": str(tool_input.get("command", "")),
            "{reason}": str(kwargs.get("reason") or ""),
        }

        result = command
        for key, value in replacements.items():
            result = result.replace(key, shlex.quote(value) if value else "''")
        return result

    async def _run_command(
        self, hook: CommandHook, event: HookEvent, kwargs: dict[str, Any],
    ) -> HookResult | None:
        command = self._expand_command(hook.command, event, kwargs)
        cwd = (kwargs.get("context") or {}).get("working_dir") or None

        proc = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=hook.timeout or None)
        except TimeoutError:
            proc.kill()
            await proc.wait()
            raise HookError(
                f"Hook timed out after {hook.timeout}s: {command}", hook_event=event.value,
            ) from None

        if proc.returncode != 0:
            error = stderr.decode("utf-8", errors="replace").strip()
            raise HookError(
                f"Hook command exited with {proc.returncode}: {error or command}",
                hook_event=event.value,
            )

        output = stdout.decode("utf-8", errors="replace").strip()
        if not output.startswith("{"):
            return None
        try:
            data = json.loads(output)
        except json.JSONDecodeError as exc:
            raise HookError(f"Hook printed invalid JSON: {exc}", hook_event=event.value) from exc
        return self._result_from_json(event, data)

    @staticmethod
    def _result_from_json(event: HookEvent, data: dict[str, Any]) -> HookResult:
        result_type = RESULT_TYPES[event]
        allowed = set(result_type.__dataclass_fields__)
        fields = {
            _JSON_FIELDS[key]: value
            for key, value in data.items()
            if key in _JSON_FIELDS and _JSON_FIELDS[key] in allowed
        }
        return result_type(**fields)
