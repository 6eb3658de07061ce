"""Base provider: retry with back-off, token estimates and tool schemas."""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

from steward.types.messages import Content, TextContent, ToolRequest, Turn
from steward.types.providers import StreamEvent
from steward.types.tools import ToolDef, ToolParam

logger = logging.getLogger(__name__)

# Rate limits and server overload
_RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 529})
_MAX_RETRIES: int = 3
_BACKOFF_BASE: float = 1.0  # seconds; doubled each retry


def _is_retryable(exc: BaseException) -> bool:
    """Return True when *exc* is a transient error worth retrying."""
    if type(exc).__name__ in {"RateLimitError", "OverloadedError", "APIConnectionError"}:
        return True
    status_code: int | None = getattr(exc, "status_code", None)
    return status_code is not None and status_code in _RETRYABLE_STATUS_CODES


class BaseProvider(ABC):
    """Abstract base class for provider adapters.

    Sub-classes set :attr:`name` and implement :meth:`stream`. The default
    :meth:`complete` drains :meth:`stream` into a single assistant
    :class:`Turn`; adapters with a real non-streaming endpoint override it.

    Parameters
    ----------
    model:
        The model identifier (e.g. ``"claude-sonnet-4-6"``).
    """

    name: str = "base"

    def __init__(self, model: str) -> None:
        self._model = model

    @property
    def model_id(self) -> str:
        return self._model

    def estimate_tokens(self, text: str) -> int:
        """Rough token count, about four characters per token.

        Good enough for context-window budgeting. Never use it for billing.

        Examples
        --------
        >>> provider.estimate_tokens("Hello, world!")
        3
        """
        return max(0, len(text) // 4)

    @abstractmethod
    def stream(
        self,
        turns: list[Turn],
        tools: list[ToolDef],
        system: str,
        max_tokens: int,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a completion, yielding :class:`StreamEvent` objects.

        Parameters
        ----------
        turns:
            Conversation history, oldest first.
        tools:
            Tool definitions the model may call.
        system:
            System prompt, passed outside the message list.
        max_tokens:
            Hard upper bound on generated tokens.
        """
        ...

    async def complete(
        self,
        turns: list[Turn],
        tools: list[ToolDef],
        system: str,
        max_tokens: int,
    ) -> Turn:
        """Blocking completion built on :meth:`stream`."""
        text_parts: list[str] = []
        requests: list[ToolRequest] = []
        current: dict[str, str] | None = None
        usage: dict[str, int] = {}
        cost: float | None = None

        async for event in self.stream(turns, tools, system, max_tokens):
            match event.type:
                case "text_delta":
                    text_parts.append(event.text or "")
                case "tool_use_start":
                    current = {"id": event.tool_use_id or "", "name": event.tool_name or "", "args": ""}
                case "tool_use_delta" if current is not None:
                    current["args"] += event.tool_args_json or ""
                case "tool_use_end" if current is not None:
                    args = json.loads(current["args"]) if current["args"] else {}
                    requests.append(ToolRequest(current["id"], current["name"], args))
                    current = None
                case "message_end":
                    usage = event.usage or {}
                    cost = event.cost

        contents: list[Content] = []
        if text_parts:
            contents.append(TextContent("".join(text_parts)))
        contents.extend(requests)
        return Turn(
            role="assistant",
            contents=tuple(contents),
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
            cost=cost or 0.0,
        )

    # ------------------------------------------------------------------
    # Helpers for sub-classes
    # ------------------------------------------------------------------

    async def _retry_with_backoff(self, coro_fn: Any, /, *args: Any, **kwargs: Any) -> Any:
        """Await ``coro_fn(*args, **kwargs)`` with exponential back-off.

        Up to :data:`_MAX_RETRIES` extra attempts are made for errors that
        :func:`_is_retryable` accepts. Anything else is raised at once.
        """
        delay = _BACKOFF_BASE
        for attempt in range(1, _MAX_RETRIES + 2):
            try:
                return await coro_fn(*args, **kwargs)
            except Exception as exc:
                if not _is_retryable(exc) or attempt > _MAX_RETRIES:
                    raise
                logger.warning(
                    "Transient error on attempt %d/%d (%s). Retrying in %.1fs.",
                    attempt, _MAX_RETRIES + 1, type(exc).__name__, delay,
                )
                await asyncio.sleep(delay)
                delay *= 2.0
        raise RuntimeError("Unexpected state in _retry_with_backoff")  # pragma: no cover

    def _make_tool_defs(self, tools: list[ToolDef]) -> list[dict[str, Any]]:
        """Convert :class:`ToolDef` objects into JSON-Schema tool dicts.

        Each dict has ``name``, ``description`` and ``input_schema`` keys.
        """
        result: list[dict[str, Any]] = []
        for tool in tools:
            properties = {p.name: self._param_to_schema(p) for p in tool.parameters}
            schema: dict[str, Any] = {"type": "object", "properties": properties}
            required = [p.name for p in tool.parameters if p.required]
            if required:
                schema["required"] = required
            result.append(
                {"name": tool.name, "description": tool.description, "input_schema": schema}
            )
        return result

    @staticmethod
    def _param_to_schema(param: ToolParam) -> dict[str, Any]:
        prop: dict[str, Any] = {"type": param.type, "description": param.description}
        if param.enum is not None:
            prop["enum"] = list(param.enum)
        if param.default is not None:
            prop["default"] = param.default
        if param.type == "array":
            prop["items"] = param.items if param.items is not None else {"type": "string"}
        return prop
