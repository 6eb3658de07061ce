"""Anthropic/Claude provider adapter."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

from steward.providers.base import BaseProvider
from steward.types.messages import Content, TextContent, ToolRequest, ToolResult, Turn
from steward.types.providers import StreamEvent
from steward.types.tools import ToolDef

logger = logging.getLogger(__name__)


class AnthropicProvider(BaseProvider):
    """Provider adapter for Anthropic's Claude models.

    Uses the official ``anthropic`` SDK. Stream events from the SDK are
    translated into :class:`~steward.types.providers.StreamEvent` objects;
    :meth:`complete` uses the non-streaming endpoint.

    Parameters
    ----------
    api_key:
        Anthropic API key. When *None* the SDK reads ``ANTHROPIC_API_KEY``.
    model:
        Model ID to use (default ``"claude-sonnet-4-6"``).
    """

    name = "anthropic"

    def __init__(self, api_key: str | None = None, model: str = "claude-sonnet-4-6") -> None:
        super().__init__(model)
        from anthropic import AsyncAnthropic

        self._client = AsyncAnthropic(api_key=api_key) if api_key else AsyncAnthropic()

    def _request(
        self, turns: list[Turn], tools: list[ToolDef], system: str, max_tokens: int,
    ) -> dict[str, Any]:
        request: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "messages": to_anthropic_messages(turns),
        }
        if system:
            request["system"] = system
        if tools:
            request["tools"] = self._make_tool_defs(tools)
        return request

    async def stream(
        self,
        turns: list[Turn],
        tools: list[ToolDef],
        system: str,
        max_tokens: int = 8096,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a completion from the Anthropic Messages API."""
        request = self._request(turns, tools, system, max_tokens)

        async with self._client.messages.stream(**request) as stream:
            # content_block_stop carries no type, so remember the open block
            current_block_type: str | None = None

            async for event in stream:
                match event.type:
                    case "content_block_start":
                        current_block_type = event.content_block.type
                        if current_block_type == "tool_use":
                            yield StreamEvent(
                                type="tool_use_start",
                                tool_use_id=event.content_block.id,
                                tool_name=event.content_block.name,
                            )
                    case "content_block_delta" if event.delta.type == "text_delta":
                        yield StreamEvent(type="text_delta", text=event.delta.text)
                    case "content_block_delta" if event.delta.type == "input_json_delta":
                        yield StreamEvent(
                            type="tool_use_delta", tool_args_json=event.delta.partial_json,
                        )
                    case "content_block_stop":
                        if current_block_type == "tool_use":
                            yield StreamEvent(type="tool_use_end")
                        current_block_type = None
                    case "message_stop":
                        final_message = await stream.get_final_message()
                        yield StreamEvent(
                            type="message_end",
                            stop_reason=final_message.stop_reason,
                            usage=_usage_dict(final_message.usage),
                        )

    async def complete(
        self,
        turns: list[Turn],
        tools: list[ToolDef],
        system: str,
        max_tokens: int = 8096,
    ) -> Turn:
        """Non-streaming completion, retried on rate limits and overload."""
        request = self._request(turns, tools, system, max_tokens)
        message = await self._retry_with_backoff(self._client.messages.create, **request)

        contents: list[Content] = []
        for block in message.content:
            if block.type == "text":
                contents.append(TextContent(block.text))
            elif block.type == "tool_use":
                contents.append(ToolRequest(block.id, block.name, dict(block.input or {})))
        usage = _usage_dict(message.usage)
        return Turn(
            role="assistant",
            contents=tuple(contents),
            input_tokens=usage["input_tokens"],
            output_tokens=usage["output_tokens"],
        )


def _usage_dict(usage_obj: Any) -> dict[str, int]:
    usage = {
        "input_tokens": usage_obj.input_tokens,
        "output_tokens": usage_obj.output_tokens,
    }
    # Cache fields are absent on some accounts
    cache_read = getattr(usage_obj, "cache_read_input_tokens", 0) or 0
    cache_write = getattr(usage_obj, "cache_creation_input_tokens", 0) or 0
    if cache_read:
        usage["cache_read_tokens"] = cache_read
    if cache_write:
        usage["cache_write_tokens"] = cache_write
    return usage


def to_anthropic_messages(turns: list[Turn]) -> list[dict[str, Any]]:
    """Convert turns to the Anthropic ``messages`` array.

    System turns are skipped (the system prompt travels separately). Tool
    results become ``tool_result`` blocks on a user message, which is what
    the API expects after an assistant ``tool_use``.
    """
    messages: list[dict[str, Any]] = []
    for turn in turns:
        if turn.role == "system":
            continue
        blocks: list[dict[str, Any]] = []
        for item in turn.contents:
            match item:
                case TextContent(text=text) if text:
                    blocks.append({"type": "text", "text": text})
                case ToolRequest(id=id_, name=name, args=args):
                    blocks.append({"type": "tool_use", "id": id_, "name": name, "input": dict(args)})
                case ToolResult(request_id=request_id):
                    block: dict[str, Any] = {
                        "type": "tool_result",
                        "tool_use_id": request_id,
                        "content": item.content,
                    }
                    if item.is_error:
                        block["is_error"] = True
                    blocks.append(block)
        if blocks:
            messages.append({"role": turn.role, "content": blocks})
    return messages
