"""Context management: token estimates and compaction helpers."""

from __future__ import annotations

import json

from steward.types.messages import TextContent, ToolRequest, ToolResult, Turn
from steward.types.providers import ProviderAdapter

# Compaction triggers at this fraction of the context window
COMPACTION_THRESHOLD = 0.85

SUMMARY_HEADER = "\n\n## Previous Conversation Summary\n"

_FALLBACK_TEXT_LIMIT = 200

SUMMARIZATION_PROMPT = """\
Summarize the following conversation excerpt concisely. Focus on:
1. Key decisions made
2. Important findings or results
3. Files created, modified, or discussed
4. Any errors encountered and how they were resolved
5. Current state/progress of the task

Keep the summary under 500 words. Be factual and specific.

Conversation to summarize:
---
{conversation}
---

Summary:"""


def estimate_turn_tokens(turn: Turn, provider: ProviderAdapter) -> int:
    """Estimate tokens for a single turn."""
    total = 4  # role overhead
    for item in turn.contents:
        match item:
            case TextContent(text=text):
                total += provider.estimate_tokens(text)
            case ToolRequest(name=name, args=args):
                total += provider.estimate_tokens(name + json.dumps(dict(args), default=str)) + 10
            case ToolResult():
                total += provider.estimate_tokens(item.content) + 10
    return total


def estimate_total_tokens(turns: list[Turn], system: str, provider: ProviderAdapter) -> int:
    """Estimate total token count for a history plus its system prompt."""
    total = provider.estimate_tokens(system) + 10
    for turn in turns:
        total += estimate_turn_tokens(turn, provider)
    return total


def needs_compaction(
    turns: list[Turn],
    system: str,
    provider: ProviderAdapter,
    context_window: int,
    keep_last: int,
) -> bool:
    """Check if the history is large enough to need compaction."""
    if len(turns) <= keep_last:
        return False
    total = estimate_total_tokens(turns, system, provider)
    return total > int(context_window * COMPACTION_THRESHOLD)


def find_safe_boundary(turns: list[Turn], keep_last: int) -> int:
    """Index of the first turn to keep when keeping about *keep_last* turns.

    The boundary moves earlier while the first kept turn carries tool
    results, so a tool request is never separated from its result.
    Returns 0 when nothing can be compacted.
    """
    idx = max(0, len(turns) - keep_last)
    while idx > 0 and turns[idx].tool_results:
        idx -= 1
    return idx


def _role_label(turn: Turn) -> str:
    return "User" if turn.role == "user" else "Assistant"


def format_for_summary(turns: list[Turn]) -> str:
    """Render turns as plain text for the summarization prompt."""
    parts: list[str] = []
    for turn in turns:
        tool_info = ""
        if turn.tool_requests:
            names = ", ".join(req.name for req in turn.tool_requests)
            tool_info = f" [Tools: {names}]"
        text = turn.text
        if not text and turn.tool_results:
            text = "\n".join(r.content for r in turn.tool_results)
        parts.append(f"{_role_label(turn)}{tool_info}: {text or '[no text]'}")
    return "\n\n".join(parts)


def summarization_prompt(turns: list[Turn]) -> str:
    return SUMMARIZATION_PROMPT.format(conversation=format_for_summary(turns))


def fallback_summary(turns: list[Turn]) -> str:
    """Plain concatenation used when the provider cannot summarize."""
    parts: list[str] = []
    for turn in turns:
        text = turn.text or "[no text]"
        if len(text) > _FALLBACK_TEXT_LIMIT:
            text = text[: _FALLBACK_TEXT_LIMIT - 3] + "..."
        parts.append(f"{_role_label(turn)}: {text}")
    header = f"[Compacted {len(turns)} earlier turns - LLM summary unavailable]"
    return header + "\n\n" + "\n\n".join(parts)
