"""Agent definition types for sub-agents."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class AgentDef:
    """Definition of a sub-agent a lead agent can delegate to."""

    name: str
    description: str
    prompt: str | None = None
    tools: tuple[Any, ...] = ()  # Tool instances given to the sub-agent
    model: str = "inherit"  # "inherit" reuses the parent's provider
    max_turns: int | None = None  # None = the shared policy's ceiling
