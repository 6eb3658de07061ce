"""Configuration types for steward."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PermissionMode(Enum):
    """Permission modes controlling how the gate evaluates tool calls."""

    DEFAULT = "default"  # Per-capability rules
    ACCEPT_EDITS = "accept_edits"  # File writes skip the boolean gate
    READ_ONLY = "read_only"  # Deny all writes/executions
    BYPASS = "bypass"  # Allow everything not deny-listed


@dataclass(slots=True)
class RunConfig:
    """Engine settings that are not part of the security policy."""

    max_tokens: int = 16384
    context_window: int = 200_000
    stall_window: int = 2
    auto_compact: bool = True
    compact_keep_last: int = 4
    summary_max_tokens: int = 1024
