"""Policy: the immutable permission and budget snapshot for one agent."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from steward.types.config import PermissionMode


def _as_tuple(value: Iterable[str] | str | None) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    return tuple(value)


@dataclass(frozen=True, slots=True)
class Policy:
    """What an agent may do, fixed at construction.

    ``file_write`` is ``True``, ``False`` or a directory path that writes
    must stay inside. ``allow_tools=None`` means no allow-list is configured.
    ``can_use_tool(tool_name, tool_input, context)`` must return an
    ``Allow`` or ``Deny``; anything else is treated as a denial.
    """

    mode: PermissionMode = PermissionMode.DEFAULT
    file_read: bool = True
    file_write: bool | str = False
    shell: bool = False
    code_exec: bool = True
    web: bool = False
    install_packages: bool = False
    allow_tools: tuple[str, ...] | None = None
    deny_tools: tuple[str, ...] = ()
    can_use_tool: Callable[..., Any] | None = None
    max_turns: int | None = 25
    max_cost_usd: float | None = None
    permission_prompt_tool: str | None = None

    def __post_init__(self) -> None:
        # Frozen: normalise through object.__setattr__ once, here only
        if not isinstance(self.mode, PermissionMode):
            object.__setattr__(self, "mode", PermissionMode(self.mode))
        if isinstance(self.file_write, os.PathLike):
            object.__setattr__(self, "file_write", os.fspath(self.file_write))
        object.__setattr__(self, "allow_tools", _as_tuple(self.allow_tools))
        object.__setattr__(self, "deny_tools", _as_tuple(self.deny_tools) or ())

    @property
    def write_root(self) -> str | None:
        """Directory writes are restricted to, if any."""
        return self.file_write if isinstance(self.file_write, str) else None

    @property
    def writes_enabled(self) -> bool:
        return bool(self.file_write)

    # -- Presets -----------------------------------------------------------

    @classmethod
    def read_only(cls, *, max_turns: int | None = 25) -> Policy:
        """Reads only; every write or execution is denied."""
        return cls(
            mode=PermissionMode.READ_ONLY,
            file_read=True,
            file_write=False,
            shell=False,
            code_exec=False,
            web=False,
            install_packages=False,
            max_turns=max_turns,
        )

    @classmethod
    def standard(
        cls,
        working_dir: str | Path | None = None,
        *,
        max_turns: int | None = 25,
        max_cost_usd: float | None = None,
    ) -> Policy:
        """Reads anywhere, writes inside *working_dir*, code execution allowed."""
        root = Path(working_dir) if working_dir is not None else Path.cwd()
        return cls(
            mode=PermissionMode.DEFAULT,
            file_read=True,
            file_write=str(root),
            shell=False,
            code_exec=True,
            web=False,
            install_packages=False,
            max_turns=max_turns,
            max_cost_usd=max_cost_usd,
        )

    @classmethod
    def full(
        cls, *, max_turns: int | None = 50, max_cost_usd: float | None = None,
    ) -> Policy:
        """Everything allowed. Only the deny-list still applies."""
        return cls(
            mode=PermissionMode.BYPASS,
            file_read=True,
            file_write=True,
            shell=True,
            code_exec=True,
            web=True,
            install_packages=True,
            max_turns=max_turns,
            max_cost_usd=max_cost_usd,
        )
