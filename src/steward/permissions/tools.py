"""Tool name normalisation and the static capability classes."""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable
from enum import Enum


class ToolClass(Enum):
    """Capability a tool name is statically known to need."""

    FILE_READ = "file_read"
    FILE_WRITE = "file_write"
    SHELL = "shell"
    CODE_EXEC = "code_exec"
    WEB = "web"
    INSTALL = "install_packages"


READ_TOOLS = frozenset({"read_file", "list_files"})
WRITE_TOOLS = frozenset({"write_file", "edit_file"})
SHELL_TOOLS = frozenset({"run_bash", "bash"})
CODE_TOOLS = frozenset({"run_code", "run_python", "execute_code"})
WEB_TOOLS = frozenset({"web_search", "web_fetch"})
INSTALL_TOOLS = frozenset({"install_package"})

# Denied by name in read-only mode when the tool carries no annotations
MUTATING_TOOLS = WRITE_TOOLS | SHELL_TOOLS | CODE_TOOLS | INSTALL_TOOLS

_CLASSES: tuple[tuple[frozenset[str], ToolClass], ...] = (
    (READ_TOOLS, ToolClass.FILE_READ),
    (WRITE_TOOLS, ToolClass.FILE_WRITE),
    (SHELL_TOOLS, ToolClass.SHELL),
    (CODE_TOOLS, ToolClass.CODE_EXEC),
    (WEB_TOOLS, ToolClass.WEB),
    (INSTALL_TOOLS, ToolClass.INSTALL),
)


def normalize_tool_name(name: str) -> str:
    """Lower-case a tool name and drop an optional ``tool_`` prefix."""
    lowered = name.strip().lower()
    if lowered.startswith("tool_"):
        lowered = lowered[len("tool_"):]
    return lowered


def classify(name: str) -> ToolClass | None:
    normalized = normalize_tool_name(name)
    for names, tool_class in _CLASSES:
        if normalized in names:
            return tool_class
    return None


def matches_any(name: str, patterns: Iterable[str]) -> bool:
    """True when *name* matches any entry; entries may be fnmatch globs."""
    normalized = normalize_tool_name(name)
    return any(
        fnmatch.fnmatchcase(normalized, normalize_tool_name(pattern))
        for pattern in patterns
    )
