"""Tool registry and helpers."""

from steward.tools.base import BaseTool, FunctionTool, tool
from steward.tools.manager import ToolManager

__all__ = [
    "BaseTool",
    "FunctionTool",
    "ToolManager",
    "tool",
]
