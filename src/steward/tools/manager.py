"""ToolManager: registry and dispatcher for all tools."""

from __future__ import annotations

import logging
from typing import Any

from steward.errors import ToolExecutionError
from steward.types.tools import Tool, ToolContext, ToolDef, ToolResultData

logger = logging.getLogger(__name__)


class ToolManager:
    """Registers tools and dispatches execution requests.

    Usage::

        manager = ToolManager()
        manager.register(FunctionTool(read_file))
        result = await manager.execute("read_file", {"path": "foo.py"}, ctx)
    """

    def __init__(self, tools: list[Tool] | tuple[Tool, ...] = ()) -> None:
        self._registry: dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, tool: Tool) -> None:
        """Add a tool to the registry under its definition name."""
        if not isinstance(tool, Tool):
            raise TypeError(f"{type(tool).__name__} does not implement the Tool protocol")
        self._registry[tool.definition.name] = tool

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: str) -> Tool | None:
        """Return the tool with the given name, or None."""
        return self._registry.get(name)

    def get_definitions(self) -> list[ToolDef]:
        """Return all registered tool definitions (for provider schema)."""
        return [tool.definition for tool in self._registry.values()]

    def names(self) -> list[str]:
        return list(self._registry)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def execute(
        self,
        name: str,
        args: dict[str, Any],
        ctx: ToolContext,
    ) -> ToolResultData:
        """Dispatch a tool call by name.

        Returns a ToolResultData with is_error=True if the tool is not found
        or raises.
        """
        tool = self._registry.get(name)
        if tool is None:
            return ToolResultData(
                content=f"Unknown tool: '{name}'. "
                f"Available tools: {sorted(self._registry)}",
                is_error=True,
            )

        logger.debug("Executing tool %s", name)
        try:
            return await tool.execute(args, ctx)
        except ToolExecutionError as exc:
            return ToolResultData(content=f"Tool '{name}' failed: {exc}", is_error=True)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Tool %s raised", name, exc_info=True)
            return ToolResultData(
                content=f"Tool '{name}' raised an unexpected error: {exc}",
                is_error=True,
            )

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._registry)

    def __contains__(self, name: object) -> bool:
        return name in self._registry

    def __repr__(self) -> str:
        return f"ToolManager(tools={sorted(self._registry)})"
