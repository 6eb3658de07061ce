"""Delegate tool: hands a task to a named sub-agent."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from steward.tools.base import BaseTool
from steward.types.tools import ToolAnnotations, ToolContext, ToolDef, ToolParam, ToolResultData

if TYPE_CHECKING:
    from steward.agents.manager import AgentManager

DELEGATE_TOOL_NAME = "delegate_to_agent"


class DelegateTool(BaseTool):
    """Run a sub-agent on a task and return its final answer."""

    def __init__(self, agent_manager: AgentManager) -> None:
        self._agent_manager = agent_manager

    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name=DELEGATE_TOOL_NAME,
            description=(
                "Delegate a task to a specialized sub-agent. The sub-agent will "
                "complete the task and return results."
            ),
            parameters=(
                ToolParam(
                    name="agent_name",
                    type="string",
                    description="Name of the sub-agent to delegate to.",
                    enum=tuple(self._agent_manager.names()) or None,
                ),
                ToolParam(
                    name="task",
                    type="string",
                    description="The task to delegate to the sub-agent.",
                ),
            ),
            annotations=ToolAnnotations(read_only=False, open_world=False),
        )

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        agent_name = args.get("agent_name")
        task = args.get("task")
        if not agent_name:
            return self._error("'agent_name' parameter is required.")
        if not task:
            return self._error("'task' parameter is required.")
        return await self._agent_manager.delegate(agent_name, task)
