"""Sub-agent delegation: the lead agent and the manager that runs sub-agents."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from steward.core.agent import Agent
from steward.core.context import SUMMARY_HEADER
from steward.hooks.context import build_hook_context
from steward.tools.delegate import DelegateTool
from steward.types.agents import AgentDef
from steward.types.events import StopReason
from steward.types.hooks import HookEvent
from steward.types.providers import ProviderAdapter
from steward.types.tools import Tool, ToolResultData

logger = logging.getLogger(__name__)

SUB_AGENT_SECTION = "# Available Sub-Agents"

_FAILED_STOPS = frozenset({StopReason.ERROR, StopReason.CANCELLED})


def build_lead_prompt(base_prompt: str | None, definitions: Iterable[AgentDef]) -> str:
    """System prompt listing the sub-agents a lead agent can delegate to."""
    definitions = list(definitions)
    lines: list[str] = []
    if base_prompt:
        lines += [base_prompt, ""]
    if definitions:
        lines += [
            SUB_AGENT_SECTION,
            "",
            "You can delegate specialized tasks to these sub-agents using the",
            "`delegate_to_agent` tool:",
            "",
        ]
        for definition in definitions:
            lines += [f"## {definition.name}", definition.description, ""]
        lines += [
            "When delegating, provide a clear task description. The sub-agent",
            "will complete the task and return results to you.",
            "",
        ]
    return "\n".join(lines)


def extract_base_prompt(full_prompt: str) -> str | None:
    """The part of a lead prompt before the sub-agent section."""
    base, marker, _ = full_prompt.partition(SUB_AGENT_SECTION)
    if not marker:
        return full_prompt or None
    return base.rstrip() or None


class AgentManager:
    """Builds and runs sub-agents on behalf of a parent agent.

    Sub-agents share the parent's Policy object and working directory.
    They get their own tools, prompt and budget counters.
    """

    def __init__(
        self,
        parent: Agent,
        definitions: Iterable[AgentDef] = (),
        *,
        provider_factory: Callable[[str], ProviderAdapter] | None = None,
    ) -> None:
        self._parent = parent
        self._definitions: dict[str, AgentDef] = {}
        self._provider_factory = provider_factory
        for definition in definitions:
            self.register(definition)

    def register(self, definition: AgentDef) -> None:
        if not isinstance(definition, AgentDef):
            raise TypeError("Sub-agents must be AgentDef instances")
        self._definitions[definition.name] = definition

    def names(self) -> list[str]:
        return list(self._definitions)

    def definitions(self) -> list[AgentDef]:
        return list(self._definitions.values())

    def get(self, name: str) -> AgentDef | None:
        return self._definitions.get(name)

    def build(self, definition: AgentDef) -> Agent:
        """Create a fresh sub-agent for *definition*."""
        parent = self._parent
        provider = parent.provider
        if definition.model != "inherit" and self._provider_factory is not None:
            provider = self._provider_factory(definition.model)
        return Agent(
            provider,
            tools=definition.tools,
            system_prompt=definition.prompt,
            policy=parent.policy,
            working_dir=parent.working_dir,
            config=parent.config,
        )

    async def delegate(self, agent_name: str, task: str) -> ToolResultData:
        """Run *task* on the named sub-agent; failures come back as tool errors."""
        definition = self.get(agent_name)
        if definition is None:
            available = ", ".join(self.names()) or "(none)"
            return ToolResultData(
                content=f"Unknown agent: {agent_name}. Available agents: {available}",
                is_error=True,
            )

        logger.info("Delegating to %s: %s", agent_name, task)
        sub_agent = self.build(definition)
        failure: str | None = None
        turns, cost = 0, 0.0
        try:
            result = await sub_agent.run_sync(task, max_turns=definition.max_turns)
        except Exception as exc:
            logger.warning("Sub-agent %s failed: %s", agent_name, exc)
            failure = str(exc)
            stop_reason = StopReason.ERROR
            response = ""
        else:
            stop_reason, turns, cost = result.stop_reason, result.turns, result.cost
            response = result.response or "(No response from sub-agent)"
            if stop_reason in _FAILED_STOPS:
                failure = str(result.error) if result.error is not None else stop_reason.value

        if failure is not None:
            response = f"Sub-agent '{agent_name}' failed.\nError: {failure}"
        verdict = await self._parent.hooks.fire(
            HookEvent.SUBAGENT_STOP,
            agent_name=agent_name,
            task=task,
            result=response,
            context=build_hook_context(
                self._parent.working_dir,
                stop_reason=stop_reason,
                total_turns=turns,
                cost=cost,
            ),
        )
        if verdict is not None and verdict.stop_requested:
            self._parent.request_stop()
        return ToolResultData(content=response, is_error=failure is not None)


class LeadAgent(Agent):
    """An agent that can delegate work to named sub-agents.

    Registers the ``delegate_to_agent`` tool and lists the sub-agents in
    its system prompt.
    """

    def __init__(
        self,
        provider: ProviderAdapter,
        sub_agents: Iterable[AgentDef] = (),
        tools: Iterable[Tool] = (),
        *,
        system_prompt: str | None = None,
        provider_factory: Callable[[str], ProviderAdapter] | None = None,
        **kwargs: Any,
    ) -> None:
        self.agents = AgentManager(self, sub_agents, provider_factory=provider_factory)
        super().__init__(
            provider,
            tools=(DelegateTool(self.agents), *tools),
            system_prompt=build_lead_prompt(system_prompt, self.agents.definitions()),
            **kwargs,
        )

    def register_sub_agent(self, definition: AgentDef) -> LeadAgent:
        """Add a sub-agent and refresh the system prompt."""
        self.agents.register(definition)
        prompt, header, summary = self.session.system_prompt.partition(SUMMARY_HEADER)
        rebuilt = build_lead_prompt(extract_base_prompt(prompt), self.agents.definitions())
        self.session.system_prompt = rebuilt + header + summary
        return self

    def available_sub_agents(self) -> list[str]:
        return self.agents.names()
