"""Agent: the public facade over the execution loop."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import aclosing
from pathlib import Path
from typing import Any

from steward.core.budget import BudgetTracker
from steward.core.loop import ExecutionLoop
from steward.core.session import Session
from steward.core.stall import StallDetector
from steward.core.stream import EventStream
from steward.hooks.pipeline import HookPipeline
from steward.permissions.gate import PermissionGate
from steward.permissions.policy import Policy
from steward.tools.manager import ToolManager
from steward.types.config import RunConfig
from steward.types.events import AgentEvent, RunResult
from steward.types.hooks import AnyHook
from steward.types.messages import Turn
from steward.types.providers import ProviderAdapter
from steward.types.tools import Tool

logger = logging.getLogger(__name__)


class Agent:
    """An LLM agent with tools, a permission policy and lifecycle hooks.

    Usage::

        agent = Agent(provider, tools=[read_file], policy=Policy.standard())
        async for event in agent.run("Summarise README.md"):
            ...
        result = await agent.run_sync("And now the changelog")

    One run at a time: starting a second run while one is active raises
    :class:`RuntimeError`. The history carries over between runs.
    """

    def __init__(
        self,
        provider: ProviderAdapter,
        tools: Iterable[Tool] = (),
        *,
        system_prompt: str | None = None,
        policy: Policy | None = None,
        working_dir: str | Path | None = None,
        hooks: Iterable[AnyHook] = (),
        config: RunConfig | None = None,
    ) -> None:
        self.provider = provider
        self.policy = policy or Policy()
        self.working_dir = Path(working_dir).resolve() if working_dir else Path.cwd()
        self.config = config or RunConfig()
        self.tools = ToolManager(tuple(tools))
        self.hooks = HookPipeline(list(hooks))
        self.gate = PermissionGate(self.policy)
        self.budget = BudgetTracker(
            max_turns=self.policy.max_turns, max_cost_usd=self.policy.max_cost_usd,
        )
        self.session = Session(system_prompt or "", self.working_dir)
        self._loop = ExecutionLoop(
            provider=provider,
            tools=self.tools,
            gate=self.gate,
            hooks=self.hooks,
            budget=self.budget,
            stall=StallDetector(self.config.stall_window),
            session=self.session,
            config=self.config,
        )
        self._running = False

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    def run(
        self, task: str, *, max_turns: int | None = None, include_partial: bool = True,
    ) -> EventStream:
        """Start a run and return its event stream.

        ``max_turns`` overrides the policy ceiling for this run only.
        ``include_partial=False`` suppresses streamed ``TextChunk`` events.
        """
        if self._running:
            raise RuntimeError("Agent is already running; one run at a time per agent")
        return EventStream(
            self._guarded(task, max_turns=max_turns, include_partial=include_partial),
            error_source=self._loop,
        )

    async def _guarded(self, task: str, **options: Any) -> AsyncIterator[AgentEvent]:
        if self._running:
            raise RuntimeError("Agent is already running; one run at a time per agent")
        self._running = True
        try:
            async with aclosing(self._loop.run(task, **options)) as events:
                async for event in events:
                    yield event
        finally:
            self._running = False

    async def run_sync(self, task: str, *, max_turns: int | None = None) -> RunResult:
        """Run *task* to completion and return the result."""
        return await self.run(task, max_turns=max_turns).collect()

    def cancel(self) -> None:
        """Stop the active run at its next iteration (reason ``cancelled``)."""
        self._loop.cancel()

    def request_stop(self) -> None:
        """End the active run with ``hook_requested_stop`` after the current step."""
        self._loop.request_stop()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_hook(self, hook: AnyHook) -> Agent:
        self.hooks.register(hook)
        return self

    def register_tool(self, tool: Tool) -> Agent:
        self.tools.register(tool)
        return self

    def register_tools(self, tools: Iterable[Tool]) -> Agent:
        for tool in tools:
            self.tools.register(tool)
        return self

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def system_prompt(self) -> str:
        return self.session.system_prompt

    @property
    def turns(self) -> list[Turn]:
        return self.session.turns

    @property
    def last_turn(self) -> Turn | None:
        turns = self.session.turns
        return turns[-1] if turns else None

    def cost(self) -> dict[str, float | int]:
        """Cumulative usage across every run of this agent."""
        return {
            "input_tokens": self.session.total_input_tokens,
            "output_tokens": self.session.total_output_tokens,
            "total": self.session.total_cost,
        }

    def provider_info(self) -> dict[str, str]:
        return {"name": self.provider.name, "model": self.provider.model_id}

    async def compact(self, keep_last: int = 4, summary: str | None = None) -> bool:
        """Fold all but the last *keep_last* turns into the system prompt.

        Returns True if the history was compacted.
        """
        if self._running:
            raise RuntimeError("Cannot compact while a run is active")
        return await self._loop.compact(keep_last, summary)

    def save_session(self, path: str | Path) -> Path:
        """Save history, system prompt and working directory to *path* (JSONL)."""
        saved = self.session.save(path, provider=self.provider_info())
        logger.info("Session saved to %s", saved)
        return saved

    def load_session(self, path: str | Path) -> None:
        """Restore a session written by :meth:`save_session`."""
        if self._running:
            raise RuntimeError("Cannot load a session while a run is active")
        self.session.load(path)
        self.working_dir = self.session.working_dir

    def __repr__(self) -> str:
        return (
            f"Agent(provider={self.provider.name!r}, model={self.provider.model_id!r}, "
            f"tools={self.tools.names()}, mode={self.policy.mode.value!r})"
        )
