"""The execution loop: drives provider, gate, hooks and tools for one run."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from pathlib import Path
from typing import Any

from steward.core.budget import BudgetTracker
from steward.core.context import (
    SUMMARY_HEADER,
    fallback_summary,
    find_safe_boundary,
    needs_compaction,
    summarization_prompt,
)
from steward.core.session import Session
from steward.core.stall import StallDetector
from steward.errors import PermissionDeniedError, ProviderError, StewardError
from steward.hooks.context import annotations_dict, build_hook_context
from steward.hooks.pipeline import HookPipeline
from steward.observability.metrics import record_stop, record_tool_call, record_turn, timed_operation
from steward.permissions.gate import PermissionGate
from steward.permissions.results import Allow, Deny
from steward.providers.registry import get_model_info
from steward.tools.manager import ToolManager
from steward.types.config import RunConfig
from steward.types.events import (
    AgentEvent,
    StartEvent,
    StopEvent,
    StopReason,
    TextChunk,
    TextComplete,
    ToolEnd,
    ToolStart,
    TurnComplete,
    WarningEvent,
)
from steward.types.hooks import HookEvent, HookResult, PreCompactResult, PreToolUseResult
from steward.types.messages import TextContent, ToolRequest, ToolResult, Turn
from steward.types.providers import ProviderAdapter
from steward.types.tools import ToolContext, ToolResultData

logger = logging.getLogger(__name__)

RUN_INTERRUPTED = "Run interrupted before this tool could run"


class ExecutionLoop:
    """Runs one conversation at a time to a terminal :class:`StopReason`.

    Per run: ``StartEvent``, ``SessionStart``/``UserPromptSubmit`` hooks,
    then provider turns and tool round trips until a stop condition. The
    ``Stop`` and ``SessionEnd`` hooks fire exactly once per run, including
    when the caller closes the stream or the task is cancelled.
    """

    def __init__(
        self,
        *,
        provider: ProviderAdapter,
        tools: ToolManager,
        gate: PermissionGate,
        hooks: HookPipeline,
        budget: BudgetTracker,
        stall: StallDetector,
        session: Session,
        config: RunConfig,
    ) -> None:
        self._provider = provider
        self._tools = tools
        self._gate = gate
        self._hooks = hooks
        self._budget = budget
        self._stall = stall
        self._session = session
        self._config = config

        self._cancel_requested = False
        self._hook_stop = False
        self._interrupted = False
        self._reason: StopReason | None = None
        self._hook_errors_seen = 0
        self.last_error: StewardError | None = None

    @property
    def working_dir(self) -> Path:
        return self._session.working_dir

    def cancel(self) -> None:
        """Ask the current run to stop at the next iteration boundary."""
        self._cancel_requested = True

    def request_stop(self) -> None:
        self._hook_stop = True

    def _reset(self, max_turns: int | None) -> None:
        self._budget.start_run(max_turns)
        self._stall.reset()
        self._cancel_requested = False
        self._hook_stop = False
        self._interrupted = False
        self._reason = None
        self._hook_errors_seen = len(self._hooks.errors)
        self.last_error = None

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(
        self,
        task: str,
        *,
        max_turns: int | None = None,
        include_partial: bool = True,
    ) -> AsyncIterator[AgentEvent]:
        """Run *task* to completion. Yields AgentEvents; the last is a StopEvent."""
        self._reset(max_turns)

        try:
            yield StartEvent(task=task)

            started = await self._hooks.fire(
                HookEvent.SESSION_START,
                context=build_hook_context(
                    self.working_dir,
                    provider=self._provider.name,
                    model=self._provider.model_id,
                    tools_count=len(self._tools),
                ),
            )
            for warning in self._hook_warnings():
                yield warning
            if self._stop_requested(started):
                self._reason = StopReason.HOOK_REQUESTED_STOP

            if self._reason is None:
                submitted = await self._hooks.fire(
                    HookEvent.USER_PROMPT_SUBMIT,
                    prompt=task,
                    context=build_hook_context(self.working_dir),
                )
                for warning in self._hook_warnings():
                    yield warning
                if self._stop_requested(submitted):
                    self._reason = StopReason.HOOK_REQUESTED_STOP

            if self._reason is None:
                self._session.add_turn(Turn.user(task))
                async with aclosing(self._iterate(include_partial)) as steps:
                    async for event in steps:
                        yield event
        except (GeneratorExit, asyncio.CancelledError):
            await self._finish(StopReason.CANCELLED)
            raise
        except Exception as exc:
            logger.exception("Run failed")
            if self.last_error is None:
                self.last_error = exc if isinstance(exc, StewardError) else StewardError(str(exc))
            await self._finish(StopReason.ERROR)
            raise

        reason = self._reason or StopReason.COMPLETE
        await self._finish(reason)
        for warning in self._hook_warnings():
            yield warning
        snapshot = self._budget.snapshot()
        yield StopEvent(
            reason=reason,
            turns=snapshot.turns_used,
            cost=snapshot.cost_used,
            input_tokens=snapshot.input_tokens,
            output_tokens=snapshot.output_tokens,
            error=str(self.last_error) if self.last_error is not None else None,
        )

    @staticmethod
    def _stop_requested(result: HookResult | None) -> bool:
        return result is not None and result.stop_requested

    async def _finish(self, reason: StopReason) -> None:
        """Fire Stop then SessionEnd with the final totals."""
        snapshot = self._budget.snapshot()
        context = build_hook_context(
            self.working_dir, total_turns=snapshot.turns_used, cost=snapshot.cost_used,
        )
        await self._hooks.fire(HookEvent.STOP, reason=reason, context=context)
        await self._hooks.fire(HookEvent.SESSION_END, reason=reason, context=context)
        record_stop(reason.value)
        logger.debug("Run finished: %s after %d turns", reason.value, snapshot.turns_used)

    def _hook_warnings(self) -> list[WarningEvent]:
        """WarningEvents for hook failures recorded since the last call."""
        errors = self._hooks.errors
        new = errors[self._hook_errors_seen:]
        self._hook_errors_seen = len(errors)
        return [
            WarningEvent(
                kind="hook_error",
                message=f"{record.event.value} hook failed"
                + (f" for {record.tool_name}" if record.tool_name else "")
                + f": {record.error}",
            )
            for record in new
        ]

    # ------------------------------------------------------------------
    # Iterations
    # ------------------------------------------------------------------

    async def _iterate(self, include_partial: bool) -> AsyncIterator[AgentEvent]:
        while True:
            if self._cancel_requested:
                self._reason = StopReason.CANCELLED
                return
            if self._hook_stop:
                self._reason = StopReason.HOOK_REQUESTED_STOP
                return

            if self._config.auto_compact and needs_compaction(
                self._session.turns,
                self._session.system_prompt,
                self._provider,
                self._config.context_window,
                self._config.compact_keep_last,
            ):
                await self.compact(self._config.compact_keep_last)
                for warning in self._hook_warnings():
                    yield warning

            turn: Turn | None = None
            async with aclosing(self._request_turn(include_partial)) as produced:
                async for item in produced:
                    if isinstance(item, Turn):
                        turn = item
                    else:
                        yield item
            if turn is None:
                self._reason = StopReason.ERROR
                return

            self._session.add_turn(turn)
            self._session.record_usage(turn)
            if turn.text:
                yield TextComplete(text=turn.text)

            self._budget.record_turn(
                turn.cost, input_tokens=turn.input_tokens, output_tokens=turn.output_tokens,
            )
            record_turn(
                turn.input_tokens, turn.output_tokens, turn.cost,
                provider=self._provider.name, model=self._provider.model_id,
            )
            check = self._budget.check()
            if check.warn:
                snapshot = self._budget.snapshot()
                message = (
                    f"Cost ${snapshot.cost_used:.4f} has reached 90% of the "
                    f"${snapshot.max_cost_usd:.4f} limit"
                )
                logger.warning(message)
                yield WarningEvent(kind="cost", message=message)

            if self._stall.observe(turn):
                message = f"The last {self._stall.window} turns were identical; the agent may be stalled"
                logger.warning(message)
                yield WarningEvent(kind="stall", message=message)

            requests = turn.tool_requests
            results: list[ToolResult] = []
            for request in requests:
                if self._interrupted:
                    results.append(ToolResult(request_id=request.id, error=RUN_INTERRUPTED))
                    yield ToolEnd(id=request.id, name=request.name, content=RUN_INTERRUPTED, is_error=True)
                    continue
                async with aclosing(self._on_tool_request(request)) as dispatched:
                    async for item in dispatched:
                        if isinstance(item, ToolResult):
                            results.append(item)
                        else:
                            yield item

            if results:
                self._session.add_turn(Turn(role="user", contents=tuple(results)))

            yield TurnComplete(turn=turn, turn_number=self._budget.turns_used)

            if not requests:
                self._reason = StopReason.COMPLETE
                return
            if self._interrupted:
                self._reason = StopReason.ERROR
                return
            if self._hook_stop:
                self._reason = StopReason.HOOK_REQUESTED_STOP
                return
            if check.breached:
                self._reason = check.stop_reason
                return

    # ------------------------------------------------------------------
    # Provider
    # ------------------------------------------------------------------

    async def _request_turn(self, include_partial: bool) -> AsyncIterator[TextChunk | WarningEvent | Turn]:
        """Stream one assistant turn, falling back to the blocking call once."""
        turns = self._session.turns
        tool_defs = self._tools.get_definitions()
        system = self._session.system_prompt
        try:
            async with aclosing(self._stream_turn(turns, tool_defs, system)) as stream:
                async for item in stream:
                    if isinstance(item, Turn):
                        yield item
                        return
                    if include_partial:
                        yield item
        except Exception as exc:
            logger.warning("Streaming failed, retrying without streaming: %s", exc)
            yield WarningEvent(
                kind="stream_fallback",
                message=f"Streaming failed ({type(exc).__name__}: {exc}); retrying with a blocking call",
            )

        try:
            with timed_operation(provider=self._provider.name, model=self._provider.model_id):
                turn = await self._provider.complete(
                    turns, tool_defs, system, self._config.max_tokens,
                )
        except Exception as exc:
            error = ProviderError(
                f"Provider failed: {type(exc).__name__}: {exc}",
                provider_name=self._provider.name,
                model=self._provider.model_id,
            )
            self.last_error = error
            logger.warning("Blocking fallback failed: %s", exc)
            yield WarningEvent(kind="provider_error", message=str(error))
            return
        yield self._priced(turn)

    async def _stream_turn(
        self, turns: list[Turn], tool_defs: list[Any], system: str,
    ) -> AsyncIterator[TextChunk | Turn]:
        """Assemble a Turn from provider stream events, yielding text deltas."""
        text_parts: list[str] = []
        requests: list[ToolRequest] = []
        current_tool: dict[str, Any] | None = None
        input_tokens = 0
        output_tokens = 0
        cost: float | None = None

        with timed_operation(provider=self._provider.name, model=self._provider.model_id):
            async for event in self._provider.stream(
                turns, tool_defs, system, self._config.max_tokens,
            ):
                if event.type == "text_delta" and event.text:
                    text_parts.append(event.text)
                    yield TextChunk(text=event.text)

                elif event.type == "tool_use_start":
                    current_tool = {
                        "id": event.tool_use_id or "",
                        "name": event.tool_name or "",
                        "args_json": "",
                    }

                elif event.type == "tool_use_delta" and current_tool is not None:
                    current_tool["args_json"] += event.tool_args_json or ""

                elif event.type == "tool_use_end" and current_tool is not None:
                    try:
                        raw = current_tool["args_json"]
                        args = json.loads(raw) if raw else {}
                    except json.JSONDecodeError:
                        logger.warning("Invalid tool arguments for %s: %r", current_tool["name"], raw)
                        args = {}
                    requests.append(ToolRequest(current_tool["id"], current_tool["name"], args))
                    current_tool = None

                elif event.type == "message_end":
                    if event.usage:
                        input_tokens = event.usage.get("input_tokens", 0)
                        output_tokens = event.usage.get("output_tokens", 0)
                    if event.cost is not None:
                        cost = event.cost

        contents: list[TextContent | ToolRequest] = []
        text = "".join(text_parts)
        if text:
            contents.append(TextContent(text))
        contents.extend(requests)
        turn = Turn(
            role="assistant",
            contents=tuple(contents),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=cost or 0.0,
        )
        yield turn if cost is not None else self._priced(turn)

    def _priced(self, turn: Turn) -> Turn:
        """Fill in a missing turn cost from the model catalogue."""
        if turn.cost or not (turn.input_tokens or turn.output_tokens):
            return turn
        info = get_model_info(self._provider.model_id)
        if info is None:
            return turn
        return Turn(
            role=turn.role,
            contents=turn.contents,
            input_tokens=turn.input_tokens,
            output_tokens=turn.output_tokens,
            cost=info.cost(turn.input_tokens, turn.output_tokens),
        )

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    async def _on_tool_request(self, request: ToolRequest) -> AsyncIterator[AgentEvent | ToolResult]:
        """Gate, hook and execute one tool call. The last item is its ToolResult."""
        tool = self._tools.get(request.name)
        annotations = tool.definition.annotations if tool is not None else None
        context = build_hook_context(
            self.working_dir, tool_annotations=annotations_dict(annotations),
        )
        args = dict(request.args)

        match self._gate.check(request.name, args, context):
            case Deny(reason=reason, interrupt=interrupt):
                logger.debug("Permission denied for %s: %s", request.name, reason)
                record_tool_call(request.name, is_error=True, denied=True)
                yield WarningEvent(kind="permission_denied", message=f"{request.name}: {reason}")
                if interrupt:
                    self._interrupted = True
                    self.last_error = PermissionDeniedError(
                        f"Run interrupted: {reason}", tool_name=request.name, reason=reason,
                    )
                yield ToolEnd(id=request.id, name=request.name, content=reason, is_error=True)
                yield ToolResult(request_id=request.id, error=reason)
                return
            case Allow():
                pass

        verdict = await self._hooks.fire(
            HookEvent.PRE_TOOL_USE, tool_name=request.name, tool_input=args, context=context,
        )
        for warning in self._hook_warnings():
            yield warning
        if isinstance(verdict, PreToolUseResult):
            if verdict.stop_requested:
                self._hook_stop = True
            if verdict.permission == "deny":
                reason = verdict.reason or "Denied by PreToolUse hook"
                record_tool_call(request.name, is_error=True, denied=True)
                yield ToolEnd(id=request.id, name=request.name, content=reason, is_error=True)
                yield ToolResult(request_id=request.id, error=reason)
                return

        yield ToolStart(id=request.id, name=request.name, args=args)
        ctx = ToolContext(cwd=self.working_dir, permission_mode=self._gate.policy.mode.value)
        data = await self._tools.execute(request.name, args, ctx)
        result = self._on_tool_result(request, data)

        outcome = await self._hooks.fire(
            HookEvent.POST_TOOL_USE,
            tool_name=request.name,
            tool_result=result.value,
            tool_error=result.error,
            context=context,
        )
        for warning in self._hook_warnings():
            yield warning
        if self._stop_requested(outcome):
            self._hook_stop = True

        yield ToolEnd(id=request.id, name=request.name, content=result.content, is_error=result.is_error)
        yield result

    def _on_tool_result(self, request: ToolRequest, data: ToolResultData) -> ToolResult:
        record_tool_call(request.name, is_error=data.is_error)
        if data.is_error:
            return ToolResult(request_id=request.id, error=data.content)
        return ToolResult(request_id=request.id, value=data.content)

    # ------------------------------------------------------------------
    # Compaction
    # ------------------------------------------------------------------

    async def compact(self, keep_last: int = 4, summary: str | None = None) -> bool:
        """Summarise older turns into the system prompt. True if it compacted."""
        turns = self._session.turns
        if len(turns) <= keep_last:
            logger.info("Not enough turns to compact (have %d, keep_last=%d)", len(turns), keep_last)
            return False

        boundary = find_safe_boundary(turns, keep_last)
        if boundary == 0:
            return False
        to_compact, to_keep = turns[:boundary], turns[boundary:]

        verdict = await self._hooks.fire(
            HookEvent.PRE_COMPACT,
            turns_to_compact=to_compact,
            turns_to_keep=to_keep,
            context=build_hook_context(
                self.working_dir,
                total_turns=len(turns),
                compact_count=len(to_compact),
            ),
        )
        if isinstance(verdict, PreCompactResult):
            if not verdict.continue_:
                logger.info("Compaction cancelled by hook")
                return False
            if summary is None:
                summary = verdict.summary

        if summary is None:
            summary = await self._summarize(to_compact)

        self._session.system_prompt = self._session.system_prompt + SUMMARY_HEADER + summary
        self._session.set_turns(to_keep)
        self._session.compact_count += 1
        logger.info("Compacted %d turns, keeping %d", len(to_compact), len(to_keep))
        return True

    async def _summarize(self, turns: list[Turn]) -> str:
        try:
            reply = await self._provider.complete(
                [Turn.user(summarization_prompt(turns))],
                [],
                "You summarize conversations for later reference.",
                self._config.summary_max_tokens,
            )
        except Exception as exc:
            logger.warning("LLM summarization failed, using text summary: %s", exc)
            return fallback_summary(turns)
        return reply.text or fallback_summary(turns)
