"""EventStream: the caller's handle on a running agent."""

from __future__ import annotations

import time
from collections.abc import AsyncIterator
from typing import Any

from anyio.abc import ObjectSendStream

from steward.types.events import AgentEvent, RunResult, StopEvent, StopReason, TextComplete


class EventStream:
    """Async iterator over the events of one run.

    Events are recorded as they are yielded, so :meth:`collect` can be
    called after partial iteration. Closing the stream early still fires
    the ``Stop`` and ``SessionEnd`` hooks.
    """

    def __init__(self, events: AsyncIterator[AgentEvent], *, error_source: Any = None) -> None:
        self._events = events
        self._error_source = error_source
        self._recorded: list[AgentEvent] = []
        self._started = time.monotonic()
        self._finished: float | None = None

    def __aiter__(self) -> EventStream:
        return self

    async def __anext__(self) -> AgentEvent:
        try:
            event = await self._events.__anext__()
        except StopAsyncIteration:
            self._mark_finished()
            raise
        self._recorded.append(event)
        if isinstance(event, StopEvent):
            self._mark_finished()
        return event

    async def __aenter__(self) -> EventStream:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _mark_finished(self) -> None:
        if self._finished is None:
            self._finished = time.monotonic()

    @property
    def events(self) -> list[AgentEvent]:
        """Events seen so far."""
        return list(self._recorded)

    @property
    def done(self) -> bool:
        return self._finished is not None

    async def aclose(self) -> None:
        """End the run early. Hooks still see a ``cancelled`` stop."""
        await self._events.aclose()
        self._mark_finished()

    async def collect(self) -> RunResult:
        """Drain the stream to completion and summarise the run."""
        async for _ in self:
            pass
        return self.result()

    def result(self) -> RunResult:
        """Summarise the events recorded so far."""
        stop = next((e for e in reversed(self._recorded) if isinstance(e, StopEvent)), None)
        texts = [e.text for e in self._recorded if isinstance(e, TextComplete)]
        end = self._finished if self._finished is not None else time.monotonic()
        error = getattr(self._error_source, "last_error", None)
        return RunResult(
            response=texts[-1] if texts else None,
            events=tuple(self._recorded),
            turns=stop.turns if stop else 0,
            cost=stop.cost if stop else 0.0,
            duration=end - self._started,
            stop_reason=stop.reason if stop else StopReason.CANCELLED,
            error=error,
        )

    async def pump(self, send_stream: ObjectSendStream[AgentEvent]) -> RunResult:
        """Forward every event into an anyio memory object stream.

        The send side is closed when the run ends, so a consumer looping
        over the receive side finishes cleanly.
        """
        async with send_stream:
            async for event in self:
                await send_stream.send(event)
        return self.result()
