"""Tests for EventStream."""

from __future__ import annotations

from pathlib import Path

import anyio
import pytest

from steward.core.agent import Agent
from steward.core.stream import EventStream
from steward.types.events import StartEvent, StopEvent, StopReason, TextComplete
from tests.conftest import MockProvider, MockTurn


async def _events(*events):
    for event in events:
        yield event


class TestEventStream:
    @pytest.mark.asyncio
    async def test_collect(self):
        stream = EventStream(_events(
            StartEvent(task="t"),
            TextComplete(text="first"),
            TextComplete(text="final"),
            StopEvent(reason=StopReason.COMPLETE, turns=2, cost=0.5),
        ))
        result = await stream.collect()
        assert result.response == "final"
        assert result.turns == 2
        assert result.cost == 0.5
        assert result.stop_reason is StopReason.COMPLETE
        assert result.is_success
        assert result.duration >= 0
        assert stream.done

    @pytest.mark.asyncio
    async def test_collect_after_partial_iteration(self):
        stream = EventStream(_events(
            StartEvent(task="t"), TextComplete(text="x"), StopEvent(reason=StopReason.COMPLETE),
        ))
        first = await stream.__anext__()
        assert isinstance(first, StartEvent)
        assert not stream.done
        result = await stream.collect()
        assert len(result.events) == 3

    @pytest.mark.asyncio
    async def test_result_without_stop_event(self):
        stream = EventStream(_events(StartEvent(task="t")))
        async for _ in stream:
            pass
        result = stream.result()
        assert result.stop_reason is StopReason.CANCELLED
        assert result.response is None

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, tmp_path: Path):
        agent = Agent(MockProvider([MockTurn(text="hi")]), working_dir=tmp_path)
        async with agent.run("x") as stream:
            async for event in stream:
                assert isinstance(event, StartEvent)
                break
        assert not agent.running
        assert stream.done

    @pytest.mark.asyncio
    async def test_pump(self, tmp_path: Path):
        agent = Agent(MockProvider([MockTurn(text="pumped")]), working_dir=tmp_path)
        send, receive = anyio.create_memory_object_stream(100)
        received = []

        async def consume():
            async with receive:
                async for event in receive:
                    received.append(event)

        async with anyio.create_task_group() as tg:
            tg.start_soon(consume)
            result = await agent.run("x").pump(send)

        assert result.response == "pumped"
        assert isinstance(received[0], StartEvent)
        assert isinstance(received[-1], StopEvent)
        assert len(received) == len(result.events)
