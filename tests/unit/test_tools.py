"""Tests for tool wrappers and the tool manager."""

from __future__ import annotations

from pathlib import Path

import pytest

from steward.errors import ToolExecutionError
from steward.tools import BaseTool, FunctionTool, ToolManager, tool
from steward.types.tools import ToolAnnotations, ToolContext, ToolDef, ToolParam, ToolResultData


@pytest.fixture
def ctx(tmp_path: Path) -> ToolContext:
    return ToolContext(cwd=tmp_path)


class EchoTool(BaseTool):
    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="echo",
            description="Echo the text back.",
            parameters=(ToolParam(name="text", type="string", description="Text"),),
        )

    async def execute(self, args, ctx):
        if "text" not in args:
            return self._error("'text' parameter is required.")
        return self._ok(args["text"], display=f"echo: {args['text']}")


class TestFunctionTool:
    @pytest.mark.asyncio
    async def test_sync_function(self, ctx):
        def add(a: int, b: int) -> int:
            """Add two numbers."""
            return a + b

        wrapped = FunctionTool(add)
        assert wrapped.definition.name == "add"
        assert wrapped.definition.description == "Add two numbers."
        result = await wrapped.execute({"a": 2, "b": 3}, ctx)
        assert result.content == "5"
        assert not result.is_error

    @pytest.mark.asyncio
    async def test_async_function_and_none(self, ctx):
        async def noop():
            return None

        assert (await FunctionTool(noop).execute({}, ctx)).content == ""

    @pytest.mark.asyncio
    async def test_result_data_passes_through(self, ctx):
        data = ToolResultData(content="nope", is_error=True)
        assert await FunctionTool(lambda: data, name="x").execute({}, ctx) is data

    def test_decorator(self):
        @tool(description="Look things up.", annotations=ToolAnnotations(read_only=True))
        def lookup(query: str) -> str:
            return query

        assert isinstance(lookup, FunctionTool)
        assert lookup.definition.description == "Look things up."
        assert lookup.definition.annotations.read_only is True

        @tool
        def bare():
            """Bare."""

        assert bare.definition.name == "bare"


class TestToolManager:
    @pytest.mark.asyncio
    async def test_dispatch(self, ctx):
        manager = ToolManager([EchoTool()])
        assert "echo" in manager
        assert len(manager) == 1
        assert manager.names() == ["echo"]
        result = await manager.execute("echo", {"text": "hi"}, ctx)
        assert result.content == "hi"
        assert result.display == "echo: hi"
        assert (await manager.execute("echo", {}, ctx)).is_error

    @pytest.mark.asyncio
    async def test_unknown_tool(self, ctx):
        result = await ToolManager([EchoTool()]).execute("missing", {}, ctx)
        assert result.is_error
        assert "Unknown tool: 'missing'" in result.content
        assert "echo" in result.content

    @pytest.mark.asyncio
    async def test_errors_become_results(self, ctx):
        def fails():
            raise ToolExecutionError("quota exceeded", tool_name="fails")

        def crashes():
            raise KeyError("x")

        manager = ToolManager([FunctionTool(fails), FunctionTool(crashes)])
        failed = await manager.execute("fails", {}, ctx)
        assert failed.is_error and failed.content == "Tool 'fails' failed: quota exceeded"
        crashed = await manager.execute("crashes", {}, ctx)
        assert crashed.is_error and "raised an unexpected error" in crashed.content

    @pytest.mark.asyncio
    async def test_bad_arguments(self, ctx):
        manager = ToolManager([FunctionTool(lambda a: a, name="one")])
        result = await manager.execute("one", {"b": 1}, ctx)
        assert result.is_error

    def test_register_rejects_non_tools(self):
        with pytest.raises(TypeError):
            ToolManager().register(object())  # type: ignore[arg-type]

    def test_definitions_and_replacement(self):
        manager = ToolManager()
        manager.register(FunctionTool(lambda: "1", name="t", description="first"))
        manager.register(FunctionTool(lambda: "2", name="t", description="second"))
        assert [d.description for d in manager.get_definitions()] == ["second"]
        assert manager.get("t") is not None
        assert manager.get("u") is None
