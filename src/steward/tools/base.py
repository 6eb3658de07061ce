"""Base tool class with shared logic."""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from steward.types.tools import ToolAnnotations, ToolContext, ToolDef, ToolParam, ToolResultData


class BaseTool(ABC):
    """Base class for all tools."""

    @property
    @abstractmethod
    def definition(self) -> ToolDef:
        ...

    @abstractmethod
    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        ...

    def _error(self, msg: str) -> ToolResultData:
        return ToolResultData(content=msg, is_error=True)

    def _ok(self, content: str, display: str | None = None) -> ToolResultData:
        return ToolResultData(content=content, display=display)


class FunctionTool(BaseTool):
    """Wraps a plain (sync or async) function as a tool.

    The function receives the model's arguments as keyword arguments.
    Its return value is converted with ``str()``; a returned
    :class:`ToolResultData` is passed through unchanged.
    """

    def __init__(
        self,
        fn: Callable[..., Any],
        *,
        name: str | None = None,
        description: str | None = None,
        parameters: tuple[ToolParam, ...] = (),
        annotations: ToolAnnotations | None = None,
    ) -> None:
        self._fn = fn
        self._definition = ToolDef(
            name=name or fn.__name__,
            description=description or inspect.getdoc(fn) or "",
            parameters=parameters,
            annotations=annotations,
        )

    @property
    def definition(self) -> ToolDef:
        return self._definition

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        result = self._fn(**args)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, ToolResultData):
            return result
        return self._ok("" if result is None else str(result))


def tool(
    fn: Callable[..., Any] | None = None,
    *,
    name: str | None = None,
    description: str | None = None,
    parameters: tuple[ToolParam, ...] = (),
    annotations: ToolAnnotations | None = None,
) -> Any:
    """Build a :class:`FunctionTool`, directly or as a decorator."""

    def wrap(func: Callable[..., Any]) -> FunctionTool:
        return FunctionTool(
            func, name=name, description=description,
            parameters=parameters, annotations=annotations,
        )

    return wrap(fn) if fn is not None else wrap
