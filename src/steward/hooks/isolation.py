"""Out-of-process hook execution with a hard deadline.

The callback runs in a child process; the parent polls a result queue from
the event loop and kills the child when the deadline passes. A crash,
timeout, or exception in the child surfaces as :class:`HookError`.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import multiprocessing
import time
from collections.abc import Callable
from queue import Empty as QueueEmpty
from typing import Any

import anyio

from steward.errors import HookError

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.01
_DRAIN_TIMEOUT = 0.5


def _mp_context() -> Any:
    # fork inherits closures and lambdas without pickling them
    methods = multiprocessing.get_all_start_methods()
    return multiprocessing.get_context("fork" if "fork" in methods else "spawn")


def _invoke(
    callback: Callable[..., Any],
    kwargs: dict[str, Any],
    result_queue: multiprocessing.Queue,
) -> None:
    """Child-process entry point."""
    try:
        result = callback(**kwargs)
        if inspect.isawaitable(result):
            result = asyncio.run(_await(result))
        result_queue.put(("ok", result))
    except Exception as exc:
        result_queue.put(("error", f"{type(exc).__name__}: {exc}"))


async def _await(awaitable: Any) -> Any:
    return await awaitable


async def run_isolated(
    callback: Callable[..., Any],
    kwargs: dict[str, Any],
    timeout: float,
    *,
    event: str | None = None,
) -> Any:
    """Run ``callback(**kwargs)`` in a child process and return its result.

    Raises
    ------
    HookError
        If the callback raised, the child died without answering, the result
        could not be sent back, or *timeout* seconds elapsed.
    """
    ctx = _mp_context()
    result_queue = ctx.Queue()
    process = ctx.Process(target=_invoke, args=(callback, kwargs, result_queue), daemon=True)
    try:
        process.start()
    except Exception as exc:
        raise HookError(f"Could not start hook process: {exc}", hook_event=event) from exc

    deadline = time.monotonic() + timeout
    try:
        while True:
            try:
                status, payload = result_queue.get_nowait()
                break
            except QueueEmpty:
                pass

            if not process.is_alive():
                try:
                    status, payload = await anyio.to_thread.run_sync(
                        result_queue.get, True, _DRAIN_TIMEOUT,
                    )
                    break
                except QueueEmpty:
                    raise HookError(
                        f"Hook process exited with code {process.exitcode} without a result",
                        hook_event=event,
                    ) from None

            if time.monotonic() >= deadline:
                raise HookError(f"Hook timed out after {timeout}s", hook_event=event)

            await asyncio.sleep(_POLL_INTERVAL)
    finally:
        if process.is_alive():
            process.kill()
            logger.debug("Killed hook process %s", process.pid)
        process.join(timeout=1)
        result_queue.close()

    if status == "error":
        raise HookError(payload, hook_event=event)
    return payload
