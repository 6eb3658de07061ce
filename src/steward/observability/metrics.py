"""Metrics recording: counters and histograms, with no-op fallback."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Generator

try:
    from opentelemetry import metrics

    _HAS_OTEL = True
except ImportError:
    _HAS_OTEL = False

# Lazily-created instruments
_meter: Any = None
_turn_counter: Any = None
_token_counter: Any = None
_tool_call_counter: Any = None
_cost_counter: Any = None
_hook_error_counter: Any = None
_stop_counter: Any = None
_latency_histogram: Any = None


def _ensure_instruments() -> None:
    """Create meter and instruments on first use."""
    global _meter, _turn_counter, _token_counter, _tool_call_counter, _cost_counter
    global _hook_error_counter, _stop_counter, _latency_histogram

    if not _HAS_OTEL or _meter is not None:
        return

    _meter = metrics.get_meter("steward")
    _turn_counter = _meter.create_counter(
        "steward.turns",
        description="Assistant turns completed",
    )
    _token_counter = _meter.create_counter(
        "steward.tokens",
        description="Total tokens consumed",
        unit="tokens",
    )
    _tool_call_counter = _meter.create_counter(
        "steward.tool_calls",
        description="Tool calls, including rejected ones",
    )
    _cost_counter = _meter.create_counter(
        "steward.cost",
        description="Total cost in USD",
        unit="USD",
    )
    _hook_error_counter = _meter.create_counter(
        "steward.hook_errors",
        description="Hook callbacks that failed",
    )
    _stop_counter = _meter.create_counter(
        "steward.runs",
        description="Finished runs by stop reason",
    )
    _latency_histogram = _meter.create_histogram(
        "steward.provider_latency",
        description="Provider response latency",
        unit="ms",
    )


def record_turn(
    input_tokens: int = 0,
    output_tokens: int = 0,
    cost: float = 0.0,
    *,
    provider: str = "",
    model: str = "",
) -> None:
    """Record a completed turn with its token usage and cost."""
    if not _HAS_OTEL:
        return
    _ensure_instruments()
    attrs = {"provider": provider, "model": model}
    _turn_counter.add(1, attrs)
    _token_counter.add(input_tokens, {"direction": "input", **attrs})
    _token_counter.add(output_tokens, {"direction": "output", **attrs})
    if cost:
        _cost_counter.add(cost, attrs)


def record_tool_call(tool_name: str, *, is_error: bool = False, denied: bool = False) -> None:
    """Record a tool call outcome."""
    if not _HAS_OTEL:
        return
    _ensure_instruments()
    _tool_call_counter.add(1, {
        "tool": tool_name,
        "error": str(is_error).lower(),
        "denied": str(denied).lower(),
    })


def record_hook_error(event: str) -> None:
    if not _HAS_OTEL:
        return
    _ensure_instruments()
    _hook_error_counter.add(1, {"event": event})


def record_stop(reason: str) -> None:
    if not _HAS_OTEL:
        return
    _ensure_instruments()
    _stop_counter.add(1, {"reason": reason})


def record_provider_latency(latency_ms: float, *, provider: str = "", model: str = "") -> None:
    """Record provider response latency in milliseconds."""
    if not _HAS_OTEL:
        return
    _ensure_instruments()
    _latency_histogram.record(latency_ms, {"provider": provider, "model": model})


@contextmanager
def timed_operation(
    *, provider: str = "", model: str = "",
) -> Generator[None, None, None]:
    """Context manager that measures wall-clock time and records it as latency."""
    start = time.monotonic()
    try:
        yield
    finally:
        elapsed_ms = (time.monotonic() - start) * 1000
        record_provider_latency(elapsed_ms, provider=provider, model=model)


def reset_instruments() -> None:
    """Reset module-level instruments: useful for test isolation."""
    global _meter, _turn_counter, _token_counter, _tool_call_counter, _cost_counter
    global _hook_error_counter, _stop_counter, _latency_histogram
    _meter = None
    _turn_counter = None
    _token_counter = None
    _tool_call_counter = None
    _cost_counter = None
    _hook_error_counter = None
    _stop_counter = None
    _latency_histogram = None
