"""OpenTelemetry-based metrics for steward."""

from steward.observability.metrics import (
    record_hook_error,
    record_provider_latency,
    record_stop,
    record_tool_call,
    record_turn,
    timed_operation,
)

__all__ = [
    "record_hook_error",
    "record_provider_latency",
    "record_stop",
    "record_tool_call",
    "record_turn",
    "timed_operation",
]
