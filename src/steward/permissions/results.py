"""Permission decisions returned by the gate and by ``can_use_tool`` callbacks."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Allow:
    """The tool may run."""

    message: str | None = None

    @property
    def allowed(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Deny:
    """The tool may not run.

    ``reason`` is shown to the model. ``interrupt=True`` also ends the run
    after the current step.
    """

    reason: str
    interrupt: bool = False

    @property
    def allowed(self) -> bool:
        return False


PermissionResult = Allow | Deny
