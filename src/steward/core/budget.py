"""BudgetTracker: tracks turns and cost against the policy's ceilings."""

from __future__ import annotations

from dataclasses import dataclass

from steward.types.events import StopReason

WARNING_THRESHOLD = 0.9


@dataclass(frozen=True, slots=True)
class BudgetSnapshot:
    """Current budget state. ``None`` ceilings mean unlimited."""

    turns_used: int = 0
    cost_used: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    max_turns: int | None = None
    max_cost_usd: float | None = None

    @property
    def cost_remaining(self) -> float | None:
        if self.max_cost_usd is None:
            return None
        return max(0.0, self.max_cost_usd - self.cost_used)


@dataclass(frozen=True, slots=True)
class BudgetCheck:
    """Outcome of a budget check after a turn."""

    warn: bool = False
    stop_reason: StopReason | None = None

    @property
    def breached(self) -> bool:
        return self.stop_reason is not None


class BudgetTracker:
    """Counts turns and cost for one run at a time.

    Counters only grow within a run. :meth:`start_run` resets them and may
    narrow the turn ceiling for that run.
    """

    def __init__(self, *, max_turns: int | None = None, max_cost_usd: float | None = None) -> None:
        self._default_max_turns = max_turns
        self._max_turns = max_turns
        self._max_cost = max_cost_usd
        self._turns = 0
        self._cost = 0.0
        self._input_tokens = 0
        self._output_tokens = 0
        self._warned = False

    def start_run(self, max_turns: int | None = None) -> None:
        """Reset per-run counters."""
        self._max_turns = max_turns if max_turns is not None else self._default_max_turns
        self._turns = 0
        self._cost = 0.0
        self._input_tokens = 0
        self._output_tokens = 0
        self._warned = False

    @property
    def turns_used(self) -> int:
        return self._turns

    @property
    def cost_used(self) -> float:
        return self._cost

    def record_turn(
        self, cost: float = 0.0, *, input_tokens: int = 0, output_tokens: int = 0,
    ) -> BudgetSnapshot:
        """Count one completed assistant turn and its cost."""
        self._turns += 1
        self._cost += max(0.0, cost)
        self._input_tokens += max(0, input_tokens)
        self._output_tokens += max(0, output_tokens)
        return self.snapshot()

    def snapshot(self) -> BudgetSnapshot:
        return BudgetSnapshot(
            turns_used=self._turns,
            cost_used=self._cost,
            input_tokens=self._input_tokens,
            output_tokens=self._output_tokens,
            max_turns=self._max_turns,
            max_cost_usd=self._max_cost,
        )

    def check(self) -> BudgetCheck:
        """Evaluate the ceilings. The cost warning is reported once per run."""
        warn = False
        if self._max_cost is not None and not self._warned:
            if self._cost >= WARNING_THRESHOLD * self._max_cost:
                warn = True
                self._warned = True

        stop_reason = None
        if self._max_cost is not None and self._cost >= self._max_cost:
            stop_reason = StopReason.COST_LIMIT
        elif self._max_turns is not None and self._turns >= self._max_turns:
            stop_reason = StopReason.MAX_TURNS
        return BudgetCheck(warn=warn, stop_reason=stop_reason)
