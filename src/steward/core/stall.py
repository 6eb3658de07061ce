"""StallDetector: flags a model that keeps repeating itself."""

from __future__ import annotations

import json
from collections import deque

from steward.types.messages import Turn

_Observation = tuple[str, str]


def _normalize(text: str) -> str:
    return " ".join(text.split()).casefold()


def _tool_signature(turn: Turn) -> str:
    return json.dumps(
        [[req.name, dict(req.args)] for req in turn.tool_requests],
        sort_keys=True,
        default=str,
    )


class StallDetector:
    """Compares the last ``window`` assistant turns.

    A stall is the same non-empty text with the same tool calls (or none)
    ``window`` times in a row. Detection is advisory; the loop only warns.
    """

    def __init__(self, window: int = 2) -> None:
        if window < 2:
            raise ValueError("Stall window must be at least 2")
        self._window = window
        self._recent: deque[_Observation] = deque(maxlen=window)

    @property
    def window(self) -> int:
        return self._window

    def reset(self) -> None:
        self._recent.clear()

    def observe(self, turn: Turn) -> bool:
        """Record an assistant turn; True when it completes a stall."""
        observation = (_normalize(turn.text), _tool_signature(turn))
        self._recent.append(observation)
        if len(self._recent) < self._window or not observation[0]:
            return False
        return all(item == observation for item in self._recent)
