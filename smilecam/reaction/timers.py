from __future__ import annotations

import heapq
import itertools
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from smilecam.utils.logging import setup_logger


logger = setup_logger()

Clock = Callable[[], float]


class ManualClock:
    """Virtual monotonic clock for tests and offline replay."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        if seconds < 0:
            raise ValueError("cannot advance a clock backwards")
        self.now += seconds
        return self.now

    def set(self, value: float) -> None:
        self.now = float(value)


@dataclass(order=True)
class _Timer:
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    name: str = field(default="", compare=False)


class TimerRegistry:
    """
    Scheduled one-shot callbacks, run by whoever owns the loop via `run_due()`.
    Nothing fires on its own; the frame loop pumps it every iteration.
    """

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self.clock = clock
        self._heap: List[_Timer] = []
        self._seq = itertools.count()

    def schedule(self, delay_s: float, callback: Callable[[], None], name: str = "") -> float:
        """Queue `callback` to run `delay_s` from now. Returns the due time."""
        due = self.clock() + max(0.0, float(delay_s))
        heapq.heappush(self._heap, _Timer(due, next(self._seq), callback, name))
        return due

    def run_due(self, now: Optional[float] = None) -> int:
        now = self.clock() if now is None else now
        fired = 0
        while self._heap and self._heap[0].due <= now:
            t = heapq.heappop(self._heap)
            try:
                t.callback()
            except Exception:
                logger.exception(f"Timer '{t.name or 'anonymous'}' failed")
            fired += 1
        return fired

    def clear(self) -> None:
        self._heap.clear()

    @property
    def pending(self) -> int:
        return len(self._heap)

    def next_due(self) -> Optional[float]:
        return self._heap[0].due if self._heap else None
