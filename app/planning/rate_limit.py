"""Fixed-interval request gate used to pace calls against the portal."""
from __future__ import annotations

import time
from typing import Callable, Optional


class FixedIntervalGate:
    """Block until at least ``interval`` seconds have passed since the last call.

    ``clock`` and ``sleep`` are injectable so tests can drive the gate with a
    fake clock instead of real time.
    """

    def __init__(
        self,
        interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.interval = max(0.0, float(interval))
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None

    def wait(self) -> float:
        """Pause as needed, then mark the gate as passed. Returns seconds slept."""

        slept = 0.0
        if self._last is not None and self.interval > 0:
            remaining = self.interval - (self._clock() - self._last)
            if remaining > 0:
                self._sleep(remaining)
                slept = remaining
        self._last = self._clock()
        return slept


__all__ = ["FixedIntervalGate"]
