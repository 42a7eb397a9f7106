"""Fixed-cadence scheduler that corrects for drift caused by slow work."""

from __future__ import annotations

import logging
import time
from typing import Callable

DEFAULT_THRESHOLD = 0.001
DEFAULT_MAX_SLEEP = 0.5

logger = logging.getLogger(__name__)


class PeriodicScheduler:
    """Runs ``work`` so that cycle N starts at ``start + N * period``.

    The anchor advances by exactly ``period`` after every cycle. Between
    cycles the scheduler sleeps for half of the remaining time (at most
    ``max_sleep``), re-reads the clock and repeats until less than
    ``threshold`` seconds remain. Work that overruns the period makes the
    following cycles run back to back until the anchor is caught up; no
    cycle is skipped.

    ``stop()`` only assigns a flag, so it is safe to call from a signal
    handler; a pending wait notices it within ``max_sleep`` seconds.
    """

    def __init__(
        self,
        period: float,
        threshold: float = DEFAULT_THRESHOLD,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        max_sleep: float = DEFAULT_MAX_SLEEP,
    ) -> None:
        if period <= 0:
            raise ValueError(f"period must be positive, got {period!r}")
        self.period = period
        self.threshold = threshold
        self.max_sleep = max_sleep
        self._clock = clock
        self._sleep = sleep
        self._stopping = False

    @property
    def stopped(self) -> bool:
        return self._stopping

    def stop(self) -> None:
        self._stopping = True

    def run(self, work: Callable[[], object]) -> int:
        """Invoke ``work`` once per cycle until stopped; return the cycle count."""
        cycles = 0
        anchor = self._clock()
        while not self._stopping:
            work()
            cycles += 1
            anchor += self.period
            self._wait_until(anchor)
        logger.debug("scheduler stopped", extra={"cycle": cycles})
        return cycles

    def _wait_until(self, anchor: float) -> None:
        while not self._stopping:
            remaining = anchor - self._clock()
            if remaining < self.threshold:
                return
            self._sleep(min(remaining / 2, self.max_sleep))
