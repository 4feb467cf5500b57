"""Per-second rates derived from cumulative counters."""

import time
from typing import Callable, Dict, Mapping, Optional


def now_ms() -> float:
    """Wall-clock time in milliseconds."""
    return time.time() * 1000.0


class DeltaRateState:
    """
    Converts absolute counters into per-second rates between samples.

    The state starts ``cold`` (no previous sample). ``update`` always
    stores the new counters and sample time, so the first call only
    establishes a baseline and returns None. Subsequent calls are
    ``warm`` and return one rate per counter key:

        rate = (current - last) / ((now_ms - last_ms) / 1000)

    rounded to an integer. A non-positive elapsed time returns None (the
    cycle emits no rates). A counter that went backwards (reset, wrap,
    VM migration) yields a rate of 0, never a negative value.

    Counters from several sub-sources (disks, interfaces) must be summed
    by the caller before ``update`` so that a sub-source appearing or
    disappearing between samples does not show up as a spike of its own.
    """

    def __init__(self, clock: Callable[[], float] = now_ms):
        """
        Args:
            clock: Returns current wall-clock time in milliseconds
        """
        self._clock = clock
        self.last_counters: Optional[Dict[str, float]] = None
        self.last_sample_ms: Optional[float] = None

    @property
    def warm(self) -> bool:
        return self.last_counters is not None and self.last_sample_ms is not None

    def update(self, counters: Mapping[str, float]) -> Optional[Dict[str, int]]:
        """
        Record a sample and compute rates against the previous one.

        Args:
            counters: Current absolute counter values by key

        Returns:
            Rates by key, or None on the baseline sample and on a
            degenerate (non-positive) time interval
        """
        current_ms = self._clock()
        rates: Optional[Dict[str, int]] = None

        if self.warm:
            elapsed_seconds = (current_ms - self.last_sample_ms) / 1000.0
            if elapsed_seconds > 0:
                rates = {
                    key: self.rate(self.last_counters.get(key, value), value, elapsed_seconds)
                    for key, value in counters.items()
                }

        self.last_counters = dict(counters)
        self.last_sample_ms = current_ms
        return rates

    @staticmethod
    def rate(previous: float, current: float, elapsed_seconds: float) -> int:
        """Per-second rate, clamped to zero when the counter regressed."""
        delta = current - previous
        if delta <= 0:
            return 0
        return round(delta / elapsed_seconds)
