"""
Interval Plausibility Gate

Rejects raw beat-to-beat intervals outside the human range before they
reach the sliding window.
"""
import math

from hrvstream.core.constants import INTERVAL_MIN_MS, INTERVAL_MAX_MS


class IntervalValidator:
    """
    Stateless predicate over raw interval values (milliseconds).

    A value is plausible iff ``min_ms <= value <= max_ms``. Non-finite
    values are never plausible.
    """

    def __init__(
        self,
        min_ms: float = INTERVAL_MIN_MS,
        max_ms: float = INTERVAL_MAX_MS
    ):
        self.min_ms = min_ms
        self.max_ms = max_ms

    def is_valid(self, interval_ms: float) -> bool:
        """Return True if the interval may enter the window."""
        if not math.isfinite(interval_ms):
            return False
        return self.min_ms <= interval_ms <= self.max_ms

    __call__ = is_valid
