"""
Sliding Interval Window

Fixed-capacity FIFO of the most recent validated intervals.
"""
from collections import deque
from typing import Deque, Tuple

from hrvstream.core.constants import WINDOW_CAPACITY


class SlidingWindow:
    """
    Ordered buffer holding at most ``capacity`` intervals.

    Pushing onto a full window evicts the single oldest interval.
    """

    def __init__(self, capacity: int = WINDOW_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._samples: Deque[float] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def push(self, sample: float) -> None:
        """Append a sample, evicting the oldest one once at capacity."""
        self._samples.append(float(sample))

    def is_full(self) -> bool:
        return len(self._samples) == self._capacity

    def snapshot(self) -> Tuple[float, ...]:
        """Copy of the current contents, oldest first."""
        return tuple(self._samples)

    def clear(self) -> None:
        self._samples.clear()

    def __len__(self) -> int:
        return len(self._samples)

    def __repr__(self) -> str:
        return f"SlidingWindow(capacity={self._capacity}, size={len(self)})"
