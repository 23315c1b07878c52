"""
Time-Domain HRV

RMSSD over the successive differences of the interval window, with
large jumps rejected as motion or contact artifacts.
"""
from typing import Sequence

import numpy as np

from hrvstream.core.constants import DIFF_ARTIFACT_MS, MIN_VALID_DIFFS
from hrvstream.utils import get_logger

logger = get_logger(__name__)


def successive_differences(intervals: Sequence[float]) -> np.ndarray:
    """diff[i] = intervals[i + 1] - intervals[i]."""
    return np.diff(np.asarray(intervals, dtype=np.float64))


def rmssd(valid_diffs: np.ndarray) -> float:
    """Root mean square of the given differences."""
    return float(np.sqrt(np.mean(np.square(valid_diffs))))


class TimeDomainAnalyzer:
    """
    Holds the most recent HRV (RMSSD, integer ms).

    The held value is replaced only when the window yields at least
    ``min_valid_diffs`` non-artifact differences; otherwise the previous
    value is kept.
    """

    def __init__(
        self,
        artifact_threshold_ms: float = DIFF_ARTIFACT_MS,
        min_valid_diffs: int = MIN_VALID_DIFFS,
        initial_hrv: int = 0
    ):
        self.artifact_threshold_ms = artifact_threshold_ms
        self.min_valid_diffs = min_valid_diffs
        self._hrv = initial_hrv

    @property
    def hrv(self) -> int:
        return self._hrv

    def valid_differences(self, intervals: Sequence[float]) -> np.ndarray:
        """Successive differences with artifacts (|diff| >= threshold) removed."""
        diffs = successive_differences(intervals)
        return diffs[np.abs(diffs) < self.artifact_threshold_ms]

    def update(self, intervals: Sequence[float]) -> int:
        """
        Recompute HRV from the window contents.

        Args:
            intervals: Window snapshot, oldest first

        Returns:
            The held HRV after the update
        """
        valid = self.valid_differences(intervals)

        if len(valid) >= self.min_valid_diffs:
            self._hrv = int(round(rmssd(valid)))
        else:
            logger.debug(
                f"Only {len(valid)} valid diffs in {len(intervals)} intervals, "
                f"keeping HRV={self._hrv}ms"
            )

        return self._hrv

    def reset(self) -> None:
        self._hrv = 0
