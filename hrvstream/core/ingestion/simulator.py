"""
Synthetic Beat-Interval Source

Generates realistic PPI sequences for testing and demos without a sensor.
Includes physiologically-inspired modulation:

- Respiratory sinus arrhythmia (HF band, ~0.25 Hz)
- Mayer waves (LF band, ~0.1 Hz)
- Beat-to-beat jitter
- Optional motion artifacts (out-of-range or jump intervals)
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Generator, List, Optional

import numpy as np
import pandas as pd

from hrvstream.utils import get_logger, IngestionError

logger = get_logger(__name__)


@dataclass
class IntervalSourceConfig:
    """Configuration for synthetic interval generation."""
    heart_rate_bpm: float = 65.0
    resp_rate_hz: float = 0.25      # 15 breaths/min
    resp_amplitude_ms: float = 25.0
    mayer_rate_hz: float = 0.1
    mayer_amplitude_ms: float = 15.0
    jitter_ms: float = 5.0
    artifact_probability: float = 0.0


class SyntheticIntervalSource:
    """
    Simulated beat-to-beat interval generator.

    Modulation is evaluated at each beat's own onset time, so the interval
    series carries LF and HF content the way a real tachogram does.
    """

    def __init__(
        self,
        config: Optional[IntervalSourceConfig] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize source.

        Args:
            config: Generation parameters
            seed: Random seed for reproducibility
        """
        self.config = config or IntervalSourceConfig()
        self._rng = np.random.default_rng(seed)
        self._elapsed_s = 0.0
        self._beat_count = 0

        logger.info(
            f"SyntheticIntervalSource initialized: HR={self.config.heart_rate_bpm}bpm, "
            f"resp={self.config.resp_rate_hz}Hz, mayer={self.config.mayer_rate_hz}Hz"
        )

    @property
    def mean_interval_ms(self) -> float:
        return 60000.0 / self.config.heart_rate_bpm

    def next_interval(self) -> float:
        """Generate the next beat interval in milliseconds."""
        cfg = self.config
        t = self._elapsed_s

        interval = (
            self.mean_interval_ms
            + cfg.resp_amplitude_ms * np.sin(2 * np.pi * cfg.resp_rate_hz * t)
            + cfg.mayer_amplitude_ms * np.sin(2 * np.pi * cfg.mayer_rate_hz * t)
            + self._rng.normal(0.0, cfg.jitter_ms)
        )

        # Physiological beats advance the clock; artifacts do not
        self._elapsed_s += interval / 1000.0
        self._beat_count += 1

        if cfg.artifact_probability > 0 and self._rng.random() < cfg.artifact_probability:
            return self._artifact(interval)

        return float(interval)

    def _artifact(self, interval: float) -> float:
        """Missed beat, extra beat or out-of-range reading."""
        kind = self._rng.integers(0, 3)
        if kind == 0:
            return float(interval * 2)       # missed beat
        if kind == 1:
            return float(interval / 2)       # double detection
        return float(self._rng.choice([150.0, 2600.0]))

    def generate(self, count: int) -> List[float]:
        """Generate ``count`` consecutive intervals."""
        return [self.next_interval() for _ in range(count)]

    def stream(self, count: Optional[int] = None) -> Generator[float, None, None]:
        """
        Yield intervals indefinitely, or ``count`` of them.

        Yields:
            Interval in milliseconds
        """
        produced = 0
        while count is None or produced < count:
            yield self.next_interval()
            produced += 1

    def reset(self) -> None:
        self._elapsed_s = 0.0
        self._beat_count = 0


def load_interval_recording(filepath: str, column: Optional[str] = None) -> List[float]:
    """
    Load a recorded PPI/RR series from CSV for replay.

    Args:
        filepath: CSV file with one interval (ms) per row
        column: Interval column; the first numeric column when omitted

    Returns:
        Intervals in recording order, missing values dropped
    """
    path = Path(filepath)
    if not path.exists():
        raise IngestionError(f"Recording not found: {filepath}", source="recording")

    try:
        df = pd.read_csv(path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise IngestionError(
            f"Failed to load recording: {e}",
            source="recording",
            details={"filepath": filepath}
        )

    if column is None:
        numeric = df.select_dtypes(include="number").columns
        if len(numeric) == 0:
            raise IngestionError(
                "Recording has no numeric column",
                source="recording",
                details={"columns": list(df.columns)}
            )
        column = numeric[0]
    elif column not in df.columns:
        raise IngestionError(
            f"Column '{column}' not in recording",
            source="recording",
            details={"columns": list(df.columns)}
        )

    intervals = df[column].dropna().astype(float).tolist()
    logger.info(f"Loaded recording {path.name}: {len(intervals)} intervals from '{column}'")
    return intervals
