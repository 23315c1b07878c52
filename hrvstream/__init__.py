"""
HRV Stream

Streaming cardiac autonomic metrics (heart rate, RMSSD, LF/HF power)
from live beat-to-beat interval data.
"""
__version__ = "0.1.0"

from .core.analysis import SpectralAnalyzer, TimeDomainAnalyzer, BandPower
from .core.ingestion import IntervalValidator, SlidingWindow, SensorStream
from .core.session import HrvEngine, MetricsRecord, SessionContext, SessionRegistry

__all__ = [
    "__version__",
    "SpectralAnalyzer",
    "TimeDomainAnalyzer",
    "BandPower",
    "IntervalValidator",
    "SlidingWindow",
    "SensorStream",
    "HrvEngine",
    "MetricsRecord",
    "SessionContext",
    "SessionRegistry",
]
