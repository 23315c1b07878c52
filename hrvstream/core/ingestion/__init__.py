"""
Data Ingestion Module

Validation and windowing of beat intervals, the sensor stream adapter
and a synthetic interval source.
"""
from .validator import IntervalValidator
from .window import SlidingWindow
from .stream import SensorStream, SensorEvent, SensorEventType
from .simulator import SyntheticIntervalSource, IntervalSourceConfig, load_interval_recording

__all__ = [
    "IntervalValidator",
    "SlidingWindow",
    "SensorStream",
    "SensorEvent",
    "SensorEventType",
    "SyntheticIntervalSource",
    "IntervalSourceConfig",
    "load_interval_recording",
]
