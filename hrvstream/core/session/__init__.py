"""
Session Module

Per-session engine state, metrics records and their emission.
"""
from .records import SessionContext, MetricsRecord
from .emitter import MetricsEmitter, RelayPublisher
from .engine import HrvEngine, heart_rate_from_interval
from .registry import SessionRegistry

__all__ = [
    "SessionContext",
    "MetricsRecord",
    "MetricsEmitter",
    "RelayPublisher",
    "HrvEngine",
    "heart_rate_from_interval",
    "SessionRegistry",
]
