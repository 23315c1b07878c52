from .session import (
    SessionContextInput,
    SessionCreateRequest,
    SessionResponse,
    IntervalBatchRequest,
    HeartRateRequest,
    MetricsResponse,
    IngestResponse,
    HealthResponse,
    PairingStartResponse,
    PairingPollRequest,
    PairingStatusResponse,
)

__all__ = [
    "SessionContextInput",
    "SessionCreateRequest",
    "SessionResponse",
    "IntervalBatchRequest",
    "HeartRateRequest",
    "MetricsResponse",
    "IngestResponse",
    "HealthResponse",
    "PairingStartResponse",
    "PairingPollRequest",
    "PairingStatusResponse",
]
