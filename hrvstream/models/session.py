"""
API Models

Request and response bodies for the session endpoints.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SessionContextInput(BaseModel):
    """Session context delivered by device pairing."""
    user_id: int = Field(..., ge=0)
    device_code: str = Field(..., min_length=1)
    auth_token: Optional[str] = None  # connects the session relay when given


class SessionCreateRequest(BaseModel):
    """Start a session, optionally with its context already known."""
    context: Optional[SessionContextInput] = None


class SessionResponse(BaseModel):
    session_id: str
    context_attached: bool
    window_capacity: int
    relay_status: Optional[str] = None


class IntervalBatchRequest(BaseModel):
    """One sensor notification worth of beat intervals (ms)."""
    intervals_ms: List[float] = Field(..., min_length=1)


class HeartRateRequest(BaseModel):
    bpm: int = Field(..., gt=0, lt=400)


class MetricsResponse(BaseModel):
    session_id: str
    heart_rate: Optional[int] = None
    hrv: int
    lf: float
    hf: float
    lf_hf_ratio: float
    window_size: int
    window_full: bool
    timestamp: Optional[float] = None


class IngestResponse(BaseModel):
    session_id: str
    accepted: int
    rejected: int
    metrics: MetricsResponse


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: str
    uptime_seconds: float
    active_sessions: int
    relay: Dict[str, Any] = Field(default_factory=dict)


class PairingStartResponse(BaseModel):
    """Device code to show to the user, and the token to poll with."""
    code: str
    device_token: str
    expires_at: int


class PairingPollRequest(BaseModel):
    device_token: str = Field(..., min_length=1)


class PairingStatusResponse(BaseModel):
    authenticated: bool
    session: Optional[SessionResponse] = None
