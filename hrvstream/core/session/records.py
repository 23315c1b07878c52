"""
Session Records

Session context handed over by device pairing, and the immutable metrics
record produced for every heart-rate event.
"""
from dataclasses import dataclass, field
from typing import Dict, Any
import time


@dataclass(frozen=True)
class SessionContext:
    """
    Identity of an authenticated sensor session.

    Attributes:
        user_id: Account the sensor is paired with
        device_code: Tagging code attached to every outbound record
    """
    user_id: int
    device_code: str

    @property
    def channel(self) -> str:
        """Per-session relay channel."""
        return f"private:{self.user_id}"


@dataclass(frozen=True)
class MetricsRecord:
    """One snapshot of heart rate, HRV and band powers."""
    heart_rate: int
    hrv: int
    lf: float
    hf: float
    context: SessionContext
    timestamp: float = field(default_factory=lambda: time.time() * 1000)

    def to_payload(self) -> Dict[str, Any]:
        """Relay wire format; band powers are truncated to integers."""
        return {
            "heartRate": int(self.heart_rate),
            "hrv": int(self.hrv),
            "lf": int(self.lf),
            "hf": int(self.hf),
            "code": self.context.device_code,
            "type": "private_msg",
        }

    def to_dict(self) -> Dict[str, Any]:
        """Full-precision serialization for local consumers."""
        return {
            "heart_rate": self.heart_rate,
            "hrv": self.hrv,
            "lf": self.lf,
            "hf": self.hf,
            "user_id": self.context.user_id,
            "device_code": self.context.device_code,
            "timestamp": self.timestamp,
        }
