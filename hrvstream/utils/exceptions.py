"""
Custom Exception Hierarchy

Provides specific exception types for the collaborators around the
analytics engine. The engine itself never raises on bad data: it drops
samples and degrades to "no new metric".
"""
from typing import Optional, Dict, Any


class HrvStreamError(Exception):
    """Base exception for all hrvstream errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class IngestionError(HrvStreamError):
    """Sensor values that cannot be interpreted as numbers."""

    def __init__(
        self,
        message: str,
        source: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="INGESTION_ERROR",
            details={"source": source, **(details or {})}
        )
        self.source = source


class AuthenticationError(HrvStreamError):
    """Device-pairing flow failed or expired."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="AUTHENTICATION_ERROR",
            details=details
        )


class RelayError(HrvStreamError):
    """Relay connection could not be established."""

    def __init__(
        self,
        message: str,
        channel: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="RELAY_ERROR",
            details={"channel": channel, **(details or {})}
        )
        self.channel = channel


class SessionNotFoundError(HrvStreamError):
    """No active engine for the requested session id."""

    def __init__(self, session_id: str):
        super().__init__(
            message=f"Session not found: {session_id}",
            code="SESSION_NOT_FOUND",
            details={"session_id": session_id}
        )
        self.session_id = session_id
