"""
External Collaborators

Device pairing and the realtime metrics relay.
"""
from .auth import (
    DeviceAuthClient,
    DeviceStartResponse,
    DevicePollResponse,
    AuthenticatedSession,
)
from .relay import (
    ConnectionStatus,
    HttpRelay,
    InMemoryRelay,
    build_relay,
)

__all__ = [
    "DeviceAuthClient",
    "DeviceStartResponse",
    "DevicePollResponse",
    "AuthenticatedSession",
    "ConnectionStatus",
    "HttpRelay",
    "InMemoryRelay",
    "build_relay",
]
