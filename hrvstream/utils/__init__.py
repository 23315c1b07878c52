"""
Utilities Package - Logging and Exception Handling
"""
from .logging import get_logger, setup_logging
from .exceptions import (
    HrvStreamError,
    IngestionError,
    AuthenticationError,
    RelayError,
    SessionNotFoundError,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "HrvStreamError",
    "IngestionError",
    "AuthenticationError",
    "RelayError",
    "SessionNotFoundError",
]
