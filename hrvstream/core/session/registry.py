"""
Session Registry

Tracks one HrvEngine per active sensor session.
"""
from typing import Callable, Dict, List, Optional
import threading

from hrvstream.utils import get_logger, SessionNotFoundError
from .emitter import RelayPublisher
from .engine import HrvEngine
from .records import SessionContext

logger = get_logger(__name__)

RelayFactory = Callable[[], Optional[RelayPublisher]]


class SessionRegistry:
    """
    In-memory map of session id -> engine.

    Each session gets its own relay from ``relay_factory`` so that
    connection state is never shared between sessions.
    """

    def __init__(self, relay_factory: Optional[RelayFactory] = None):
        self.relay_factory = relay_factory or (lambda: None)
        self._engines: Dict[str, HrvEngine] = {}
        self._relays: Dict[str, Optional[RelayPublisher]] = {}
        self._lock = threading.Lock()

    def create(self, context: Optional[SessionContext] = None) -> HrvEngine:
        """Start a new session and return its engine."""
        relay = self.relay_factory()
        engine = HrvEngine(context=context, relay=relay)
        with self._lock:
            self._engines[engine.session_id] = engine
            self._relays[engine.session_id] = relay
        logger.info(f"Session started: {engine.session_id} ({len(self)} active)")
        return engine

    def get(self, session_id: str) -> HrvEngine:
        with self._lock:
            engine = self._engines.get(session_id)
        if engine is None:
            raise SessionNotFoundError(session_id)
        return engine

    def relay_for(self, session_id: str) -> Optional[RelayPublisher]:
        self.get(session_id)
        return self._relays.get(session_id)

    def close(self, session_id: str) -> None:
        """Close the engine and its relay, and forget the session."""
        with self._lock:
            engine = self._engines.pop(session_id, None)
            relay = self._relays.pop(session_id, None)
        if engine is None:
            raise SessionNotFoundError(session_id)

        engine.close()
        close_relay = getattr(relay, "close", None)
        if callable(close_relay):
            close_relay()
        logger.info(f"Session ended: {session_id} ({len(self)} active)")

    def close_all(self) -> None:
        for session_id in self.session_ids():
            self.close(session_id)

    def session_ids(self) -> List[str]:
        with self._lock:
            return list(self._engines)

    def __len__(self) -> int:
        with self._lock:
            return len(self._engines)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._engines
