"""
Pytest Configuration and Fixtures

Shared fixtures for the streaming HRV engine tests.
"""
import pytest
import numpy as np
from pathlib import Path
import sys

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from hrvstream.core.session import HrvEngine, SessionContext
from hrvstream.services.relay import InMemoryRelay


@pytest.fixture
def ramp_window() -> list:
    """30 intervals increasing by a constant 10 ms step."""
    return [800.0 + 10.0 * i for i in range(30)]


@pytest.fixture
def alternating_window() -> list:
    """30 intervals alternating 800 ms / 810 ms."""
    return [800.0 if i % 2 == 0 else 810.0 for i in range(30)]


@pytest.fixture
def random_window() -> np.ndarray:
    """Plausible, jittery interval window."""
    rng = np.random.default_rng(42)
    return 850.0 + rng.normal(0.0, 30.0, 30)


@pytest.fixture
def session_context() -> SessionContext:
    return SessionContext(user_id=42, device_code="ABC123")


@pytest.fixture
def relay() -> InMemoryRelay:
    return InMemoryRelay()


@pytest.fixture
def engine(session_context, relay):
    """Engine with context and an in-memory relay; closed after the test."""
    eng = HrvEngine(context=session_context, relay=relay)
    yield eng
    eng.close()
