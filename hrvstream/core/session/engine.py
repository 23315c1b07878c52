"""
Per-Session Analytics Engine

Owns the sliding window, the held HRV and the latest band powers of one
sensor session. Samples are processed synchronously in arrival order; the
spectral step runs on a worker thread against a copied snapshot and its
result is collected back on the ingestion path.
"""
from collections import deque
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from typing import Any, Deque, Dict, Optional
import threading
import uuid

from hrvstream.config import settings
from hrvstream.core.constants import MS_PER_MINUTE, WINDOW_CAPACITY
from hrvstream.core.ingestion.validator import IntervalValidator
from hrvstream.core.ingestion.window import SlidingWindow
from hrvstream.core.analysis.time_domain import TimeDomainAnalyzer
from hrvstream.core.analysis.spectral import BandPower, SpectralAnalyzer
from hrvstream.utils import get_logger
from .emitter import DisplayListener, MetricsEmitter, RelayPublisher
from .records import MetricsRecord, SessionContext

logger = get_logger(__name__)


def heart_rate_from_interval(interval_ms: float) -> int:
    """Instantaneous heart rate (bpm) of one beat interval."""
    return int(MS_PER_MINUTE / interval_ms)


class HrvEngine:
    """
    Streaming HRV engine for a single sensor session.

    Lifecycle: create when the session starts, feed it with
    :meth:`push_interval` / :meth:`push_heart_rate`, :meth:`close` it on
    disconnect. Engines share no mutable state with each other.
    """

    def __init__(
        self,
        context: Optional[SessionContext] = None,
        relay: Optional[RelayPublisher] = None,
        capacity: int = WINDOW_CAPACITY,
        executor: Optional[Executor] = None,
        session_id: Optional[str] = None
    ):
        """
        Initialize engine.

        Args:
            context: Session context; records are only emitted once it is set
            relay: Outbound relay for metrics records
            capacity: Sliding window size in beats
            executor: Worker for spectral analysis; a private single-thread
                pool is created (and owned) when omitted
            session_id: Identifier used in logs and the session registry
        """
        self.session_id = session_id or str(uuid.uuid4())

        self.validator = IntervalValidator()
        self.window = SlidingWindow(capacity)
        self.time_domain = TimeDomainAnalyzer()
        self.spectral = SpectralAnalyzer()
        self.emitter = MetricsEmitter(relay=relay, context=context)

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=settings.spectral_workers,
            thread_name_prefix=f"spectral-{self.session_id[:8]}"
        )
        # Guards the pending futures and the adopted band powers; flush may
        # run on another thread than ingestion
        self._spectral_lock = threading.Lock()
        self._pending: Deque[Future] = deque()
        self._band_power = BandPower()

        self._accepted = 0
        self._rejected = 0
        self._closed = False

        logger.info(
            f"HrvEngine created: session={self.session_id}, "
            f"capacity={capacity}, context={'set' if context else 'pending'}"
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def context(self) -> Optional[SessionContext]:
        return self.emitter.context

    @property
    def hrv(self) -> int:
        return self.time_domain.hrv

    @property
    def band_power(self) -> BandPower:
        return self._collect_spectral()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def last_record(self) -> Optional[MetricsRecord]:
        return self.emitter.last_record

    def attach_context(self, context: SessionContext) -> None:
        """Bind the session context delivered by device pairing."""
        self.emitter.attach_context(context)

    def add_listener(self, listener: DisplayListener) -> None:
        self.emitter.add_listener(listener)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def push_interval(self, interval_ms: float) -> bool:
        """
        Process one raw beat interval.

        Implausible values are dropped without touching any state. Accepted
        values update the window and HRV, schedule spectral analysis once
        the window is full, and emit a record with the heart rate implied
        by the interval.

        Returns:
            True if the interval was accepted into the window
        """
        if self._closed:
            logger.warning(f"Session {self.session_id} closed, ignoring interval {interval_ms}")
            return False

        if not self.validator.is_valid(interval_ms):
            self._rejected += 1
            logger.debug(f"Dropped implausible interval {interval_ms}ms")
            return False

        self.window.push(interval_ms)
        self._accepted += 1

        snapshot = self.window.snapshot()
        hrv = self.time_domain.update(snapshot)

        if self.window.is_full():
            self._schedule_spectral(snapshot)

        heart_rate = heart_rate_from_interval(interval_ms)
        logger.debug(f"PPI: {interval_ms}ms -> HR={heart_rate}bpm HRV={hrv}ms")

        self.emitter.emit(heart_rate, hrv, self.band_power)
        return True

    def push_heart_rate(self, bpm: int) -> Optional[MetricsRecord]:
        """Emit a record for an externally measured heart rate."""
        if self._closed:
            logger.warning(f"Session {self.session_id} closed, ignoring HR {bpm}")
            return None
        return self.emitter.emit(bpm, self.hrv, self.band_power)

    # ------------------------------------------------------------------
    # Spectral worker
    # ------------------------------------------------------------------

    def _schedule_spectral(self, snapshot) -> None:
        try:
            future = self._executor.submit(self.spectral.analyze, snapshot)
        except RuntimeError as e:
            # Executor already shut down
            logger.warning(f"Spectral analysis not scheduled: {e}")
            return
        with self._spectral_lock:
            self._pending.append(future)

    def _collect_spectral(self) -> BandPower:
        """Adopt finished results in submission order without blocking."""
        with self._spectral_lock:
            while self._pending and self._pending[0].done():
                future = self._pending.popleft()
                if future.cancelled():
                    continue
                error = future.exception()
                if error is not None:
                    logger.error(f"Spectral analysis failed: {error}")
                    continue
                self._band_power = future.result()
                logger.debug(
                    f"LF={self._band_power.lf:.1f} HF={self._band_power.hf:.1f} "
                    f"(session={self.session_id})"
                )
            return self._band_power

    def flush(self, timeout: Optional[float] = None) -> BandPower:
        """Wait for all scheduled spectral work and return the latest powers."""
        with self._spectral_lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)
        return self._collect_spectral()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Detach the engine; in-flight spectral work completes unobserved."""
        if self._closed:
            return
        self._closed = True
        with self._spectral_lock:
            self._pending.clear()
        if self._owns_executor:
            self._executor.shutdown(wait=False)
        logger.info(
            f"HrvEngine closed: session={self.session_id}, "
            f"accepted={self._accepted}, rejected={self._rejected}"
        )

    def get_stats(self) -> Dict[str, Any]:
        """Snapshot of the engine state for monitoring."""
        band_power = self.band_power
        return {
            "session_id": self.session_id,
            "window_size": len(self.window),
            "window_capacity": self.window.capacity,
            "window_full": self.window.is_full(),
            "accepted": self._accepted,
            "rejected": self._rejected,
            "hrv": self.hrv,
            "lf": band_power.lf,
            "hf": band_power.hf,
            "emitted": self.emitter.emitted_count,
            "context_attached": self.context is not None,
            "closed": self._closed,
        }

    def __enter__(self) -> "HrvEngine":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
