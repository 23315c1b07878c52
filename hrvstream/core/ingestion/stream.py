"""
Sensor Stream Adapter

Turns push-style sensor callbacks (beat intervals and heart-rate
notifications, possibly delivered on foreign threads) into a single
ordered queue drained by one consumer into an engine.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional, TYPE_CHECKING
import asyncio
import threading
import time

from hrvstream.utils import get_logger, IngestionError

if TYPE_CHECKING:
    from hrvstream.core.session.engine import HrvEngine

logger = get_logger(__name__)


class SensorEventType(str, Enum):
    """Kinds of sensor notifications."""
    INTERVAL = "interval"
    HEART_RATE = "heart_rate"


@dataclass
class SensorEvent:
    """
    One sensor notification.

    Attributes:
        kind: Interval sample or heart-rate notification
        value: Interval in ms, or heart rate in bpm
        timestamp: Arrival time in milliseconds
        sequence_id: Arrival order within the stream
    """
    kind: SensorEventType
    value: float
    timestamp: float = 0.0
    sequence_id: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "value": self.value,
            "timestamp": self.timestamp,
            "sequence_id": self.sequence_id,
        }


def _as_number(value: Any, source: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise IngestionError(
            f"Non-numeric {source} value: {value!r}",
            source=source,
            details={"value": repr(value)}
        )


class SensorStream:
    """
    Single-consumer queue in front of an HrvEngine.

    ``feed_*`` methods may be called from any thread; :meth:`run` must be
    awaited on the event loop that owns the queue.
    """

    def __init__(self, engine: "HrvEngine"):
        self.engine = engine
        # Unbounded: callbacks handed over from foreign threads must never be refused
        self._queue: "asyncio.Queue[Optional[SensorEvent]]" = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_thread: Optional[int] = None
        self._sequence = 0
        self._seq_lock = threading.Lock()
        self._processed = 0
        self._running = False

    @staticmethod
    def current_timestamp_ms() -> float:
        return time.time() * 1000

    @property
    def processed(self) -> int:
        return self._processed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def _next_sequence(self) -> int:
        with self._seq_lock:
            seq = self._sequence
            self._sequence += 1
        return seq

    def _enqueue(self, item: Optional[SensorEvent]) -> None:
        loop = self._loop
        if loop is not None and threading.get_ident() != self._loop_thread:
            loop.call_soon_threadsafe(self._queue.put_nowait, item)
        else:
            self._queue.put_nowait(item)

    def _feed(self, kind: SensorEventType, value: Any) -> SensorEvent:
        event = SensorEvent(
            kind=kind,
            value=_as_number(value, kind.value),
            timestamp=self.current_timestamp_ms(),
            sequence_id=self._next_sequence(),
        )
        self._enqueue(event)
        return event

    def feed_interval(self, interval_ms: Any) -> SensorEvent:
        """Queue one beat interval (milliseconds)."""
        return self._feed(SensorEventType.INTERVAL, interval_ms)

    def feed_heart_rate(self, bpm: Any) -> SensorEvent:
        """Queue one heart-rate notification (bpm)."""
        return self._feed(SensorEventType.HEART_RATE, bpm)

    def feed_batch(self, intervals_ms: Iterable[Any]) -> int:
        """Queue every interval of a sensor notification, in order."""
        count = 0
        for interval in intervals_ms:
            self.feed_interval(interval)
            count += 1
        return count

    def stop(self) -> None:
        """Ask :meth:`run` to return after draining queued events."""
        self._enqueue(None)

    def dispatch(self, event: SensorEvent) -> None:
        """Apply one event to the engine."""
        if event.kind is SensorEventType.INTERVAL:
            self.engine.push_interval(event.value)
        else:
            self.engine.push_heart_rate(int(event.value))
        self._processed += 1

    async def run(self) -> int:
        """
        Drain the queue into the engine until :meth:`stop` is called.

        Returns:
            Number of events processed
        """
        self._loop = asyncio.get_running_loop()
        self._loop_thread = threading.get_ident()
        self._running = True
        logger.info(f"Sensor stream started for session {self.engine.session_id}")

        try:
            while True:
                event = await self._queue.get()
                if event is None:
                    break
                self.dispatch(event)
        finally:
            self._running = False
            self._loop = None
            self._loop_thread = None
            logger.info(
                f"Sensor stream stopped for session {self.engine.session_id}: "
                f"{self._processed} events"
            )

        return self._processed

    def get_stats(self) -> Dict[str, Any]:
        return {
            "session_id": self.engine.session_id,
            "running": self._running,
            "processed": self._processed,
            "pending": self.pending,
            "sequence": self._sequence,
        }
