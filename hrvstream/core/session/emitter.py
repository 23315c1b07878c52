"""
Metrics Emitter

Builds a MetricsRecord for each heart-rate event and hands it to the relay
and to local display listeners. Publishing is fire-and-forget: no retry,
no queue, no waiting for acknowledgement.
"""
from typing import Any, Callable, Dict, List, Optional, Protocol

from hrvstream.core.analysis.spectral import BandPower
from hrvstream.utils import get_logger
from .records import MetricsRecord, SessionContext

logger = get_logger(__name__)

MESSAGE_NAME = "heartRate"

DisplayListener = Callable[[MetricsRecord], None]


class RelayPublisher(Protocol):
    """Anything that can publish a named message on a channel."""

    def publish(self, channel: str, name: str, payload: Dict[str, Any]) -> None:
        ...


class MetricsEmitter:
    """
    Assembles and publishes metrics records for one session.

    Nothing is emitted until a session context is attached.
    """

    def __init__(
        self,
        relay: Optional[RelayPublisher] = None,
        context: Optional[SessionContext] = None
    ):
        self.relay = relay
        self.context = context
        self._listeners: List[DisplayListener] = []
        self._last_record: Optional[MetricsRecord] = None
        self._emitted = 0

    @property
    def last_record(self) -> Optional[MetricsRecord]:
        return self._last_record

    @property
    def emitted_count(self) -> int:
        return self._emitted

    def attach_context(self, context: SessionContext) -> None:
        self.context = context
        logger.info(f"Emitter bound to {context.channel} (code={context.device_code})")

    def add_listener(self, listener: DisplayListener) -> None:
        """Register a local display callback."""
        self._listeners.append(listener)

    def emit(self, heart_rate: int, hrv: int, band_power: BandPower) -> Optional[MetricsRecord]:
        """
        Assemble a record and publish it.

        Returns:
            The emitted record, or None when no session context is set yet
        """
        if self.context is None:
            logger.debug(f"No session context yet, skipping emit (HR={heart_rate})")
            return None

        record = MetricsRecord(
            heart_rate=int(heart_rate),
            hrv=int(hrv),
            lf=band_power.lf,
            hf=band_power.hf,
            context=self.context,
        )
        self._last_record = record
        self._emitted += 1

        for listener in self._listeners:
            try:
                listener(record)
            except Exception as e:
                logger.error(f"Display listener failed: {e}")

        if self.relay is not None:
            try:
                self.relay.publish(self.context.channel, MESSAGE_NAME, record.to_payload())
            except Exception as e:
                # At-most-once delivery: the record is dropped
                logger.error(f"Relay publish failed on {self.context.channel}: {e}")

        return record
