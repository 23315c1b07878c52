"""
Realtime Relay Clients

Forward metrics records to a third party over a publish/subscribe relay.
Delivery is at-most-once: publishes are dispatched on a background worker,
failures are logged and dropped, and nothing is published while the relay
is disconnected.
"""
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import quote
import base64
import json
import threading

import httpx

from hrvstream.config import settings
from hrvstream.core.session.emitter import MESSAGE_NAME
from hrvstream.core.session.records import MetricsRecord, SessionContext
from hrvstream.utils import get_logger, RelayError

logger = get_logger(__name__)


class ConnectionStatus(str, Enum):
    """Relay connection states."""
    CONNECTED = "connected"
    CONNECTING = "connecting"
    DISCONNECTED = "disconnected"


StatusCallback = Callable[[ConnectionStatus], None]


class _StatusMixin:
    """Connection status bookkeeping shared by the relay clients."""

    _status: ConnectionStatus
    _status_callback: Optional[StatusCallback]

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status is ConnectionStatus.CONNECTED

    def _set_status(self, status: ConnectionStatus) -> None:
        self._status = status
        logger.debug(f"Relay status: {status.value}")
        if self._status_callback is not None:
            self._status_callback(status)

    def send_heart_rate(
        self,
        context: SessionContext,
        bpm: int,
        hrv: int,
        lf: int,
        hf: int
    ) -> None:
        """Publish one heart-rate message on the session channel."""
        record = MetricsRecord(heart_rate=bpm, hrv=hrv, lf=lf, hf=hf, context=context)
        self.publish(context.channel, MESSAGE_NAME, record.to_payload())  # type: ignore[attr-defined]


class InMemoryRelay(_StatusMixin):
    """
    Relay that keeps published messages in memory.

    Used when no relay endpoint is configured, and in tests.
    """

    def __init__(
        self,
        connected: bool = True,
        status_callback: Optional[StatusCallback] = None
    ):
        self._status_callback = status_callback
        self._status = ConnectionStatus.DISCONNECTED
        self.messages: List[Tuple[str, str, Dict[str, Any]]] = []
        self.presence: List[Tuple[str, Dict[str, Any]]] = []
        self._lock = threading.Lock()
        if connected:
            self._set_status(ConnectionStatus.CONNECTED)

    def connect(self, auth_token: str, context: SessionContext) -> None:
        self._set_status(ConnectionStatus.CONNECTED)
        with self._lock:
            if not any(channel == context.channel for channel, _ in self.presence):
                self.presence.append((context.channel, {"deviceCode": context.device_code}))

    def disconnect(self) -> None:
        self._set_status(ConnectionStatus.DISCONNECTED)

    def publish(self, channel: str, name: str, payload: Dict[str, Any]) -> None:
        if not self.is_connected:
            logger.warning("Cannot send, not connected")
            return
        with self._lock:
            self.messages.append((channel, name, dict(payload)))
        logger.debug(f"Relayed {name} to {channel}")

    def close(self) -> None:
        self._set_status(ConnectionStatus.DISCONNECTED)


class HttpRelay(_StatusMixin):
    """
    Relay client speaking the relay's REST publish API.

    ``connect`` exchanges the session token for a relay token at the token
    endpoint, then announces the device on the session channel once.
    """

    def __init__(
        self,
        token_url: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        status_callback: Optional[StatusCallback] = None,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Initialize relay client.

        Args:
            token_url: Endpoint issuing relay tokens for a session token
            base_url: Relay REST base URL
            timeout: Per-request timeout in seconds
            status_callback: Called on every connection status change
            transport: Optional httpx transport (tests)
        """
        self.token_url = token_url or settings.relay_token_url
        self.base_url = (base_url or settings.relay_base_url).rstrip("/")
        self.timeout = timeout or settings.relay_timeout_s
        self._transport = transport
        self._status_callback = status_callback
        self._status = ConnectionStatus.DISCONNECTED

        self._client: Optional[httpx.Client] = None
        self._client_lock = threading.Lock()
        self._presence_entered = False
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="relay")

    @property
    def presence_entered(self) -> bool:
        return self._presence_entered

    def connect(self, auth_token: str, context: SessionContext) -> None:
        """
        Obtain a relay token and open the publishing client.

        Raises:
            RelayError: If the token endpoint rejects the session token
        """
        logger.info("Connecting to relay with token")
        self._set_status(ConnectionStatus.CONNECTING)

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.get(
                    self.token_url,
                    headers={"Authorization": f"Bearer {auth_token}"}
                )
            response.raise_for_status()
            relay_token = self._parse_token(response)
        except (httpx.HTTPError, ValueError) as e:
            self._set_status(ConnectionStatus.DISCONNECTED)
            logger.error(f"Connection issue: {e}")
            raise RelayError(f"Relay token request failed: {e}", channel=context.channel)

        encoded = base64.b64encode(relay_token.encode()).decode()
        client = httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"Authorization": f"Bearer {encoded}"}
        )
        with self._client_lock:
            old_client, self._client = self._client, client
        if old_client is not None:
            self._retire_client(old_client)
        self._set_status(ConnectionStatus.CONNECTED)
        logger.info("Relay connected")

        if not self._presence_entered:
            self._enter_presence(context)

    @staticmethod
    def _parse_token(response: httpx.Response) -> str:
        content_type = response.headers.get("content-type", "")
        if "json" in content_type:
            data = response.json()
            token = data.get("token") if isinstance(data, dict) else data
        else:
            token = response.text.strip()
        if not token or not isinstance(token, str):
            raise ValueError("token endpoint returned no token")
        return token

    def _enter_presence(self, context: SessionContext) -> None:
        """Announce the device on its channel; retried on the next connect if it fails."""
        ok = self._post(
            context.channel,
            "presence",
            {"action": "enter", "deviceCode": context.device_code}
        )
        if ok:
            self._presence_entered = True
            logger.info(f"Presence entered once: {context.device_code}")

    def _retire_client(self, client: httpx.Client) -> None:
        """Close a replaced client after the publishes already queued on it."""
        try:
            self._executor.submit(client.close)
        except RuntimeError:
            # Worker stopped, close directly
            client.close()

    def _post(self, channel: str, name: str, payload: Dict[str, Any]) -> bool:
        with self._client_lock:
            client = self._client
        if client is None:
            return False
        try:
            response = client.post(
                f"/channels/{quote(channel, safe='')}/messages",
                json={"name": name, "data": json.dumps(payload)}
            )
        except httpx.HTTPError as e:
            logger.error(f"Failed to send {name} to {channel}: {e}")
            return False
        except RuntimeError as e:
            # Client closed underneath an in-flight publish
            logger.warning(f"Dropped {name} to {channel}: {e}")
            return False

        if not response.is_success:
            logger.error(f"Relay rejected {name} to {channel}: {response.status_code} {response.text}")
            return False

        logger.debug(f"Sent {name} to {channel}")
        return True

    def publish(self, channel: str, name: str, payload: Dict[str, Any]) -> None:
        """Queue a publish; returns immediately."""
        if not self.is_connected:
            logger.warning("Cannot send, not connected")
            return
        try:
            self._executor.submit(self._post, channel, name, dict(payload))
        except RuntimeError as e:
            logger.warning(f"Relay worker stopped, dropping {name}: {e}")

    def disconnect(self) -> None:
        """Mark the relay disconnected; publishes are skipped until reconnect."""
        self._set_status(ConnectionStatus.DISCONNECTED)

    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until every publish queued so far has been attempted."""
        try:
            self._executor.submit(lambda: None).result(timeout=timeout)
        except RuntimeError:
            # Worker already stopped
            return

    def close(self) -> None:
        """
        Stop publishing and release the HTTP client without waiting.

        Queued publishes are dropped; one already in flight finishes (or
        fails) on the worker thread.
        """
        self._set_status(ConnectionStatus.DISCONNECTED)
        self._executor.shutdown(wait=False, cancel_futures=True)
        with self._client_lock:
            client, self._client = self._client, None
        if client is not None:
            client.close()
            logger.info("Connection closed")


def build_relay(status_callback: Optional[StatusCallback] = None):
    """Relay for a new session according to settings."""
    if settings.relay_enabled:
        return HttpRelay(status_callback=status_callback)
    return InMemoryRelay(status_callback=status_callback)
