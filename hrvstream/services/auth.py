"""
Device Pairing Client

Device-code login flow for a sensor session:

1. ``start_device_auth`` obtains a short code the user types on a PC,
   plus a device token to poll with.
2. ``poll_device_auth`` is called periodically until the user has
   confirmed the code; the response carries the session token, user id
   and the device code used to tag outbound metrics.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional
import asyncio
import time

import httpx

from hrvstream.config import settings
from hrvstream.core.session.records import SessionContext
from hrvstream.utils import get_logger, AuthenticationError

logger = get_logger(__name__)


@dataclass
class DeviceStartResponse:
    """Response from /auth/device/start."""
    code: str
    device_token: str
    expires_at: int  # Unix seconds

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.time()) > self.expires_at


@dataclass
class DevicePollResponse:
    """Response from the device confirmation poll."""
    authenticated: bool
    user_id: str
    session: str
    device_code: str

    def to_context(self) -> SessionContext:
        try:
            user_id = int(self.user_id)
        except ValueError:
            raise AuthenticationError(
                f"Invalid user id in confirmation: {self.user_id!r}",
                details={"device_code": self.device_code}
            )
        return SessionContext(user_id=user_id, device_code=self.device_code)


@dataclass
class AuthenticatedSession:
    """Outcome of a completed pairing."""
    auth_token: str
    context: SessionContext


class DeviceAuthClient:
    """
    HTTP client for the device pairing endpoints.

    Non-2xx responses are reported as ``None`` so callers can keep polling.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.auth_base_url).rstrip("/")
        self.timeout = timeout or settings.auth_timeout_s
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport
        )

    async def start_device_auth(self) -> Optional[DeviceStartResponse]:
        """Kick off the device code flow."""
        async with self._client() as client:
            response = await client.get("/auth/device/start")

        if not response.is_success:
            logger.error(f"Device auth start failed: {response.status_code} {response.text}")
            return None

        data: Dict[str, Any] = response.json()
        start = DeviceStartResponse(
            code=data["code"],
            device_token=data["deviceToken"],
            expires_at=int(data["expiresAt"]),
        )
        logger.info(f"Device code issued: {start.code}")
        return start

    async def poll_device_auth(self, device_token: str) -> Optional[DevicePollResponse]:
        """Check whether the user has confirmed the device code."""
        async with self._client() as client:
            response = await client.get(
                "/auth/device/pool",
                params={"deviceToken": device_token}
            )

        logger.debug(f"pollDeviceAuth raw response: {response.text}")

        if not response.is_success:
            return None

        data: Dict[str, Any] = response.json()
        return DevicePollResponse(
            authenticated=bool(data.get("authenticated", False)),
            user_id=str(data.get("userId", "")),
            session=str(data.get("session", "")),
            device_code=str(data.get("deviceCode", "")),
        )

    async def wait_for_authentication(
        self,
        start: Optional[DeviceStartResponse] = None,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None
    ) -> AuthenticatedSession:
        """
        Poll until the device is confirmed.

        Args:
            start: Result of :meth:`start_device_auth`; requested when omitted
            poll_interval: Seconds between polls
            max_attempts: Give up after this many polls (unbounded if None)

        Returns:
            Session token and context for the new session

        Raises:
            AuthenticationError: If no code could be issued, the code expired
                or the attempts ran out
        """
        if start is None:
            start = await self.start_device_auth()
            if start is None:
                raise AuthenticationError("Could not obtain a device code")

        interval = settings.auth_poll_interval_s if poll_interval is None else poll_interval
        attempts = 0

        while max_attempts is None or attempts < max_attempts:
            if start.is_expired():
                raise AuthenticationError(
                    "Device code expired before confirmation",
                    details={"code": start.code, "expires_at": start.expires_at}
                )

            await asyncio.sleep(interval)
            attempts += 1

            poll = await self.poll_device_auth(start.device_token)
            if poll is not None and poll.authenticated:
                session = AuthenticatedSession(auth_token=poll.session, context=poll.to_context())
                logger.info(f"Authenticated user={session.context.user_id}")
                return session

            logger.info("Waiting for user auth...")

        raise AuthenticationError(
            f"Device not confirmed after {attempts} polls",
            details={"code": start.code}
        )
