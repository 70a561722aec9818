"""Async HTTP client wrapper for the Zoom REST API (v2).

Provides ZoomClient with retry logic (tenacity, 3 attempts, exponential
backoff 1-10s) on transport failures. Every call takes the bearer token to
use, because the token depends on the deployment mode: a per-user OAuth token,
the shared account-level superuser token, or the server-to-server token.
"""

from __future__ import annotations

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.zoom_plugin.zoom.schemas import MeetingType, ZoomMeeting, ZoomUser

logger = structlog.get_logger(__name__)

_zoom_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
    reraise=True,
)


class ZoomAPIError(Exception):
    """Zoom answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _raise_for_status(response: httpx.Response, operation: str) -> None:
    if response.is_success:
        return
    detail = ""
    try:
        detail = response.json().get("message", "")
    except ValueError:
        detail = response.text
    raise ZoomAPIError(
        f"{operation} failed ({response.status_code}): {detail}",
        status_code=response.status_code,
    )


class ZoomClient:
    """Async client for the Zoom REST API.

    Args:
        api_url: Base URL of the API (default: https://api.zoom.us/v2).
        transport: Optional httpx transport, used by tests.
    """

    TIMEOUT_MUTATE = 30.0
    TIMEOUT_READ = 10.0

    def __init__(
        self,
        api_url: str = "https://api.zoom.us/v2",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = api_url.rstrip("/")
        self._transport = transport

    def _client(self, token: str, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=self._transport,
        )

    @_zoom_retry
    async def get_user(self, token: str, user_id: str = "me") -> ZoomUser:
        """Fetch a Zoom user by ID or email (``me`` for the token owner)."""
        async with self._client(token, self.TIMEOUT_READ) as client:
            response = await client.get(f"{self._base_url}/users/{user_id}")
            _raise_for_status(response, "get_user")
            return ZoomUser.model_validate(response.json())

    @_zoom_retry
    async def create_meeting(self, token: str, zoom_user: ZoomUser, topic: str) -> ZoomMeeting:
        """Create an instant meeting owned by ``zoom_user``.

        The meeting does not use the user's Personal Meeting ID.
        """
        async with self._client(token, self.TIMEOUT_MUTATE) as client:
            response = await client.post(
                f"{self._base_url}/users/{zoom_user.id}/meetings",
                json={"topic": topic, "type": int(MeetingType.INSTANT)},
            )
            _raise_for_status(response, "create_meeting")
            meeting = ZoomMeeting.model_validate(response.json())
            logger.info(
                "zoom.meeting_created",
                meeting_id=meeting.id,
                zoom_user_id=zoom_user.id,
            )
            return meeting
