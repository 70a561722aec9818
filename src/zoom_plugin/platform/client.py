"""Async HTTP client wrapper for the Mattermost REST API (v4).

MattermostClient is the chat-platform collaborator of the command core: user
and channel lookups, post creation (regular and ephemeral), per-user
preferences and recent channel history. Authenticates as the plugin bot with
a personal access token.

Retry logic (tenacity, 3 attempts, exponential backoff 1-10s) only covers
transport failures. Non-2xx answers raise PlatformAPIError immediately.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.zoom_plugin.platform.schemas import ChannelMember, Post, Preference, User

logger = structlog.get_logger(__name__)

_mattermost_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
    reraise=True,
)


class PlatformAPIError(Exception):
    """Mattermost answered with a non-2xx status."""

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
    raise PlatformAPIError(
        f"{operation} failed ({response.status_code}): {detail}",
        status_code=response.status_code,
    )


class MattermostClient:
    """Async client for the Mattermost REST API.

    Args:
        site_url: Mattermost site URL (e.g. https://chat.example.com).
        bot_token: Bot personal access token.
        transport: Optional httpx transport, used by tests.
    """

    TIMEOUT_MUTATE = 15.0
    TIMEOUT_READ = 10.0

    def __init__(
        self,
        site_url: str,
        bot_token: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = f"{site_url.rstrip('/')}/api/v4"
        self._headers = {
            "Authorization": f"Bearer {bot_token}",
            "Content-Type": "application/json",
        }
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self._headers,
            timeout=timeout,
            transport=self._transport,
        )

    @_mattermost_retry
    async def get_user(self, user_id: str) -> User:
        async with self._client(self.TIMEOUT_READ) as client:
            response = await client.get(f"{self._base_url}/users/{user_id}")
            _raise_for_status(response, "get_user")
            return User.model_validate(response.json())

    @_mattermost_retry
    async def get_channel_member(self, channel_id: str, user_id: str) -> ChannelMember:
        async with self._client(self.TIMEOUT_READ) as client:
            response = await client.get(
                f"{self._base_url}/channels/{channel_id}/members/{user_id}",
            )
            _raise_for_status(response, "get_channel_member")
            return ChannelMember.model_validate(response.json())

    @_mattermost_retry
    async def get_posts_since(self, channel_id: str, since_ms: int) -> list[Post]:
        """Return channel posts created or edited after ``since_ms``, newest first."""
        async with self._client(self.TIMEOUT_READ) as client:
            response = await client.get(
                f"{self._base_url}/channels/{channel_id}/posts",
                params={"since": since_ms},
            )
            _raise_for_status(response, "get_posts_since")
            data = response.json()
            posts: dict[str, Any] = data.get("posts") or {}
            order: list[str] = data.get("order") or list(posts)
            return [Post.model_validate(posts[post_id]) for post_id in order if post_id in posts]

    @_mattermost_retry
    async def create_post(self, post: Post) -> Post:
        async with self._client(self.TIMEOUT_MUTATE) as client:
            response = await client.post(
                f"{self._base_url}/posts",
                json=post.model_dump(exclude={"id", "create_at"}),
            )
            _raise_for_status(response, "create_post")
            created = Post.model_validate(response.json())
            logger.info(
                "mattermost.post_created",
                post_id=created.id,
                channel_id=created.channel_id,
            )
            return created

    @_mattermost_retry
    async def send_ephemeral_post(self, user_id: str, post: Post) -> Post:
        """Post a message visible only to ``user_id``."""
        async with self._client(self.TIMEOUT_MUTATE) as client:
            response = await client.post(
                f"{self._base_url}/posts/ephemeral",
                json={
                    "user_id": user_id,
                    "post": post.model_dump(exclude={"id", "create_at"}),
                },
            )
            _raise_for_status(response, "send_ephemeral_post")
            return Post.model_validate(response.json())

    @_mattermost_retry
    async def get_preference(self, user_id: str, category: str, name: str) -> Preference | None:
        """Return the preference, or None when the user never set it."""
        async with self._client(self.TIMEOUT_READ) as client:
            response = await client.get(
                f"{self._base_url}/users/{user_id}/preferences/{category}/name/{name}",
            )
            if response.status_code == httpx.codes.NOT_FOUND:
                return None
            _raise_for_status(response, "get_preference")
            return Preference.model_validate(response.json())

    @_mattermost_retry
    async def update_preferences(self, user_id: str, preferences: list[Preference]) -> None:
        async with self._client(self.TIMEOUT_MUTATE) as client:
            response = await client.put(
                f"{self._base_url}/users/{user_id}/preferences",
                json=[p.model_dump() for p in preferences],
            )
            _raise_for_status(response, "update_preferences")
