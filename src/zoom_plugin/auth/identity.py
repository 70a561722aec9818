"""Linked Zoom identities and resolution of a chat user's Zoom account.

IdentityStore persists the per-user OAuth link (``zoomtoken_<userID>`` plus
the reverse ``zoomuser_<zoomID>`` index) and the shared superuser token of an
account-level app in the plugin KV store.

IdentityResolver answers "which Zoom user acts for this Mattermost user, and
with which token". A missing link is not an error: resolve() returns an
AuthResolution without identity, carrying the message that tells the user how
to connect.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from src.zoom_plugin.config import PluginConfiguration
from src.zoom_plugin.platform.schemas import User
from src.zoom_plugin.zoom.client import ZoomAPIError, ZoomClient
from src.zoom_plugin.zoom.messages import (
    ACCOUNT_LEVEL_NOT_CONNECTED,
    ZOOM_EMAIL_MISMATCH,
    oauth_prompt,
)
from src.zoom_plugin.zoom.schemas import OAuthToken, ZoomUser, ZoomUserInfo

if TYPE_CHECKING:
    from src.zoom_plugin.core.redis import PluginKVStore

logger = structlog.get_logger(__name__)

ZOOM_TOKEN_KEY_PREFIX = "zoomtoken_"
ZOOM_USER_KEY_PREFIX = "zoomuser_"
ZOOM_SUPERUSER_TOKEN_KEY = "zoom_superuser_token"


class NotConnectedError(Exception):
    """No Zoom account is linked for the requested user."""


# ── Identity Store ───────────────────────────────────────────────────────────


class IdentityStore:
    """KV persistence for linked Zoom identities and the superuser token."""

    def __init__(self, kv: PluginKVStore) -> None:
        self._kv = kv

    async def store_user_info(self, info: ZoomUserInfo) -> None:
        payload = info.model_dump_json()
        await self._kv.set(f"{ZOOM_TOKEN_KEY_PREFIX}{info.user_id}", payload)
        await self._kv.set(f"{ZOOM_USER_KEY_PREFIX}{info.zoom_id}", payload)
        logger.info("identity.user_linked", user_id=info.user_id, zoom_id=info.zoom_id)

    async def get_user_info(self, user_id: str) -> ZoomUserInfo | None:
        """Linked identity for a Mattermost user, or None."""
        raw = await self._kv.get(f"{ZOOM_TOKEN_KEY_PREFIX}{user_id}")
        if raw is None:
            return None
        return ZoomUserInfo.model_validate_json(raw)

    async def disconnect_user(self, user_id: str) -> None:
        """Remove a user's link.

        Raises:
            NotConnectedError: If the user has no linked Zoom account.
        """
        info = await self.get_user_info(user_id)
        if info is None:
            raise NotConnectedError("could not find Zoom user")
        await self._kv.delete(f"{ZOOM_TOKEN_KEY_PREFIX}{user_id}")
        await self._kv.delete(f"{ZOOM_USER_KEY_PREFIX}{info.zoom_id}")
        logger.info("identity.user_unlinked", user_id=user_id, zoom_id=info.zoom_id)

    async def store_superuser_token(self, token: OAuthToken) -> None:
        await self._kv.set(ZOOM_SUPERUSER_TOKEN_KEY, token.model_dump_json())
        logger.info("identity.superuser_token_stored")

    async def get_superuser_token(self) -> OAuthToken | None:
        raw = await self._kv.get(ZOOM_SUPERUSER_TOKEN_KEY)
        if raw is None:
            return None
        return OAuthToken.model_validate_json(raw)

    async def remove_superuser_token(self) -> None:
        """Remove the shared token.

        Raises:
            NotConnectedError: If no shared token is stored.
        """
        deleted = await self._kv.delete(ZOOM_SUPERUSER_TOKEN_KEY)
        if not deleted:
            raise NotConnectedError("Zoom app is not connected")
        logger.info("identity.superuser_token_removed")


# ── Identity Resolver ────────────────────────────────────────────────────────


@dataclass
class AuthResolution:
    """Outcome of resolving a chat user's Zoom identity.

    Attributes:
        zoom_user: The resolved Zoom user, or None when not connected.
        token: Bearer token to act on behalf of ``zoom_user``.
        message: User-facing text when not connected.
        error: Underlying cause when not connected, if any.
    """

    zoom_user: ZoomUser | None = None
    token: str = ""
    message: str = ""
    error: Exception | None = None

    @property
    def connected(self) -> bool:
        return self.zoom_user is not None


class IdentityResolver:
    """Resolves the Zoom identity acting for a Mattermost user.

    Args:
        config: Immutable plugin configuration.
        identities: IdentityStore for linked accounts and the superuser token.
        zoom_client: ZoomClient used to fetch the Zoom user.
        server_token: Server-to-server token, used when OAuth is disabled.
    """

    def __init__(
        self,
        config: PluginConfiguration,
        identities: IdentityStore,
        zoom_client: ZoomClient,
        server_token: str = "",
    ) -> None:
        self._config = config
        self._identities = identities
        self._zoom = zoom_client
        self._server_token = server_token

    async def resolve(self, user: User) -> AuthResolution:
        """Return the Zoom user for ``user`` or a not-connected resolution."""
        if self._config.oauth_enabled and not self._config.account_level_app:
            info = await self._identities.get_user_info(user.id)
            if info is None:
                return AuthResolution(
                    message=oauth_prompt(self._config.oauth_connect_url),
                    error=NotConnectedError(f"no Zoom account linked for user {user.id}"),
                )
            return await self._fetch(user, info.oauth_token.access_token, "me")

        if self._config.oauth_enabled:
            superuser_token = await self._identities.get_superuser_token()
            if superuser_token is None:
                return AuthResolution(
                    message=ACCOUNT_LEVEL_NOT_CONNECTED,
                    error=NotConnectedError("superuser token not found"),
                )
            return await self._fetch(user, superuser_token.access_token, user.email)

        return await self._fetch(user, self._server_token, user.email)

    async def _fetch(self, user: User, token: str, zoom_user_id: str) -> AuthResolution:
        try:
            zoom_user = await self._zoom.get_user(token, zoom_user_id)
        except ZoomAPIError as exc:
            logger.warning(
                "identity.zoom_user_lookup_failed",
                user_id=user.id,
                status_code=exc.status_code,
                error=str(exc),
            )
            return AuthResolution(
                message=ZOOM_EMAIL_MISMATCH.format(email=user.email),
                error=exc,
            )
        return AuthResolution(zoom_user=zoom_user, token=token)
