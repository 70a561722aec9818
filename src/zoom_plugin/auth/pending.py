"""Pending OAuth connections.

A connect attempt (explicit ``/zoom connect`` or an implicit one from
``/zoom start`` without a linked account) records which channel the user was
in. The OAuth completion later consumes that record exactly once to link the
account and report back in the same channel. There is no in-process
continuation between the two steps: the record in the KV store is the only
state that survives the redirect round-trip.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel

from src.zoom_plugin.config import PluginConfiguration
from src.zoom_plugin.platform.schemas import Post
from src.zoom_plugin.zoom.schemas import OAuthToken, ZoomUser, ZoomUserInfo

if TYPE_CHECKING:
    from src.zoom_plugin.auth.identity import IdentityStore
    from src.zoom_plugin.core.redis import PluginKVStore
    from src.zoom_plugin.platform.client import MattermostClient

logger = structlog.get_logger(__name__)

ZOOM_STATE_KEY_PREFIX = "zoomuserstate_"

CONNECTED_TEXT = "Successfully connected to Zoom."
CONNECTED_RETRY_START_TEXT = (
    "Successfully connected to Zoom. Run `/zoom start` again to start your meeting."
)


class PendingConnection(BaseModel):
    """Transient record bridging a command and a later OAuth completion."""

    user_id: str
    channel_id: str
    is_account_level_flow: bool = False


class PendingConnectionMissingError(Exception):
    """No pending connection exists (never started or already consumed)."""


class PendingConnectionTracker:
    """Stores and consumes PendingConnection records keyed by user ID.

    At most one record per user; a new attempt overwrites the previous one.
    """

    def __init__(self, kv: PluginKVStore) -> None:
        self._kv = kv

    @staticmethod
    def _key(user_id: str) -> str:
        return f"{ZOOM_STATE_KEY_PREFIX}{user_id}"

    async def store(self, user_id: str, channel_id: str, is_account_level_flow: bool) -> None:
        pending = PendingConnection(
            user_id=user_id,
            channel_id=channel_id,
            is_account_level_flow=is_account_level_flow,
        )
        await self._kv.set(self._key(user_id), pending.model_dump_json())
        logger.debug(
            "pending_connection.stored",
            user_id=user_id,
            channel_id=channel_id,
            is_account_level_flow=is_account_level_flow,
        )

    async def consume(self, user_id: str) -> PendingConnection | None:
        """Read and delete the user's record in one step.

        Returns None when there is nothing to consume.
        """
        raw = await self._kv.get_and_delete(self._key(user_id))
        if raw is None:
            return None
        return PendingConnection.model_validate_json(raw)


class ConnectionCompleter:
    """Second phase of a connect flow, called once OAuth has succeeded.

    The HTTP handler that receives the OAuth redirect exchanges the code for
    a token and hands the token and the Zoom user to complete_connection().

    Args:
        config: Immutable plugin configuration.
        tracker: PendingConnectionTracker holding the first phase's record.
        identities: IdentityStore receiving the link or the superuser token.
        platform: MattermostClient used to confirm in the original channel.
    """

    def __init__(
        self,
        config: PluginConfiguration,
        tracker: PendingConnectionTracker,
        identities: IdentityStore,
        platform: MattermostClient,
    ) -> None:
        self._config = config
        self._tracker = tracker
        self._identities = identities
        self._platform = platform

    async def complete_connection(
        self, user_id: str, token: OAuthToken, zoom_user: ZoomUser
    ) -> PendingConnection:
        """Link the Zoom account and consume the pending record.

        Raises:
            PendingConnectionMissingError: If no connect flow is pending for
                the user, including when it was already completed.
        """
        pending = await self._tracker.consume(user_id)
        if pending is None:
            raise PendingConnectionMissingError(f"no pending connection for user {user_id}")

        if self._config.account_level_app:
            await self._identities.store_superuser_token(token)
        else:
            await self._identities.store_user_info(
                ZoomUserInfo(
                    user_id=user_id,
                    zoom_id=zoom_user.id,
                    zoom_email=zoom_user.email,
                    oauth_token=token,
                )
            )

        text = CONNECTED_TEXT if pending.is_account_level_flow else CONNECTED_RETRY_START_TEXT
        try:
            await self._platform.send_ephemeral_post(
                user_id,
                Post(
                    user_id=self._config.bot_user_id,
                    channel_id=pending.channel_id,
                    message=text,
                ),
            )
        except Exception:
            logger.warning(
                "pending_connection.confirmation_failed",
                user_id=user_id,
                channel_id=pending.channel_id,
                exc_info=True,
            )

        logger.info(
            "pending_connection.completed",
            user_id=user_id,
            zoom_id=zoom_user.id,
            is_account_level_flow=pending.is_account_level_flow,
        )
        return pending
