"""Channel posts emitted around a meeting start.

MeetingPoster builds and sends the three posts of the start flow:
- the public meeting announcement (regular post authored by the bot)
- the ephemeral "there is already a recent meeting" confirmation
- the ephemeral prompt asking whether to use the Personal Meeting ID

The meeting props on the announcement are what RecentMeetingDetector looks for.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import TYPE_CHECKING
from urllib.parse import urlencode

import structlog

from src.zoom_plugin.config import PluginConfiguration
from src.zoom_plugin.platform.schemas import Post, User

if TYPE_CHECKING:
    from src.zoom_plugin.platform.client import MattermostClient

logger = structlog.get_logger(__name__)

POST_TYPE_ZOOM = "custom_zoom"
ZOOM_PROVIDER_NAME = "Zoom"
DEFAULT_MEETING_TOPIC = "Zoom Meeting"

MEETING_STATUS_STARTED = "STARTED"
MEETING_STATUS_RECENTLY_CREATED = "RECENTLY_CREATED"

PROP_MEETING_ID = "meeting_id"
PROP_MEETING_LINK = "meeting_link"
PROP_MEETING_STATUS = "meeting_status"
PROP_MEETING_PERSONAL = "meeting_personal"
PROP_MEETING_TOPIC = "meeting_topic"
PROP_MEETING_CREATOR_USERNAME = "meeting_creator_username"
PROP_MEETING_PROVIDER = "meeting_provider"

# Button values of the PMI prompt, sent back in the integration context
ACTION_USE_PMI = "USE PERSONAL MEETING ID"
ACTION_USE_UNIQUE_ID = "USE A UNIQUE MEETING ID"

ASK_PMI_PATH = "/api/v1/commands/ask-pmi"
CONTEXT_SIGNATURE = "signature"


def sign_prompt_context(secret: str, user_id: str, channel_id: str, root_id: str = "") -> str:
    """HMAC-SHA256 over the user, channel and thread a PMI prompt was shown for."""
    message = f"{user_id}|{channel_id}|{root_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


class MeetingPoster:
    """Creates meeting-related posts through the chat platform.

    Args:
        config: Immutable plugin configuration (bot user, Zoom and service URLs).
        platform: MattermostClient used to create posts.
    """

    def __init__(self, config: PluginConfiguration, platform: MattermostClient) -> None:
        self._config = config
        self._platform = platform

    def meeting_url(self, meeting_id: int) -> str:
        return f"{self._config.zoom_url.rstrip('/')}/j/{meeting_id}"

    async def post_meeting(
        self,
        creator: User,
        meeting_id: int,
        channel_id: str,
        root_id: str = "",
        topic: str = "",
        personal: bool = False,
    ) -> Post:
        """Announce a started meeting in the channel (or thread).

        Failures propagate: the meeting already exists on the Zoom side and
        is not rolled back.
        """
        meeting_url = self.meeting_url(meeting_id)
        topic = topic or DEFAULT_MEETING_TOPIC
        attachment = {
            "fallback": (
                f"Video Meeting started at [{meeting_id}]({meeting_url}).\n\n"
                f"[Join Meeting]({meeting_url})"
            ),
            "title": topic,
            "text": f"Meeting ID: [{meeting_id}]({meeting_url})\n\n[Join Meeting]({meeting_url})",
        }
        post = Post(
            user_id=self._config.bot_user_id,
            channel_id=channel_id,
            root_id=root_id,
            message=f"@{creator.username} has started a meeting",
            type=POST_TYPE_ZOOM,
            props={
                "attachments": [attachment],
                PROP_MEETING_ID: meeting_id,
                PROP_MEETING_LINK: meeting_url,
                PROP_MEETING_STATUS: MEETING_STATUS_STARTED,
                PROP_MEETING_PERSONAL: personal,
                PROP_MEETING_TOPIC: topic,
                PROP_MEETING_CREATOR_USERNAME: creator.username,
                PROP_MEETING_PROVIDER: ZOOM_PROVIDER_NAME,
            },
        )
        created = await self._platform.create_post(post)
        logger.info(
            "meeting.posted",
            meeting_id=meeting_id,
            channel_id=channel_id,
            post_id=created.id,
            personal=personal,
        )
        return created

    async def post_confirm(
        self,
        meeting_link: str,
        channel_id: str,
        topic: str,
        user_id: str,
        root_id: str,
        creator_name: str,
        provider: str,
    ) -> None:
        """Tell the user a meeting was just started here and offer to join it."""
        message = "There is another recent meeting created on this channel."
        if provider != ZOOM_PROVIDER_NAME:
            message = f"There is another recent meeting created on this channel with {provider}."

        post = Post(
            user_id=self._config.bot_user_id,
            channel_id=channel_id,
            root_id=root_id,
            message=message,
            type=POST_TYPE_ZOOM,
            props={
                "type": POST_TYPE_ZOOM,
                PROP_MEETING_LINK: meeting_link,
                PROP_MEETING_STATUS: MEETING_STATUS_RECENTLY_CREATED,
                PROP_MEETING_PERSONAL: True,
                PROP_MEETING_TOPIC: topic,
                PROP_MEETING_CREATOR_USERNAME: creator_name,
                PROP_MEETING_PROVIDER: provider,
            },
        )
        await self._send_ephemeral(user_id, post)

    async def ask_user_pmi_meeting(self, user_id: str, channel_id: str, root_id: str = "") -> None:
        """Ask the user whether this meeting should use their PMI.

        The answer arrives later as a separate request on ASK_PMI_PATH. Each
        button context carries the thread to announce in and, when an
        action secret is configured, a signature binding the click to
        ``user_id`` and ``channel_id``.
        """
        query = urlencode({"channel_id": channel_id})
        url = f"{self._config.service_url.rstrip('/')}{ASK_PMI_PATH}?{query}"
        context: dict[str, str] = {"root_id": root_id}
        if self._config.action_secret:
            context[CONTEXT_SIGNATURE] = sign_prompt_context(
                self._config.action_secret, user_id, channel_id, root_id
            )
        attachment = {
            "pretext": "Do you want to use your Personal Meeting ID?",
            "actions": [
                {
                    "id": "UsePMI",
                    "name": "Yes",
                    "type": "button",
                    "integration": {"url": url, "context": {**context, "action": ACTION_USE_PMI}},
                },
                {
                    "id": "UseUniqueID",
                    "name": "Create new meeting",
                    "type": "button",
                    "integration": {"url": url, "context": {**context, "action": ACTION_USE_UNIQUE_ID}},
                },
            ],
        }
        post = Post(
            user_id=self._config.bot_user_id,
            channel_id=channel_id,
            root_id=root_id,
            props={"attachments": [attachment]},
        )
        await self._send_ephemeral(user_id, post)

    async def _send_ephemeral(self, user_id: str, post: Post) -> None:
        try:
            await self._platform.send_ephemeral_post(user_id, post)
        except Exception:
            logger.warning(
                "meeting.ephemeral_post_failed",
                user_id=user_id,
                channel_id=post.channel_id,
                exc_info=True,
            )
