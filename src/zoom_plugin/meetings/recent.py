"""Detection of a meeting announced in a channel moments ago.

Used by ``/zoom start`` to avoid two people in the same channel starting two
meetings at once. This is a read-then-act lookback on channel history, not a
lock: two near-simultaneous starts can both miss each other.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from pydantic import BaseModel

from src.zoom_plugin.meetings.posts import (
    PROP_MEETING_CREATOR_USERNAME,
    PROP_MEETING_LINK,
    PROP_MEETING_PROVIDER,
)

if TYPE_CHECKING:
    from src.zoom_plugin.platform.client import MattermostClient

RECENT_MEETING_WINDOW_SECONDS = 30


class RecentMeetingInfo(BaseModel):
    """A meeting recently announced in a channel, if any."""

    found: bool = False
    link: str = ""
    creator_name: str = ""
    provider: str = ""


def _prop(props: dict, name: str) -> str:
    value = props.get(name)
    return value if isinstance(value, str) else ""


class RecentMeetingDetector:
    """Scans the last few seconds of channel posts for a meeting announcement.

    Args:
        platform: MattermostClient used to read channel history.
        window_seconds: How far back to look.
        clock: Returns the current time in seconds (injectable for tests).
    """

    def __init__(
        self,
        platform: MattermostClient,
        window_seconds: int = RECENT_MEETING_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._platform = platform
        self._window_seconds = window_seconds
        self._clock = clock

    async def check_previous_messages(self, channel_id: str) -> RecentMeetingInfo:
        """Return the first recent post carrying a complete meeting marker.

        Any provider counts, not just Zoom. Platform errors propagate.
        """
        since_ms = int((self._clock() - self._window_seconds) * 1000)
        posts = await self._platform.get_posts_since(channel_id, since_ms)
        for post in posts:
            provider = _prop(post.props, PROP_MEETING_PROVIDER)
            link = _prop(post.props, PROP_MEETING_LINK)
            creator = _prop(post.props, PROP_MEETING_CREATOR_USERNAME)
            if provider and link and creator:
                return RecentMeetingInfo(
                    found=True,
                    link=link,
                    creator_name=creator,
                    provider=provider,
                )
        return RecentMeetingInfo()
