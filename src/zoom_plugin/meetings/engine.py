"""Meeting-start decision engine behind ``/zoom start``.

Each start is a fresh, one-shot run through the same chain of guards:

1. membership -- the user must belong to the channel
2. recent meeting -- a meeting announced seconds ago is offered instead
3. authentication -- no linked Zoom account primes a pending connection
4. PMI preference -- ask, use the Personal Meeting ID, or create a new one
5. announce -- post the meeting and record the start

Nothing blocks waiting on the user. The ask-prompt and the OAuth redirect end
the current run; their answers arrive as separate requests (see
start_from_prompt() and ConnectionCompleter).

The topic typed after ``/zoom start`` only reaches the recent-meeting
confirmation. Meetings are created and announced with DEFAULT_MEETING_TOPIC.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from src.zoom_plugin.auth.identity import AuthResolution
from src.zoom_plugin.commands.results import CommandResult
from src.zoom_plugin.config import PluginConfiguration
from src.zoom_plugin.meetings.posts import (
    ACTION_USE_PMI,
    ACTION_USE_UNIQUE_ID,
    DEFAULT_MEETING_TOPIC,
)
from src.zoom_plugin.observability.telemetry import START_SOURCE_COMMAND, START_SOURCE_WEBAPP
from src.zoom_plugin.platform.schemas import CommandArgs, User
from src.zoom_plugin.preferences import PMIPreference

if TYPE_CHECKING:
    from src.zoom_plugin.auth.identity import IdentityResolver
    from src.zoom_plugin.auth.pending import PendingConnectionTracker
    from src.zoom_plugin.meetings.posts import MeetingPoster
    from src.zoom_plugin.meetings.recent import RecentMeetingDetector
    from src.zoom_plugin.observability.telemetry import Telemetry
    from src.zoom_plugin.platform.client import MattermostClient
    from src.zoom_plugin.preferences import PreferenceStore
    from src.zoom_plugin.zoom.client import ZoomClient

logger = structlog.get_logger(__name__)

CREATE_MEETING_FAILED_TEXT = "We could not create a Zoom meeting. Please try again later."
POST_MEETING_FAILED_TEXT = (
    "Your Zoom meeting was created, but we could not post it to the channel: {error}"
)


class MeetingCreationError(Exception):
    """Zoom refused or failed to create a meeting."""


# ── Decision Types ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Pending:
    """No meeting decided: the user was asked and will answer later."""


@dataclass(frozen=True)
class Created:
    """A meeting to announce. ``personal`` is True for the user's PMI."""

    meeting_id: int
    personal: bool = False


@dataclass(frozen=True)
class Failed:
    """Meeting creation failed."""

    error: Exception


MeetingDecision = Pending | Created | Failed


class StartOutcome(str, Enum):
    """The single outcome of one start run."""

    REJECTED = "rejected"
    REUSED = "reused"
    AUTH_REQUIRED = "auth_required"
    ASK = "ask"
    CREATED_WITH_PMI = "created_with_pmi"
    CREATED_WITHOUT_PMI = "created_without_pmi"
    FAILED = "failed"


@dataclass
class StartResult(CommandResult):
    outcome: StartOutcome = StartOutcome.REJECTED


# ── Engine ───────────────────────────────────────────────────────────────────


class MeetingStartEngine:
    """Decides and executes the outcome of a meeting start.

    Args:
        config: Immutable plugin configuration.
        platform: MattermostClient for user and membership lookups.
        detector: RecentMeetingDetector for the deduplication lookback.
        resolver: IdentityResolver for the user's Zoom account.
        preferences: PreferenceStore holding the use-pmi setting.
        tracker: PendingConnectionTracker primed when the user must connect.
        poster: MeetingPoster for announcement, confirmation and ask prompt.
        zoom_client: ZoomClient used to create non-PMI meetings.
        telemetry: Telemetry receiving start events.
    """

    def __init__(
        self,
        config: PluginConfiguration,
        platform: MattermostClient,
        detector: RecentMeetingDetector,
        resolver: IdentityResolver,
        preferences: PreferenceStore,
        tracker: PendingConnectionTracker,
        poster: MeetingPoster,
        zoom_client: ZoomClient,
        telemetry: Telemetry,
    ) -> None:
        self._config = config
        self._platform = platform
        self._detector = detector
        self._resolver = resolver
        self._preferences = preferences
        self._tracker = tracker
        self._poster = poster
        self._zoom = zoom_client
        self._telemetry = telemetry

    async def run_start_command(self, args: CommandArgs, user: User, topic: str) -> StartResult:
        """Run ``/zoom start [topic]`` for ``user`` in ``args.channel_id``."""
        log = logger.bind(user_id=user.id, channel_id=args.channel_id)

        if not await self._is_channel_member(args.channel_id, user.id):
            return StartResult(
                message=f"We could not get channel members (channelId: {args.channel_id})",
            )

        try:
            recent = await self._detector.check_previous_messages(args.channel_id)
        except Exception:
            log.warning("meeting.recent_check_failed", exc_info=True)
            return StartResult(message="Error checking previous messages")

        if recent.found:
            await self._poster.post_confirm(
                recent.link,
                args.channel_id,
                topic,
                user.id,
                args.root_id,
                recent.creator_name,
                recent.provider,
            )
            log.info("meeting.recent_meeting_reused", provider=recent.provider)
            return StartResult(outcome=StartOutcome.REUSED)

        auth = await self._resolver.resolve(user)
        if not auth.connected:
            return await self._require_connection(user, args.channel_id, auth)

        decision = await self._decide_from_preference(user, auth, args.channel_id, args.root_id)
        return await self._announce(user, decision, args.channel_id, args.root_id, START_SOURCE_COMMAND)

    async def start_from_prompt(
        self, user_id: str, channel_id: str, action: str, root_id: str = ""
    ) -> StartResult:
        """Answer to the PMI ask-prompt: start the meeting the user picked."""
        if action == ACTION_USE_PMI:
            use_pmi = True
        elif action == ACTION_USE_UNIQUE_ID:
            use_pmi = False
        else:
            return StartResult(message=f"Unknown action {action}")

        try:
            user = await self._platform.get_user(user_id)
        except Exception:
            logger.warning("meeting.user_lookup_failed", user_id=user_id, exc_info=True)
            return StartResult(message=f"We could not retrieve user (userId: {user_id})")

        if not await self._is_channel_member(channel_id, user.id):
            return StartResult(message=f"We could not get channel members (channelId: {channel_id})")

        auth = await self._resolver.resolve(user)
        if not auth.connected:
            return await self._require_connection(user, channel_id, auth)

        if use_pmi:
            decision: MeetingDecision = Created(meeting_id=auth.zoom_user.pmi, personal=True)
        else:
            decision = await self.create_meeting_without_pmi(auth, DEFAULT_MEETING_TOPIC)
        return await self._announce(user, decision, channel_id, root_id, START_SOURCE_WEBAPP)

    async def create_meeting_without_pmi(self, auth: AuthResolution, topic: str) -> MeetingDecision:
        """Ask Zoom for a fresh instant meeting owned by the resolved user."""
        try:
            meeting = await self._zoom.create_meeting(auth.token, auth.zoom_user, topic)
        except Exception as exc:
            logger.warning(
                "meeting.create_failed",
                zoom_user_id=auth.zoom_user.id,
                error=str(exc),
            )
            return Failed(error=exc)
        return Created(meeting_id=meeting.id, personal=False)

    # ── Steps ───────────────────────────────────────────────────────────────

    async def _is_channel_member(self, channel_id: str, user_id: str) -> bool:
        try:
            await self._platform.get_channel_member(channel_id, user_id)
        except Exception:
            logger.warning(
                "meeting.channel_member_lookup_failed",
                user_id=user_id,
                channel_id=channel_id,
                exc_info=True,
            )
            return False
        return True

    async def _require_connection(
        self, user: User, channel_id: str, auth: AuthResolution
    ) -> StartResult:
        # The channel is needed again once the user returns from OAuth
        try:
            await self._tracker.store(user.id, channel_id, False)
        except Exception:
            logger.warning("meeting.store_user_state_failed", user_id=user.id, exc_info=True)
        return StartResult(
            message=auth.message,
            error=auth.error,
            outcome=StartOutcome.AUTH_REQUIRED,
        )

    async def _decide_from_preference(
        self, user: User, auth: AuthResolution, channel_id: str, root_id: str
    ) -> MeetingDecision:
        try:
            preference = await self._preferences.get_pmi_setting(user.id)
        except Exception:
            logger.warning("meeting.pmi_preference_lookup_failed", user_id=user.id, exc_info=True)
            preference = PMIPreference.ASK

        if preference.asks_user:
            await self._poster.ask_user_pmi_meeting(user.id, channel_id, root_id)
            return Pending()
        if preference is PMIPreference.TRUE:
            return Created(meeting_id=auth.zoom_user.pmi, personal=True)
        return await self.create_meeting_without_pmi(auth, DEFAULT_MEETING_TOPIC)

    async def _announce(
        self,
        user: User,
        decision: MeetingDecision,
        channel_id: str,
        root_id: str,
        source: str,
    ) -> StartResult:
        if isinstance(decision, Pending):
            return StartResult(outcome=StartOutcome.ASK)

        if isinstance(decision, Failed):
            error = MeetingCreationError("error while create new meeting")
            error.__cause__ = decision.error
            return StartResult(
                message=CREATE_MEETING_FAILED_TEXT,
                error=error,
                outcome=StartOutcome.FAILED,
            )

        try:
            await self._poster.post_meeting(
                user,
                decision.meeting_id,
                channel_id,
                root_id,
                DEFAULT_MEETING_TOPIC,
                personal=decision.personal,
            )
        except Exception as exc:
            return StartResult(
                message=POST_MEETING_FAILED_TEXT.format(error=exc),
                error=exc,
                outcome=StartOutcome.FAILED,
            )

        self._telemetry.track_meeting_start(user.id, source)
        logger.info(
            "meeting.started",
            user_id=user.id,
            channel_id=channel_id,
            meeting_id=decision.meeting_id,
            personal=decision.personal,
            source=source,
        )
        return StartResult(
            outcome=StartOutcome.CREATED_WITH_PMI if decision.personal else StartOutcome.CREATED_WITHOUT_PMI,
        )
