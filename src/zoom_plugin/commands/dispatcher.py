"""``/zoom`` slash-command dispatcher.

CommandDispatcher validates a parsed command, resolves the invoking user and
routes the action to one of connect, start, disconnect, help or setting.
Every branch returns a CommandResult; handle() is the boundary that logs
errors once and shows the message to the invoking user as an ephemeral post.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from src.zoom_plugin.commands.parser import (
    COMMAND_TRIGGER,
    Action,
    SettingAction,
    parse_command,
)
from src.zoom_plugin.commands.results import CommandResult
from src.zoom_plugin.config import PluginConfiguration
from src.zoom_plugin.core.monitoring import zoom_commands_total
from src.zoom_plugin.platform.schemas import CommandArgs, Post, User
from src.zoom_plugin.preferences import PMIPreference
from src.zoom_plugin.zoom.messages import oauth_prompt

if TYPE_CHECKING:
    from src.zoom_plugin.auth.identity import IdentityStore
    from src.zoom_plugin.auth.pending import PendingConnectionTracker
    from src.zoom_plugin.meetings.engine import MeetingStartEngine
    from src.zoom_plugin.observability.telemetry import Telemetry
    from src.zoom_plugin.platform.client import MattermostClient
    from src.zoom_plugin.preferences import PreferenceStore

logger = structlog.get_logger(__name__)

STARTER_TEXT = "###### Mattermost Zoom Plugin - Slash Command Help\n"
HELP_TEXT = "* |/zoom start [topic]| - Start a zoom meeting\n"
SETTING_HELP_TEXT = "* |/zoom setting| - Configure setting options\n"
OAUTH_HELP_TEXT = "* |/zoom disconnect| - Disconnect from zoom\n"
SETTING_PMI_HELP_TEXT = (
    "* |/zoom setting use_pmi [true/false/ask]| - "
    "enable / disable / undecide to use PMI to create meeting\n"
)

ALREADY_CONNECTED_TEXT = "Already connected"
PREFERENCE_UPDATE_ERROR = "Cannot update preference in zoom setting"


def _with_backticks(text: str) -> str:
    return text.replace("|", "`")


class CommandDispatcher:
    """Routes ``/zoom`` commands to their operations.

    Args:
        config: Immutable plugin configuration.
        platform: MattermostClient for user lookup and ephemeral responses.
        engine: MeetingStartEngine handling ``start``.
        identities: IdentityStore for connect/disconnect checks.
        tracker: PendingConnectionTracker primed by ``connect``.
        preferences: PreferenceStore written by ``setting use_pmi``.
        telemetry: Telemetry receiving disconnect events.
    """

    def __init__(
        self,
        config: PluginConfiguration,
        platform: MattermostClient,
        engine: MeetingStartEngine,
        identities: IdentityStore,
        tracker: PendingConnectionTracker,
        preferences: PreferenceStore,
        telemetry: Telemetry,
    ) -> None:
        self._config = config
        self._platform = platform
        self._engine = engine
        self._identities = identities
        self._tracker = tracker
        self._preferences = preferences
        self._telemetry = telemetry

    # ── Boundary ────────────────────────────────────────────────────────────

    async def handle(self, args: CommandArgs) -> CommandResult:
        """Execute a command and deliver its response. Never raises."""
        try:
            result = await self.execute_command(args)
        except Exception as exc:
            result = CommandResult(error=exc)

        if result.error is not None:
            logger.warning(
                "command.execute_failed",
                user_id=args.user_id,
                channel_id=args.channel_id,
                error=str(result.error),
                exc_info=result.error,
            )
        if result.message:
            await self._post_command_response(args, result.message)
        return result

    async def _post_command_response(self, args: CommandArgs, text: str) -> None:
        post = Post(
            user_id=self._config.bot_user_id,
            channel_id=args.channel_id,
            root_id=args.root_id,
            message=text,
        )
        try:
            await self._platform.send_ephemeral_post(args.user_id, post)
        except Exception:
            logger.warning(
                "command.response_post_failed",
                user_id=args.user_id,
                channel_id=args.channel_id,
                exc_info=True,
            )

    # ── Routing ─────────────────────────────────────────────────────────────

    async def execute_command(self, args: CommandArgs) -> CommandResult:
        parsed = parse_command(args.command)

        if parsed.command != COMMAND_TRIGGER:
            return CommandResult(
                message=f"Command '{parsed.command}' is not {COMMAND_TRIGGER}. Please try again.",
            )

        if not parsed.action:
            return CommandResult(message=f"Please specify an action for {COMMAND_TRIGGER} command.")

        try:
            user = await self._platform.get_user(args.user_id)
        except Exception:
            logger.warning("command.user_lookup_failed", user_id=args.user_id, exc_info=True)
            return CommandResult(message=f"We could not retrieve user (userId: {args.user_id})")

        action = Action.lookup(parsed.action)
        zoom_commands_total.labels(action=action.value if action else "unknown").inc()

        if action is Action.CONNECT:
            return await self.run_connect_command(user, args)
        if action is Action.START:
            return await self._engine.run_start_command(args, user, parsed.topic)
        if action is Action.DISCONNECT:
            return await self.run_disconnect_command(user)
        if action is Action.HELP:
            return self.run_help_command()
        if action is Action.SETTING:
            return await self.run_setting_command(list(parsed.args), user)
        return CommandResult(message=f"Unknown action {parsed.action}")

    def can_connect(self, user: User) -> bool:
        """Whether ``user`` may link or unlink Zoom.

        Needs OAuth (not server-to-server), and on account-level apps only
        system admins may act.
        """
        return self._config.oauth_enabled and (
            not self._config.account_level_app or user.is_system_admin
        )

    # ── Operations ──────────────────────────────────────────────────────────

    async def run_connect_command(self, user: User, args: CommandArgs) -> CommandResult:
        if not self.can_connect(user):
            return CommandResult(message=f"Unknown action `{Action.CONNECT.value}`")

        if self._config.account_level_app:
            if await self._identities.get_superuser_token() is not None:
                return CommandResult(message=ALREADY_CONNECTED_TEXT)
        elif await self._identities.get_user_info(user.id) is not None:
            return CommandResult(message=ALREADY_CONNECTED_TEXT)

        try:
            await self._tracker.store(user.id, args.channel_id, True)
        except Exception as exc:
            return CommandResult(error=RuntimeError(f"cannot store state: {exc}"))
        return CommandResult(message=oauth_prompt(self._config.oauth_connect_url))

    async def run_disconnect_command(self, user: User) -> CommandResult:
        if not self.can_connect(user):
            return CommandResult(message=f"Unknown action `{Action.DISCONNECT.value}`")

        if self._config.account_level_app:
            try:
                await self._identities.remove_superuser_token()
            except Exception as exc:
                return CommandResult(message=f"Error disconnecting, {exc}")
            return CommandResult(message="Successfully disconnected from Zoom.")

        try:
            await self._identities.disconnect_user(user.id)
        except Exception as exc:
            return CommandResult(message=f"Could not disconnect OAuth from zoom, {exc}")

        self._telemetry.track_disconnect(user.id)
        return CommandResult(message="User disconnected from Zoom.")

    def run_help_command(self) -> CommandResult:
        text = STARTER_TEXT + _with_backticks(HELP_TEXT + SETTING_HELP_TEXT)
        if self._config.oauth_enabled:
            text += "\n" + _with_backticks(OAUTH_HELP_TEXT)
        return CommandResult(message=text)

    async def run_setting_command(self, setting_args: list[str], user: User) -> CommandResult:
        """``/zoom setting <sub-action> [value]``, e.g. ``/zoom setting use_pmi true``."""
        if not setting_args:
            return CommandResult(message=_with_backticks(STARTER_TEXT + SETTING_PMI_HELP_TEXT))

        sub_action = SettingAction.lookup(setting_args[0])
        if sub_action is SettingAction.USE_PMI:
            if len(setting_args) > 1:
                return await self.run_pmi_setting_command(setting_args[1], user)
            return CommandResult(message='Set PMI option to "true"|"false"|"ask"')
        return CommandResult(message=f"Unknown Action {setting_args[0]}")

    async def run_pmi_setting_command(self, value: str, user: User) -> CommandResult:
        if value not in (PMIPreference.TRUE.value, PMIPreference.FALSE.value, PMIPreference.ASK.value):
            return CommandResult(message=f"Unknown setting option {value}")

        try:
            await self._preferences.set_pmi_setting(user.id, PMIPreference(value))
        except Exception:
            logger.warning("command.pmi_setting_update_failed", user_id=user.id, exc_info=True)
            return CommandResult(message=PREFERENCE_UPDATE_ERROR)
        return CommandResult(message=f"Update successfully, use_pmi: {value}")
