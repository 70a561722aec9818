"""Slash-command and interactive-button endpoints for ``/zoom``.

Mattermost calls:
- POST /commands/zoom with the slash-command form fields
- POST /commands/ask-pmi when a button of the PMI prompt is clicked

Responses to the user are sent as ephemeral posts by the dispatcher, so the
slash-command endpoint always answers with an empty body.
"""

from __future__ import annotations

import secrets
from typing import Any

import structlog
from fastapi import APIRouter, Depends, Form, HTTPException, Query, status
from pydantic import BaseModel, Field

from src.zoom_plugin.api.deps import (
    get_command_dispatcher,
    get_plugin_configuration,
    get_start_engine,
)
from src.zoom_plugin.commands.autocomplete import build_command_definition
from src.zoom_plugin.commands.dispatcher import CommandDispatcher
from src.zoom_plugin.config import PluginConfiguration, Settings, get_settings
from src.zoom_plugin.meetings.engine import MeetingStartEngine
from src.zoom_plugin.meetings.posts import CONTEXT_SIGNATURE, sign_prompt_context
from src.zoom_plugin.platform.schemas import CommandArgs

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/commands", tags=["commands"])


# ── Request / Response Schemas ───────────────────────────────────────────────


class PostActionRequest(BaseModel):
    """Body Mattermost sends when an interactive button is clicked."""

    user_id: str
    channel_id: str = ""
    post_id: str = ""
    context: dict[str, Any] = Field(default_factory=dict)


class PostActionResponse(BaseModel):
    ephemeral_text: str | None = None


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.post("/zoom")
async def execute_slash_command(
    user_id: str = Form(...),
    channel_id: str = Form(...),
    command: str = Form(...),
    text: str = Form(""),
    team_id: str = Form(""),
    root_id: str = Form(""),
    token: str = Form(""),
    dispatcher: CommandDispatcher = Depends(get_command_dispatcher),
    settings: Settings = Depends(get_settings),
) -> dict:
    """Run a ``/zoom`` slash command on behalf of ``user_id``."""
    expected = settings.MATTERMOST_COMMAND_TOKEN
    if expected and not secrets.compare_digest(token.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid slash command token",
        )

    args = CommandArgs(
        user_id=user_id,
        channel_id=channel_id,
        command=f"{command} {text}".strip(),
        root_id=root_id,
        team_id=team_id,
    )
    await dispatcher.handle(args)
    return {}


@router.post("/ask-pmi", response_model=PostActionResponse, response_model_exclude_none=True)
async def answer_pmi_prompt(
    body: PostActionRequest,
    channel_id: str = Query(""),
    engine: MeetingStartEngine = Depends(get_start_engine),
    config: PluginConfiguration = Depends(get_plugin_configuration),
) -> PostActionResponse:
    """Start the meeting picked in the PMI prompt.

    The button context must carry the signature issued with the prompt for
    this user, channel and thread; any other click is rejected with 403.
    """
    channel_id = channel_id or body.channel_id
    root_id = str(body.context.get("root_id", ""))
    if config.action_secret:
        expected = sign_prompt_context(config.action_secret, body.user_id, channel_id, root_id)
        signature = str(body.context.get(CONTEXT_SIGNATURE, ""))
        if not secrets.compare_digest(signature.encode(), expected.encode()):
            logger.warning("commands.ask_pmi_forbidden", user_id=body.user_id, channel_id=channel_id)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid PMI prompt signature",
            )

    result = await engine.start_from_prompt(
        body.user_id,
        channel_id,
        str(body.context.get("action", "")),
        root_id=root_id,
    )
    if result.error is not None:
        logger.warning(
            "commands.ask_pmi_failed",
            user_id=body.user_id,
            outcome=result.outcome.value,
            error=str(result.error),
        )
    return PostActionResponse(ephemeral_text=result.message or None)


@router.get("/autocomplete")
async def get_autocomplete(
    config: PluginConfiguration = Depends(get_plugin_configuration),
) -> dict:
    """Slash-command registration payload including the autocomplete tree."""
    return build_command_definition(config)
