"""FastAPI dependency injection for the command components.

Components are built once in the application lifespan and stored on
app.state; these dependencies hand them to endpoint functions.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from src.zoom_plugin.commands.dispatcher import CommandDispatcher
from src.zoom_plugin.config import PluginConfiguration
from src.zoom_plugin.meetings.engine import MeetingStartEngine


def _from_state(request: Request, name: str, label: str):
    component = getattr(request.app.state, name, None)
    if component is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} not initialized",
        )
    return component


async def get_command_dispatcher(request: Request) -> CommandDispatcher:
    """Retrieve the CommandDispatcher from app.state, 503 if not available."""
    return _from_state(request, "command_dispatcher", "Command dispatcher")


async def get_start_engine(request: Request) -> MeetingStartEngine:
    """Retrieve the MeetingStartEngine from app.state, 503 if not available."""
    return _from_state(request, "start_engine", "Meeting start engine")


async def get_plugin_configuration(request: Request) -> PluginConfiguration:
    """Retrieve the PluginConfiguration from app.state, 503 if not available."""
    return _from_state(request, "plugin_configuration", "Plugin configuration")
