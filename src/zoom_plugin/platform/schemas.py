"""Pydantic schemas for the Mattermost side of the integration.

Users, posts, preferences and slash-command arguments as exchanged with the
Mattermost REST API (v4). Only the fields the command core reads are modeled;
extra fields in API payloads are ignored.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

SYSTEM_ADMIN_ROLE = "system_admin"


class User(BaseModel):
    """A Mattermost user."""

    model_config = ConfigDict(extra="ignore")

    id: str
    username: str = ""
    email: str = ""
    roles: str = ""

    @property
    def is_system_admin(self) -> bool:
        return SYSTEM_ADMIN_ROLE in self.roles.split()


class ChannelMember(BaseModel):
    """Membership of a user in a channel."""

    model_config = ConfigDict(extra="ignore")

    channel_id: str
    user_id: str
    roles: str = ""


class Post(BaseModel):
    """A channel post (regular or ephemeral)."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    user_id: str = ""
    channel_id: str
    root_id: str = ""
    message: str = ""
    type: str = ""
    create_at: int = 0
    props: dict[str, Any] = Field(default_factory=dict)


class Preference(BaseModel):
    """A per-user preference keyed by (category, name)."""

    user_id: str
    category: str
    name: str
    value: str


class CommandArgs(BaseModel):
    """Arguments of one slash-command invocation.

    ``command`` carries the full raw text, trigger included
    (e.g. ``"/zoom start team sync"``).
    """

    user_id: str
    channel_id: str
    command: str
    root_id: str = ""
    team_id: str = ""
