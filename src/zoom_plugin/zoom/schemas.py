"""Pydantic schemas for Zoom users, meetings and linked identities."""

from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field


class MeetingType(IntEnum):
    """Zoom meeting types accepted by POST /users/{userId}/meetings."""

    INSTANT = 1
    SCHEDULED = 2
    RECURRING_NO_FIXED_TIME = 3
    RECURRING_FIXED_TIME = 8


class OAuthToken(BaseModel):
    """OAuth2 token issued by Zoom."""

    access_token: str
    refresh_token: str = ""
    token_type: str = "bearer"
    expires_in: int | None = None


class ZoomUser(BaseModel):
    """A Zoom user as returned by GET /users/{userId}."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    pmi: int = 0
    type: int = 1


class ZoomMeeting(BaseModel):
    """A Zoom meeting as returned by the meetings API."""

    model_config = ConfigDict(extra="ignore")

    id: int
    topic: str = ""
    type: int = MeetingType.INSTANT
    join_url: str = ""
    status: str = ""


class ZoomUserInfo(BaseModel):
    """Link between a Mattermost user and a Zoom account (per-user OAuth)."""

    user_id: str = Field(description="Mattermost user ID")
    zoom_id: str
    zoom_email: str = ""
    oauth_token: OAuthToken
