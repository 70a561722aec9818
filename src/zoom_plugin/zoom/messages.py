"""User-facing texts related to linking a Zoom account."""

from __future__ import annotations

OAUTH_PROMPT = "[Click here to link your Zoom account.]({connect_url})"

ZOOM_EMAIL_MISMATCH = (
    "We could not verify your Mattermost account in Zoom. Please ensure that "
    "your Mattermost email address {email} matches your Zoom login email address."
)

ACCOUNT_LEVEL_NOT_CONNECTED = (
    "Zoom app is not connected. Please ask your system administrator to run /zoom connect."
)


def oauth_prompt(connect_url: str) -> str:
    return OAUTH_PROMPT.format(connect_url=connect_url)
