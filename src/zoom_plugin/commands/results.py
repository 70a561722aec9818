"""Result type shared by every slash-command branch."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class CommandResult:
    """What a command branch hands back to the dispatcher boundary.

    Attributes:
        message: Text shown to the invoking user only (ephemeral). Empty
            means nothing is posted.
        error: Failure to log. Does not change what the user sees.
    """

    message: str = ""
    error: Exception | None = None
