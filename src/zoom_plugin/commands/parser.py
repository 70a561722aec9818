"""Tokenizing of ``/zoom`` slash commands."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

COMMAND_TRIGGER = "/zoom"


class Action(str, Enum):
    """First-level ``/zoom`` actions. Matching is exact and case-sensitive."""

    CONNECT = "connect"
    START = "start"
    DISCONNECT = "disconnect"
    HELP = "help"
    SETTING = "setting"

    @classmethod
    def lookup(cls, token: str) -> Action | None:
        try:
            return cls(token)
        except ValueError:
            return None


class SettingAction(str, Enum):
    """Sub-actions of ``/zoom setting``."""

    USE_PMI = "use_pmi"

    @classmethod
    def lookup(cls, token: str) -> SettingAction | None:
        try:
            return cls(token)
        except ValueError:
            return None


@dataclass(frozen=True)
class ParsedCommand:
    command: str = ""
    action: str = ""
    topic: str = ""
    args: tuple[str, ...] = ()


def parse_command(raw_command: str) -> ParsedCommand:
    """Split a raw command into name, action and start topic.

    ``topic`` is the space-joined remainder after the action, and only for
    ``start``. ``args`` keeps every token after the action for sub-commands.
    An empty string parses to empty fields.
    """
    split = raw_command.split()
    if not split:
        return ParsedCommand()

    command = split[0]
    action = split[1] if len(split) > 1 else ""
    topic = " ".join(split[2:]) if action == Action.START.value else ""
    return ParsedCommand(command=command, action=action, topic=topic, args=tuple(split[2:]))
