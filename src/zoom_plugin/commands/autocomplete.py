"""Slash-command registration metadata for ``/zoom``.

Produces the command definition and the nested autocomplete tree in the
shape Mattermost's ``Command.autocomplete_data`` expects.
"""

from __future__ import annotations

from typing import Any

from src.zoom_plugin.commands.parser import Action, SettingAction
from src.zoom_plugin.config import PluginConfiguration
from src.zoom_plugin.preferences import PMIPreference


def _node(trigger: str, hint: str, help_text: str) -> dict[str, Any]:
    return {
        "Trigger": trigger,
        "Hint": hint,
        "HelpText": help_text,
        "Arguments": [],
        "SubCommands": [],
    }


def build_autocomplete_data(config: PluginConfiguration) -> dict[str, Any]:
    """Build the ``/zoom`` autocomplete tree for this deployment.

    connect and disconnect are only offered when users link their own
    accounts (OAuth on a per-user app).
    """
    user_level_oauth = config.oauth_enabled and not config.account_level_app
    available = [Action.START, Action.HELP, Action.SETTING]
    if user_level_oauth:
        available = [Action.START, Action.CONNECT, Action.DISCONNECT, Action.HELP, Action.SETTING]

    zoom = _node(
        "zoom",
        "[command]",
        "Available commands: " + ", ".join(a.value for a in available),
    )
    zoom["SubCommands"].append(_node(Action.START.value, "[meeting topic]", "Starts a Zoom meeting"))

    if user_level_oauth:
        zoom["SubCommands"].append(_node(Action.CONNECT.value, "", "Connect to Zoom"))
        zoom["SubCommands"].append(_node(Action.DISCONNECT.value, "", "Disconnects from Zoom"))

    setting = _node(Action.SETTING.value, "[command]", "Configurates options")
    use_pmi = _node(SettingAction.USE_PMI.value, "", "Use Personal Meeting ID")
    use_pmi["Arguments"].append(
        {
            "Name": "",
            "HelpText": "",
            "Type": "StaticList",
            "Required": False,
            "Data": {
                "PossibleArguments": [
                    {
                        "Item": PMIPreference.ASK.value,
                        "HelpText": "Ask to start meeting with or without using Personal Meeting ID",
                    },
                    {
                        "Item": PMIPreference.TRUE.value,
                        "HelpText": "Start meeting using Personal Meeting ID",
                    },
                    {
                        "Item": PMIPreference.FALSE.value,
                        "HelpText": "Start meeting without using Personal Meeting ID",
                    },
                ],
            },
        }
    )
    setting["SubCommands"].append(use_pmi)
    zoom["SubCommands"].append(setting)

    zoom["SubCommands"].append(_node(Action.HELP.value, "", "Display usage"))
    return zoom


def build_command_definition(config: PluginConfiguration) -> dict[str, Any]:
    """Full slash-command registration payload for ``/zoom``."""
    return {
        "trigger": "zoom",
        "auto_complete": True,
        "auto_complete_desc": "Available commands: start, disconnect, help, setting",
        "auto_complete_hint": "[command]",
        "autocomplete_data": build_autocomplete_data(config),
    }
