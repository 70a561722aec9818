"""Unit tests for the /zoom autocomplete tree."""

from __future__ import annotations

from src.zoom_plugin.commands.autocomplete import build_autocomplete_data, build_command_definition

from tests.doubles import make_config


def _triggers(node: dict) -> list[str]:
    return [sub["Trigger"] for sub in node["SubCommands"]]


class TestAutocomplete:
    def test_user_level_oauth_offers_connect(self):
        data = build_autocomplete_data(make_config())
        assert _triggers(data) == ["start", "connect", "disconnect", "setting", "help"]
        assert data["HelpText"] == "Available commands: start, connect, disconnect, help, setting"

    def test_account_level_hides_connect(self):
        data = build_autocomplete_data(make_config(account_level_app=True))
        assert _triggers(data) == ["start", "setting", "help"]

    def test_server_to_server_hides_connect(self):
        data = build_autocomplete_data(make_config(enable_oauth=False))
        assert "connect" not in _triggers(data)

    def test_use_pmi_values(self):
        data = build_autocomplete_data(make_config())
        setting = next(s for s in data["SubCommands"] if s["Trigger"] == "setting")
        use_pmi = setting["SubCommands"][0]
        assert use_pmi["Trigger"] == "use_pmi"
        items = [a["Item"] for a in use_pmi["Arguments"][0]["Data"]["PossibleArguments"]]
        assert items == ["ask", "true", "false"]

    def test_command_definition(self):
        definition = build_command_definition(make_config())
        assert definition["trigger"] == "zoom"
        assert definition["auto_complete"] is True
        assert definition["autocomplete_data"]["Trigger"] == "zoom"
