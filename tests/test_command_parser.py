"""Unit tests for /zoom command tokenizing and action lookup."""

from __future__ import annotations

from src.zoom_plugin.commands.parser import Action, ParsedCommand, SettingAction, parse_command


class TestParseCommand:
    """parse_command splits name, action, topic and sub-command args."""

    def test_start_with_topic(self):
        parsed = parse_command("/zoom start team sync")
        assert parsed.command == "/zoom"
        assert parsed.action == "start"
        assert parsed.topic == "team sync"

    def test_start_without_topic(self):
        parsed = parse_command("/zoom start")
        assert parsed.action == "start"
        assert parsed.topic == ""

    def test_topic_collapses_whitespace(self):
        parsed = parse_command("  /zoom   start   weekly    review  ")
        assert parsed.topic == "weekly review"

    def test_topic_only_for_start(self):
        parsed = parse_command("/zoom help me please")
        assert parsed.action == "help"
        assert parsed.topic == ""
        assert parsed.args == ("me", "please")

    def test_setting_args(self):
        parsed = parse_command("/zoom setting use_pmi ask")
        assert parsed.action == "setting"
        assert parsed.args == ("use_pmi", "ask")

    def test_command_only(self):
        parsed = parse_command("/zoom")
        assert parsed.command == "/zoom"
        assert parsed.action == ""
        assert parsed.args == ()

    def test_empty_input(self):
        assert parse_command("") == ParsedCommand()
        assert parse_command("   ") == ParsedCommand()


class TestActionLookup:
    def test_known_actions(self):
        assert Action.lookup("connect") is Action.CONNECT
        assert Action.lookup("start") is Action.START
        assert Action.lookup("disconnect") is Action.DISCONNECT
        assert Action.lookup("help") is Action.HELP
        assert Action.lookup("setting") is Action.SETTING

    def test_lookup_is_case_sensitive(self):
        assert Action.lookup("START") is None

    def test_unknown_action(self):
        assert Action.lookup("bogus") is None

    def test_setting_action(self):
        assert SettingAction.lookup("use_pmi") is SettingAction.USE_PMI
        assert SettingAction.lookup("use-pmi") is None
