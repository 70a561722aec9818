"""Shared fixtures for the /zoom command core.

Wires the real components (dispatcher, engine, completer) for a per-user
OAuth deployment on top of the in-memory doubles from tests.doubles.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from src.zoom_plugin.config import PluginConfiguration
from src.zoom_plugin.main import Components, build_components
from src.zoom_plugin.observability.telemetry import Telemetry
from src.zoom_plugin.platform.schemas import User

from tests.doubles import (
    ADMIN_ID,
    USER_ID,
    FakeMattermost,
    FakeZoomClient,
    InMemoryKVStore,
    make_config,
)


@pytest.fixture
def config() -> PluginConfiguration:
    return make_config()


@pytest.fixture
def kv() -> InMemoryKVStore:
    return InMemoryKVStore()


@pytest.fixture
def platform() -> FakeMattermost:
    mm = FakeMattermost()
    mm.add_user(User(id=USER_ID, username="alice", email="alice@example.com", roles="system_user"))
    mm.add_user(
        User(id=ADMIN_ID, username="root", email="root@example.com", roles="system_user system_admin")
    )
    return mm


@pytest.fixture
def zoom() -> FakeZoomClient:
    return FakeZoomClient()


@pytest.fixture
def telemetry() -> MagicMock:
    return MagicMock(spec=Telemetry)


@pytest.fixture
def components(config, platform, zoom, kv, telemetry) -> Components:
    return build_components(config, platform, zoom, kv, telemetry=telemetry)
