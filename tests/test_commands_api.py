"""HTTP-level tests for the slash-command, PMI prompt and health endpoints.

The app is built with create_app() and driven through FastAPI's TestClient
without running the lifespan; components are placed on app.state directly.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from src.zoom_plugin.config import PluginConfiguration, Settings, get_settings
from src.zoom_plugin.core.monitoring import UNMATCHED_ENDPOINT
from src.zoom_plugin.main import create_app
from src.zoom_plugin.meetings.posts import (
    ACTION_USE_PMI,
    ACTION_USE_UNIQUE_ID,
    CONTEXT_SIGNATURE,
    sign_prompt_context,
)
from src.zoom_plugin.preferences import ZOOM_PMI_SETTING_NAME, ZOOM_PREFERENCE_CATEGORY

from tests.doubles import CHANNEL_ID, USER_ID, ZOOM_PMI, link_user, make_config

COMMAND_TOKEN = "slash-secret"


@pytest.fixture
def config() -> PluginConfiguration:
    return make_config(action_secret=COMMAND_TOKEN)


@pytest.fixture
def app(components, config):
    application = create_app()
    application.state.command_dispatcher = components.dispatcher
    application.state.start_engine = components.engine
    application.state.plugin_configuration = config
    application.dependency_overrides[get_settings] = lambda: Settings(
        MATTERMOST_COMMAND_TOKEN=COMMAND_TOKEN
    )
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def _form(text: str, token: str = COMMAND_TOKEN, **overrides) -> dict:
    form = {
        "user_id": USER_ID,
        "channel_id": CHANNEL_ID,
        "command": "/zoom",
        "text": text,
        "team_id": "team-1",
        "token": token,
    }
    form.update(overrides)
    return form


class TestSlashCommandEndpoint:
    def test_help_is_sent_as_ephemeral(self, client, platform):
        response = client.post("/api/v1/commands/zoom", data=_form("help"))
        assert response.status_code == 200
        assert response.json() == {}
        user_id, post = platform.ephemeral_posts[-1]
        assert user_id == USER_ID
        assert post.message.startswith("###### Mattermost Zoom Plugin")

    def test_invalid_token_is_forbidden(self, client, platform):
        response = client.post("/api/v1/commands/zoom", data=_form("help", token="wrong"))
        assert response.status_code == 403
        assert platform.ephemeral_posts == []

    def test_token_check_disabled_when_unset(self, app, platform):
        app.dependency_overrides[get_settings] = lambda: Settings(MATTERMOST_COMMAND_TOKEN="")
        response = TestClient(app).post("/api/v1/commands/zoom", data=_form("help", token=""))
        assert response.status_code == 200
        assert platform.ephemeral_posts

    def test_missing_fields_rejected(self, client):
        response = client.post("/api/v1/commands/zoom", data={"token": COMMAND_TOKEN})
        assert response.status_code == 422

    def test_start_creates_meeting(self, client, platform, kv, zoom, telemetry):
        link_user(kv, zoom)
        platform.preferences[(USER_ID, ZOOM_PREFERENCE_CATEGORY, ZOOM_PMI_SETTING_NAME)] = "false"

        response = client.post("/api/v1/commands/zoom", data=_form("start team sync"))

        assert response.status_code == 200
        assert len(zoom.created) == 1
        assert zoom.created[0][2] == "Zoom Meeting"
        assert len(platform.created_posts) == 1
        assert platform.ephemeral_posts == []
        telemetry.track_meeting_start.assert_called_once_with(USER_ID, "command")

    def test_dispatcher_not_initialized(self, app):
        app.state.command_dispatcher = None
        response = TestClient(app).post("/api/v1/commands/zoom", data=_form("help"))
        assert response.status_code == 503


class TestAskPMIEndpoint:
    def _body(self, action: str, user_id: str = USER_ID, root_id: str = "") -> dict:
        signature = sign_prompt_context(COMMAND_TOKEN, user_id, CHANNEL_ID, root_id)
        return {
            "user_id": user_id,
            "post_id": "post-1",
            "context": {"action": action, "root_id": root_id, CONTEXT_SIGNATURE: signature},
        }

    def test_use_pmi(self, client, platform, kv, zoom):
        link_user(kv, zoom)
        response = client.post(
            f"/api/v1/commands/ask-pmi?channel_id={CHANNEL_ID}",
            json=self._body(ACTION_USE_PMI),
        )
        assert response.status_code == 200
        assert response.json() == {}
        assert platform.created_posts[0].props["meeting_id"] == ZOOM_PMI

    def test_use_unique_id(self, client, platform, kv, zoom, telemetry):
        link_user(kv, zoom)
        response = client.post(
            f"/api/v1/commands/ask-pmi?channel_id={CHANNEL_ID}",
            json=self._body(ACTION_USE_UNIQUE_ID),
        )
        assert response.status_code == 200
        assert len(zoom.created) == 1
        telemetry.track_meeting_start.assert_called_once_with(USER_ID, "webapp")

    def test_unknown_action_answers_ephemeral_text(self, client):
        response = client.post(
            f"/api/v1/commands/ask-pmi?channel_id={CHANNEL_ID}",
            json=self._body("PERHAPS"),
        )
        assert response.status_code == 200
        assert response.json() == {"ephemeral_text": "Unknown action PERHAPS"}

    def test_channel_from_body_when_query_missing(self, client, platform, kv, zoom):
        link_user(kv, zoom)
        body = self._body(ACTION_USE_PMI) | {"channel_id": CHANNEL_ID}
        response = client.post("/api/v1/commands/ask-pmi", json=body)
        assert response.status_code == 200
        assert platform.created_posts[0].channel_id == CHANNEL_ID

    def test_announces_in_prompt_thread(self, client, platform, kv, zoom):
        link_user(kv, zoom)
        response = client.post(
            f"/api/v1/commands/ask-pmi?channel_id={CHANNEL_ID}",
            json=self._body(ACTION_USE_PMI, root_id="thread-1"),
        )
        assert response.status_code == 200
        assert platform.created_posts[0].root_id == "thread-1"

    def test_unsigned_click_is_forbidden(self, client, platform, kv, zoom):
        link_user(kv, zoom)
        body = {"user_id": USER_ID, "context": {"action": ACTION_USE_UNIQUE_ID}}
        response = client.post(f"/api/v1/commands/ask-pmi?channel_id={CHANNEL_ID}", json=body)
        assert response.status_code == 403
        assert zoom.created == []
        assert platform.created_posts == []

    def test_signature_for_other_user_is_forbidden(self, client, kv, zoom):
        link_user(kv, zoom)
        body = self._body(ACTION_USE_UNIQUE_ID, user_id="mallory") | {"user_id": USER_ID}
        response = client.post(f"/api/v1/commands/ask-pmi?channel_id={CHANNEL_ID}", json=body)
        assert response.status_code == 403
        assert zoom.created == []

    def test_signature_for_other_channel_is_forbidden(self, client, kv, zoom):
        link_user(kv, zoom)
        response = client.post(
            "/api/v1/commands/ask-pmi?channel_id=other-channel",
            json=self._body(ACTION_USE_UNIQUE_ID),
        )
        assert response.status_code == 403
        assert zoom.created == []

    def test_signature_check_disabled_without_secret(self, app, platform, kv, zoom):
        link_user(kv, zoom)
        app.state.plugin_configuration = make_config()
        body = {"user_id": USER_ID, "context": {"action": ACTION_USE_PMI}}
        response = TestClient(app).post(f"/api/v1/commands/ask-pmi?channel_id={CHANNEL_ID}", json=body)
        assert response.status_code == 200
        assert platform.created_posts


class TestAutocompleteEndpoint:
    def test_returns_command_definition(self, client):
        response = client.get("/api/v1/commands/autocomplete")
        assert response.status_code == 200
        assert response.json()["trigger"] == "zoom"


class TestInfrastructureRoutes:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_ready_when_redis_answers(self, client, monkeypatch):
        redis = MagicMock()
        redis.ping = AsyncMock(return_value=True)
        monkeypatch.setattr("src.zoom_plugin.api.v1.health.get_redis_pool", lambda: redis)
        response = client.get("/health/ready")
        assert response.status_code == 200

    def test_not_ready_when_redis_down(self, client, monkeypatch):
        redis = MagicMock()
        redis.ping = AsyncMock(side_effect=ConnectionError("refused"))
        monkeypatch.setattr("src.zoom_plugin.api.v1.health.get_redis_pool", lambda: redis)
        response = client.get("/health/ready")
        assert response.status_code == 503
        assert response.json()["checks"]["redis"] == "error"

    def test_metrics(self, client):
        client.get("/health")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert b"http_requests_total" in response.content

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_generated(self, client):
        response = client.get("/health")
        assert response.headers["X-Request-ID"]

    def test_metrics_label_by_route_pattern(self, client):
        labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
        before = REGISTRY.get_sample_value("http_requests_total", labels) or 0.0
        client.get("/health")
        assert REGISTRY.get_sample_value("http_requests_total", labels) == before + 1

    def test_unknown_paths_share_one_label(self, client):
        labels = {"method": "GET", "endpoint": UNMATCHED_ENDPOINT, "status_code": "404"}
        before = REGISTRY.get_sample_value("http_requests_total", labels) or 0.0
        client.get("/wp-admin/setup.php")
        client.get("/.env")
        assert REGISTRY.get_sample_value("http_requests_total", labels) == before + 2
        scanned = {"method": "GET", "endpoint": "/.env", "status_code": "404"}
        assert REGISTRY.get_sample_value("http_requests_total", scanned) is None
