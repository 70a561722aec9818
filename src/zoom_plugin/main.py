"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, Sentry, the
health routes, the v1 command router, and a lifespan that wires the command
components onto app.state.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
from dataclasses import dataclass

import structlog
from fastapi import FastAPI
from fastapi.requests import Request
from fastapi.responses import Response

from src.zoom_plugin.api.middleware import LoggingMiddleware, configure_structlog
from src.zoom_plugin.api.v1 import health
from src.zoom_plugin.api.v1.router import router as v1_router
from src.zoom_plugin.auth.identity import IdentityResolver, IdentityStore
from src.zoom_plugin.auth.pending import ConnectionCompleter, PendingConnectionTracker
from src.zoom_plugin.commands.dispatcher import CommandDispatcher
from src.zoom_plugin.config import PluginConfiguration, build_plugin_configuration, get_settings
from src.zoom_plugin.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.zoom_plugin.core.redis import PluginKVStore, close_redis, get_plugin_kv_store
from src.zoom_plugin.meetings.engine import MeetingStartEngine
from src.zoom_plugin.meetings.posts import MeetingPoster
from src.zoom_plugin.meetings.recent import RecentMeetingDetector
from src.zoom_plugin.observability.telemetry import Telemetry
from src.zoom_plugin.platform.client import MattermostClient
from src.zoom_plugin.preferences import PreferenceStore
from src.zoom_plugin.zoom.client import ZoomClient


@dataclass
class Components:
    """The wired command core."""

    dispatcher: CommandDispatcher
    engine: MeetingStartEngine
    completer: ConnectionCompleter


def build_components(
    config: PluginConfiguration,
    platform: MattermostClient,
    zoom_client: ZoomClient,
    kv: PluginKVStore,
    server_token: str = "",
    telemetry: Telemetry | None = None,
) -> Components:
    """Construct every component with its collaborators."""
    telemetry = telemetry or Telemetry()
    identities = IdentityStore(kv)
    tracker = PendingConnectionTracker(kv)
    preferences = PreferenceStore(platform)
    poster = MeetingPoster(config, platform)

    engine = MeetingStartEngine(
        config=config,
        platform=platform,
        detector=RecentMeetingDetector(platform),
        resolver=IdentityResolver(config, identities, zoom_client, server_token=server_token),
        preferences=preferences,
        tracker=tracker,
        poster=poster,
        zoom_client=zoom_client,
        telemetry=telemetry,
    )
    dispatcher = CommandDispatcher(
        config=config,
        platform=platform,
        engine=engine,
        identities=identities,
        tracker=tracker,
        preferences=preferences,
        telemetry=telemetry,
    )
    completer = ConnectionCompleter(config, tracker, identities, platform)
    return Components(dispatcher=dispatcher, engine=engine, completer=completer)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: logging, Sentry and component wiring."""
    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()

    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    config = build_plugin_configuration(settings)
    platform = MattermostClient(settings.MATTERMOST_SITE_URL, settings.MATTERMOST_BOT_TOKEN)
    zoom_client = ZoomClient(settings.ZOOM_API_URL)

    components = build_components(
        config,
        platform,
        zoom_client,
        get_plugin_kv_store(),
        server_token=settings.ZOOM_SERVER_TOKEN,
    )
    app.state.plugin_configuration = config
    app.state.command_dispatcher = components.dispatcher
    app.state.start_engine = components.engine
    app.state.connection_completer = components.completer
    log.info(
        "zoom_plugin.initialized",
        oauth_enabled=config.oauth_enabled,
        account_level_app=config.account_level_app,
    )

    yield

    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Zoom Slash Command Service",
        version="0.1.0",
        description="Start and manage Zoom meetings from Mattermost with /zoom",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(MetricsMiddleware)

    app.include_router(health.router)
    app.include_router(v1_router)

    # Prometheus metrics endpoint (infrastructure route, outside v1 router)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
