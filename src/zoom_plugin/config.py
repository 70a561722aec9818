"""Application configuration via Pydantic BaseSettings.

Settings are read from the environment (and .env). The command core never
reads Settings directly: build_plugin_configuration() derives an immutable
PluginConfiguration that is handed to every component at construction time.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_OAUTH_CONNECT_PATH = "/plugins/zoom/oauth2/connect"


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"

    # Redis (plugin KV store)
    REDIS_URL: str = "redis://localhost:6379/0"
    KV_KEY_PREFIX: str = "zoom:"

    # Monitoring
    SENTRY_DSN: str = ""

    # Mattermost
    MATTERMOST_SITE_URL: str = "http://localhost:8065"
    MATTERMOST_BOT_TOKEN: str = ""
    MATTERMOST_BOT_USER_ID: str = ""
    MATTERMOST_COMMAND_TOKEN: str = ""  # Empty disables slash command and PMI prompt checks

    # Public URL of this service (target of interactive button callbacks)
    SERVICE_URL: str = "http://localhost:8000"

    # Zoom
    ZOOM_URL: str = "https://zoom.us"
    ZOOM_API_URL: str = "https://api.zoom.us/v2"
    ZOOM_ENABLE_OAUTH: bool = True
    ZOOM_ACCOUNT_LEVEL_APP: bool = False
    ZOOM_SERVER_TOKEN: str = ""  # Server-to-server token, used when OAuth is disabled
    ZOOM_OAUTH_CONNECT_PATH: str = DEFAULT_OAUTH_CONNECT_PATH


class PluginConfiguration(BaseModel):
    """Immutable deployment configuration shared by the command core.

    Attributes:
        site_url: Mattermost site URL, used in the OAuth connect prompt.
        bot_user_id: Mattermost user that authors ephemeral and meeting posts.
        service_url: Base URL the interactive PMI prompt posts back to.
        zoom_url: Zoom web URL used to build join links.
        enable_oauth: Whether users link Zoom accounts through OAuth.
        account_level_app: One shared Zoom credential for all users.
        oauth_connect_path: Path appended to site_url for the OAuth prompt.
        action_secret: Key signing the PMI prompt buttons; empty disables the check.
    """

    model_config = ConfigDict(frozen=True)

    site_url: str
    bot_user_id: str = ""
    service_url: str = ""
    zoom_url: str = "https://zoom.us"
    enable_oauth: bool = True
    account_level_app: bool = False
    oauth_connect_path: str = DEFAULT_OAUTH_CONNECT_PATH
    action_secret: str = ""

    @property
    def oauth_enabled(self) -> bool:
        return self.enable_oauth

    @property
    def oauth_connect_url(self) -> str:
        return f"{self.site_url.rstrip('/')}{self.oauth_connect_path}"


def build_plugin_configuration(settings: Settings) -> PluginConfiguration:
    """Derive the frozen PluginConfiguration from Settings."""
    return PluginConfiguration(
        site_url=settings.MATTERMOST_SITE_URL,
        bot_user_id=settings.MATTERMOST_BOT_USER_ID,
        service_url=settings.SERVICE_URL,
        zoom_url=settings.ZOOM_URL,
        enable_oauth=settings.ZOOM_ENABLE_OAUTH,
        account_level_app=settings.ZOOM_ACCOUNT_LEVEL_APP,
        oauth_connect_path=settings.ZOOM_OAUTH_CONNECT_PATH,
        action_secret=settings.MATTERMOST_COMMAND_TOKEN,
    )


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
