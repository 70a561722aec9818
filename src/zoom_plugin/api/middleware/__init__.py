"""API middleware package: request logging and structlog setup."""

from src.zoom_plugin.api.middleware.logging import LoggingMiddleware, configure_structlog

__all__ = ["LoggingMiddleware", "configure_structlog"]
