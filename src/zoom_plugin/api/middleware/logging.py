"""Structured request logging.

configure_structlog() sets up the processor chain once per process: JSON in
production, console output elsewhere. Context bound with
structlog.contextvars is merged into every event, so the request_id bound by
LoggingMiddleware shows up on command, meeting and client log lines emitted
while the request is handled.
"""

from __future__ import annotations

import logging
import time
import uuid

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.zoom_plugin.config import Environment, get_settings

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Probes and scrapes are logged at debug level
QUIET_PATHS = frozenset({"/health", "/health/ready", "/metrics"})


def configure_structlog() -> None:
    """Configure stdlib logging and structlog from Settings."""
    settings = get_settings()
    logging.basicConfig(format="%(message)s", level=settings.LOG_LEVEL.upper())

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if settings.ENVIRONMENT == Environment.production:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class LoggingMiddleware(BaseHTTPMiddleware):
    """Binds a request ID for the duration of a request and logs its outcome.

    An incoming X-Request-ID (e.g. from a proxy in front of Mattermost) is
    reused; otherwise a new one is generated. The ID is echoed back in the
    response headers.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        started = time.monotonic()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request.failed",
                method=request.method,
                path=request.url.path,
                duration_ms=_elapsed_ms(started),
            )
            raise
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[REQUEST_ID_HEADER] = request_id
        self._log_completion(request, response.status_code, _elapsed_ms(started), request_id)
        return response

    @staticmethod
    def _log_completion(request: Request, status_code: int, duration_ms: float, request_id: str) -> None:
        if request.url.path in QUIET_PATHS and status_code < 400:
            log = logger.debug
        elif status_code >= 500:
            log = logger.error
        elif status_code >= 400:
            log = logger.warning
        else:
            log = logger.info
        log(
            "request.completed",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=duration_ms,
            request_id=request_id,
        )


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 2)
