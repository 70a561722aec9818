"""Product telemetry for meeting starts and account disconnects.

Each event increments a Prometheus counter and emits a structured log line so
it can be picked up by whatever log pipeline the deployment ships to.
"""

from __future__ import annotations

import structlog

from src.zoom_plugin.core.monitoring import zoom_disconnects_total, zoom_meeting_starts_total

logger = structlog.get_logger(__name__)

START_SOURCE_COMMAND = "command"
START_SOURCE_WEBAPP = "webapp"


class Telemetry:
    """Records user-level product events."""

    def track_meeting_start(self, user_id: str, source: str) -> None:
        zoom_meeting_starts_total.labels(source=source).inc()
        logger.info("telemetry.start_meeting", user_id=user_id, source=source)

    def track_disconnect(self, user_id: str) -> None:
        zoom_disconnects_total.inc()
        logger.info("telemetry.disconnect", user_id=user_id)
