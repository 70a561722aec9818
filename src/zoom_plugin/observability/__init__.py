"""Observability package for product telemetry.

Provides:
- Telemetry: records meeting starts and disconnects as metrics and log events
"""
