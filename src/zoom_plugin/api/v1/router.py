"""V1 API router -- aggregates all v1 endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.zoom_plugin.api.v1 import commands

router = APIRouter(prefix="/api/v1")

router.include_router(commands.router)
