"""Health check endpoints.

Provides:
- Basic health check (GET /health)
- Detailed health check with dependency status (GET /health/detailed)
"""

import shutil

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import text

from mirrorbot.config import Settings, get_settings
from mirrorbot.db.session import get_session

router = APIRouter()


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str


class DetailedHealthResponse(BaseModel):
    """Detailed health check response."""

    status: str
    checks: dict[str, str]
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check endpoint.

    Returns:
        Simple status indicating the API is running.
    """
    return HealthResponse(status="healthy")


@router.get("/health/detailed", response_model=DetailedHealthResponse)
async def detailed_health_check(
    request: Request,
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> DetailedHealthResponse:
    """Detailed health check including dependency status.

    Checks:
    - Database connectivity
    - Bot application state
    - Voice tools on PATH (ffmpeg, rubberband)

    Returns:
        Status with individual component checks.
    """
    checks = {}

    # Database check
    try:
        await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {type(e).__name__}"

    # Bot state
    bot = getattr(request.app.state, "bot", None)
    if bot is None:
        checks["bot"] = "disabled"
    else:
        checks["bot"] = "running" if bot.running else "stopped"
        checks["pending_events"] = str(bot.engine.pending)

    # Voice tools (rubberband is optional, the resample fallback covers it)
    checks["ffmpeg"] = "found" if shutil.which(settings.ffmpeg_path) else "missing"
    checks["rubberband"] = "found" if shutil.which(settings.rubberband_path) else "missing"

    # Overall status
    healthy = checks["database"] == "ok" and checks["bot"] != "stopped"
    status = "healthy" if healthy else "degraded"

    return DetailedHealthResponse(
        status=status,
        checks=checks,
        version="0.1.0",
    )
