"""Prometheus scrape endpoint.

The in-memory state gauges are otherwise only refreshed by the cleanup
sweep, so each scrape refreshes them from the running bot first.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from mirrorbot.observability.metrics import get_content_type, get_metrics

router = APIRouter()


@router.get("/metrics")
async def metrics(request: Request) -> Response:
    bot = request.app.state.bot
    if bot is not None:
        await bot.cleanup.publish_gauges()
    return Response(content=get_metrics(), media_type=get_content_type())
