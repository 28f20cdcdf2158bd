"""Telegram webhook endpoint.

Telegram posts each update as JSON and echoes the secret registered with
setWebhook in the X-Telegram-Bot-Api-Secret-Token header. Updates are
queued for the event consumer and acknowledged immediately.
"""

from __future__ import annotations

import hmac
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from mirrorbot.config import Settings, get_settings
from mirrorbot.logging_config import get_logger

router = APIRouter(prefix="/telegram", tags=["Telegram"])
logger: Any = get_logger(__name__)


def _secret_matches(expected: str | None, received: str | None) -> bool:
    if not expected:
        return True
    return received is not None and hmac.compare_digest(expected, received)


@router.post("/webhook")
async def telegram_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    x_telegram_bot_api_secret_token: str | None = Header(default=None),
) -> dict[str, bool]:
    """Accept one update from Telegram.

    Returns:
        {"ok": True} once the update is queued (or ignored)
    """
    secret = settings.webhook_secret.get_secret_value() if settings.webhook_secret else None
    if not _secret_matches(secret, x_telegram_bot_api_secret_token):
        logger.warning("Webhook call rejected: bad secret token")
        raise HTTPException(status_code=403, detail="Invalid secret token")

    bot = getattr(request.app.state, "bot", None)
    if bot is None or not bot.running:
        raise HTTPException(status_code=503, detail="Bot is not running")

    try:
        update = await request.json()
    except ValueError:
        logger.warning("Webhook call rejected: body is not JSON")
        raise HTTPException(status_code=400, detail="Body must be JSON") from None
    if not isinstance(update, dict):
        raise HTTPException(status_code=400, detail="Update must be a JSON object")

    queued = await bot.feed_update(update)
    if not queued:
        logger.debug(f"Ignored update {update.get('update_id')}")
    return {"ok": True}
