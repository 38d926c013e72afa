"""Telegram webhook endpoint."""

import secrets

from fastapi import APIRouter, Header, HTTPException, Request
from telegram import Update

from linktory.config import get_settings
from linktory.logging_config import clear_update_context, get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["telegram"])


@router.post("/webhook")
async def telegram_webhook(
    request: Request,
    secret_token: str | None = Header(None, alias="X-Telegram-Bot-Api-Secret-Token"),
):
    """Hand a Telegram update to the bot application."""
    expected = get_settings().webhook_secret
    if expected and not secrets.compare_digest(secret_token or "", expected):
        logger.warning("webhook_secret_mismatch")
        raise HTTPException(status_code=403, detail="Invalid webhook secret")

    bot_app = request.app.state.bot
    payload = await request.json()
    update = Update.de_json(payload, bot_app.bot)
    try:
        await bot_app.process_update(update)
    finally:
        clear_update_context()
    return {"ok": True}
