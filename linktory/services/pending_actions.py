"""Per-user "awaiting next message" state for the bot, kept in Redis.

When a user taps a menu button the bot asks for a link and remembers what
the next plain-text message is for. The record expires on its own after
``pending_action_ttl_seconds``; consuming it is an atomic GETDEL so two
messages arriving together cannot both act on the same prompt.
"""

import json
from enum import Enum

import redis.asyncio as aioredis

from linktory.config import get_settings
from linktory.logging_config import get_logger

logger = get_logger(__name__)

_KEY_PREFIX = "pending"


class PendingAction(str, Enum):
    ADD = "add"
    CHECK = "check"
    REPORT = "report"
    COMMENT = "comment"
    SEARCH = "search"


def _key(telegram_id: int) -> str:
    return f"{_KEY_PREFIX}:{telegram_id}"


async def set_pending(
    redis: aioredis.Redis,
    telegram_id: int,
    action: PendingAction,
    prompt_message_id: int | None = None,
) -> None:
    """Remember what the user's next message means, replacing any earlier prompt."""
    ttl = get_settings().pending_action_ttl_seconds
    payload = json.dumps({"action": action.value, "prompt_message_id": prompt_message_id})
    await redis.setex(_key(telegram_id), ttl, payload)
    logger.debug("pending_action_set", telegram_id=telegram_id, action=action.value, ttl=ttl)


async def pop_pending(redis: aioredis.Redis, telegram_id: int) -> tuple[PendingAction, int | None] | None:
    """Consume the pending action, if any. Returns (action, prompt_message_id)."""
    raw = await redis.getdel(_key(telegram_id))
    if raw is None:
        return None
    try:
        data = json.loads(raw)
        return PendingAction(data["action"]), data.get("prompt_message_id")
    except (ValueError, KeyError, TypeError):
        logger.warning("pending_action_corrupt", telegram_id=telegram_id, raw=raw)
        return None


async def cancel_pending(redis: aioredis.Redis, telegram_id: int) -> bool:
    """Drop any pending action. Returns True when one was waiting."""
    removed = await redis.delete(_key(telegram_id))
    return bool(removed)
