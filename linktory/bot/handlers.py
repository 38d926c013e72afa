"""Telegram command, button and free-text handlers.

Each handler opens its own database session and commits once the action
succeeded. Domain errors (LinktoryError) are left to ``error_handler``,
which answers the user with the error's message.
"""

from telegram import Update
from telegram.ext import ContextTypes

from linktory.bot import keyboards
from linktory.config import get_settings
from linktory.database import get_db_session
from linktory.exceptions import LinktoryError, PermissionDeniedError
from linktory.logging_config import bind_update_context, get_logger
from linktory.models import Link, User
from linktory.redis import get_redis
from linktory.services import link_service, user_service, voting_service
from linktory.services.link_state import LinkStatus, normalize_status
from linktory.services.pending_actions import (
    PendingAction,
    cancel_pending,
    pop_pending,
    set_pending,
)
from linktory.services.scoring import badge_label

logger = get_logger(__name__)

WELCOME_TEXT = (
    "🚀 Welcome to Linktory!\n\n"
    "Track, verify, and report links easily.\n\n"
    "Choose an option below 👇"
)
MENU_TEXT = "🏠 Main Menu — Choose an action below:"
HELP_TEXT = (
    "📜 Commands:\n"
    "/add <link> — submit a link (+2 pts)\n"
    "/check <link> — look up a link's status\n"
    "/search <keyword> — find submitted links\n"
    "/report <link> [reason] — report a scam (+3 pts)\n"
    "/comment <link> <text> — comment on a link (+1 pt)\n"
    "/vote <link> legit|scam — vote on a pending link\n"
    "/daily — claim your daily bonus (+1 pt)\n"
    "/top — top contributors\n"
    "/trustboard — most trusted users\n"
    "/me — your profile and badge\n"
    "/cancel — forget the link I'm waiting for"
)
GENERIC_ERROR_TEXT = "⚠️ Could not process your request. Try again later."

PROMPTS: dict[str, tuple[PendingAction, str]] = {
    keyboards.ACTION_ADD: (PendingAction.ADD, "🔗 Please send the link you want to add:"),
    keyboards.ACTION_CHECK: (PendingAction.CHECK, "🔍 Send the link you want to check:"),
    keyboards.ACTION_REPORT: (
        PendingAction.REPORT,
        "🚨 Send the link and reason separated by | (e.g. https://example.com|phishing)",
    ),
    keyboards.ACTION_SEARCH: (PendingAction.SEARCH, "🔎 Send a keyword to search for:"),
    keyboards.ACTION_COMMENT: (
        PendingAction.COMMENT,
        "💬 Send the link followed by your comment (e.g. https://example.com looks fine to me)",
    ),
}

STATUS_LABELS: dict[LinkStatus, str] = {
    LinkStatus.PENDING: "⏳ pending",
    LinkStatus.REPORTED: "⚠️ reported",
    LinkStatus.UNDER_REVIEW: "🕵️ under review",
    LinkStatus.VERIFIED: "✅ verified",
    LinkStatus.SCAM: "🚫 scam",
}


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def format_link(link: Link) -> str:
    status = STATUS_LABELS[normalize_status(link.status)]
    return (
        "ℹ️ Link found:\n\n"
        f"ID: {link.public_id}\n"
        f"Status: {status}\n"
        f"Votes: 👍 {link.votes_legit} / 🚫 {link.votes_scam}"
    )


def format_leaderboard(title: str, users: list[User], by_trust: bool = False) -> str:
    if not users:
        return f"{title}\n\nNo users yet."
    lines = [title, ""]
    for rank, user in enumerate(users, start=1):
        score = f"Trust {user.trust_score}" if by_trust else f"{user.points} pts"
        lines.append(f"{rank}. {user.username} — {score}")
    return "\n".join(lines)


def split_report(text: str) -> tuple[str, str | None]:
    """Split ``url|reason`` or ``url reason`` into its parts."""
    if "|" in text:
        url, reason = text.split("|", 1)
        return url.strip(), reason.strip() or None
    parts = text.strip().split(maxsplit=1)
    if not parts:
        return "", None
    return parts[0], parts[1] if len(parts) > 1 else None


async def _registered_user(db, update: Update) -> User:
    tg_user = update.effective_user
    registration = await user_service.ensure_user(
        db, tg_user.id, tg_user.username, for_update=True
    )
    return registration.user


def _require_admin(update: Update, action: str) -> None:
    if update.effective_user.id not in get_settings().admin_ids:
        raise PermissionDeniedError(action)


# ---------------------------------------------------------------------------
# Actions shared by commands and pending prompts
# ---------------------------------------------------------------------------


async def submit_link(update: Update, url: str) -> str:
    async with get_db_session() as db:
        user = await _registered_user(db, update)
        link, result = await link_service.add_link(db, user, url)
        await db.commit()
    return (
        "✅ Link added!\n"
        f"Your link ID: {link.public_id}\n"
        f"+{result.points_delta} points earned!"
    )


async def lookup_link(url: str) -> str:
    async with get_db_session() as db:
        link = await link_service.check_link(db, url)
    if link is None:
        return "❌ No record found. You can add it using /add or the Add Link button."
    return format_link(link)


async def file_report(update: Update, text: str) -> str:
    url, reason = split_report(text)
    async with get_db_session() as db:
        user = await _registered_user(db, update)
        link, result = await link_service.report_link(db, user, url, reason)
        await db.commit()
    reply = (
        f"🚨 Report submitted for link {link.public_id}! "
        f"(+{result.points_delta} pts) Pending moderator review."
    )
    if link.status == LinkStatus.UNDER_REVIEW.value:
        reply += "\n🕵️ This link is now under review."
    return reply


async def post_comment(update: Update, text: str) -> str:
    parts = text.strip().split(maxsplit=1)
    if len(parts) < 2:
        return "⚠️ Usage: /comment <link> <text>"
    url, body = parts
    async with get_db_session() as db:
        user = await _registered_user(db, update)
        _, result = await link_service.comment_link(db, user, url, body)
        await db.commit()
    return f"💬 Comment added! (+{result.points_delta} pt)"


async def run_search(query: str) -> str:
    query = query.strip()
    if not query:
        return "⚠️ Usage: /search <keyword>"
    async with get_db_session() as db:
        links = await link_service.search_links(db, query)
    if not links:
        return "❌ No links found."
    return "🔎 Results:\n" + "\n".join(
        f"{link.url} [{normalize_status(link.status).value}]" for link in links
    )


async def claim_daily_bonus(update: Update) -> str:
    async with get_db_session() as db:
        user = await _registered_user(db, update)
        result = await user_service.claim_daily(db, user)
        await db.commit()
    return f"🎁 Daily bonus claimed! (+{result.points_delta} pt)"


async def render_leaderboard(by_trust: bool = False) -> str:
    size = get_settings().bot_leaderboard_size
    async with get_db_session() as db:
        if by_trust:
            users = await user_service.top_by_trust(db, size)
        else:
            users = await user_service.top_by_points(db, size)
    if by_trust:
        return format_leaderboard("🌟 Top Trusted Users", users, by_trust=True)
    return format_leaderboard("🏆 Top Contributors", users)


async def render_dashboard(update: Update) -> str:
    async with get_db_session() as db:
        await _registered_user(db, update)
        profile = await user_service.get_profile(db, update.effective_user.id)
        await db.commit()
    user = profile.user
    return (
        "👤 My Dashboard\n"
        "━━━━━━━━━━━━━━━\n"
        f"🏷️ Username: @{user.username}\n"
        f"💰 Points: {user.points}\n"
        f"🔰 Trust Score: {user.trust_score}\n"
        f"🎖 Badge: {badge_label(profile.badge)}\n"
        f"📎 Links Added: {profile.links_added}\n"
        f"⚠️ Reports Made: {profile.reports_made}\n"
        f"👥 Friends Invited: {profile.friends_invited}\n"
        f"🔗 Referral Code: {user.referral_code}\n\n"
        "Keep contributing to build a safer web 🌍"
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def bind_context(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Runs first for every update so log lines carry the update and user."""
    user = update.effective_user
    bind_update_context(update.update_id, user.id if user else None)


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    tg_user = update.effective_user
    referral_code = context.args[0] if context.args else None
    async with get_db_session() as db:
        registration = await user_service.ensure_user(
            db, tg_user.id, tg_user.username, referral_code=referral_code
        )
        await db.commit()

    await update.effective_message.reply_text(
        WELCOME_TEXT, reply_markup=keyboards.main_menu_keyboard()
    )
    if registration.referrer is not None:
        await update.effective_message.reply_text(
            f"🎉 You were referred by {registration.referrer.username}! They earned bonus points."
        )


async def menu_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.effective_message.reply_text(
        MENU_TEXT, reply_markup=keyboards.main_menu_keyboard()
    )


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.effective_message.reply_text(HELP_TEXT)


async def add_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not context.args:
        await update.effective_message.reply_text("⚠️ Usage: /add <link>")
        return
    await update.effective_message.reply_text(await submit_link(update, context.args[0]))


async def check_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not context.args:
        await update.effective_message.reply_text("⚠️ Usage: /check <link>")
        return
    await update.effective_message.reply_text(await lookup_link(context.args[0]))


async def search_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.effective_message.reply_text(await run_search(" ".join(context.args or [])))


async def report_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not context.args:
        await update.effective_message.reply_text("⚠️ Usage: /report <link> [reason]")
        return
    await update.effective_message.reply_text(await file_report(update, " ".join(context.args)))


async def comment_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.effective_message.reply_text(
        await post_comment(update, " ".join(context.args or []))
    )


async def vote_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not context.args or len(context.args) != 2:
        await update.effective_message.reply_text("⚠️ Usage: /vote <link> legit|scam")
        return
    url, choice = context.args
    async with get_db_session() as db:
        user = await _registered_user(db, update)
        link = await link_service.require_link(db, url, for_update=True)
        outcome = await voting_service.cast_vote(db, user, link, choice)
        await db.commit()

    reply = f"🗳 Vote recorded: 👍 {link.votes_legit} / 🚫 {link.votes_scam}"
    if outcome.resolution is not None:
        reply += f"\nThe community decided: {STATUS_LABELS[outcome.resolution]}"
    await update.effective_message.reply_text(reply)


async def daily_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.effective_message.reply_text(await claim_daily_bonus(update))


async def top_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.effective_message.reply_text(await render_leaderboard())


async def trustboard_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.effective_message.reply_text(await render_leaderboard(by_trust=True))


async def me_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.effective_message.reply_text(await render_dashboard(update))


async def cancel_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if await cancel_pending(get_redis(), update.effective_user.id):
        await update.effective_message.reply_text("👌 Cancelled.")
    else:
        await update.effective_message.reply_text("Nothing to cancel.")


# ---------------------------------------------------------------------------
# Moderator commands
# ---------------------------------------------------------------------------


async def _moderate(
    update: Update, context: ContextTypes.DEFAULT_TYPE, command: str, target: LinkStatus
) -> None:
    _require_admin(update, f"mark links as {target.value}")
    if not context.args:
        await update.effective_message.reply_text(f"⚠️ Usage: /{command} <link>")
        return
    async with get_db_session() as db:
        link = await link_service.require_link(db, context.args[0], for_update=True)
        settled = await link_service.moderate_link(db, link, target)
        await db.commit()
    await update.effective_message.reply_text(
        f"Link {link.public_id} is now {STATUS_LABELS[target]}. "
        f"Scores settled for {len(settled)} user(s)."
    )


async def verify_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _moderate(update, context, "verify", LinkStatus.VERIFIED)


async def scam_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _moderate(update, context, "scam", LinkStatus.SCAM)


async def penalize_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    _require_admin(update, "penalize users")
    if not context.args or len(context.args) != 2 or not context.args[0].isdigit():
        await update.effective_message.reply_text(
            "⚠️ Usage: /penalize <telegram_id> false_report|spam_link|cheat"
        )
        return
    telegram_id, action = int(context.args[0]), context.args[1]
    async with get_db_session() as db:
        user = await user_service.require_user(db, telegram_id, for_update=True)
        result = await user_service.penalize(db, user, action)
        await db.commit()
    await update.effective_message.reply_text(
        f"🔨 {user.username}: trust {result.trust_delta:+d} → {result.trust} ({badge_label(result.badge)})"
    )


# ---------------------------------------------------------------------------
# Buttons and free text
# ---------------------------------------------------------------------------


async def menu_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    data = query.data

    if data in PROMPTS:
        action, prompt = PROMPTS[data]
        await set_pending(get_redis(), update.effective_user.id, action, query.message.message_id)
        await query.edit_message_text(prompt, reply_markup=keyboards.back_to_menu_keyboard())
        return

    if data == keyboards.ACTION_BACK_MENU:
        await cancel_pending(get_redis(), update.effective_user.id)
        await query.edit_message_text(MENU_TEXT, reply_markup=keyboards.main_menu_keyboard())
        return

    if data == keyboards.ACTION_LEADERBOARD:
        text = await render_leaderboard()
    elif data == keyboards.ACTION_TRUSTBOARD:
        text = await render_leaderboard(by_trust=True)
    elif data == keyboards.ACTION_DASHBOARD:
        text = await render_dashboard(update)
    elif data == keyboards.ACTION_DAILY:
        text = await claim_daily_bonus(update)
    elif data == keyboards.ACTION_HELP:
        text = HELP_TEXT
    else:
        logger.warning("unknown_callback", data=data)
        return
    await query.edit_message_text(text, reply_markup=keyboards.back_to_menu_keyboard())


async def text_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Plain text: answer the prompt the user is currently responding to."""
    pending = await pop_pending(get_redis(), update.effective_user.id)
    if pending is None:
        await update.effective_message.reply_text(
            "🤔 I'm not waiting for anything. Use /menu to pick an action."
        )
        return

    action, _ = pending
    text = update.effective_message.text
    if action == PendingAction.ADD:
        reply = await submit_link(update, text.strip())
    elif action == PendingAction.CHECK:
        reply = await lookup_link(text.strip())
    elif action == PendingAction.REPORT:
        reply = await file_report(update, text)
    elif action == PendingAction.COMMENT:
        reply = await post_comment(update, text)
    else:
        reply = await run_search(text)
    await update.effective_message.reply_text(reply, reply_markup=keyboards.back_to_menu_keyboard())


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Answer domain errors with their message; log everything else."""
    error = context.error
    if isinstance(error, LinktoryError):
        logger.info("bot_request_rejected", error_type=error.error_type)
        text = error.message
    else:
        logger.error("bot_update_failed", error=str(error), exc_info=error)
        text = GENERIC_ERROR_TEXT

    if isinstance(update, Update) and update.effective_message is not None:
        await update.effective_message.reply_text(text)
