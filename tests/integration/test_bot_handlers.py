"""Integration tests for the Telegram bot handlers."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from telegram import Update

from linktory.bot import keyboards
from linktory.exceptions import LinkExistsError, PermissionDeniedError
from linktory.services.link_state import LinkStatus
from linktory.services.scoring import score
from linktory.services.user_service import Registration
from tests.factories import make_link, make_user


def _make_update(telegram_id: int = 1001, username: str | None = "alice", text: str = "") -> MagicMock:
    update = MagicMock(spec=Update)
    update.update_id = 555
    update.effective_user.id = telegram_id
    update.effective_user.username = username
    update.effective_message.text = text
    update.effective_message.reply_text = AsyncMock()
    return update


def _make_context(*args: str) -> MagicMock:
    context = MagicMock()
    context.args = list(args)
    return context


def _make_callback(data: str, telegram_id: int = 1001) -> MagicMock:
    update = _make_update(telegram_id)
    update.callback_query.data = data
    update.callback_query.answer = AsyncMock()
    update.callback_query.edit_message_text = AsyncMock()
    update.callback_query.message.message_id = 77
    return update


def _replies(update: MagicMock) -> list[str]:
    return [c.args[0] for c in update.effective_message.reply_text.await_args_list]


@pytest.fixture
def bot_db(db_session):
    with patch("linktory.bot.handlers.get_db_session", MagicMock(return_value=db_session)):
        yield db_session


@pytest.fixture
def bot_redis(mock_redis_client):
    with patch("linktory.bot.handlers.get_redis", MagicMock(return_value=mock_redis_client)):
        yield mock_redis_client


@pytest.fixture
def registered(bot_db):
    user = make_user(1001, username="alice")
    with patch(
        "linktory.services.user_service.ensure_user",
        AsyncMock(return_value=Registration(user=user, created=False)),
    ):
        yield user


class TestFormatting:
    def test_format_link(self):
        from linktory.bot.handlers import format_link

        text = format_link(make_link(status="legit", votes_legit=3, votes_scam=1))

        assert "✅ verified" in text
        assert "👍 3 / 🚫 1" in text

    def test_split_report_pipe(self):
        from linktory.bot.handlers import split_report

        assert split_report("https://a.example | phishing kit") == ("https://a.example", "phishing kit")

    def test_split_report_space(self):
        from linktory.bot.handlers import split_report

        assert split_report("https://a.example fake store") == ("https://a.example", "fake store")
        assert split_report("https://a.example") == ("https://a.example", None)

    def test_empty_leaderboard(self):
        from linktory.bot.handlers import format_leaderboard

        assert format_leaderboard("🏆 Top", []) == "🏆 Top\n\nNo users yet."

    def test_trust_leaderboard(self):
        from linktory.bot.handlers import format_leaderboard

        text = format_leaderboard("🌟 Top", [make_user(1, username="bob", trust_score=150)], by_trust=True)

        assert "1. bob — Trust 150" in text


class TestStartCommand:
    @pytest.mark.asyncio
    async def test_start_with_referral(self, bot_db):
        from linktory.bot.handlers import WELCOME_TEXT, start_command

        user = make_user(1001)
        referrer = make_user(9, username="carol")
        update = _make_update()
        with patch(
            "linktory.services.user_service.ensure_user",
            AsyncMock(return_value=Registration(user=user, created=True, referrer=referrer)),
        ) as ensure:
            await start_command(update, _make_context("abc123"))

        assert ensure.await_args.kwargs["referral_code"] == "abc123"
        replies = _replies(update)
        assert replies[0] == WELCOME_TEXT
        assert "carol" in replies[1]
        bot_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_without_referral(self, bot_db):
        from linktory.bot.handlers import start_command

        update = _make_update()
        with patch(
            "linktory.services.user_service.ensure_user",
            AsyncMock(return_value=Registration(user=make_user(1001), created=False)),
        ):
            await start_command(update, _make_context())

        assert len(_replies(update)) == 1


class TestLinkCommands:
    @pytest.mark.asyncio
    async def test_add_usage(self):
        from linktory.bot.handlers import add_command

        update = _make_update()
        await add_command(update, _make_context())

        assert _replies(update) == ["⚠️ Usage: /add <link>"]

    @pytest.mark.asyncio
    async def test_add_success(self, registered, bot_db):
        from linktory.bot.handlers import add_command

        link = make_link(public_id="cafe0001")
        update = _make_update()
        with patch(
            "linktory.services.link_service.add_link",
            AsyncMock(return_value=(link, score("add_link", 100, 0))),
        ):
            await add_command(update, _make_context("https://example.com"))

        [reply] = _replies(update)
        assert "cafe0001" in reply
        assert "+2 points" in reply
        bot_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_add_duplicate_propagates(self, registered, bot_db):
        from linktory.bot.handlers import add_command

        with patch(
            "linktory.services.link_service.add_link",
            AsyncMock(side_effect=LinkExistsError("https://example.com")),
        ):
            with pytest.raises(LinkExistsError):
                await add_command(_make_update(), _make_context("https://example.com"))
        bot_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_check_unknown(self, bot_db):
        from linktory.bot.handlers import check_command

        update = _make_update()
        with patch("linktory.services.link_service.check_link", AsyncMock(return_value=None)):
            await check_command(update, _make_context("https://example.com"))

        assert _replies(update)[0].startswith("❌ No record found")

    @pytest.mark.asyncio
    async def test_report_reaching_review(self, registered, bot_db):
        from linktory.bot.handlers import report_command

        link = make_link(status="under_review", public_id="beef0002")
        update = _make_update()
        with patch(
            "linktory.services.link_service.report_link",
            AsyncMock(return_value=(link, score("report_link", 100, 0))),
        ) as report_link:
            await report_command(update, _make_context("https://example.com", "fake", "shop"))

        assert report_link.await_args.args[2:] == ("https://example.com", "fake shop")
        [reply] = _replies(update)
        assert "beef0002" in reply
        assert "under review" in reply

    @pytest.mark.asyncio
    async def test_search_usage(self):
        from linktory.bot.handlers import search_command

        update = _make_update()
        await search_command(update, _make_context())

        assert _replies(update) == ["⚠️ Usage: /search <keyword>"]

    @pytest.mark.asyncio
    async def test_comment_usage(self):
        from linktory.bot.handlers import comment_command

        update = _make_update()
        await comment_command(update, _make_context("https://example.com"))

        assert _replies(update) == ["⚠️ Usage: /comment <link> <text>"]

    @pytest.mark.asyncio
    async def test_vote_usage(self):
        from linktory.bot.handlers import vote_command

        update = _make_update()
        await vote_command(update, _make_context("https://example.com"))

        assert _replies(update) == ["⚠️ Usage: /vote <link> legit|scam"]


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_pending(self, bot_redis):
        from linktory.bot.handlers import cancel_command

        update = _make_update()
        await cancel_command(update, _make_context())

        assert _replies(update) == ["👌 Cancelled."]

    @pytest.mark.asyncio
    async def test_nothing_to_cancel(self, bot_redis):
        from linktory.bot.handlers import cancel_command

        bot_redis.delete.return_value = 0
        update = _make_update()
        await cancel_command(update, _make_context())

        assert _replies(update) == ["Nothing to cancel."]


class TestModeratorCommands:
    @pytest.mark.asyncio
    async def test_non_admin_rejected(self):
        from linktory.bot.handlers import verify_command

        with pytest.raises(PermissionDeniedError):
            await verify_command(_make_update(), _make_context("https://example.com"))

    @pytest.mark.asyncio
    async def test_admin_marks_scam(self, bot_db, monkeypatch):
        from linktory.bot.handlers import scam_command

        monkeypatch.setenv("LINKTORY_ADMIN_IDS", "1001")
        link = make_link(status="reported", public_id="f00d0003")
        update = _make_update()
        with patch(
            "linktory.services.link_service.require_link", AsyncMock(return_value=link)
        ), patch(
            "linktory.services.link_service.moderate_link",
            AsyncMock(return_value=[score("valid_report", 100, 0)]),
        ) as moderate:
            await scam_command(update, _make_context("https://example.com"))

        assert moderate.await_args.args[1:] == (link, LinkStatus.SCAM)
        [reply] = _replies(update)
        assert "f00d0003" in reply
        assert "1 user(s)" in reply
        bot_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_penalize_usage(self, monkeypatch):
        from linktory.bot.handlers import penalize_command

        monkeypatch.setenv("LINKTORY_ADMIN_IDS", "1001")
        update = _make_update()
        await penalize_command(update, _make_context("not-a-number", "cheat"))

        assert _replies(update)[0].startswith("⚠️ Usage: /penalize")


class TestMenuCallback:
    @pytest.mark.asyncio
    async def test_prompt_button_sets_pending(self, bot_redis):
        from linktory.bot.handlers import PROMPTS, menu_callback

        update = _make_callback(keyboards.ACTION_ADD)
        await menu_callback(update, _make_context())

        update.callback_query.answer.assert_awaited_once()
        key, _, payload = bot_redis.setex.await_args.args
        assert key == "pending:1001"
        assert '"add"' in payload
        text = update.callback_query.edit_message_text.await_args.args[0]
        assert text == PROMPTS[keyboards.ACTION_ADD][1]

    @pytest.mark.asyncio
    async def test_back_button_cancels(self, bot_redis):
        from linktory.bot.handlers import MENU_TEXT, menu_callback

        update = _make_callback(keyboards.ACTION_BACK_MENU)
        await menu_callback(update, _make_context())

        bot_redis.delete.assert_awaited_once_with("pending:1001")
        assert update.callback_query.edit_message_text.await_args.args[0] == MENU_TEXT

    @pytest.mark.asyncio
    async def test_help_button(self):
        from linktory.bot.handlers import HELP_TEXT, menu_callback

        update = _make_callback(keyboards.ACTION_HELP)
        await menu_callback(update, _make_context())

        assert update.callback_query.edit_message_text.await_args.args[0] == HELP_TEXT

    @pytest.mark.asyncio
    async def test_unknown_button_ignored(self):
        from linktory.bot.handlers import menu_callback

        update = _make_callback("ACTION_NOPE")
        await menu_callback(update, _make_context())

        update.callback_query.edit_message_text.assert_not_awaited()


class TestTextMessage:
    @pytest.mark.asyncio
    async def test_nothing_pending(self, bot_redis):
        from linktory.bot.handlers import text_message

        update = _make_update(text="https://example.com")
        await text_message(update, _make_context())

        assert _replies(update)[0].startswith("🤔 I'm not waiting")

    @pytest.mark.asyncio
    async def test_pending_add_submits_link(self, bot_redis, registered, bot_db):
        from linktory.bot.handlers import text_message

        bot_redis.getdel.return_value = '{"action": "add", "prompt_message_id": 77}'
        update = _make_update(text="  https://example.com  ")
        with patch(
            "linktory.services.link_service.add_link",
            AsyncMock(return_value=(make_link(), score("add_link", 100, 0))),
        ) as add_link:
            await text_message(update, _make_context())

        assert add_link.await_args.args[2] == "https://example.com"
        assert _replies(update)[0].startswith("✅ Link added!")

    @pytest.mark.asyncio
    async def test_pending_search(self, bot_redis, bot_db):
        from linktory.bot.handlers import text_message

        bot_redis.getdel.return_value = '{"action": "search"}'
        update = _make_update(text="example")
        with patch(
            "linktory.services.link_service.search_links",
            AsyncMock(return_value=[make_link(url="https://example.com", status="scam")]),
        ):
            await text_message(update, _make_context())

        assert "https://example.com [scam]" in _replies(update)[0]


class TestErrorHandler:
    @pytest.mark.asyncio
    async def test_domain_error_is_shown(self):
        from linktory.bot.handlers import error_handler

        update = _make_update()
        context = _make_context()
        context.error = LinkExistsError("https://example.com")
        await error_handler(update, context)

        assert _replies(update) == ["❌ This link already exists in Linktory."]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_generic(self):
        from linktory.bot.handlers import GENERIC_ERROR_TEXT, error_handler

        update = _make_update()
        context = _make_context()
        context.error = RuntimeError("db down")
        await error_handler(update, context)

        assert _replies(update) == [GENERIC_ERROR_TEXT]

    @pytest.mark.asyncio
    async def test_non_update_is_only_logged(self):
        from linktory.bot.handlers import error_handler

        context = _make_context()
        context.error = RuntimeError("boom")
        await error_handler(None, context)
