"""Inline keyboards and callback ids."""

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

ACTION_ADD = "ACTION_ADD"
ACTION_CHECK = "ACTION_CHECK"
ACTION_REPORT = "ACTION_REPORT"
ACTION_SEARCH = "ACTION_SEARCH"
ACTION_COMMENT = "ACTION_COMMENT"
ACTION_LEADERBOARD = "ACTION_LEADERBOARD"
ACTION_TRUSTBOARD = "ACTION_TRUSTBOARD"
ACTION_DASHBOARD = "ACTION_DASHBOARD"
ACTION_DAILY = "ACTION_DAILY"
ACTION_HELP = "ACTION_HELP"
ACTION_BACK_MENU = "ACTION_BACK_MENU"


def main_menu_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton("➕ Add Link", callback_data=ACTION_ADD),
                InlineKeyboardButton("🔍 Check Link", callback_data=ACTION_CHECK),
            ],
            [
                InlineKeyboardButton("⚠️ Report Link", callback_data=ACTION_REPORT),
                InlineKeyboardButton("🔎 Search", callback_data=ACTION_SEARCH),
            ],
            [
                InlineKeyboardButton("🏆 Leaderboard", callback_data=ACTION_LEADERBOARD),
                InlineKeyboardButton("🌟 Trustboard", callback_data=ACTION_TRUSTBOARD),
            ],
            [
                InlineKeyboardButton("👤 My Dashboard", callback_data=ACTION_DASHBOARD),
                InlineKeyboardButton("🎁 Daily Bonus", callback_data=ACTION_DAILY),
            ],
            [
                InlineKeyboardButton("💬 Comment", callback_data=ACTION_COMMENT),
                InlineKeyboardButton("📜 Help", callback_data=ACTION_HELP),
            ],
        ]
    )


def back_to_menu_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton("🏠 Back to Menu", callback_data=ACTION_BACK_MENU)]]
    )
