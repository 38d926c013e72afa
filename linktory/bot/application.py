"""python-telegram-bot Application wiring (webhook mode, no updater)."""

from telegram import Update
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    MessageHandler,
    TypeHandler,
    filters,
)

from linktory.bot import handlers

COMMANDS = {
    "start": handlers.start_command,
    "menu": handlers.menu_command,
    "help": handlers.help_command,
    "add": handlers.add_command,
    "check": handlers.check_command,
    "search": handlers.search_command,
    "report": handlers.report_command,
    "comment": handlers.comment_command,
    "vote": handlers.vote_command,
    "daily": handlers.daily_command,
    "top": handlers.top_command,
    "trustboard": handlers.trustboard_command,
    "me": handlers.me_command,
    "cancel": handlers.cancel_command,
    "verify": handlers.verify_command,
    "scam": handlers.scam_command,
    "penalize": handlers.penalize_command,
}


def register_handlers(application: Application) -> None:
    application.add_handler(TypeHandler(Update, handlers.bind_context), group=-1)
    for name, callback in COMMANDS.items():
        application.add_handler(CommandHandler(name, callback))
    application.add_handler(CallbackQueryHandler(handlers.menu_callback, pattern=r"^ACTION_"))
    application.add_handler(
        MessageHandler(
            filters.TEXT & ~filters.COMMAND & filters.ChatType.PRIVATE,
            handlers.text_message,
        )
    )
    application.add_error_handler(handlers.error_handler)


def build_application(token: str) -> Application:
    """Build the bot. Updates arrive through the FastAPI webhook route."""
    application = Application.builder().updater(None).token(token).build()
    register_handlers(application)
    return application
