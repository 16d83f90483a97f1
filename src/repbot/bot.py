"""Telegram bot interface for the repbot workout assistant."""

import logging
import sys

from telegram import Update
from telegram.ext import Application, CommandHandler, MessageHandler, filters

from .config import Config, configure_logging, load_config
from .core import MessageHandler as RepbotHandler

logger = logging.getLogger(__name__)


def parse_sender_id(raw) -> int | None:
    """Numeric sender id, or None if the transport gave something unusable."""
    if isinstance(raw, bool):
        return None
    try:
        sender_id = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return sender_id if sender_id > 0 else None


class RepbotBot:
    """Telegram bot that routes messages through the shared message handler."""

    def __init__(self, config: Config, handler: RepbotHandler | None = None) -> None:
        self._config = config
        self._handler = handler or RepbotHandler(config)
        self._allowed_users: set[int] = set(config.telegram.allowed_user_ids)

    def _is_allowed(self, user_id: int) -> bool:
        if not self._allowed_users:
            return True  # no restriction configured
        return user_id in self._allowed_users

    async def _on_start(self, update: Update, _) -> None:
        if not update.message:
            return
        await update.message.reply_text(
            "Send me your workouts (exercise, sets, reps and weight) "
            "or ask me about your logged training."
        )

    async def _on_message(self, update: Update, _) -> None:
        message = update.message
        if not message:
            return
        text = (message.text or message.caption or "").strip()
        if not text:
            return

        raw_sender = update.effective_user.id if update.effective_user else None
        user_id = parse_sender_id(raw_sender)
        if user_id is None:
            logger.warning("Dropping message with unusable sender id %r", raw_sender)
            return
        if not self._is_allowed(user_id):
            return

        response = await self._handler.process(text, user_id)
        if response is None:
            logger.info("No reply for user %s", user_id)
            return

        await message.reply_text(response)

    async def _post_init(self, app: Application) -> None:
        await self._handler.initialize()
        logger.info("repbot initialized (DB + LLM ready)")

    async def _post_shutdown(self, app: Application) -> None:
        await self._handler.close()
        logger.info("repbot shut down")

    def run(self) -> None:
        if not self._config.telegram.token:
            print("TELEGRAM__TOKEN not set in .env")
            sys.exit(1)

        app = (
            Application.builder()
            .token(self._config.telegram.token)
            .concurrent_updates(True)
            .post_init(self._post_init)
            .post_shutdown(self._post_shutdown)
            .build()
        )

        app.add_handler(CommandHandler("start", self._on_start))
        app.add_handler(
            MessageHandler(
                (filters.TEXT | filters.CAPTION) & ~filters.COMMAND, self._on_message
            )
        )

        logger.info("Starting repbot (polling)...")
        app.run_polling()


def main() -> None:
    config = load_config()
    configure_logging(config)
    bot = RepbotBot(config)
    bot.run()


if __name__ == "__main__":
    main()
