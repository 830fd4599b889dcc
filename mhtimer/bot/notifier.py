"""Message delivery over the Telegram bot API."""

import logging

from telegram import Bot
from telegram.error import TelegramError

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Sends HTML messages to users or chats; never raises on delivery errors."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send(self, recipient: int, text: str) -> bool:
        try:
            await self.bot.send_message(
                chat_id=recipient,
                text=text,
                parse_mode="HTML",
            )
        except TelegramError as e:
            logger.error(f"Failed to send message to {recipient}: {e}")
            return False
        return True
