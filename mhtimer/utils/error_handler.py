"""Global error handler for the bot."""

import logging
import traceback

from telegram import Update
from telegram.error import BadRequest, Forbidden, NetworkError, TimedOut
from telegram.ext import ContextTypes

logger = logging.getLogger(__name__)


def describe_error(error: BaseException | None) -> str:
    """User-facing text for an exception raised while handling an update."""
    if isinstance(error, Forbidden):
        return "I don't have permission to send you messages. Start a private chat with me first."
    if isinstance(error, BadRequest):
        return "That request didn't work. Check the command syntax, or ask me for help."
    if isinstance(error, TimedOut):
        return "The request timed out. Please try again in a moment."
    if isinstance(error, NetworkError):
        return "I'm having network trouble. Please try again in a moment."
    return "Oops! Something went wrong. The error has been logged; ask me for help if it keeps happening."


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle errors in the bot."""
    logger.error("Exception while handling an update:", exc_info=context.error)

    if context.error is not None:
        tb_string = "".join(
            traceback.format_exception(None, context.error, context.error.__traceback__)
        )
        logger.debug(f"Traceback:\n{tb_string}")

    if isinstance(update, Update) and update.effective_message:
        try:
            await update.effective_message.reply_text(describe_error(context.error))
        except Exception as e:
            logger.error(f"Failed to send error message to user: {e}")
