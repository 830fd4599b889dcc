"""Command handlers."""

import logging
import re
from datetime import timedelta
from html import escape
from typing import Awaitable, Callable

from telegram import Update
from telegram.constants import ChatType
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from mhtimer.bot.formatters import (
    describe_count,
    format_help_message,
    format_known_timers,
    format_next_timer,
    format_reminder_added,
    format_reminder_list,
    format_schedule,
    request_name,
)
from mhtimer.context import AppContext
from mhtimer.db.models import ReminderRequest
from mhtimer.parser.commands import (
    Command,
    clamp_schedule_hours,
    lookup_command,
    parse_command,
)
from mhtimer.utils.constants import EXPIRED, MAX_SCHEDULE_ENTRIES, MIN_SEARCH_LENGTH
from mhtimer.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

COMMAND_PREFIX = "/"
PROFILE_URL = "https://mshnt.ca/p/{hid}"

Handler = Callable[[AppContext, Update, ContextTypes.DEFAULT_TYPE, list[str]], Awaitable[None]]


def _is_private(update: Update) -> bool:
    return bool(update.effective_chat and update.effective_chat.type == ChatType.PRIVATE)


async def _private_reply(app: AppContext, update: Update, text: str) -> None:
    """Answer in private; in a group, say so if the private message failed."""
    if _is_private(update):
        await update.effective_message.reply_html(text)
        return

    if not await app.dispatcher.sender.send(update.effective_user.id, text):
        await update.effective_message.reply_text(
            "I couldn't send you a private message. Start a chat with me first, then try again."
        )


def _known_timers(app: AppContext) -> str:
    return f"I know these timers:\n{format_known_timers(app.registry.known_timers())}"


async def next_command(app: AppContext, update: Update, context: ContextTypes.DEFAULT_TYPE, tokens: list[str]) -> None:
    """Describe the next occurrence of the requested timer."""
    request = app.registry.resolve_tokens(tokens) if tokens else ReminderRequest()
    if not request.area:
        await update.effective_message.reply_html(_known_timers(app))
        return

    now = utcnow()
    timer = app.registry.find_next(request.area, request.sub_area, now)
    if timer is None:
        await update.effective_message.reply_html(_known_timers(app))
        return

    await update.effective_message.reply_html(format_next_timer(timer, request, COMMAND_PREFIX, now))


async def remind_command(app: AppContext, update: Update, context: ContextTypes.DEFAULT_TYPE, tokens: list[str]) -> None:
    """List, add, update or turn off the requester's reminders."""
    user = update.effective_user.id
    request = app.registry.resolve_tokens(tokens) if tokens else ReminderRequest()
    if not request.area:
        await _private_reply(app, update, format_reminder_list(app.store.list(user), COMMAND_PREFIX))
        return

    area, sub_area = request.area, request.sub_area
    count = 1 if request.count is None else request.count
    name = escape(request_name(area, sub_area))

    if count == EXPIRED:
        switched_off = app.store.turn_off(user, area, sub_area)
        if switched_off:
            text = f"Reminder for '{name}' turned off."
        else:
            text = f"I couldn't find a matching reminder for you in '{name}'."
        await _private_reply(app, update, text)
        return

    choices = app.registry.matching_by_next(area, sub_area, utcnow())
    logger.info(f"Timers: found {len(choices)} matching request {request}")
    if not choices:
        await _private_reply(
            app,
            update,
            f"I'm sorry, there weren't any timers I know of that match your request. {_known_timers(app)}",
        )
        return

    # An area-wide request against an area without sub-areas stores no sub-area.
    timer = choices[0]
    is_new_user = not app.store.has_user(user)
    result = app.store.add(user, area, sub_area if timer.sub_area else None, count)

    if result.updated:
        text = (
            f"Updated reminder count for '{name}' from "
            f"'{describe_count(result.previous_count)}' to '{describe_count(count)}'."
        )
    else:
        text = format_reminder_added(area, timer, choices, sub_area, count)
        if is_new_user and not _is_private(update):
            text = f"Hi there! Reminders are only sent via PM, and I'm just making sure I can PM you. {text}"
    await _private_reply(app, update, text)


async def schedule_command(app: AppContext, update: Update, context: ContextTypes.DEFAULT_TYPE, tokens: list[str]) -> None:
    """List upcoming occurrences, optionally for one area."""
    request = app.registry.resolve_tokens(tokens) if tokens else ReminderRequest()
    hours = clamp_schedule_hours(request.count)
    now = utcnow()
    upcoming = app.registry.find_upcoming(request.area, now + timedelta(hours=hours), now)
    await update.effective_message.reply_html(format_schedule(upcoming, hours, MAX_SCHEDULE_ENTRIES, now))


async def find_command(app: AppContext, update: Update, context: ContextTypes.DEFAULT_TYPE, tokens: list[str]) -> None:
    """Where to find a mouse."""
    if not tokens:
        await update.effective_message.reply_text("You have to supply mice to find.")
        return

    criteria = re.sub(r" mouse$", "", " ".join(tokens).strip().lower())
    if len(criteria) < MIN_SEARCH_LENGTH:
        await update.effective_message.reply_text("Your search string was too short, try again.")
        return

    await update.effective_message.reply_html(await app.lookups.find_mouse(criteria))


async def ifind_command(app: AppContext, update: Update, context: ContextTypes.DEFAULT_TYPE, tokens: list[str]) -> None:
    """Where to find an item."""
    if not tokens:
        await update.effective_message.reply_text("You have to supply an item to find.")
        return

    criteria = " ".join(tokens).strip().lower()
    if len(criteria) < MIN_SEARCH_LENGTH:
        await update.effective_message.reply_text("Your search string was too short, try again.")
        return

    await update.effective_message.reply_html(await app.lookups.find_item(criteria))


async def iam_command(app: AppContext, update: Update, context: ContextTypes.DEFAULT_TYPE, tokens: list[str]) -> None:
    """Set or clear the requester's hunter profile."""
    message = update.effective_message
    user = update.effective_user.id

    if not tokens:
        await message.reply_text("Yes, you are. Provide a hunter ID number to set that.")
        return

    if len(tokens) == 1 and tokens[0].isdigit():
        previous = app.hunters.set_hid(user, tokens[0])
        text = f"You used to be known as <code>{escape(previous)}</code>. " if previous else ""
        text += f"If people look you up they'll see <code>{escape(tokens[0])}</code>."
        await message.reply_html(text)
        return

    if len(tokens) == 1 and tokens[0].lower() == "not":
        if app.hunters.remove(user):
            await message.reply_text("*POOF*, you're gone!")
        else:
            await message.reply_text("I didn't do anything but that's because you didn't do anything either.")
        return

    subcommand = tokens[0].lower()
    value = " ".join(tokens[1:10]).strip().lower()
    if subcommand == "in" and value:
        prop = "location"
    elif subcommand in ("rank", "title", "a") and value:
        prop = "rank"
    elif subcommand.startswith("snu") and value:
        prop = "snuid"
    else:
        await message.reply_html(
            "\n  ".join(
                [
                    "I'm not sure what to do with that. Try:",
                    f"<code>{COMMAND_PREFIX}iam ####</code> to set a hunter ID.",
                    f"<code>{COMMAND_PREFIX}iam rank &lt;rank&gt;</code> to set a rank.",
                    f"<code>{COMMAND_PREFIX}iam in &lt;location&gt;</code> to set a location",
                    f"<code>{COMMAND_PREFIX}iam snuid ####</code> to set your in-game user id",
                    f"<code>{COMMAND_PREFIX}iam not</code> to unregister (and delete your data)",
                ]
            )
        )
        return

    try:
        previous = app.hunters.set_property(user, prop, value)
    except KeyError:
        await message.reply_text(
            "I don't know who you are so you can't set that now; set your hunter ID first."
        )
        return

    text = f"Your {prop} used to be <code>{escape(previous)}</code>. " if previous else ""
    text += f"Your {prop} is set to <code>{escape(value)}</code>"
    await message.reply_html(text)


async def whois_command(app: AppContext, update: Update, context: ContextTypes.DEFAULT_TYPE, tokens: list[str]) -> None:
    """Look up registered hunters by ID, or list random ones by rank or location."""
    message = update.effective_message
    if not tokens:
        await message.reply_text("Who's who? Who's on first?")
        return

    search_type = tokens[0].lower()
    if search_type.isdigit() or search_type.startswith("snu"):
        prop, value = ("hid", tokens[0]) if search_type.isdigit() else ("snuid", " ".join(tokens[1:2]))
        await _whois_user(app, update, context, prop, value)
        return

    search = " ".join(tokens[1:]).lower()
    if search_type == "in" and search:
        prop = "location"
    elif search_type in ("rank", "title", "a", "an") and search:
        prop = "rank"
    else:
        await message.reply_html(
            "\n  ".join(
                [
                    "I'm not sure what to do with that. Try:",
                    f"<code>{COMMAND_PREFIX}whois [#### | snuid ####]</code> to look up specific hunters",
                    f"<code>{COMMAND_PREFIX}whois [in &lt;location&gt; | a &lt;rank&gt;]</code> to find up to 5 random new friends",
                ]
            )
        )
        return

    hids = app.hunters.random_by_property(prop, search)
    if hids:
        listed = "</code>, <code>".join(escape(hid) for hid in hids)
        await message.reply_html(f"{len(hids)} random hunters: <code>{listed}</code>")
    else:
        await message.reply_html(
            f"I couldn't find any hunters with <code>{prop}</code> matching <code>{escape(search)}</code>"
        )


async def _whois_user(
    app: AppContext, update: Update, context: ContextTypes.DEFAULT_TYPE, prop: str, value: str
) -> None:
    message = update.effective_message
    label = "hunter ID" if prop == "hid" else prop
    if _is_private(update):
        await message.reply_text(f"Searching by {label} isn't allowed via PM.")
        return

    user = app.hunters.find_user(prop, value)
    if user is None:
        await message.reply_html(
            f"I did not find a registered hunter with <b>{escape(value)}</b> as a {label}."
        )
        return

    hunter = app.hunters.get(user)
    try:
        member = await context.bot.get_chat_member(update.effective_chat.id, user)
    except TelegramError as e:
        logger.error(f"Hunters: could not look up member {user}: {e}")
        await message.reply_text("That person may not be in this chat.")
        return

    link = PROFILE_URL.format(hid=hunter.hid)
    await message.reply_html(
        f"<b>{escape(value)}</b> is {escape(member.user.full_name)} {escape(link)}"
    )


async def rh_command(app: AppContext, update: Update, context: ContextTypes.DEFAULT_TYPE, tokens: list[str]) -> None:
    """Where the Relic Hunter is today."""
    text, changed = await app.relic_hunter.find(app.lookups)
    await update.effective_message.reply_html(text)
    if changed:
        await app.remind_relic_hunter()


async def reset_command(app: AppContext, update: Update, context: ContextTypes.DEFAULT_TYPE, tokens: list[str]) -> None:
    """Owner-only resets; everyone else gets help."""
    if not app.owner_id or update.effective_user.id != app.owner_id:
        await help_command(app, update, context, tokens)
        return

    target = tokens[0].lower() if tokens else ""
    if target == "timers":
        restored = app.dispatcher.reactivate_targets()
        await update.effective_message.reply_text(f"Reactivated {restored} announcement destinations.")
        return

    app.relic_hunter.reset()
    await update.effective_message.reply_text("Relic Hunter location reset.")


async def help_command(app: AppContext, update: Update, context: ContextTypes.DEFAULT_TYPE, tokens: list[str]) -> None:
    await update.effective_message.reply_html(
        format_help_message(tokens, COMMAND_PREFIX, app.lookups.filter_names())
    )


COMMAND_HANDLERS: dict[Command, Handler] = {
    Command.NEXT: next_command,
    Command.REMIND: remind_command,
    Command.SCHEDULE: schedule_command,
    Command.FIND: find_command,
    Command.IFIND: ifind_command,
    Command.IAM: iam_command,
    Command.WHOIS: whois_command,
    Command.RELIC_HUNTER: rh_command,
    Command.RESET: reset_command,
    Command.HELP: help_command,
}


async def command_router(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /<command> messages."""
    if not update.effective_user or not update.effective_message or not update.effective_message.text:
        return

    word = update.effective_message.text.split()[0][1:].split("@")[0]
    command = lookup_command(word)
    app: AppContext = context.bot_data["app"]
    await COMMAND_HANDLERS[command](app, update, context, list(context.args or []))


async def handle_plain_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle "<prefix> command args" in groups, or bare "command args" in private."""
    if not update.effective_user or not update.effective_message or not update.effective_message.text:
        return

    app: AppContext = context.bot_data["app"]
    parsed = parse_command(update.effective_message.text, app.prefix, private=_is_private(update))
    if parsed is None:
        return

    logger.debug(f"MessageHandling: {parsed.name} {parsed.tokens} from {update.effective_user.id}")
    await COMMAND_HANDLERS[parsed.command](app, update, context, parsed.tokens)


async def handle_relic_hunter_post(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Record Relic Hunter sightings posted in the tracking chat."""
    message = update.effective_message
    if not message or not message.text:
        return

    app: AppContext = context.bot_data["app"]
    if app.relic_hunter.handle_webhook(message.text):
        await app.remind_relic_hunter()
