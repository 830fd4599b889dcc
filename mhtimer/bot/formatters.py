"""Message text formatters."""

from datetime import datetime, timedelta
from html import escape
from typing import Iterable, Sequence, Tuple

from mhtimer.db.models import Reminder, ReminderRequest
from mhtimer.engine.timer import Timer
from mhtimer.utils.constants import UNLIMITED
from mhtimer.utils.time_utils import format_countdown, time_left


def describe_count(count: int) -> str:
    if count == UNLIMITED:
        return "always"
    return str(count)


def remind_syntax(prefix: str, area: str, sub_area: str | None = None) -> str:
    return f"{prefix}remind {area}{f' {sub_area}' if sub_area else ''}"


def request_name(area: str, sub_area: str | None) -> str:
    return f"{area}: {sub_area}" if sub_area else area


def format_known_timers(known: dict[str, list[str]]) -> str:
    """List known areas with their sub-areas, one per line."""
    lines = []
    for area, sub_areas in known.items():
        line = f"<b>{escape(area)}</b>"
        if sub_areas:
            line += f" ({', '.join(escape(s) for s in sub_areas)})"
        lines.append(line)
    return "\n".join(lines)


def format_next_timer(timer: Timer, request: ReminderRequest, prefix: str, now: datetime) -> str:
    """Describe the next occurrence of a timer."""
    when = timer.get_next(now)
    syntax = remind_syntax(prefix, request.area or timer.area, request.sub_area)
    return (
        f"{escape(timer.demand)}\n"
        f"{time_left(when, now)} ({when.strftime('%b %d %H:%M UTC')})\n"
        f"To schedule this reminder: <code>{escape(syntax)}</code>"
    )


def format_reminder_notification(
    timer: Timer,
    reminder: Reminder,
    remaining: int,
    until_next: timedelta,
    prefix: str,
    location: str | None = None,
) -> str:
    """Private message sent when a subscribed timer fires."""
    lines = []
    if location is not None:
        lines.append(f"<b>RH: {escape(location)}</b>")
        lines.append(f"She's in <b>{escape(location)}</b>")
    else:
        lines.append(f"<b>{escape(timer.announcement)}</b>")

    if reminder.failure_count:
        lines.append(f"(There were {reminder.failure_count} failures before this got through.)")

    lines.append("")
    lines.append(f"Reminders left: {'unlimited' if remaining == UNLIMITED else remaining}")
    lines.append(f"Next reminder: {format_countdown(until_next)}")

    syntax = remind_syntax(prefix, reminder.area, reminder.sub_area)
    if remaining == 0:
        lines.append(f"Use <code>{escape(syntax)}</code> to turn this reminder back on.")
    else:
        lines.append(f"Use <code>{escape(syntax)} stop</code> to end these sooner.")
    lines.append(f"Use <code>{prefix}help remind</code> for additional info.")
    return "\n".join(lines)


def format_reminder_list(reminders: Sequence[Reminder], prefix: str) -> str:
    """Format a user's active reminders."""
    if not reminders:
        return "I found no reminders for you, sorry."

    lines = ["<b>Your reminders:</b>"]
    for reminder in reminders:
        if reminder.count == 1:
            times = "one more time"
        elif reminder.count == UNLIMITED:
            times = "until you stop it"
        else:
            times = f"{reminder.count} times"
        syntax = remind_syntax(prefix, reminder.area, reminder.sub_area)
        name = f"{reminder.area}{f' ({reminder.sub_area})' if reminder.sub_area else ''}"
        lines.append(f"\nTimer: <b>{escape(name)}</b> {times}.")
        lines.append(f"To turn off: <code>{escape(syntax)} stop</code>")
        if reminder.failure_count:
            lines.append(
                f"There have been {reminder.failure_count} failed attempts to activate this reminder."
            )
    return "\n".join(lines)


def format_reminder_added(
    area: str,
    timer: Timer,
    choices: Sequence[Timer],
    sub_area: str | None,
    count: int,
) -> str:
    """Confirmation for a newly created reminder."""
    is_generic = not sub_area and timer.sub_area
    name = area if is_generic else timer.name
    text = f"Your reminder for <b>{escape(name)}</b> is set. "
    if len(choices) > 1:
        sub_areas = []
        for choice in choices:
            if choice.sub_area and choice.sub_area not in sub_areas:
                sub_areas.append(choice.sub_area)
        text += f"You'll get reminders for {oxford_join(f'<b>{escape(s)}</b>' for s in sub_areas)}. "
        text += "I'll PM you about them "
    else:
        text += "I'll PM you about it "

    if count == 1:
        text += "once."
    elif count == UNLIMITED:
        text += "until you stop it."
    else:
        text += f"{count} times."
    return text


def format_schedule(
    upcoming: Sequence[Tuple[Timer, datetime]], hours: int, limit: int, now: datetime
) -> str:
    """List upcoming occurrences, soonest first, capped at limit."""
    text = f"I have {len(upcoming)} timers coming up in the next {hours} hours"
    shown = list(upcoming)
    if len(shown) > limit:
        text += f". Here are the next {limit} of them"
        shown = shown[:limit]
    text += ":\n" if shown else "."

    for timer, when in shown:
        text += f"{escape(timer.demand)} {time_left(when, now)}\n"
    return text


def oxford_join(values: Iterable[str]) -> str:
    """Join values as "a", "a and b" or "a, b, and c"."""
    items = list(values)
    if len(items) <= 2:
        return " and ".join(items)
    return f"{', '.join(items[:-1])}, and {items[-1]}"


AREA_INFO = (
    "Areas are Seasonal Garden (<b>sg</b>), Forbidden Grove (<b>fg</b>), Toxic Spill (<b>ts</b>), "
    "Balack's Cove (<b>cove</b>), the Relic Hunter (<b>rh</b>), and the daily <b>reset</b>."
)
SUB_AREA_INFO = "Sub areas are the seasons, open/close, spill ranks, and tide levels."
PRIVACY_WARNING = (
    "Setting your location and rank means that when people search for those things, "
    "you can be randomly added to the results."
)
KEYWORDS = "<code>iam</code>, <code>whois</code>, <code>remind</code>, <code>next</code>, <code>find</code>, <code>ifind</code>, <code>rh</code>, and <code>schedule</code>"


def format_help_message(tokens: Sequence[str], prefix: str, filters: Sequence[str] = ()) -> str:
    """Format general help, or help for the keyword in tokens[0]."""
    if not tokens:
        return "\n".join(
            [
                "<b>help</b>",
                f"I know the keywords {KEYWORDS}.",
                f"You can use <code>{prefix}help &lt;keyword&gt;</code> to get specific information about how to use it.",
                f"Example: <code>{prefix}help next</code> provides help about the 'next' keyword.",
                "Pro Tip: <b>All commands work in private chat!</b>",
            ]
        )

    topic = tokens[0].lower()
    db_filters = ", ".join(f"<code>{escape(f)}</code>" for f in filters)
    db_filters = f"{db_filters}, and <code>current</code>" if db_filters else "<code>current</code>"

    if topic == "next":
        return "\n".join(
            [
                "<b>next</b>",
                f"Usage: <code>{prefix}next [&lt;area&gt; | &lt;sub-area&gt;]</code> will provide a message about the next related occurrence.",
                AREA_INFO,
                SUB_AREA_INFO,
                f"Example: <code>{prefix}next fall</code> will tell when it is Autumn in the Seasonal Garden.",
            ]
        )
    if topic == "remind":
        return "\n".join(
            [
                "<b>remind</b>",
                f"Usage: <code>{prefix}remind [&lt;area&gt; | &lt;sub-area&gt;] [&lt;number&gt; | always | stop]</code> will control my reminder function relating to you specifically.",
                "Using the word <code>stop</code> will turn off a reminder if it exists.",
                "Using a number means I will remind you that many times for that timer.",
                "Use the word <code>always</code> to have me remind you for every occurrence.",
                f"Just using <code>{prefix}remind</code> will list all your existing reminders and how to turn off each.",
                AREA_INFO,
                SUB_AREA_INFO,
                f"Example: <code>{prefix}remind close always</code> will always PM you before the Forbidden Grove closes.",
            ]
        )
    if topic.startswith("sched"):
        return "\n".join(
            [
                "<b>schedule</b>",
                f"Usage: <code>{prefix}schedule [&lt;area&gt;] [&lt;number&gt;]</code> will tell you the timers scheduled for the next <code>&lt;number&gt;</code> of hours. Default is 24, max is 240.",
                "If you provide an area, I will only report on that area.",
                AREA_INFO,
            ]
        )
    if topic == "find":
        return "\n".join(
            [
                "<b>find</b>",
                f"Usage: <code>{prefix}find [-e &lt;filter&gt;] &lt;mouse&gt;</code> will print the top attractions for the mouse, capped at 10.",
                f"Use of <code>-e &lt;filter&gt;</code> is optional and adds a time filter. Known filters are: {db_filters}",
                "All attraction data is from MHCT. Help populate the database for better information!",
            ]
        )
    if topic == "ifind":
        return "\n".join(
            [
                "<b>ifind</b>",
                f"Usage: <code>{prefix}ifind [-e &lt;filter&gt;] &lt;item&gt;</code> will print the top 10 drop rates (per catch) for the item.",
                f"Use of <code>-e &lt;filter&gt;</code> is optional and adds a time filter. Known filters are: {db_filters}",
                "All drop rate data is from MHCT. Help populate the database for better information!",
            ]
        )
    if topic == "iam":
        return "\n".join(
            [
                "<b>iam</b>",
                f"Usage: <code>{prefix}iam &lt;####&gt;</code> will set your hunter ID. <b>This must be done before the other options will work.</b>",
                f"  <code>{prefix}iam in &lt;location&gt;</code> will set your hunting location.",
                f"  <code>{prefix}iam rank &lt;rank&gt;</code> will set your rank.",
                f"  <code>{prefix}iam not</code> will remove you from results.",
                PRIVACY_WARNING,
            ]
        )
    if topic == "whois":
        return "\n".join(
            [
                "<b>whois</b>",
                f"Usage: <code>{prefix}whois &lt;####&gt;</code> will look up a chat user by hunter ID. Only works if they set their ID.",
                f"  <code>{prefix}whois snuid &lt;####&gt;</code> will look up a chat user by in-game user id.",
                f"  <code>{prefix}whois in &lt;location&gt;</code> will find up to 5 random hunters in that location.",
                f"  <code>{prefix}whois rank &lt;rank&gt;</code> will find up to 5 random hunters with that rank.",
                PRIVACY_WARNING,
            ]
        )
    if topic in ("rh", "relic"):
        return "\n".join(
            [
                "<b>rh</b>",
                f"Usage: <code>{prefix}rh</code> will tell you where the Relic Hunter was last spotted.",
                f"Use <code>{prefix}remind rh always</code> to be told whenever she moves.",
            ]
        )
    return f"I don't know that one, but I do know {KEYWORDS}."
