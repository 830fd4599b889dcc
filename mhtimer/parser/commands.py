"""Command tokenizing and lookup."""

import enum
import re
from dataclasses import dataclass, field

from mhtimer.utils.constants import DEFAULT_SCHEDULE_HOURS, MAX_SCHEDULE_HOURS

TOKEN_SPLIT = re.compile(r"\s+")


class Command(enum.Enum):
    NEXT = "next"
    REMIND = "remind"
    SCHEDULE = "schedule"
    FIND = "find"
    IFIND = "ifind"
    IAM = "iam"
    WHOIS = "whois"
    RELIC_HUNTER = "rh"
    RESET = "reset"
    HELP = "help"


COMMAND_ALIASES = {
    "next": Command.NEXT,
    "remind": Command.REMIND,
    "schedule": Command.SCHEDULE,
    "sched": Command.SCHEDULE,
    "itin": Command.SCHEDULE,
    "agenda": Command.SCHEDULE,
    "itinerary": Command.SCHEDULE,
    "find": Command.FIND,
    "mfind": Command.FIND,
    "ifind": Command.IFIND,
    "iam": Command.IAM,
    "whois": Command.WHOIS,
    "rh": Command.RELIC_HUNTER,
    "reset": Command.RESET,
    "help": Command.HELP,
    "arrg": Command.HELP,
    "aarg": Command.HELP,
}


@dataclass
class ParsedCommand:
    command: Command
    name: str
    tokens: list[str] = field(default_factory=list)

    @property
    def args(self) -> str:
        return " ".join(self.tokens)


def tokenize(text: str) -> list[str]:
    """Split on runs of whitespace, dropping empty tokens."""
    return [token for token in TOKEN_SPLIT.split(text.strip()) if token]


def lookup_command(name: str) -> Command:
    """Resolve a command word; anything unknown asks for help."""
    return COMMAND_ALIASES.get(name.lower(), Command.HELP)


def parse_command(text: str, prefix: str, private: bool = False) -> ParsedCommand | None:
    """Parse a plain-text message addressed to the bot.

    In group chats the message must start with the prefix. In private chats
    the prefix is optional, but an unknown first word is not a command.

    Returns:
        The parsed command, or None if the message is not meant for the bot.
    """
    tokens = tokenize(text)
    if not tokens:
        return None

    if tokens[0].lower() == prefix.lower():
        tokens = tokens[1:]
        if not tokens:
            return ParsedCommand(Command.HELP, "help")
    elif not private:
        return None
    elif tokens[0].lower() not in COMMAND_ALIASES:
        return None

    name = tokens[0].lower()
    return ParsedCommand(lookup_command(name), name, tokens[1:])


def clamp_schedule_hours(hours: int | None) -> int:
    """Hours to look ahead: a day by default or when non-positive, capped at ten days."""
    if hours is None or hours <= 0:
        return DEFAULT_SCHEDULE_HOURS
    return min(hours, MAX_SCHEDULE_HOURS)
