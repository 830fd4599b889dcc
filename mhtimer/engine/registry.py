"""The set of configured timers and the queries answered over it."""

import logging
import re
import sys
from datetime import datetime
from typing import Any, Iterable, List, Sequence, Tuple

from mhtimer.db.models import ReminderRequest
from mhtimer.engine.timer import Timer, TimerValidationError
from mhtimer.parser.aliases import AREA_ALIASES, COUNT_WORDS, SUB_AREA_ALIASES
from mhtimer.utils.constants import UNLIMITED
from mhtimer.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

_LEADING_INTEGER = re.compile(r"^([+-]?)(\d+)")


def parse_count(token: str) -> int | None:
    """Parse a repeat count from a word or a number.

    Negative or unrepresentably large numbers mean "unlimited".

    Returns:
        The count, or None if the token carries no count.
    """
    token = token.lower()
    if token in COUNT_WORDS:
        return COUNT_WORDS[token]

    match = _LEADING_INTEGER.match(token)
    if not match:
        return None
    sign, digits = match.group(1), match.group(2).lstrip("0") or "0"
    if (sign == "-" and digits != "0") or len(digits) > len(str(sys.maxsize)):
        return UNLIMITED
    value = int(digits)
    if value > sys.maxsize:
        return UNLIMITED
    return value


class TimerRegistry:
    """Ordered collection of timers; configuration order is display order."""

    def __init__(self, timers: Iterable[Timer] = ()):
        self._timers: List[Timer] = list(timers)

    @classmethod
    def from_seeds(cls, seeds: Iterable[Any]) -> "TimerRegistry":
        """Build a registry, skipping (and logging) seeds that fail validation."""
        registry = cls()
        for seed in seeds:
            try:
                registry.add(Timer(seed))
            except TimerValidationError as e:
                logger.error(f"Timers: skipping malformed seed {seed!r}: {e}")
        return registry

    def add(self, timer: Timer) -> None:
        self._timers.append(timer)

    def __iter__(self):
        return iter(self._timers)

    def __len__(self) -> int:
        return len(self._timers)

    @property
    def timers(self) -> Sequence[Timer]:
        return tuple(self._timers)

    def to_seeds(self) -> list[dict[str, Any]]:
        return [timer.to_seed() for timer in self._timers]

    def known_timers(self) -> dict[str, list[str]]:
        """Areas in configuration order, each with its distinct sub-areas."""
        details: dict[str, list[str]] = {}
        for timer in self._timers:
            sub_areas = details.setdefault(timer.area, [])
            if timer.sub_area and timer.sub_area not in sub_areas:
                sub_areas.append(timer.sub_area)
        return details

    def resolve_tokens(self, tokens: Sequence[str]) -> ReminderRequest:
        """Resolve free-text tokens into a (possibly partial) reminder request.

        Each token is tried, in order, as an exact area name, an exact sub-area
        name, an area alias, a sub-area alias, then a count. A field that is
        already set is not overwritten by a later token, except that a sub-area
        always brings its own area along.
        """
        request = ReminderRequest()
        areas = [timer.area for timer in self._timers]
        sub_areas = [timer.sub_area for timer in self._timers]

        for raw in tokens:
            token = raw.lower()

            # Exact names of configured timers
            if request.area is None and token in areas:
                request.area = token
                continue
            if request.sub_area is None and token in sub_areas:
                request.area = areas[sub_areas.index(token)]
                request.sub_area = token
                continue

            if request.area is None and token in AREA_ALIASES:
                request.area = AREA_ALIASES[token]
                continue

            if request.sub_area is None and token in SUB_AREA_ALIASES:
                request.area, request.sub_area = SUB_AREA_ALIASES[token]
                continue

            if request.count is None:
                count = parse_count(token)
                if count is not None:
                    request.count = count
                    continue

            if request.area and request.sub_area and request.count is not None:
                logger.debug(f"MessageHandling: extra token '{token}' in {list(tokens)}")
                break

        return request

    def matching(self, area: str, sub_area: str | None = None) -> list[Timer]:
        """Timers in the area (and sub-area, if given), in configuration order."""
        return [
            timer
            for timer in self._timers
            if timer.area == area and (not sub_area or timer.sub_area == sub_area)
        ]

    def matching_by_next(
        self, area: str, sub_area: str | None = None, now: datetime | None = None
    ) -> list[Timer]:
        """Matching timers sorted by next occurrence; ties keep configuration order."""
        if now is None:
            now = utcnow()
        return sorted(self.matching(area, sub_area), key=lambda t: t.get_next(now))

    def find_next(
        self, area: str, sub_area: str | None = None, now: datetime | None = None
    ) -> Timer | None:
        """The matching timer whose next occurrence is earliest."""
        choices = self.matching_by_next(area, sub_area, now)
        return choices[0] if choices else None

    def find_by_area(self, area: str) -> Timer | None:
        """First configured timer for an area."""
        for timer in self._timers:
            if timer.area == area:
                return timer
        return None

    def find_upcoming(
        self, area: str | None, until: datetime, now: datetime | None = None
    ) -> list[Tuple[Timer, datetime]]:
        """All occurrences of non-silent timers in (now, until], soonest first."""
        if now is None:
            now = utcnow()

        upcoming = [
            (timer, when)
            for timer in self._timers
            if not timer.silent and (area is None or timer.area == area)
            for when in timer.get_upcoming(until, now)
        ]
        upcoming.sort(key=lambda pair: pair[1])
        return upcoming
