"""Per-user reminder subscriptions."""

import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, List

from mhtimer.db.models import Reminder
from mhtimer.utils.constants import EXPIRED, UNLIMITED

logger = logging.getLogger(__name__)


@dataclass
class AddResult:
    """Outcome of ReminderStore.add."""

    reminder: Reminder
    updated: bool
    previous_count: int | None = None


def delivery_priority(reminder: Reminder) -> tuple[float, int]:
    """Sort key for choosing which of a user's reminders is delivered.

    Fewest remaining activations first with unlimited last; for equal counts the
    reminder naming a sub-area goes before the area-wide one.
    """
    count = math.inf if reminder.count == UNLIMITED else reminder.count
    return (count, 0 if reminder.sub_area else 1)


class ReminderStore:
    """Ordered reminder records, at most one per (user, area, sub_area).

    Turning a reminder off only zeroes its count; records are removed by
    prune(), so positions never shift underneath a dispatch pass.
    """

    def __init__(self, reminders: Iterable[Reminder] = ()):
        self._reminders: List[Reminder] = list(reminders)

    def __len__(self) -> int:
        return len(self._reminders)

    def __iter__(self):
        return iter(self._reminders)

    def _find(self, user: int, area: str, sub_area: str | None) -> List[Reminder]:
        sub_area = sub_area or None
        return [
            r
            for r in self._reminders
            if r.user == user and r.area == area and (r.sub_area or None) == sub_area
        ]

    def add(self, user: int, area: str, sub_area: str | None, count: int) -> AddResult:
        """Create a reminder, or overwrite the count of the existing one."""
        count = max(count, UNLIMITED)
        existing = self._find(user, area, sub_area)
        if existing:
            previous = existing[0].count
            for reminder in existing:
                reminder.count = count
            logger.info(f"Reminders: updated {area}/{sub_area} for {user} from {previous} to {count}")
            return AddResult(reminder=existing[0], updated=True, previous_count=previous)

        reminder = Reminder(user=user, area=area, sub_area=sub_area or None, count=count)
        self._reminders.append(reminder)
        logger.info(f"Reminders: added {area}/{sub_area} for {user} with count {count}")
        return AddResult(reminder=reminder, updated=False)

    def turn_off(self, user: int, area: str, sub_area: str | None) -> List[Reminder]:
        """Zero the count of the matching reminder; returns what was switched off."""
        matches = self._find(user, area, sub_area)
        for reminder in matches:
            reminder.count = EXPIRED
        return matches

    def has_user(self, user: int) -> bool:
        return any(r.user == user for r in self._reminders)

    def list(self, user: int) -> List[Reminder]:
        """Active reminders for a user, in storage order."""
        return [r for r in self._reminders if r.user == user and r.count != EXPIRED]

    def prune(self) -> int:
        """Drop expired reminders, keeping the order of the rest."""
        before = len(self._reminders)
        self._reminders[:] = [r for r in self._reminders if r.count != EXPIRED]
        removed = before - len(self._reminders)
        if removed:
            logger.info(f"Reminders: pruned {removed} expired. {len(self._reminders)} remaining.")
        return removed

    def match_firing(self, area: str, sub_area: str | None) -> List[Reminder]:
        """Active reminders notified by a firing, in delivery priority order."""
        matches = [r for r in self._reminders if r.count != EXPIRED and r.matches(area, sub_area)]
        return sorted(matches, key=delivery_priority)

    # Persistence

    def to_records(self) -> List[dict[str, Any]]:
        return [r.to_record() for r in self._reminders]

    @classmethod
    def from_records(cls, records: Iterable[Any]) -> "ReminderStore":
        """Rebuild from persisted records, skipping malformed ones."""
        store = cls()
        for record in records:
            try:
                store._reminders.append(Reminder.from_record(record))
            except (ValueError, AttributeError) as e:
                logger.error(f"Reminders: skipping record: {e}")
        return store
