"""Self-registered hunter profiles."""

import logging
import random
from typing import Any

from mhtimer.db.models import Hunter
from mhtimer.utils.constants import MAX_WHOIS_RESULTS

logger = logging.getLogger(__name__)

SEARCHABLE = ("hid", "snuid", "rank", "location")


class HunterRegistry:
    """Chat user id -> Hunter profile."""

    def __init__(self, hunters: dict[int, Hunter] | None = None):
        self._hunters: dict[int, Hunter] = dict(hunters or {})

    def __len__(self) -> int:
        return len(self._hunters)

    def get(self, user: int) -> Hunter | None:
        return self._hunters.get(user)

    def set_hid(self, user: int, hid: str) -> str | None:
        """Register or update a hunter ID; returns the previous ID."""
        hunter = self._hunters.get(user)
        if hunter is None:
            hunter = self._hunters[user] = Hunter()
            logger.info(f"Hunters: new hunter registered for {user}")
        previous = hunter.hid
        hunter.hid = hid
        return previous

    def set_property(self, user: int, prop: str, value: str) -> str | None:
        """Update a profile property; returns the previous value.

        Raises:
            KeyError: if the user has not registered a hunter ID.
            ValueError: for properties that cannot be set.
        """
        if prop not in SEARCHABLE:
            raise ValueError(f"Unknown hunter property '{prop}'")
        hunter = self._hunters.get(user)
        if hunter is None or not hunter.hid:
            raise KeyError(user)
        previous = getattr(hunter, prop)
        setattr(hunter, prop, value)
        return previous

    def remove(self, user: int) -> bool:
        return self._hunters.pop(user, None) is not None

    def find_user(self, prop: str, value: str) -> int | None:
        """First chat user whose property equals value."""
        if not value:
            return None
        for user, hunter in self._hunters.items():
            if getattr(hunter, prop, None) == value:
                return user
        return None

    def random_by_property(self, prop: str, value: str, limit: int = MAX_WHOIS_RESULTS) -> list[str]:
        """Up to limit random hunter IDs whose property equals value."""
        hids = [
            hunter.hid
            for hunter in self._hunters.values()
            if hunter.hid and getattr(hunter, prop, None) == value
        ]
        random.shuffle(hids)
        return hids[:limit]

    def to_records(self) -> dict[str, dict[str, str]]:
        return {str(user): hunter.to_record() for user, hunter in self._hunters.items()}

    @classmethod
    def from_records(cls, records: Any) -> "HunterRegistry":
        """Rebuild from persisted data, skipping entries that are not profiles."""
        hunters: dict[int, Hunter] = {}
        if isinstance(records, dict):
            for key, record in records.items():
                try:
                    hunters[int(key)] = Hunter.from_record(record)
                except (ValueError, AttributeError) as e:
                    logger.error(f"Hunters: skipping entry {key!r}: {e}")
        return cls(hunters)
