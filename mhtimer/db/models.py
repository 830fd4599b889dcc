"""Data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from mhtimer.utils.constants import UNKNOWN_LOCATION
from mhtimer.utils.time_utils import UTC

RelicHunterSource = Literal["startup", "reset", "webhook", "MHCT", "DBGames"]


@dataclass
class Reminder:
    """A user's subscription to the activations of a timer area."""

    user: int
    area: str
    sub_area: str | None = None
    count: int = 1  # -1 is unlimited, 0 is expired
    failure_count: int = 0

    @property
    def is_active(self) -> bool:
        return self.count != 0

    def matches(self, area: str, sub_area: str | None) -> bool:
        """Whether a firing of (area, sub_area) should notify this reminder."""
        return self.area == area and (not self.sub_area or self.sub_area == sub_area)

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted record shape."""
        record: dict[str, Any] = {"user": self.user, "area": self.area, "count": self.count}
        if self.sub_area:
            record["sub_area"] = self.sub_area
        if self.failure_count:
            record["fail"] = self.failure_count
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Reminder":
        """Build from a persisted record.

        Raises:
            ValueError: if required fields are missing or malformed.
        """
        try:
            user = int(record["user"])
            area = str(record["area"])
            count = int(record["count"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed reminder record: {record!r}") from e
        if count < -1:
            count = -1
        return cls(
            user=user,
            area=area,
            sub_area=record.get("sub_area") or None,
            count=count,
            failure_count=int(record.get("fail") or 0),
        )


@dataclass
class ReminderRequest:
    """Result of resolving user tokens; any field may be unset."""

    area: str | None = None
    sub_area: str | None = None
    count: int | None = None


@dataclass
class Hunter:
    """Self-volunteered game profile for a chat user."""

    hid: str | None = None
    snuid: str | None = None
    rank: str | None = None
    location: str | None = None

    def to_record(self) -> dict[str, str]:
        return {k: v for k, v in vars(self).items() if v is not None}

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Hunter":
        return cls(
            hid=record.get("hid"),
            snuid=record.get("snuid"),
            rank=record.get("rank"),
            location=record.get("location"),
        )


@dataclass
class RelicHunterState:
    """Last known Relic Hunter location."""

    location: str = UNKNOWN_LOCATION
    source: RelicHunterSource = "startup"
    last_seen: datetime = field(default_factory=lambda: datetime.fromtimestamp(0, UTC))

    @property
    def is_known(self) -> bool:
        return self.location != UNKNOWN_LOCATION


@dataclass
class SearchEntity:
    """A named entity (mouse, item, filter) from the remote database."""

    id: str
    value: str

    @property
    def lower_value(self) -> str:
        return self.value.lower()
