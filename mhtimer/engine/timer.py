"""Recurring event definitions and occurrence arithmetic."""

from datetime import datetime, timedelta
from typing import Any, Iterator

from mhtimer.utils.time_utils import (
    duration_to_seconds,
    parse_duration,
    parse_timestamp,
    utcnow,
)


class TimerValidationError(ValueError):
    """Raised when a timer seed is missing fields or has malformed values."""


class Timer:
    """A recurring in-game event.

    Occurrences lie on the lattice ``anchor + k * repeat_interval`` for integer k,
    so every computation is a pure function of its inputs and never drifts.
    """

    def __init__(self, seed: dict[str, Any]):
        if not isinstance(seed, dict):
            raise TimerValidationError(f"Timer seed must be a mapping, got {type(seed).__name__}")

        area = seed.get("area")
        if not isinstance(area, str) or not area.strip():
            raise TimerValidationError("Timer seed is missing 'area'")
        self._area = area.strip().lower()

        sub_area = seed.get("sub_area")
        if sub_area is not None and not isinstance(sub_area, str):
            raise TimerValidationError(f"({self._area}) 'sub_area' must be text")
        self._sub_area = sub_area.strip().lower() if sub_area and sub_area.strip() else None

        if seed.get("seed_time") is None:
            raise TimerValidationError(f"({self.name}) seed is missing 'seed_time'")
        try:
            self._anchor = parse_timestamp(seed["seed_time"])
        except (ValueError, OverflowError) as e:
            raise TimerValidationError(f"({self.name}) invalid 'seed_time': {e}") from e

        if seed.get("repeat_time") is None:
            raise TimerValidationError(f"({self.name}) seed is missing 'repeat_time'")
        try:
            self._repeat_interval = parse_duration(seed["repeat_time"])
            self._advance_notice = parse_duration(seed.get("announce_offset") or 0)
        except (ValueError, OverflowError) as e:
            raise TimerValidationError(f"({self.name}) invalid duration: {e}") from e

        if self._repeat_interval <= timedelta(0):
            raise TimerValidationError(f"({self.name}) 'repeat_time' must be positive")
        if self._advance_notice < timedelta(0):
            raise TimerValidationError(f"({self.name}) 'announce_offset' cannot be negative")
        if self._advance_notice >= self._repeat_interval:
            raise TimerValidationError(
                f"({self.name}) 'announce_offset' must be shorter than 'repeat_time'"
            )

        self._announcement = seed.get("announce_string") or f"{self.name} is happening now"
        self._demand = seed.get("demand_string") or f"{self.name} happens"
        self._silent = bool(seed.get("silent", False))

    def __repr__(self) -> str:
        return f"Timer({self.name!r}, every {self._repeat_interval})"

    # Accessors

    @property
    def area(self) -> str:
        return self._area

    @property
    def sub_area(self) -> str | None:
        return self._sub_area

    @property
    def name(self) -> str:
        """Display name, e.g. "fg: open"."""
        return f"{self._area}: {self._sub_area}" if self._sub_area else self._area

    @property
    def anchor(self) -> datetime:
        return self._anchor

    @property
    def repeat_interval(self) -> timedelta:
        return self._repeat_interval

    @property
    def advance_notice(self) -> timedelta:
        return self._advance_notice

    @property
    def announcement(self) -> str:
        return self._announcement

    @property
    def demand(self) -> str:
        return self._demand

    @property
    def silent(self) -> bool:
        return self._silent

    # Occurrences

    def get_next(self, now: datetime | None = None) -> datetime:
        """The earliest occurrence strictly after now."""
        if now is None:
            now = utcnow()
        k = (now - self._anchor) // self._repeat_interval + 1
        return self._anchor + k * self._repeat_interval

    def get_upcoming(self, until: datetime, now: datetime | None = None) -> Iterator[datetime]:
        """Yield every occurrence in (now, until], ascending."""
        if now is None:
            now = utcnow()
        occurrence = self.get_next(now)
        while occurrence <= until:
            yield occurrence
            occurrence += self._repeat_interval

    def get_next_activation(self, now: datetime | None = None) -> datetime:
        """The earliest notification time (occurrence minus advance notice) after now."""
        if now is None:
            now = utcnow()
        return self.get_next(now + self._advance_notice) - self._advance_notice

    def to_seed(self) -> dict[str, Any]:
        """Serialize back to the seed shape accepted by the constructor."""
        seed: dict[str, Any] = {
            "area": self._area,
            "seed_time": self._anchor.isoformat(),
            "repeat_time": duration_to_seconds(self._repeat_interval),
            "announce_offset": duration_to_seconds(self._advance_notice),
            "announce_string": self._announcement,
            "demand_string": self._demand,
            "silent": self._silent,
        }
        if self._sub_area:
            seed["sub_area"] = self._sub_area
        return seed
