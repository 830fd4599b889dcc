"""Tests for the timer registry and token resolution."""

import sys
from datetime import datetime, timedelta

from mhtimer.db.models import ReminderRequest
from mhtimer.engine.registry import TimerRegistry, parse_count
from mhtimer.utils.time_utils import UTC

ANCHOR = datetime(2026, 3, 1, tzinfo=UTC)

SEEDS = [
    # Forbidden Grove: open 16h, closed 4h
    {"area": "fg", "sub_area": "open", "seed_time": ANCHOR.isoformat(), "repeat_time": {"hours": 20}},
    {"area": "fg", "sub_area": "close", "seed_time": (ANCHOR + timedelta(hours=16)).isoformat(), "repeat_time": {"hours": 20}},
    {"area": "reset", "seed_time": ANCHOR.isoformat(), "repeat_time": {"days": 1}},
    {"area": "sg", "sub_area": "autumn", "seed_time": ANCHOR.isoformat(), "repeat_time": {"days": 4}, "silent": True},
]


def make_registry() -> TimerRegistry:
    return TimerRegistry.from_seeds(SEEDS)


def test_from_seeds_skips_malformed():
    """Test malformed seeds are dropped while valid ones load."""
    registry = TimerRegistry.from_seeds(SEEDS + [{"area": "cove"}, "garbage", {"seed_time": 0, "repeat_time": 60}])
    assert len(registry) == len(SEEDS)
    assert [t.name for t in registry] == ["fg: open", "fg: close", "reset", "sg: autumn"]


def test_parse_count():
    """Test count words and numbers."""
    assert parse_count("always") == -1
    assert parse_count("Stop") == 0
    assert parse_count("twice") == 2
    assert parse_count("3") == 3
    assert parse_count("5x") == 5
    assert parse_count("-4") == -1
    assert parse_count(str(sys.maxsize + 1)) == -1
    assert parse_count("9" * 5000) == -1
    assert parse_count("0" * 5000 + "7") == 7
    assert parse_count("fg") is None


def test_resolve_area_sub_area_and_count():
    """Test a full request resolves every field."""
    registry = make_registry()
    assert registry.resolve_tokens(["fg", "open", "3"]) == ReminderRequest(area="fg", sub_area="open", count=3)


def test_resolve_count_only():
    """Test a lone count word leaves the area unset."""
    registry = make_registry()
    assert registry.resolve_tokens(["always"]) == ReminderRequest(area=None, sub_area=None, count=-1)


def test_resolve_aliases():
    """Test alias tables fill area and sub-area."""
    registry = make_registry()

    assert registry.resolve_tokens(["grove"]) == ReminderRequest(area="fg")
    assert registry.resolve_tokens(["closing", "stop"]) == ReminderRequest(area="fg", sub_area="close", count=0)
    assert registry.resolve_tokens(["fall"]) == ReminderRequest(area="sg", sub_area="autumn")
    assert registry.resolve_tokens(["relic", "forever"]) == ReminderRequest(area="relic_hunter", count=-1)


def test_resolve_keeps_first_values():
    """Test later tokens do not overwrite fields already set."""
    registry = make_registry()

    request = registry.resolve_tokens(["reset", "fg", "2", "5"])
    assert request.area == "reset"
    assert request.count == 2

    # An exact sub-area brings its area along
    request = registry.resolve_tokens(["close", "open"])
    assert request == ReminderRequest(area="fg", sub_area="close")


def test_known_timers():
    """Test areas are listed in configuration order with their sub-areas."""
    assert make_registry().known_timers() == {
        "fg": ["open", "close"],
        "reset": [],
        "sg": ["autumn"],
    }


def test_find_next():
    """Test the soonest matching timer is chosen."""
    registry = make_registry()
    now = ANCHOR + timedelta(hours=1)

    # Grove closes at 16:00 before it reopens at 20:00
    assert registry.find_next("fg", None, now).sub_area == "close"
    assert registry.find_next("fg", "open", now).sub_area == "open"
    assert registry.find_next("cove", None, now) is None

    assert [t.sub_area for t in registry.matching_by_next("fg", None, now)] == ["close", "open"]


def test_find_upcoming_excludes_silent_and_sorts():
    """Test upcoming occurrences across timers."""
    registry = make_registry()
    now = ANCHOR + timedelta(hours=1)

    upcoming = registry.find_upcoming(None, now + timedelta(days=1), now)
    assert [(t.name, when) for t, when in upcoming] == [
        ("fg: close", ANCHOR + timedelta(hours=16)),
        ("fg: open", ANCHOR + timedelta(hours=20)),
        ("reset", ANCHOR + timedelta(days=1)),
    ]

    only_reset = registry.find_upcoming("reset", now + timedelta(days=3), now)
    assert [when for _, when in only_reset] == [ANCHOR + timedelta(days=d) for d in (1, 2, 3)]
