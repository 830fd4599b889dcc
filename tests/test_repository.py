"""Tests for dataset persistence."""

import pytest
import pytest_asyncio

from mhtimer.db.migrations import run_migrations
from mhtimer.db.models import Reminder
from mhtimer.db.repository import Repository
from mhtimer.engine.registry import TimerRegistry
from mhtimer.engine.reminder_store import ReminderStore


@pytest_asyncio.fixture
async def repo(tmp_path):
    db_path = tmp_path / "mhtimer.db"
    await run_migrations(db_path)
    repository = Repository(db_path)
    await repository.connect()
    yield repository
    await repository.close()


@pytest.mark.asyncio
async def test_missing_dataset_loads_none(repo):
    """Test an unsaved dataset is reported as missing."""
    assert await repo.load("reminders") is None
    assert await repo.load_reminder_records() == []
    assert await repo.load_hunter_records() == {}


@pytest.mark.asyncio
async def test_save_overwrites(repo):
    """Test saving replaces the whole dataset."""
    assert await repo.save("settings", {"a": 1})
    assert await repo.save("settings", {"b": 2})
    assert await repo.load("settings") == {"b": 2}


@pytest.mark.asyncio
async def test_unserializable_records_fail(repo):
    """Test a save that cannot be encoded reports failure."""
    assert not await repo.save("settings", {"when": object()})


@pytest.mark.asyncio
async def test_reminders_round_trip(repo):
    """Test reminders reload with the same members and fields."""
    store = ReminderStore(
        [
            Reminder(1, "fg", "open", count=3, failure_count=1),
            Reminder(2, "relic_hunter", None, count=-1),
        ]
    )
    assert await repo.save_reminder_records(store.to_records())

    reloaded = ReminderStore.from_records(await repo.load_reminder_records())
    assert list(reloaded) == list(store)


@pytest.mark.asyncio
async def test_timer_seeds_round_trip(repo):
    """Test timer seeds reload into equivalent timers."""
    registry = TimerRegistry.from_seeds(
        [
            {"area": "fg", "sub_area": "open", "seed_time": "2026-03-01T00:00:00Z", "repeat_time": {"hours": 20}},
            {"area": "reset", "seed_time": 0, "repeat_time": 86400, "announce_offset": 300, "silent": True},
        ]
    )
    assert await repo.save_timer_seeds(registry.to_seeds())

    reloaded = TimerRegistry.from_seeds(await repo.load_timer_seeds())
    assert reloaded.to_seeds() == registry.to_seeds()


@pytest.mark.asyncio
async def test_closed_repository_raises(tmp_path):
    """Test using the repository before connecting is an error."""
    with pytest.raises(RuntimeError):
        await Repository(tmp_path / "unused.db").load("timers")


@pytest.mark.asyncio
async def test_legacy_files_are_imported_once(tmp_path):
    """Test old data files seed empty datasets but never overwrite saved ones."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "reminders.json").write_text('[{"user": 7, "area": "fg", "sub_area": "close", "count": 2}]')
    (data_dir / "hunters.json").write_text("not json")
    db_path = tmp_path / "mhtimer.db"

    assert await run_migrations(db_path, legacy_dir=data_dir) == ["reminders"]

    repository = Repository(db_path)
    await repository.connect()
    try:
        store = ReminderStore.from_records(await repository.load_reminder_records())
        assert list(store) == [Reminder(7, "fg", "close", count=2)]
        assert await repository.load_hunter_records() == {}

        assert await repository.save_reminder_records([])
        assert await run_migrations(db_path, legacy_dir=data_dir) == []
        assert await repository.load_reminder_records() == []
    finally:
        await repository.close()
