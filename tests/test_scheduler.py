"""Tests for the timer state machine and named tasks."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from types import SimpleNamespace
from typing import Any

import pytest

from mhtimer.engine.scheduler import Scheduler, ScheduleState
from mhtimer.engine.timer import Timer
from mhtimer.utils.time_utils import UTC

NOW = datetime(2026, 3, 1, 0, 50, tzinfo=UTC)


@dataclass
class FakeJob:
    callback: Any
    data: Any
    name: str
    when: Any = None
    interval: Any = None
    removed: bool = False
    executed: bool = False

    def schedule_removal(self) -> None:
        self.removed = True


@dataclass
class FakeJobQueue:
    jobs: list[FakeJob] = field(default_factory=list)
    scheduler: SimpleNamespace = field(default_factory=lambda: SimpleNamespace(running=True))

    def run_once(self, callback, when, data=None, name=None):
        job = FakeJob(callback, data, name, when=when)
        self.jobs.append(job)
        return job

    def run_repeating(self, callback, interval, first=None, data=None, name=None):
        job = FakeJob(callback, data, name, when=first, interval=interval)
        self.jobs.append(job)
        return job

    def active(self) -> list[FakeJob]:
        return [job for job in self.jobs if not job.removed and not job.executed]

    async def run(self, job: FakeJob) -> None:
        # One-shot jobs leave the queue when they run
        if job.interval is None:
            job.executed = True
        await job.callback(SimpleNamespace(job=job))


def make_timer(**overrides) -> Timer:
    seed = {
        "area": "fg",
        "sub_area": "open",
        "seed_time": "2026-03-01T00:00:00Z",
        "repeat_time": {"hours": 1},
        "announce_offset": {"minutes": 15},
    }
    seed.update(overrides)
    return Timer(seed)


def make_scheduler():
    queue = FakeJobQueue()
    fired: list[tuple[Timer, datetime]] = []

    async def on_fire(timer, now):
        fired.append((timer, now))

    return Scheduler(queue, on_fire, clock=lambda: NOW), queue, fired


def test_schedule_timer_arms_next_activation():
    """Test the first job is a one-shot at the next wake-up."""
    scheduler, queue, _ = make_scheduler()
    timer = make_timer()

    schedule = scheduler.schedule_timer(timer)

    assert schedule.state is ScheduleState.ARMED_INITIAL
    assert schedule.activation == datetime(2026, 3, 1, 1, 45, tzinfo=UTC)
    assert [job.when for job in queue.active()] == [schedule.activation]


def test_silent_timers_stay_unarmed():
    """Test silent timers are never scheduled."""
    scheduler, queue, _ = make_scheduler()

    assert scheduler.schedule_all([make_timer(silent=True), make_timer(sub_area="close")]) == 1
    assert len(queue.active()) == 1


@pytest.mark.asyncio
async def test_initial_fire_switches_to_repeating():
    """Test the first firing swaps in a repeating job and dispatches once."""
    scheduler, queue, fired = make_scheduler()
    timer = make_timer()
    scheduler.schedule_timer(timer)
    initial = queue.active()[0]

    await queue.run(initial)

    assert scheduler.state_of(timer) is ScheduleState.REPEATING
    assert len(fired) == 1
    repeating = scheduler.schedule_for(timer).job
    assert repeating.interval == timedelta(hours=1)
    assert repeating.when == datetime(2026, 3, 1, 2, 45, tzinfo=UTC)

    await queue.run(repeating)
    assert len(fired) == 2

    # A stale initial job does nothing once repeating
    await queue.run(initial)
    assert len(fired) == 2


@pytest.mark.asyncio
async def test_dispatch_errors_are_contained():
    """Test an exception while dispatching does not break the schedule."""
    queue = FakeJobQueue()

    async def on_fire(timer, now):
        raise RuntimeError("boom")

    scheduler = Scheduler(queue, on_fire, clock=lambda: NOW)
    timer = make_timer()
    scheduler.schedule_timer(timer)

    await queue.run(queue.active()[0])
    assert scheduler.state_of(timer) is ScheduleState.REPEATING


@pytest.mark.asyncio
async def test_stop_removes_every_job():
    """Test stop() cancels timers and tasks and blocks further dispatch."""
    scheduler, queue, fired = make_scheduler()
    timer = make_timer()
    scheduler.schedule_timer(timer)
    await queue.run(queue.active()[0])

    async def task():
        pass

    scheduler.run_periodic("save", task, interval=timedelta(minutes=5))
    repeating = scheduler.schedule_for(timer).job

    scheduler.stop()

    assert queue.active() == []
    assert scheduler.state_of(timer) is ScheduleState.STOPPED
    assert not scheduler.has_task("save")

    await queue.run(repeating)
    assert len(fired) == 1


def test_stop_after_queue_shutdown_skips_removal():
    """Test jobs are not removed from a queue that already stopped."""
    scheduler, queue, _ = make_scheduler()
    timer = make_timer()
    scheduler.schedule_timer(timer)
    queue.scheduler.running = False

    scheduler.stop()

    assert not queue.jobs[0].removed
    assert scheduler.state_of(timer) is ScheduleState.STOPPED


@pytest.mark.asyncio
async def test_one_shot_task_can_rearm_itself():
    """Test a one-shot task re-scheduling under its own name stays tracked."""
    scheduler, queue, _ = make_scheduler()
    calls = []

    async def daily():
        calls.append(1)
        scheduler.run_once("daily", daily, when=timedelta(days=1))

    scheduler.run_once("daily", daily, when=timedelta(seconds=1))
    first = queue.active()[0]

    await queue.run(first)

    assert calls == [1]
    assert scheduler.has_task("daily")
    # The job that already ran is not removed a second time
    assert not first.removed
    assert len(queue.active()) == 1


@pytest.mark.asyncio
async def test_task_errors_are_contained():
    """Test a failing task is logged, not raised."""
    scheduler, queue, _ = make_scheduler()

    async def broken():
        raise ValueError("nope")

    scheduler.run_periodic("broken", broken, interval=timedelta(minutes=1))
    await queue.run(queue.active()[0])
    assert scheduler.has_task("broken")
