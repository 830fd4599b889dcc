"""Wall-clock scheduling of timer activations and periodic maintenance tasks.

Every timer owns exactly one job handle at a time:

    UNARMED -> ARMED_INITIAL -> REPEATING -> STOPPED

The initial one-shot job fires at the next activation (occurrence minus
advance notice), swaps itself for a repeating job at the timer's interval,
and dispatches the current occurrence.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable

from telegram.ext import CallbackContext, Job, JobQueue

from mhtimer.engine.timer import Timer
from mhtimer.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

FireCallback = Callable[[Timer, datetime], Awaitable[None]]
TaskCallback = Callable[[], Awaitable[Any]]


class ScheduleState(enum.Enum):
    UNARMED = "unarmed"
    ARMED_INITIAL = "armed_initial"
    REPEATING = "repeating"
    STOPPED = "stopped"


@dataclass
class TimerSchedule:
    """Scheduling state for one timer."""

    timer: Timer
    state: ScheduleState = ScheduleState.UNARMED
    job: Job | None = None
    activation: datetime | None = None


class Scheduler:
    """Arms timers and named maintenance tasks on a job queue."""

    def __init__(
        self,
        job_queue: JobQueue,
        on_fire: FireCallback,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.job_queue = job_queue
        self._on_fire = on_fire
        self._clock = clock
        self._schedules: dict[Timer, TimerSchedule] = {}
        self._tasks: dict[str, Job] = {}
        self._one_shot: set[str] = set()

    # Timers

    def schedule_timer(self, timer: Timer) -> TimerSchedule:
        """Arm the one-shot job for the timer's next activation."""
        schedule = self._schedules.setdefault(timer, TimerSchedule(timer))
        if timer.silent:
            return schedule

        self._cancel_schedule(schedule)
        schedule.activation = timer.get_next_activation(self._clock())
        schedule.job = self.job_queue.run_once(
            self._fire_initial,
            when=schedule.activation,
            data=timer,
            name=f"timer:{timer.name}",
        )
        schedule.state = ScheduleState.ARMED_INITIAL
        logger.debug(f"({timer.name}): first activation at {schedule.activation.isoformat()}")
        return schedule

    def schedule_all(self, timers) -> int:
        """Schedule every timer; returns how many were armed."""
        armed = 0
        for timer in timers:
            if self.schedule_timer(timer).state is ScheduleState.ARMED_INITIAL:
                armed += 1
        return armed

    def state_of(self, timer: Timer) -> ScheduleState:
        schedule = self._schedules.get(timer)
        return schedule.state if schedule else ScheduleState.UNARMED

    def schedule_for(self, timer: Timer) -> TimerSchedule | None:
        return self._schedules.get(timer)

    async def _fire_initial(self, context: CallbackContext) -> None:
        timer: Timer = context.job.data
        schedule = self._schedules.get(timer)
        if schedule is None or schedule.state is not ScheduleState.ARMED_INITIAL:
            return

        first_repeat = (schedule.activation or self._clock()) + timer.repeat_interval
        schedule.job = self.job_queue.run_repeating(
            self._fire_repeating,
            interval=timer.repeat_interval,
            first=first_repeat,
            data=timer,
            name=f"timer:{timer.name}",
        )
        schedule.state = ScheduleState.REPEATING
        await self._dispatch(timer)

    async def _fire_repeating(self, context: CallbackContext) -> None:
        timer: Timer = context.job.data
        schedule = self._schedules.get(timer)
        if schedule is None or schedule.state is not ScheduleState.REPEATING:
            return
        await self._dispatch(timer)

    async def _dispatch(self, timer: Timer) -> None:
        try:
            await self._on_fire(timer, self._clock())
        except Exception as e:
            logger.exception(f"({timer.name}): error during activation: {e}")

    # Named tasks

    def run_periodic(
        self,
        name: str,
        callback: TaskCallback,
        interval: timedelta,
        first: timedelta | datetime | None = None,
    ) -> Job:
        """Run callback every interval, replacing any task with the same name."""
        self.cancel(name)
        job = self.job_queue.run_repeating(
            self._run_task,
            interval=interval,
            first=first if first is not None else interval,
            data=callback,
            name=name,
        )
        self._tasks[name] = job
        return job

    def run_once(self, name: str, callback: TaskCallback, when: datetime | timedelta) -> Job:
        """Run callback once at when, replacing any task with the same name."""
        self.cancel(name)
        job = self.job_queue.run_once(self._run_task, when=when, data=callback, name=name)
        self._tasks[name] = job
        self._one_shot.add(name)
        return job

    def cancel(self, name: str) -> bool:
        job = self._tasks.pop(name, None)
        self._one_shot.discard(name)
        if job is None:
            return False
        self._remove(job)
        return True

    def has_task(self, name: str) -> bool:
        return name in self._tasks

    def _remove(self, job: Job) -> None:
        # Once the queue has shut down its jobs are already gone.
        if self.job_queue.scheduler.running:
            job.schedule_removal()

    def _cancel_schedule(self, schedule: TimerSchedule) -> None:
        if schedule.job is not None:
            self._remove(schedule.job)
            schedule.job = None

    async def _run_task(self, context: CallbackContext) -> None:
        callback: TaskCallback = context.job.data
        name = context.job.name
        # A one-shot job is gone from the queue once it runs, so forget it before
        # the callback gets a chance to re-arm under the same name.
        if name in self._one_shot and self._tasks.get(name) is context.job:
            del self._tasks[name]
            self._one_shot.discard(name)
        try:
            await callback()
        except Exception as e:
            logger.exception(f"Scheduler: task '{name}' failed: {e}")

    # Shutdown

    def stop_tasks(self) -> None:
        for name in list(self._tasks):
            self.cancel(name)

    def stop_timers(self) -> None:
        for schedule in self._schedules.values():
            self._cancel_schedule(schedule)
            schedule.state = ScheduleState.STOPPED

    def stop(self) -> None:
        """Remove every job; no timer dispatches after this."""
        self.stop_tasks()
        self.stop_timers()
        logger.info("Scheduler: all timers and tasks stopped")
