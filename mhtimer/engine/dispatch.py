"""Dispatch of reminders and announcements when a timer fires."""

import logging
from html import escape
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from mhtimer.bot.formatters import format_reminder_notification
from mhtimer.db.models import RelicHunterState
from mhtimer.engine.reminder_store import ReminderStore
from mhtimer.engine.timer import Timer
from mhtimer.utils.constants import EXPIRED, MAX_DELIVERY_FAILURES, RELIC_HUNTER_AREA
from mhtimer.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class Sender(Protocol):
    """Anything that can deliver text to a user or chat."""

    async def send(self, recipient: int, text: str) -> bool: ...


@dataclass
class AnnounceTargets:
    """Destinations a timer announces to."""

    active: list[int] = field(default_factory=list)
    inactive: list[int] = field(default_factory=list)
    enabled: bool = True


class Dispatcher:
    """Sends reminders and announcements for fired timers."""

    def __init__(
        self,
        store: ReminderStore,
        sender: Sender,
        relic_hunter: RelicHunterState | None = None,
        command_prefix: str = "/",
    ):
        self.store = store
        self.sender = sender
        self.relic_hunter = relic_hunter
        self.command_prefix = command_prefix
        self._targets: dict[Timer, AnnounceTargets] = {}

    def register_targets(self, timer: Timer, destinations: list[int]) -> AnnounceTargets:
        targets = AnnounceTargets(active=list(destinations))
        self._targets[timer] = targets
        return targets

    def targets_for(self, timer: Timer) -> AnnounceTargets | None:
        return self._targets.get(timer)

    def reactivate_targets(self) -> int:
        """Move every deactivated destination back to its active list."""
        restored = 0
        for targets in self._targets.values():
            if targets.inactive:
                restored += len(targets.inactive)
                targets.active.extend(targets.inactive)
                targets.inactive.clear()
            if targets.active:
                targets.enabled = True
        if restored:
            logger.info(f"Announcements: reactivated {restored} destinations")
        return restored

    async def fire(self, timer: Timer, now: datetime | None = None) -> None:
        """Handle one activation: remind subscribers, then announce."""
        await self.remind(timer, now)
        await self.announce(timer)

    async def remind(self, timer: Timer, now: datetime | None = None) -> int:
        """Notify each subscribed user at most once for this activation.

        Returns:
            Number of users a send was attempted for.
        """
        if now is None:
            now = utcnow()

        candidates = self.store.match_firing(timer.area, timer.sub_area)
        if not candidates:
            return 0

        next_activation = timer.get_next_activation(now)
        location = None
        if timer.area == RELIC_HUNTER_AREA and self.relic_hunter:
            location = self.relic_hunter.location

        notified: set[int] = set()
        for reminder in candidates:
            if reminder.user in notified:
                continue
            # The user may have turned this off while an earlier send was in flight.
            if reminder.count == EXPIRED:
                continue
            notified.add(reminder.user)

            remaining = reminder.count - 1 if reminder.count > 0 else reminder.count
            text = format_reminder_notification(
                timer,
                reminder,
                remaining=remaining,
                until_next=next_activation - now,
                prefix=self.command_prefix,
                location=location,
            )

            sent_count = reminder.count
            delivered = await self.sender.send(reminder.user, text)

            if delivered:
                reminder.failure_count = 0
                # A count set by the user during the send replaces this activation.
                if reminder.count == sent_count and reminder.count > 0:
                    reminder.count -= 1
            else:
                reminder.failure_count += 1
                logger.error(
                    f"Reminders: failed to notify {reminder.user} for {timer.name} "
                    f"({reminder.failure_count} consecutive failures)"
                )
                if reminder.failure_count > MAX_DELIVERY_FAILURES + 1:
                    reminder.count = EXPIRED
                    logger.warning(f"Reminders: removing reminder for {reminder.user}, final attempt failed")
                elif reminder.failure_count > MAX_DELIVERY_FAILURES:
                    reminder.count = 1
                    logger.warning(
                        f"Reminders: expiring reminder for {reminder.user} due to too many failures"
                    )

        logger.info(f"Reminders: {timer.name} notified {len(notified)} users")
        return len(notified)

    async def announce(self, timer: Timer) -> int:
        """Post the timer's announcement to its active destinations.

        Destinations that fail are moved to the inactive list and not retried.

        Returns:
            Number of successful announcements.
        """
        targets = self._targets.get(timer)
        if not targets or not targets.enabled:
            return 0
        if not targets.active:
            targets.enabled = False
            return 0

        delivered = 0
        for destination in list(targets.active):
            if await self.sender.send(destination, escape(timer.announcement)):
                delivered += 1
                continue
            if destination in targets.active:
                targets.active.remove(destination)
                targets.inactive.append(destination)
            logger.warning(
                f"({timer.name}): deactivated announcements to chat {destination} after a send error"
            )
        return delivered
