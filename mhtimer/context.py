"""Process-wide state shared by handlers and scheduled tasks."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from mhtimer.config import Config
from mhtimer.db.repository import Repository
from mhtimer.engine.dispatch import Dispatcher
from mhtimer.engine.hunters import HunterRegistry
from mhtimer.engine.registry import TimerRegistry
from mhtimer.engine.relic_hunter import RelicHunterTracker
from mhtimer.engine.reminder_store import ReminderStore
from mhtimer.engine.scheduler import Scheduler
from mhtimer.engine.timer import Timer
from mhtimer.services.lookups import LookupClient
from mhtimer.utils.constants import RELIC_HUNTER_AREA

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Owns every collection; stored in bot_data["app"]."""

    repo: Repository
    registry: TimerRegistry
    store: ReminderStore
    hunters: HunterRegistry
    relic_hunter: RelicHunterTracker
    lookups: LookupClient
    dispatcher: Dispatcher
    scheduler: Scheduler | None = None
    prefix: str = field(default_factory=lambda: Config.BOT_PREFIX)
    owner_id: int = field(default_factory=lambda: Config.OWNER_ID)

    async def on_timer_fired(self, timer: Timer, now: datetime) -> None:
        await self.dispatcher.fire(timer, now)

    async def remind_relic_hunter(self) -> int:
        """Send Relic Hunter reminders after she was found somewhere new."""
        if not self.relic_hunter.state.is_known:
            return 0
        timer = self.registry.find_by_area(RELIC_HUNTER_AREA)
        if timer is None:
            logger.warning("Relic Hunter: no timer configured, reminders not sent")
            return 0
        logger.info(f"Relic Hunter: sending reminders for {self.relic_hunter.location}")
        return await self.dispatcher.remind(timer)

    async def refresh_relic_hunter(self) -> None:
        """Look her up remotely and remind subscribers if she moved."""
        original = self.relic_hunter.location
        await self.relic_hunter.refresh(self.lookups)
        if self.relic_hunter.state.is_known and self.relic_hunter.location != original:
            await self.remind_relic_hunter()

    async def save_reminders(self) -> bool:
        self.store.prune()
        return await self.repo.save_reminder_records(self.store.to_records())

    async def save_hunters(self) -> bool:
        return await self.repo.save_hunter_records(self.hunters.to_records())

    async def save_all(self) -> None:
        """Best-effort save of every mutable collection."""
        if not await self.save_reminders():
            logger.error("Failed to save reminders")
        if not await self.save_hunters():
            logger.error("Failed to save hunters")
