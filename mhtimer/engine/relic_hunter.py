"""Relic Hunter location tracking."""

import asyncio
import logging
import re
from datetime import datetime
from typing import TYPE_CHECKING, Callable

from mhtimer.db.models import RelicHunterState
from mhtimer.engine.scheduler import Scheduler
from mhtimer.utils.constants import UNKNOWN_LOCATION
from mhtimer.utils.time_utils import UTC, end_of_day, same_utc_day, time_left, utcnow

if TYPE_CHECKING:
    from mhtimer.services.lookups import LookupClient

logger = logging.getLogger(__name__)

RESET_TASK = "relic_hunter_reset"
WEBHOOK_LOCATION = re.compile(r"spotted in \*\*(.+?)\*\*")


class RelicHunterTracker:
    """Owns the process-wide Relic Hunter state and its daily reset."""

    def __init__(
        self,
        state: RelicHunterState | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.state = state or RelicHunterState()
        self._clock = clock
        self._scheduler: Scheduler | None = None

    @property
    def location(self) -> str:
        return self.state.location

    def reset(self) -> None:
        """Forget the location; she moves every day at midnight UTC."""
        logger.info(
            f"Relic Hunter: resetting location to 'unknown', was {self.state.source}: {self.state.location}"
        )
        self.state.location = UNKNOWN_LOCATION
        self.state.source = "reset"
        self.state.last_seen = datetime.fromtimestamp(0, UTC)

    def schedule_reset(self, scheduler: Scheduler) -> None:
        """Arm the next daily reset, replacing any pending one."""
        self._scheduler = scheduler
        scheduler.run_once(RESET_TASK, self._daily_reset, when=end_of_day(self._clock()))

    def cancel_reset(self) -> None:
        if self._scheduler is not None:
            self._scheduler.cancel(RESET_TASK)

    async def _daily_reset(self) -> None:
        self.reset()
        if self._scheduler is not None:
            self.schedule_reset(self._scheduler)

    def handle_webhook(self, text: str) -> str | None:
        """Record a location announced by the tracking webhook.

        Returns:
            The new location when it changed, otherwise None.
        """
        match = WEBHOOK_LOCATION.search(text)
        if not match:
            logger.error(f"Relic Hunter: failed to extract location from webhook message: {text!r}")
            return None

        location = match.group(1)
        if location == self.state.location:
            logger.info(f"Relic Hunter: skipped location update (already set by {self.state.source})")
            return None

        self.state.location = location
        self.state.source = "webhook"
        self.state.last_seen = self._clock()
        logger.info(f"Relic Hunter: webhook set location to '{location}'")
        return location

    async def refresh(self, lookups: "LookupClient") -> RelicHunterState:
        """Ask both remote sources; MHCT observations beat DBGames hints."""
        logger.info(f"Relic Hunter: was in {self.state.location} according to {self.state.source}")
        dbgames, mhct = await asyncio.gather(
            lookups.dbgames_relic_hunter(),
            lookups.mhct_relic_hunter(),
        )
        if mhct.is_known:
            self._adopt(mhct)
        elif dbgames.is_known:
            self._adopt(dbgames)
        else:
            self.reset()
        logger.info(
            f"Relic Hunter: location set to '{self.state.location}' with source '{self.state.source}'"
        )
        return self.state

    def _adopt(self, found: RelicHunterState) -> None:
        self.state.location = found.location
        self.state.source = found.source
        self.state.last_seen = found.last_seen

    async def find(self, lookups: "LookupClient") -> tuple[str, bool]:
        """Answer "where is she?", refreshing unless today's MHCT sighting is known.

        Returns:
            The reply text, and whether the location changed to a known place.
        """
        now = self._clock()
        original = self.state.location
        if self.state.source != "MHCT" or not same_utc_day(now, self.state.last_seen):
            await self.refresh(lookups)

        if self.state.is_known:
            text = f"Relic Hunter has been spotted in <b>{self.state.location}</b>"
        else:
            text = "Relic Hunter has not been spotted yet"
        text += f" and moves again {time_left(end_of_day(now), now)}"

        changed = self.state.is_known and self.state.location != original
        return text, changed
