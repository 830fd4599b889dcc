"""Database repository - named JSON datasets."""

import json
import logging
from pathlib import Path
from typing import Any

import aiosqlite

from mhtimer.utils.constants import DATASET_HUNTERS, DATASET_REMINDERS, DATASET_TIMERS

logger = logging.getLogger(__name__)


class Repository:
    """Database access layer.

    Every collection is stored as one JSON document and replaced wholesale
    on save, so a crash between saves loses at most one save interval.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open database connection."""
        self._db = await aiosqlite.connect(self.db_path)
        self._db.row_factory = aiosqlite.Row
        logger.info(f"Connected to database at {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("Database connection closed")

    @property
    def db(self) -> aiosqlite.Connection:
        """Get the database connection."""
        if self._db is None:
            raise RuntimeError("Database not connected")
        return self._db

    async def load(self, name: str) -> Any | None:
        """Load a dataset; None when it is missing or unreadable."""
        try:
            async with self.db.execute(
                "SELECT payload FROM datasets WHERE name = ?", (name,)
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.error(f"Repository: failed to load '{name}': {e}")
            return None

        if row is None:
            logger.info(f"Repository: no saved '{name}' dataset")
            return None
        try:
            return json.loads(row["payload"])
        except json.JSONDecodeError as e:
            logger.error(f"Repository: '{name}' is not valid JSON: {e}")
            return None

    async def save(self, name: str, records: Any) -> bool:
        """Replace a dataset. Returns False (and logs) on failure."""
        try:
            payload = json.dumps(records)
        except (TypeError, ValueError) as e:
            logger.error(f"Repository: cannot serialize '{name}': {e}")
            return False

        try:
            await self.db.execute(
                """
                INSERT INTO datasets (name, payload, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(name) DO UPDATE SET
                    payload = excluded.payload,
                    updated_at = excluded.updated_at
                """,
                (name, payload),
            )
            await self.db.commit()
        except aiosqlite.Error as e:
            logger.error(f"Repository: failed to save '{name}': {e}")
            return False
        return True

    # Dataset shortcuts

    async def load_timer_seeds(self) -> list[Any]:
        seeds = await self.load(DATASET_TIMERS)
        return seeds if isinstance(seeds, list) else []

    async def save_timer_seeds(self, seeds: list[dict[str, Any]]) -> bool:
        return await self.save(DATASET_TIMERS, seeds)

    async def load_reminder_records(self) -> list[Any]:
        records = await self.load(DATASET_REMINDERS)
        return records if isinstance(records, list) else []

    async def save_reminder_records(self, records: list[dict[str, Any]]) -> bool:
        saved = await self.save(DATASET_REMINDERS, records)
        if saved:
            logger.info(f"Repository: saved {len(records)} reminders")
        return saved

    async def load_hunter_records(self) -> dict[str, Any]:
        records = await self.load(DATASET_HUNTERS)
        return records if isinstance(records, dict) else {}

    async def save_hunter_records(self, records: dict[str, Any]) -> bool:
        saved = await self.save(DATASET_HUNTERS, records)
        if saved:
            logger.info(f"Repository: saved {len(records)} hunters")
        return saved
