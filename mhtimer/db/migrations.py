"""Schema bootstrap and import of the old flat-file data."""

import json
import logging
from pathlib import Path

import aiosqlite

from mhtimer.utils.constants import DATASET_HUNTERS, DATASET_REMINDERS

logger = logging.getLogger(__name__)

# Files written by the JSON-file era of the bot, relative to its data directory
LEGACY_FILES = {
    DATASET_REMINDERS: "reminders.json",
    DATASET_HUNTERS: "hunters.json",
}


async def init_database(db: aiosqlite.Connection) -> None:
    schema_path = Path(__file__).parent / "schema.sql"
    await db.executescript(schema_path.read_text())
    await db.commit()


async def import_legacy_files(db: aiosqlite.Connection, data_dir: Path) -> list[str]:
    """Copy old JSON data files into datasets that were never saved.

    A dataset that already exists always wins over its file.

    Returns:
        Names of the datasets that were imported.
    """
    imported = []
    for name, filename in LEGACY_FILES.items():
        path = data_dir / filename
        if not path.is_file():
            continue

        async with db.execute("SELECT 1 FROM datasets WHERE name = ?", (name,)) as cursor:
            if await cursor.fetchone() is not None:
                logger.debug(f"Dataset '{name}' exists, ignoring {path}")
                continue

        try:
            payload = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not import {path}: {e}")
            continue

        await db.execute(
            "INSERT INTO datasets (name, payload) VALUES (?, ?)",
            (name, json.dumps(payload)),
        )
        imported.append(name)
        logger.info(f"Imported {path} into dataset '{name}'")

    await db.commit()
    return imported


async def run_migrations(db_path: Path, legacy_dir: Path | None = None) -> list[str]:
    """Create the schema, then pick up any old data files from legacy_dir."""
    async with aiosqlite.connect(db_path) as db:
        await init_database(db)
        logger.info(f"Database initialized at {db_path}")
        if legacy_dir is None:
            return []
        return await import_legacy_files(db, legacy_dir)
