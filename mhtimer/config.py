"""Configuration management from environment variables."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


def _int_list(value: str) -> list[int]:
    return [int(part) for part in value.replace(",", " ").split() if part]


class Config:
    """Application configuration loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    OWNER_ID: int = int(os.getenv("OWNER_ID", "0"))
    BOT_PREFIX: str = os.getenv("BOT_PREFIX", "-mh")
    ANNOUNCE_CHAT_IDS: list[int] = _int_list(os.getenv("ANNOUNCE_CHAT_IDS", ""))
    RELIC_HUNTER_CHAT_ID: int = int(os.getenv("RELIC_HUNTER_CHAT_ID", "0"))

    # Storage
    DATABASE_PATH: Path = Path(os.getenv("DATABASE_PATH", "./data/mhtimer.db"))
    TIMERS_PATH: Path = Path(os.getenv("TIMERS_PATH", "./data/timers.json"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Engine (minutes)
    SAVE_INTERVAL: int = int(os.getenv("SAVE_INTERVAL", "5"))
    REFRESH_INTERVAL: int = int(os.getenv("REFRESH_INTERVAL", "15"))

    # Remote lookups
    MHCT_BASE_URL: str = os.getenv("MHCT_BASE_URL", "https://mhhunthelper.agiletravels.com")
    DBGAMES_RH_URL: str = os.getenv(
        "DBGAMES_RH_URL",
        "https://docs.google.com/spreadsheets/d/e/2PACX-1vSsqAjocBWcN5dDLXuOBfnBhyrTaO7ZeIEAFlDnQ4r6zqcvtuLKMDBQCh5I8-3M9irS4-17OPfvgKtY/pub?gid=1975888453&single=true&output=csv",
    )

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration."""
        if not cls.TELEGRAM_BOT_TOKEN:
            raise ValueError("TELEGRAM_BOT_TOKEN environment variable is required")

        if cls.SAVE_INTERVAL <= 0 or cls.REFRESH_INTERVAL <= 0:
            raise ValueError("SAVE_INTERVAL and REFRESH_INTERVAL must be positive")

        # Ensure database directory exists
        cls.DATABASE_PATH.parent.mkdir(parents=True, exist_ok=True)
