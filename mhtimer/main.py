"""Main entry point for the MHTimer bot."""

import json
import logging
import os
import sys
from datetime import timedelta
from typing import Any

from telegram.ext import Application, CommandHandler, MessageHandler, filters

from mhtimer.bot.handlers import command_router, handle_plain_text, handle_relic_hunter_post
from mhtimer.bot.notifier import TelegramNotifier
from mhtimer.config import Config
from mhtimer.context import AppContext
from mhtimer.db.migrations import run_migrations
from mhtimer.db.repository import Repository
from mhtimer.engine.dispatch import Dispatcher
from mhtimer.engine.hunters import HunterRegistry
from mhtimer.engine.registry import TimerRegistry
from mhtimer.engine.relic_hunter import RelicHunterTracker
from mhtimer.engine.reminder_store import ReminderStore
from mhtimer.engine.scheduler import Scheduler
from mhtimer.parser.commands import COMMAND_ALIASES
from mhtimer.services.lookups import LookupClient
from mhtimer.utils.error_handler import error_handler

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, Config.LOG_LEVEL),
    stream=sys.stdout,
)
# httpx logs every request at INFO
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


async def load_timer_seeds(repo: Repository) -> list[Any]:
    """Timer definitions from TIMERS_PATH, else the last saved copy."""
    try:
        with open(Config.TIMERS_PATH) as f:
            seeds = json.load(f)
    except FileNotFoundError:
        logger.info(f"No timer file at {Config.TIMERS_PATH}, using saved timers")
        return await repo.load_timer_seeds()
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read timers from {Config.TIMERS_PATH}: {e}")
        return await repo.load_timer_seeds()

    if not isinstance(seeds, list):
        logger.error(f"{Config.TIMERS_PATH} does not hold a list of timers")
        return await repo.load_timer_seeds()
    return seeds


async def post_init(application: Application) -> None:
    """Load state and arm every timer once the bot is connected."""
    await run_migrations(Config.DATABASE_PATH, legacy_dir=Config.TIMERS_PATH.parent)

    repo = Repository(Config.DATABASE_PATH)
    await repo.connect()

    registry = TimerRegistry.from_seeds(await load_timer_seeds(repo))
    if len(registry):
        await repo.save_timer_seeds(registry.to_seeds())
    else:
        logger.warning("No timers loaded, only lookups will work")

    store = ReminderStore.from_records(await repo.load_reminder_records())
    store.prune()
    hunters = HunterRegistry.from_records(await repo.load_hunter_records())
    logger.info(f"Loaded {len(registry)} timers, {len(store)} reminders and {len(hunters)} hunters")

    relic_hunter = RelicHunterTracker()
    lookups = LookupClient(Config.MHCT_BASE_URL, Config.DBGAMES_RH_URL)
    dispatcher = Dispatcher(store, TelegramNotifier(application.bot), relic_hunter.state)
    if Config.ANNOUNCE_CHAT_IDS:
        for timer in registry:
            if not timer.silent:
                dispatcher.register_targets(timer, Config.ANNOUNCE_CHAT_IDS)

    app = AppContext(
        repo=repo,
        registry=registry,
        store=store,
        hunters=hunters,
        relic_hunter=relic_hunter,
        lookups=lookups,
        dispatcher=dispatcher,
    )
    application.bot_data["app"] = app

    scheduler = Scheduler(application.job_queue, app.on_timer_fired)
    app.scheduler = scheduler
    armed = scheduler.schedule_all(registry)
    logger.info(f"Scheduled {armed} timers")

    save_interval = timedelta(minutes=Config.SAVE_INTERVAL)
    scheduler.run_periodic("save_reminders", app.save_reminders, interval=save_interval)
    scheduler.run_periodic("save_hunters", app.save_hunters, interval=save_interval)
    scheduler.run_periodic(
        "refresh_lookups",
        lookups.refresh_all,
        interval=timedelta(minutes=Config.REFRESH_INTERVAL),
        first=timedelta(seconds=5),
    )
    relic_hunter.schedule_reset(scheduler)
    scheduler.run_once("relic_hunter_lookup", app.refresh_relic_hunter, when=timedelta(seconds=10))

    logger.info("MHTimer initialized successfully")


async def post_shutdown(application: Application) -> None:
    """Save everything, then release timers, HTTP and database resources."""
    app: AppContext | None = application.bot_data.get("app")
    if app is None:
        return

    try:
        await app.save_all()
        if app.scheduler is not None:
            app.scheduler.stop()
        app.relic_hunter.cancel_reset()
        await app.lookups.close()
        await app.repo.close()
    except Exception:
        logger.exception("Unclean shutdown")
        os._exit(1)

    logger.info("MHTimer shut down")


def main() -> None:
    """Start the bot."""
    try:
        Config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    application = (
        Application.builder()
        .token(Config.TELEGRAM_BOT_TOKEN)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )

    # Relic Hunter sightings posted by the tracking feed
    if Config.RELIC_HUNTER_CHAT_ID:
        application.add_handler(
            MessageHandler(
                filters.Chat(chat_id=Config.RELIC_HUNTER_CHAT_ID) & filters.TEXT,
                handle_relic_hunter_post,
            )
        )

    # Commands, every alias routed through the same lookup
    application.add_handler(CommandHandler(list(COMMAND_ALIASES), command_router))

    # Plain text handler (must be last)
    application.add_handler(
        MessageHandler(filters.TEXT & ~filters.COMMAND, handle_plain_text)
    )

    application.add_error_handler(error_handler)

    logger.info("Starting MHTimer bot...")
    application.run_polling(allowed_updates=["message", "channel_post"])


if __name__ == "__main__":
    main()
