#!/usr/bin/env python3
"""
Main entry point: runs the reminder sweep until interrupted.
"""

import asyncio
import sys
from datetime import timedelta

from cycletrack import config
from cycletrack.utils.logger import setup_logging, get_logger

# Initialize logging configuration
setup_logging()

logger = get_logger(__name__)

from cycletrack.database.config import init_db
from cycletrack.database.reminder_store import SQLAlchemyReminderStore
from cycletrack.database.session import get_default_session
from cycletrack.notifications.dispatcher import ReminderDispatcher
from cycletrack.notifications.scheduler import SweepScheduler
from cycletrack.notifications.sender import LoggingDeliveryChannel, TelegramDeliveryChannel


def create_channel():
    """Telegram delivery when a bot token is configured, logging otherwise."""
    if config.TELEGRAM_BOT_TOKEN:
        from telegram import Bot
        logger.info("Delivering reminders via Telegram")
        return TelegramDeliveryChannel(Bot(token=config.TELEGRAM_BOT_TOKEN))

    logger.info("TELEGRAM_BOT_TOKEN not set, reminders are only logged")
    return LoggingDeliveryChannel()


async def run() -> None:
    """Start the sweep and keep it running until cancelled."""
    database = get_default_session()
    if not database.test_connection():
        raise RuntimeError("Database is not reachable")

    channel = create_channel()
    if isinstance(channel, TelegramDeliveryChannel):
        await channel.bot.initialize()

    dispatcher = ReminderDispatcher(
        SQLAlchemyReminderStore(database),
        channel,
        retention_days=config.REMINDER_RETENTION_DAYS,
        purge_interval=timedelta(hours=config.PURGE_INTERVAL_HOURS)
    )
    sweep_scheduler = SweepScheduler(dispatcher, interval_minutes=config.SWEEP_INTERVAL_MINUTES)

    await sweep_scheduler.start()
    logger.info("Press Ctrl+C to stop")
    try:
        await asyncio.Event().wait()
    finally:
        await sweep_scheduler.stop()
        if isinstance(channel, TelegramDeliveryChannel):
            await channel.bot.shutdown()


def main():
    """
    Check the configuration, create the tables and run the sweep.
    """
    logger.info("=" * 50)
    logger.info("Starting cycletrack reminder sweep")
    logger.info("=" * 50)

    problems = config.check_environment()
    if problems:
        for problem in problems:
            logger.error(f"Configuration error: {problem}")
        sys.exit(1)

    try:
        init_db()
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Stopped by user")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
