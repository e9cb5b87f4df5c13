"""Background Worker for Reminder Dispatcher.

Runs the dispatch cycle in-process for deployments without an external
scheduler hitting /api/cron.

The worker:
- Runs one independent cycle every WORKER_CHECK_INTERVAL seconds (default 60)
- Keeps no state between cycles
- Logs fetch failures and carries on with the next iteration
"""

import asyncio
import signal
import sys

import httpx

import database
from config import ConfigurationError, settings
from crud import ReminderStore
from dispatcher import StoreFetchError, run_dispatch_cycle
from logger_config import setup_logger
from notifier import Notifier

logger = setup_logger(__name__, 'worker.log')

# Global flag for graceful shutdown
shutdown_requested = False


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    global shutdown_requested
    logger.info(f"Received signal {signum}, initiating graceful shutdown...")
    shutdown_requested = True


async def run_once(store: ReminderStore, notifier: Notifier):
    """One cycle; fetch failures are logged, not raised."""
    try:
        report = await run_dispatch_cycle(store, notifier)
    except StoreFetchError as e:
        logger.error(f"Cycle aborted, store unavailable: {str(e)}")
        return None
    for detail in report.details:
        logger.info(f"  {detail.id} -> {', '.join(detail.sent_to) or '(no device reached)'}; next: {detail.next_date}")
    return report


async def worker_loop():
    """Main worker loop that runs continuously."""
    logger.info("Background worker started")
    logger.info(f"Worker enabled: {settings.WORKER_ENABLED}")
    logger.info(f"Check interval: {settings.WORKER_CHECK_INTERVAL} seconds")
    logger.info(f"Dispatch window: {settings.dispatch_window}")

    if not settings.WORKER_ENABLED:
        logger.warning("Worker is disabled in configuration. Exiting.")
        return

    store = ReminderStore(database.get_session_factory())

    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as client:
        notifier = Notifier(client, settings)
        iteration = 0
        while not shutdown_requested:
            iteration += 1
            logger.debug(f"Worker iteration {iteration} started")

            await run_once(store, notifier)

            # Break sleep into 1-second intervals to allow quick shutdown
            for _ in range(settings.WORKER_CHECK_INTERVAL):
                if shutdown_requested:
                    break
                await asyncio.sleep(1)

    logger.info("Background worker shutting down gracefully")


def main():
    """Main entry point for the background worker."""
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    logger.info("=" * 60)
    logger.info("Reminder Dispatcher - Background Worker")
    logger.info("=" * 60)

    try:
        asyncio.run(worker_loop())
    except ConfigurationError as e:
        logger.error(f"Configuration error: {str(e)}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")

    logger.info("Background worker stopped")
    sys.exit(0)


if __name__ == "__main__":
    main()
