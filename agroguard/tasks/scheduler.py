"""Background scheduler for periodic offline-record sync."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from agroguard.config import get_settings

logger = logging.getLogger(__name__)

_scheduler: AsyncIOScheduler | None = None


async def run_scheduled_sync():
    """Run one sync pass if the user has auto-sync turned on."""
    from agroguard.services.sync_coordinator import get_sync_coordinator

    coordinator = get_sync_coordinator()
    try:
        if not coordinator.store.get_settings().auto_sync:
            logger.debug("Auto-sync disabled in user settings, skipping")
            return None
        return await coordinator.run_pass()
    except Exception as e:
        logger.error("Scheduled sync failed: %s", e, exc_info=True)
        return None


def start_scheduler():
    """Start the background sync scheduler (requires a running event loop)."""
    global _scheduler
    settings = get_settings()

    if not settings.auto_sync_enabled:
        logger.info("Sync scheduler disabled")
        return

    _scheduler = AsyncIOScheduler()
    _scheduler.add_job(
        run_scheduled_sync,
        "interval",
        minutes=settings.auto_sync_interval_minutes,
        id="offline_record_sync",
        name="Offline Record Sync",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    # Drain anything left pending from the last session
    _scheduler.add_job(run_scheduled_sync, id="startup_sync", name="Startup Sync")
    _scheduler.start()
    logger.info(
        "Scheduler started: offline sync every %d minutes",
        settings.auto_sync_interval_minutes,
    )


def stop_scheduler():
    """Stop the background scheduler."""
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("Scheduler stopped")
