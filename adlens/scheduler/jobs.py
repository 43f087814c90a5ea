"""ADLENS — Scheduler Jobs.

APScheduler daily job that reloads the store, enriches from Meta, and
writes the enriched dataset back at the configured hour.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from adlens.config import settings
from adlens.analyzer.pipeline import DashboardPipeline
from adlens.api.deps import get_pipeline
from adlens.core.errors import AdlensError
from adlens.core.logging import get_logger

logger = get_logger("scheduler")

scheduler = AsyncIOScheduler()


async def daily_sync_job(pipeline: DashboardPipeline | None = None):
    """Reload from the store and save the Meta-enriched result."""
    pipeline = pipeline or get_pipeline()
    logger.info("Scheduled daily sync starting...")
    try:
        report = await pipeline.refresh()
        logger.info(
            f"Scheduled sync complete: {report.record_count} records, saved={report.saved}"
        )
    except AdlensError as e:
        logger.error(f"Scheduled sync failed: {e}")


def start_scheduler():
    """Configure and start the scheduler."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled via config")
        return

    scheduler.add_job(
        daily_sync_job,
        "cron",
        hour=settings.sync_hour,
        minute=0,
        id="daily_sync",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.start()
    logger.info(f"Scheduler started. Daily sync at {settings.sync_hour}:00 UTC")


def stop_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
