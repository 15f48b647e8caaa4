"""
Background Scheduler Service

Manages scheduled background tasks using APScheduler:
- Weekly archive sweep (hourly check, only writes inside the safety window)

This runs in-process with the FastAPI application.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from core.config import settings

logger = logging.getLogger(__name__)

ARCHIVE_SWEEP_JOB_ID = "archive_sweep"

# Global scheduler instance
_scheduler: AsyncIOScheduler | None = None


async def archive_sweep_job() -> None:
    """
    Background job to archive closed weeks.

    Runs every hour; the sweep itself skips unless the local time is near
    the Monday 00:00 week boundary.
    """
    from services.archive_scheduler import create_archive_scheduler
    from services.broadcaster import get_broadcaster

    logger.info("Starting archive sweep job...")

    try:
        result = await create_archive_scheduler(get_broadcaster()).sweep()

        if result.skipped:
            logger.info(f"Archive sweep skipped: {result.reason}")
        else:
            logger.info(
                f"Archive sweep completed: "
                f"archived={result.weeks_archived}, "
                f"failed={result.weeks_failed}, "
                f"votes_deleted={result.votes_deleted}"
            )
    except Exception as e:
        logger.error(f"Archive sweep job failed: {e}", exc_info=True)


def get_scheduler() -> AsyncIOScheduler:
    """Get the global scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler(timezone=settings.poll_tz)
    return _scheduler


async def start_scheduler() -> None:
    """Start the background scheduler with all jobs."""
    scheduler = get_scheduler()

    if scheduler.running:
        logger.info("Scheduler already running")
        return

    logger.info("Configuring background scheduler...")

    # Hourly in the organization timezone, so the sweep lands inside the
    # window right after Monday 00:00 local
    scheduler.add_job(
        archive_sweep_job,
        trigger=CronTrigger(minute=settings.ARCHIVE_SWEEP_MINUTE, timezone=settings.poll_tz),
        id=ARCHIVE_SWEEP_JOB_ID,
        name="Weekly Archive Sweep",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info(f"Added archive sweep job (hourly at :{settings.ARCHIVE_SWEEP_MINUTE:02d} {settings.POLL_TIMEZONE})")

    scheduler.start()
    logger.info("Background scheduler started")

    # Catch up on anything missed while the service was down
    logger.info("Running initial archive sweep...")
    await archive_sweep_job()


async def stop_scheduler() -> None:
    """Stop the background scheduler gracefully."""
    global _scheduler

    if _scheduler and _scheduler.running:
        logger.info("Stopping background scheduler...")
        _scheduler.shutdown(wait=True)
        logger.info("Background scheduler stopped")

    _scheduler = None


def get_scheduler_status() -> dict:
    """Describe the scheduler and its jobs."""
    scheduler = _scheduler
    if scheduler is None or not scheduler.running:
        return {"running": False, "timezone": settings.POLL_TIMEZONE, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append(
            {
                "id": job.id,
                "name": job.name,
                "nextRunTime": job.next_run_time.isoformat() if job.next_run_time else None,
            }
        )
    return {"running": True, "timezone": settings.POLL_TIMEZONE, "jobs": jobs}


async def trigger_archive_sweep(enforce_window: bool = False) -> dict:
    """
    Manually trigger an archive sweep.

    Useful for catching up after an outage. The current week is never touched.
    Returns the sweep result.
    """
    from services.archive_scheduler import create_archive_scheduler
    from services.broadcaster import get_broadcaster

    result = await create_archive_scheduler(get_broadcaster()).sweep(enforce_window=enforce_window)
    return result.to_dict()
