"""APScheduler job keeping the roster cache warm between draws."""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from lucky_draw.config import settings
from lucky_draw.sheets.cache import RosterCache, roster_cache

_scheduler: AsyncIOScheduler | None = None


async def _prefetch_roster(cache: RosterCache):
    """Reload participants, prizes and winners so a STOP_SPIN never waits on GViz."""
    counts = await cache.refresh_all()
    logger.debug("Roster prefetch: {}", counts)


def start_scheduler(cache: RosterCache = roster_cache):
    """Start the APScheduler with the roster prefetch job."""
    global _scheduler
    if _scheduler is not None:
        return

    _scheduler = AsyncIOScheduler()

    _scheduler.add_job(
        _prefetch_roster, "interval",
        args=[cache],
        seconds=settings.ROSTER_PREFETCH_SECONDS,
        id="roster_prefetch",
        max_instances=1,
        coalesce=True,
    )

    _scheduler.start()
    logger.info("Scheduler started with {} jobs", len(_scheduler.get_jobs()))


def stop_scheduler():
    """Shutdown the scheduler."""
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("Scheduler stopped")


def get_scheduler_status() -> list[dict]:
    """Get status of all scheduled jobs."""
    if not _scheduler:
        return []

    jobs = []
    for job in _scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": str(job.next_run_time) if job.next_run_time else None,
            "trigger": str(job.trigger),
        })
    return jobs
