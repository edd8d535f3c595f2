"""
Background Job Scheduler.

WHAT: Configures and manages APScheduler for background tasks.

WHY: The stale-session sweep has to run without user requests.

HOW: Uses APScheduler's AsyncIOScheduler with an in-memory job store; the
sweep is idempotent, so losing the schedule on restart is harmless.
"""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.triggers.interval import IntervalTrigger

from survey_analytics.core.config import settings
from survey_analytics.services.session_sweeper import get_session_sweeper


logger = logging.getLogger(__name__)


SESSION_SWEEP_JOB_ID = "stale_session_sweep"

# Global scheduler instance
_scheduler: Optional[AsyncIOScheduler] = None


async def start_scheduler() -> None:
    """
    Start the background job scheduler.

    HOW:
    1. Creates AsyncIOScheduler with memory job store
    2. Registers the stale session sweep
    3. Starts the scheduler

    Note: Call this from the FastAPI startup hook.
    """
    global _scheduler

    if not settings.SCHEDULER_ENABLED:
        logger.info("Scheduler disabled by configuration")
        return

    if _scheduler is not None and _scheduler.running:
        logger.warning("Scheduler already running")
        return

    _scheduler = AsyncIOScheduler(
        jobstores={"default": MemoryJobStore()},
        executors={"default": AsyncIOExecutor()},
        job_defaults={
            "coalesce": True,  # Combine multiple missed runs into one
            "max_instances": 1,  # Only one instance of each job at a time
            "misfire_grace_time": 60,  # Allow 60s late execution
        },
        timezone="UTC",
    )

    _register_session_sweep_job()

    _scheduler.start()
    logger.info(
        f"Scheduler started with session sweep every {settings.ABANDON_SWEEP_INTERVAL_SECONDS} seconds"
    )


def _register_session_sweep_job() -> None:
    """Register the stale session sweep job."""
    if _scheduler is None:
        logger.error("Cannot register job: scheduler not initialized")
        return

    _scheduler.add_job(
        func=get_session_sweeper().sweep,
        trigger=IntervalTrigger(seconds=settings.ABANDON_SWEEP_INTERVAL_SECONDS),
        id=SESSION_SWEEP_JOB_ID,
        name="Stale Session Sweep",
        replace_existing=True,
    )


async def shutdown_scheduler() -> None:
    """
    Shut down the background job scheduler.

    Note: Call this from the FastAPI shutdown hook.
    """
    global _scheduler

    if _scheduler is None:
        logger.info("Scheduler not running")
        return

    if _scheduler.running:
        logger.info("Shutting down scheduler...")
        _scheduler.shutdown(wait=True)
    _scheduler = None
    logger.info("Scheduler shut down successfully")


def get_scheduler_status() -> dict:
    """
    Get scheduler status information.

    Returns:
        Dict with scheduler status and job details
    """
    if _scheduler is None:
        return {
            "running": False,
            "jobs": [],
            "message": "Scheduler not initialized",
        }

    jobs = []
    for job in _scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": str(job.next_run_time) if job.next_run_time else None,
            "trigger": str(job.trigger),
        })

    return {
        "running": _scheduler.running,
        "jobs": jobs,
        "message": "Scheduler is running" if _scheduler.running else "Scheduler is paused",
    }
