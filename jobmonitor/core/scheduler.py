"""
APScheduler integration for FastAPI.

Runs the periodic CSV import in-process. The hotfolder watcher handles files
as they arrive; these schedules pick up anything it missed.

Schedules:
- csv_import_interval: every `import.interval_minutes` minutes (default 5)
- csv_import_hourly: top of every hour, unless `import.hourly_sweep` is off
"""

from datetime import UTC, datetime
from typing import Any

from apscheduler import AsyncScheduler, ConflictPolicy, JobOutcome, JobReleased
from apscheduler.abc import Trigger
from apscheduler.datastores.memory import MemoryDataStore
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from jobmonitor.config import ImportConfig, get_config, get_settings
from jobmonitor.core.database import AsyncSessionLocal
from jobmonitor.core.datetime_utils import utc_now
from jobmonitor.core.logging import get_logger

logger = get_logger(__name__)

INTERVAL_SCHEDULE_ID = "csv_import_interval"
HOURLY_SCHEDULE_ID = "csv_import_hourly"

# Global scheduler instance
scheduler: AsyncScheduler | None = None


async def csv_import_job() -> None:
    """Scheduled import pass over the drop directory."""
    # Import here to avoid circular imports
    from jobmonitor.jobs.csv_import import run_import_pass

    logger.debug("scheduled_csv_import_started")
    try:
        stats = await run_import_pass()
    except Exception as e:
        logger.bind(error=str(e)).error("scheduled_csv_import_failed")
        raise  # Re-raise so APScheduler records the failure

    if stats["files"]:
        logger.bind(**stats).info("scheduled_csv_import_completed")
    else:
        logger.debug("scheduled_csv_import_no_files")


def build_schedules(config: ImportConfig) -> list[tuple[str, Trigger]]:
    """(schedule id, trigger) pairs for the configured import cadence."""
    schedules: list[tuple[str, Trigger]] = [
        (INTERVAL_SCHEDULE_ID, IntervalTrigger(minutes=config.interval_minutes)),
    ]
    if config.hourly_sweep:
        schedules.append((HOURLY_SCHEDULE_ID, CronTrigger(minute=0)))
    return schedules


def _as_naive_utc(value: datetime | None) -> datetime:
    """APScheduler reports aware datetimes; the job_runs columns are naive UTC."""
    if value is None:
        return utc_now()
    if value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


async def record_import_run(event: JobReleased) -> None:
    """Store one scheduled import run in job_runs."""
    from jobmonitor.models.job_run import JobRun

    error = None
    if event.outcome == JobOutcome.error:
        error = getattr(event, "exception_message", None) or getattr(event, "exception_type", None)

    async with AsyncSessionLocal() as db:
        db.add(
            JobRun(
                job_id=event.schedule_id or "unknown",
                scheduled_at=_as_naive_utc(getattr(event, "scheduled_start", None)),
                started_at=_as_naive_utc(getattr(event, "started_at", None)),
                finished_at=utc_now(),
                outcome=event.outcome.name,
                error=error,
            )
        )
        await db.commit()


async def _on_job_released(event: Any) -> None:
    if not isinstance(event, JobReleased):
        return
    try:
        await record_import_run(event)
    except Exception as e:
        logger.bind(schedule_id=event.schedule_id, error=str(e)).error("import_run_record_failed")


async def start_scheduler() -> AsyncScheduler | None:
    """Initialize and start the scheduler with in-memory schedules."""
    global scheduler

    settings = get_settings()
    if not settings.scheduler_enabled:
        logger.info("scheduler_disabled_by_config")
        return None

    config = get_config().importer

    scheduler = AsyncScheduler(data_store=MemoryDataStore())

    # Start the scheduler first (required before calling other methods in APScheduler 4.x)
    await scheduler.__aenter__()
    scheduler.subscribe(_on_job_released, {JobReleased})

    schedules = build_schedules(config)
    for schedule_id, trigger in schedules:
        await scheduler.add_schedule(
            csv_import_job,
            trigger,
            id=schedule_id,
            conflict_policy=ConflictPolicy.replace,
        )

    # Start the scheduler's background worker to actually process jobs
    await scheduler.start_in_background()

    logger.bind(
        schedules=[schedule_id for schedule_id, _ in schedules],
        interval_minutes=config.interval_minutes,
    ).info("scheduler_started")

    return scheduler


async def stop_scheduler() -> None:
    """Gracefully stop the scheduler."""
    global scheduler
    if scheduler:
        await scheduler.__aexit__(None, None, None)
        logger.info("scheduler_stopped")
        scheduler = None


async def get_job_schedules() -> list[dict[str, Any]]:
    """Registered import schedules with their fire times."""
    if not scheduler:
        return []

    schedules = await scheduler.get_schedules()
    return [
        {
            "id": s.id,
            "task_id": s.task_id,
            "trigger": str(s.trigger),
            "next_fire_time": s.next_fire_time.isoformat() if s.next_fire_time else None,
            "last_fire_time": s.last_fire_time.isoformat() if s.last_fire_time else None,
        }
        for s in schedules
    ]
