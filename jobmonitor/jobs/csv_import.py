"""
CSV import job.

Run with: python -m jobmonitor.jobs.csv_import

This job:
1. Imports every CSV file waiting in the drop directory
2. Archives each file once its rows are committed
3. Notifies users who favorited the touched jobs
"""

import asyncio
from functools import partial
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jobmonitor.core.database import AsyncSessionLocal
from jobmonitor.core.logging import get_logger, setup_logging
from jobmonitor.importer.base import ImportResult
from jobmonitor.importer.engine import import_all_csv_files, import_and_archive
from jobmonitor.importer.errors import ImportBatchError
from jobmonitor.importer.hotfolder import FileHandler
from jobmonitor.services.notification_bridge import notify_favorites
from jobmonitor.services.notification_service import NotificationService

logger = get_logger(__name__)

SessionFactory = async_sessionmaker[AsyncSession]


async def import_pending_files(
    db: AsyncSession,
    notifier: NotificationService | None = None,
) -> dict[str, Any]:
    """Import all pending files and run the favorites scan.

    On ImportBatchError the scan still runs for the files that imported, then
    the error is re-raised.
    """
    try:
        batch = await import_all_csv_files(db)
    except ImportBatchError as e:
        changes = [change for result in e.results for change in result.changes]
        try:
            await notify_favorites(db, changes, notifier)
        except Exception as scan_error:
            logger.bind(error=str(scan_error)).error("favorites_scan_failed")
        raise

    notifications = await notify_favorites(db, batch.changes, notifier)

    return {
        "files": len(batch.files),
        "imported": batch.total,
        "notifications": notifications,
    }


async def run_import_pass(
    session_factory: SessionFactory | None = None,
    notifier: NotificationService | None = None,
) -> dict[str, Any]:
    """One import pass in a fresh session."""
    factory = session_factory or AsyncSessionLocal

    async with factory() as db:
        return await import_pending_files(db, notifier)


async def process_dropped_file(
    path: Path,
    session_factory: SessionFactory | None = None,
    notifier: NotificationService | None = None,
) -> ImportResult:
    """Import and archive a single file picked up by the hotfolder watcher."""
    factory = session_factory or AsyncSessionLocal

    async with factory() as db:
        result = await import_and_archive(db, path)
        if result.changes:
            await notify_favorites(db, result.changes, notifier)

    return result


def make_file_handler(
    session_factory: SessionFactory | None = None,
    notifier: NotificationService | None = None,
) -> FileHandler:
    return partial(process_dropped_file, session_factory=session_factory, notifier=notifier)


async def main() -> None:
    """Run one import pass."""
    setup_logging()
    logger.info("csv_import_job_started")

    try:
        stats = await run_import_pass()
        logger.bind(**stats).info("csv_import_job_completed")
    except Exception as e:
        logger.bind(error=str(e)).error("csv_import_job_failed")
        raise


if __name__ == "__main__":
    asyncio.run(main())
