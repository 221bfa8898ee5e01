"""
Hotfolder watcher.

Observes the drop directory with watchfiles and imports each CSV file that is
created or modified, one file at a time. The periodic scheduled import is the
fallback for anything this watcher misses.
"""

import asyncio
import enum
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from watchfiles import Change, awatch

from jobmonitor.core.logging import get_logger
from jobmonitor.importer.engine import is_csv_file

logger = get_logger(__name__)

FileHandler = Callable[[Path], Awaitable[Any]]


class WatcherState(str, enum.Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"


def csv_change_filter(change: Change, path: str) -> bool:
    """Only react to CSV files being created or written."""
    return change in (Change.added, Change.modified) and is_csv_file(Path(path))


class HotfolderWatcher:
    """
    Background task that imports CSV files as they land in a directory.

    ``handler`` is awaited with the path of each file after the grace period.
    Failures for one file are logged and the watcher keeps running.
    """

    def __init__(
        self,
        directory: str | Path,
        handler: FileHandler,
        grace_period: float = 1.0,
        force_polling: bool = False,
    ) -> None:
        self.directory = Path(directory)
        self.handler = handler
        self.grace_period = grace_period
        self.force_polling = force_polling
        self.state = WatcherState.STOPPED
        self._stop_event: asyncio.Event | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self.state == WatcherState.RUNNING

    async def start(self) -> None:
        if self.state != WatcherState.STOPPED:
            logger.bind(directory=str(self.directory), state=self.state.value).info(
                "hotfolder_already_running"
            )
            return

        self.state = WatcherState.STARTING
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.state = WatcherState.STOPPED
            logger.bind(directory=str(self.directory), error=str(e)).error(
                "hotfolder_directory_unavailable"
            )
            raise

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(self._stop_event), name="hotfolder-monitor")
        self.state = WatcherState.RUNNING

        logger.bind(
            directory=str(self.directory.resolve()),
            grace_period=self.grace_period,
        ).info("hotfolder_started")

    async def stop(self, timeout: float = 5.0) -> None:
        task = self._task
        if task is None:
            self.state = WatcherState.STOPPED
            return

        if self._stop_event is not None:
            self._stop_event.set()

        try:
            await asyncio.wait_for(task, timeout=timeout)
        except TimeoutError:
            # An import is still in flight; its batch commits or rolls back atomically
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        except asyncio.CancelledError:
            pass

        self._task = None
        self._stop_event = None
        self.state = WatcherState.STOPPED
        logger.bind(directory=str(self.directory)).info("hotfolder_stopped")

    async def process_file(self, path: Path) -> None:
        """Wait for the writer to finish, then hand one file to the handler."""
        await asyncio.sleep(self.grace_period)

        if not path.exists():
            logger.bind(file=path.name).debug("hotfolder_file_already_claimed")
            return

        try:
            await self.handler(path)
        except FileNotFoundError:
            logger.bind(file=path.name).debug("hotfolder_file_already_claimed")
        except Exception as e:
            logger.bind(file=path.name, error=str(e)).error("hotfolder_file_failed")

    async def _run(self, stop_event: asyncio.Event) -> None:
        try:
            async for changes in awatch(
                self.directory,
                watch_filter=csv_change_filter,
                stop_event=stop_event,
                recursive=False,
                force_polling=self.force_polling,
            ):
                paths = sorted({Path(path) for _, path in changes}, key=lambda p: p.name.lower())
                logger.bind(files=[p.name for p in paths]).debug("hotfolder_changes_detected")

                for path in paths:
                    if stop_event.is_set():
                        break
                    await self.process_file(path)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.bind(directory=str(self.directory), error=str(e)).error("hotfolder_watch_failed")
        finally:
            self.state = WatcherState.STOPPED
