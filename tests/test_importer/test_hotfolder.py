"""Tests for the hotfolder watcher."""

import asyncio
import shutil
from unittest.mock import AsyncMock, patch

import pytest
from watchfiles import Change

from jobmonitor.importer.hotfolder import HotfolderWatcher, WatcherState, csv_change_filter

pytestmark = pytest.mark.asyncio


def fake_awatch(*batches):
    """Stand-in for watchfiles.awatch yielding fixed batches, then idling until stopped."""

    async def _awatch(directory, watch_filter=None, stop_event=None, **kwargs):
        for batch in batches:
            yield {(change, path) for change, path in batch if watch_filter(change, path)}
        await stop_event.wait()

    return _awatch


class TestCsvChangeFilter:
    @pytest.mark.parametrize(
        "change,path,expected",
        [
            (Change.added, "/drop/jobs.csv", True),
            (Change.modified, "/drop/JOBS.CSV", True),
            (Change.deleted, "/drop/jobs.csv", False),
            (Change.added, "/drop/jobs.txt", False),
            (Change.added, "/drop/jobs.csv.tmp", False),
        ],
    )
    async def test_filter(self, change, path, expected):
        assert csv_change_filter(change, path) is expected


class TestLifecycle:
    async def test_start_and_stop(self, tmp_path):
        watcher = HotfolderWatcher(tmp_path / "drop", AsyncMock(), grace_period=0)

        with patch("jobmonitor.importer.hotfolder.awatch", fake_awatch()):
            assert watcher.state == WatcherState.STOPPED
            await watcher.start()
            assert watcher.is_running
            assert (tmp_path / "drop").is_dir()

            await watcher.stop()

        assert watcher.state == WatcherState.STOPPED
        assert not watcher.is_running

    async def test_second_start_is_noop(self, tmp_path):
        watcher = HotfolderWatcher(tmp_path, AsyncMock(), grace_period=0)

        with patch("jobmonitor.importer.hotfolder.awatch", fake_awatch()):
            await watcher.start()
            task = watcher._task
            await watcher.start()

            assert watcher._task is task
            await watcher.stop()

    async def test_stop_without_start(self, tmp_path):
        watcher = HotfolderWatcher(tmp_path, AsyncMock())

        await watcher.stop()
        await watcher.stop()

        assert watcher.state == WatcherState.STOPPED

    async def test_restart_after_stop(self, tmp_path):
        watcher = HotfolderWatcher(tmp_path, AsyncMock(), grace_period=0)

        with patch("jobmonitor.importer.hotfolder.awatch", fake_awatch()):
            await watcher.start()
            await watcher.stop()
            await watcher.start()
            assert watcher.is_running
            await watcher.stop()

    async def test_stop_cancels_stuck_import(self, tmp_path):
        (tmp_path / "slow.csv").write_text("x")

        async def slow_handler(path):
            await asyncio.sleep(60)

        watcher = HotfolderWatcher(tmp_path, slow_handler, grace_period=0)
        batch = [(Change.added, str(tmp_path / "slow.csv"))]

        with patch("jobmonitor.importer.hotfolder.awatch", fake_awatch(batch)):
            await watcher.start()
            await asyncio.sleep(0.05)
            await watcher.stop(timeout=0.1)

        assert watcher.state == WatcherState.STOPPED


class TestDispatch:
    async def test_detected_csv_files_reach_handler_in_name_order(self, tmp_path):
        for name in ("b.csv", "A.csv", "notes.txt"):
            (tmp_path / name).write_text("x")

        handled = []
        done = asyncio.Event()

        async def handler(path):
            handled.append(path.name)
            if len(handled) == 2:
                done.set()

        watcher = HotfolderWatcher(tmp_path, handler, grace_period=0)
        batch = [
            (Change.added, str(tmp_path / "b.csv")),
            (Change.added, str(tmp_path / "A.csv")),
            (Change.modified, str(tmp_path / "b.csv")),
            (Change.added, str(tmp_path / "notes.txt")),
        ]

        with patch("jobmonitor.importer.hotfolder.awatch", fake_awatch(batch)):
            await watcher.start()
            await asyncio.wait_for(done.wait(), timeout=2)
            await watcher.stop()

        assert handled == ["A.csv", "b.csv"]

    async def test_process_file_skips_claimed_file(self, tmp_path):
        handler = AsyncMock()
        watcher = HotfolderWatcher(tmp_path, handler, grace_period=0)

        await watcher.process_file(tmp_path / "gone.csv")

        handler.assert_not_awaited()

    async def test_process_file_survives_handler_error(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("x")
        handler = AsyncMock(side_effect=RuntimeError("db down"))
        watcher = HotfolderWatcher(tmp_path, handler, grace_period=0)

        await watcher.process_file(path)

        handler.assert_awaited_once_with(path)

    async def test_handler_error_keeps_watcher_running(self, tmp_path):
        for name in ("a.csv", "b.csv"):
            (tmp_path / name).write_text("x")

        handled = []
        done = asyncio.Event()

        async def handler(path):
            handled.append(path.name)
            if path.name == "a.csv":
                raise RuntimeError("boom")
            done.set()

        watcher = HotfolderWatcher(tmp_path, handler, grace_period=0)
        batch = [
            (Change.added, str(tmp_path / "a.csv")),
            (Change.added, str(tmp_path / "b.csv")),
        ]

        with patch("jobmonitor.importer.hotfolder.awatch", fake_awatch(batch)):
            await watcher.start()
            await asyncio.wait_for(done.wait(), timeout=2)
            assert watcher.is_running
            await watcher.stop()

        assert handled == ["a.csv", "b.csv"]


async def test_real_watcher_imports_only_top_level_csv(tmp_path):
    drop = tmp_path / "drop"
    archive = drop / "processed"
    archive.mkdir(parents=True)
    seen: list[str] = []
    arrived = asyncio.Event()

    async def archive_handler(path):
        seen.append(path.name)
        shutil.move(str(path), str(archive / path.name))
        arrived.set()

    watcher = HotfolderWatcher(drop, archive_handler, grace_period=0.1, force_polling=True)
    await watcher.start()
    try:
        # Let the polling watcher take its first snapshot
        await asyncio.sleep(0.5)
        (drop / "notes.txt").write_text("not an export")
        (drop / "jobs.csv").write_text("header\n")

        await asyncio.wait_for(arrived.wait(), timeout=10)
        # The move into processed/ must not come back as a new file
        await asyncio.sleep(1.0)
    finally:
        await watcher.stop()

    assert seen == ["jobs.csv"]
    assert (archive / "jobs.csv").exists()
    assert (drop / "notes.txt").exists()
    assert watcher.state == WatcherState.STOPPED
