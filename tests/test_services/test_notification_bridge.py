"""Tests for the post-import favorites scan."""

import pytest

from jobmonitor.importer.base import ChangeType, ExecutionChange
from jobmonitor.importer.engine import import_csv_file
from jobmonitor.services.notification_bridge import notify_favorites
from jobmonitor.services.notification_service import NotificationKind

pytestmark = pytest.mark.asyncio


def created(execution_id: int, job_name: str = "NightlyETL", status: str = "FAIL"):
    return ExecutionChange(
        execution_id=execution_id,
        job_name=job_name,
        status=status,
        change_type=ChangeType.CREATED,
    )


def updated(execution_id: int, previous: str, status: str, job_name: str = "NightlyETL"):
    return ExecutionChange(
        execution_id=execution_id,
        job_name=job_name,
        status=status,
        previous_status=previous,
        change_type=ChangeType.UPDATED,
    )


def sent_kinds(notifier):
    return [(c.args[0], c.args[2].execution_id) for c in notifier.notify.await_args_list]


class TestFailureNotifications:
    async def test_failure_is_notified_once_across_imports(
        self, db_session, tmp_path, csv_row, write_csv, favorite_factory, notifier
    ):
        favorite = await favorite_factory()
        path = write_csv(tmp_path / "a.csv", [csv_row(500, status="FAIL")])

        first = await import_csv_file(db_session, path)
        assert await notify_favorites(db_session, first.changes, notifier) == 1

        second = await import_csv_file(db_session, path)
        assert await notify_favorites(db_session, second.changes, notifier) == 0

        assert sent_kinds(notifier) == [(NotificationKind.FAILURE, 500)]
        assert favorite.last_notified_execution_id == 500

    async def test_overlapping_older_run_failing_later_is_notified(
        self, db_session, tmp_path, csv_row, write_csv, favorite_factory, notifier
    ):
        favorite = await favorite_factory()
        first = write_csv(
            tmp_path / "a.csv",
            [csv_row(100, status="STRT"), csv_row(101, status="FAIL")],
        )
        second = write_csv(tmp_path / "b.csv", [csv_row(100, status="FAIL")])

        result = await import_csv_file(db_session, first)
        await notify_favorites(db_session, result.changes, notifier)
        result = await import_csv_file(db_session, second)
        await notify_favorites(db_session, result.changes, notifier)

        assert sent_kinds(notifier) == [
            (NotificationKind.FAILURE, 101),
            (NotificationKind.FAILURE, 100),
        ]
        assert favorite.last_notified_execution_id == 101

    async def test_unchanged_failure_below_watermark_stays_silent(
        self, db_session, execution_factory, favorite_factory, notifier
    ):
        await favorite_factory(last_notified_execution_id=900)
        await execution_factory(800, status="FAIL")

        sent = await notify_favorites(db_session, [updated(800, "FAIL", "FAIL")], notifier)

        assert sent == 0
        notifier.notify.assert_not_awaited()

    async def test_watermark_moves_forward_in_id_order(
        self, db_session, execution_factory, favorite_factory, notifier
    ):
        favorite = await favorite_factory()
        await execution_factory(11, status="FAIL")
        await execution_factory(10, status="FAIL")

        sent = await notify_favorites(db_session, [created(11), created(10)], notifier)

        assert sent == 2
        assert [eid for _, eid in sent_kinds(notifier)] == [10, 11]
        assert favorite.last_notified_execution_id == 11

    async def test_failed_dispatch_does_not_advance_watermark(
        self, db_session, execution_factory, favorite_factory, notifier
    ):
        favorite = await favorite_factory()
        await execution_factory(42, status="FAIL")
        notifier.notify.return_value = False

        assert await notify_favorites(db_session, [created(42)], notifier) == 0
        assert favorite.last_notified_execution_id is None

        notifier.notify.return_value = True
        assert await notify_favorites(db_session, [updated(42, "FAIL", "FAIL")], notifier) == 1
        assert favorite.last_notified_execution_id == 42

    async def test_failure_toggle_off(self, db_session, execution_factory, favorite_factory, notifier):
        await favorite_factory(notify_on_failure=False, notify_on_success=True)
        await execution_factory(1, status="FAIL")

        assert await notify_favorites(db_session, [created(1)], notifier) == 0


class TestStatusTransitions:
    async def test_success_only_on_status_change(
        self, db_session, execution_factory, favorite_factory, notifier
    ):
        await favorite_factory(notify_on_failure=False, notify_on_success=True)
        await execution_factory(7, status="DONE")

        assert await notify_favorites(db_session, [updated(7, "DONE", "DONE")], notifier) == 0
        assert await notify_favorites(db_session, [updated(7, "STRT", "DONE")], notifier) == 1
        assert sent_kinds(notifier) == [(NotificationKind.SUCCESS, 7)]

    async def test_start_notification(self, db_session, execution_factory, favorite_factory, notifier):
        await favorite_factory(notify_on_failure=False, notify_on_start=True)
        await execution_factory(3, status="STRT")

        assert await notify_favorites(db_session, [created(3, status="STRT")], notifier) == 1
        assert sent_kinds(notifier) == [(NotificationKind.START, 3)]

    async def test_queued_then_done_sends_success(
        self, db_session, tmp_path, csv_row, write_csv, favorite_factory, notifier
    ):
        await favorite_factory(notify_on_success=True)
        path = tmp_path / "jobs.csv"

        write_csv(path, [csv_row(100, status="QUEU", ended_at="")])
        first = await import_csv_file(db_session, path)
        assert await notify_favorites(db_session, first.changes, notifier) == 0

        write_csv(path, [csv_row(100, status="DONE")])
        second = await import_csv_file(db_session, path)
        assert await notify_favorites(db_session, second.changes, notifier) == 1

        assert sent_kinds(notifier) == [(NotificationKind.SUCCESS, 100)]


class TestScanScope:
    async def test_every_subscriber_is_notified(
        self, db_session, execution_factory, favorite_factory, user_factory, notifier
    ):
        for _ in range(3):
            await favorite_factory(user=await user_factory())
        await execution_factory(1, status="FAIL")

        assert await notify_favorites(db_session, [created(1)], notifier) == 3

    async def test_no_changes(self, db_session, notifier):
        assert await notify_favorites(db_session, [], notifier) == 0
        notifier.notify.assert_not_awaited()

    async def test_disabled_notifier(self, db_session, execution_factory, favorite_factory, notifier):
        await favorite_factory()
        await execution_factory(1, status="FAIL")
        notifier.enabled = False

        assert await notify_favorites(db_session, [created(1)], notifier) == 0
        notifier.notify.assert_not_awaited()

    async def test_unfavorited_job_is_ignored(
        self, db_session, execution_factory, favorite_factory, notifier
    ):
        await favorite_factory(job_name="Other")
        await execution_factory(1, status="FAIL")

        assert await notify_favorites(db_session, [created(1)], notifier) == 0
