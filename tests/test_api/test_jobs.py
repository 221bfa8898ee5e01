"""Tests for scheduled import monitoring endpoints."""

from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient

from jobmonitor.core.scheduler import HOURLY_SCHEDULE_ID, INTERVAL_SCHEDULE_ID
from jobmonitor.models.job_run import JobRun

pytestmark = pytest.mark.asyncio

T0 = datetime(2024, 1, 15, 10, 0, 0)


@pytest_asyncio.fixture
async def import_runs(db_session):
    runs = [
        JobRun(
            job_id=INTERVAL_SCHEDULE_ID,
            scheduled_at=T0,
            started_at=T0,
            finished_at=T0 + timedelta(seconds=3),
            outcome="success",
        ),
        JobRun(
            job_id=HOURLY_SCHEDULE_ID,
            scheduled_at=T0 + timedelta(hours=1),
            started_at=T0 + timedelta(hours=1),
            finished_at=T0 + timedelta(hours=1, seconds=1),
            outcome="error",
            error="1 file(s) failed to import: a.csv",
        ),
    ]
    db_session.add_all(runs)
    await db_session.flush()
    return runs


class TestImportRuns:
    async def test_most_recent_first(self, client: AsyncClient, import_runs):
        response = await client.get("/api/jobs/runs")

        assert response.status_code == 200
        data = response.json()
        assert [r["job_id"] for r in data] == [HOURLY_SCHEDULE_ID, INTERVAL_SCHEDULE_ID]
        assert data[1]["duration_seconds"] == 3.0

    async def test_filter_by_outcome(self, client: AsyncClient, import_runs):
        response = await client.get("/api/jobs/runs", params={"outcome": "error"})

        [run] = response.json()
        assert run["error"].startswith("1 file(s) failed")

    async def test_filter_by_schedule(self, client: AsyncClient, import_runs):
        response = await client.get("/api/jobs/runs", params={"job_id": INTERVAL_SCHEDULE_ID})

        assert [r["outcome"] for r in response.json()] == ["success"]


async def test_schedules_empty_without_scheduler(client: AsyncClient):
    response = await client.get("/api/jobs/schedules")

    assert response.status_code == 200
    assert response.json() == []
