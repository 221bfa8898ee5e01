"""Scheduled import monitoring endpoints."""

from fastapi import APIRouter, Query
from sqlalchemy import select

from jobmonitor.core.scheduler import get_job_schedules
from jobmonitor.dependencies import DBSession
from jobmonitor.models.job_run import JobRun
from jobmonitor.schemas.imports import ImportRunResponse, ScheduleResponse

router = APIRouter()


@router.get("/jobs/schedules", response_model=list[ScheduleResponse])
async def list_schedules() -> list[ScheduleResponse]:
    """Import schedules with next/last fire times; empty when the scheduler is off."""
    return [ScheduleResponse(**s) for s in await get_job_schedules()]


@router.get("/jobs/runs", response_model=list[ImportRunResponse])
async def list_import_runs(
    db: DBSession,
    job_id: str | None = Query(default=None, description="Filter by schedule ID"),
    outcome: str | None = Query(default=None, description="Filter by outcome, e.g. error"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> list[ImportRunResponse]:
    """Scheduled import history, most recent first."""
    query = select(JobRun).order_by(JobRun.scheduled_at.desc())

    if job_id:
        query = query.where(JobRun.job_id == job_id)
    if outcome:
        query = query.where(JobRun.outcome == outcome)

    result = await db.execute(query.offset(offset).limit(limit))
    return [ImportRunResponse.model_validate(run) for run in result.scalars().all()]
