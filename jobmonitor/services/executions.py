"""Query surface over imported executions.

Executions are only ever written by the import engine; everything here is
read-only.
"""

from datetime import datetime

from sqlalchemy import Select, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from jobmonitor.core.datetime_utils import get_local_cutoff
from jobmonitor.core.logging import get_logger
from jobmonitor.models.execution import ExecutionStatus, ImportedJobExecution
from jobmonitor.schemas.common import Page
from jobmonitor.schemas.execution import (
    ExecutionFilters,
    ExecutionResponse,
    FilterOptions,
    JobDetail,
    JobSummary,
    Statistics,
)

logger = get_logger(__name__)

Execution = ImportedJobExecution

# Most recently submitted first; executions without a submission time last
NEWEST_FIRST = (
    Execution.submitted_at.desc().nulls_last(),
    Execution.execution_id.desc(),
)


async def get_execution(db: AsyncSession, execution_id: int) -> Execution | None:
    return await db.get(Execution, execution_id)


def _latest_per_job_query() -> Select[tuple[Execution]]:
    ranked = select(
        Execution.execution_id,
        func.row_number()
        .over(partition_by=Execution.job_name, order_by=NEWEST_FIRST)
        .label("position"),
    ).subquery()

    return (
        select(Execution)
        .join(ranked, ranked.c.execution_id == Execution.execution_id)
        .where(ranked.c.position == 1)
        .order_by(Execution.job_name)
    )


async def list_latest_per_job(db: AsyncSession) -> list[Execution]:
    """One execution per job name: the most recently submitted one."""
    result = await db.execute(_latest_per_job_query())
    return list(result.scalars().all())


async def get_latest_execution(db: AsyncSession, job_name: str) -> Execution | None:
    result = await db.execute(
        select(Execution).where(Execution.job_name == job_name).order_by(*NEWEST_FIRST).limit(1)
    )
    return result.scalar_one_or_none()


async def list_by_job_name(db: AsyncSession, job_name: str) -> list[Execution]:
    result = await db.execute(
        select(Execution).where(Execution.job_name == job_name).order_by(*NEWEST_FIRST)
    )
    return list(result.scalars().all())


async def list_children(db: AsyncSession, parent_execution_id: int) -> list[Execution]:
    result = await db.execute(
        select(Execution)
        .where(Execution.parent_execution_id == parent_execution_id)
        .order_by(*NEWEST_FIRST)
    )
    return list(result.scalars().all())


async def list_running(db: AsyncSession) -> list[Execution]:
    result = await db.execute(
        select(Execution)
        .where(Execution.status == ExecutionStatus.RUNNING.value)
        .order_by(Execution.started_at.desc().nulls_last(), Execution.execution_id.desc())
    )
    return list(result.scalars().all())


async def list_recent_failures(db: AsyncSession, hours: int = 24) -> list[Execution]:
    """Failed executions that ended within the trailing window."""
    cutoff = get_local_cutoff(hours=hours)
    result = await db.execute(
        select(Execution)
        .where(
            Execution.status == ExecutionStatus.FAILED.value,
            Execution.ended_at >= cutoff,
        )
        .order_by(Execution.ended_at.desc(), Execution.execution_id.desc())
    )
    return list(result.scalars().all())


async def list_imported_after(db: AsyncSession, since: datetime) -> list[Execution]:
    result = await db.execute(
        select(Execution)
        .where(Execution.import_timestamp > since)
        .order_by(Execution.execution_id.desc())
    )
    return list(result.scalars().all())


async def list_failures_imported_after(
    db: AsyncSession,
    job_name: str,
    since: datetime,
) -> list[Execution]:
    result = await db.execute(
        select(Execution)
        .where(
            Execution.job_name == job_name,
            Execution.status == ExecutionStatus.FAILED.value,
            Execution.import_timestamp > since,
        )
        .order_by(Execution.execution_id)
    )
    return list(result.scalars().all())


def _contains(column, value: str):  # type: ignore[no-untyped-def]
    return func.lower(column).contains(value.lower(), autoescape=True)


def _apply_filters(stmt: Select, filters: ExecutionFilters) -> Select:
    if filters.job_name:
        stmt = stmt.where(_contains(Execution.job_name, filters.job_name))
    if filters.status:
        stmt = stmt.where(Execution.status == filters.status)
    if filters.job_type:
        stmt = stmt.where(_contains(Execution.job_type, filters.job_type))
    if filters.host:
        stmt = stmt.where(_contains(Execution.host, filters.host))
    if filters.submitted_by:
        stmt = stmt.where(_contains(Execution.submitted_by, filters.submitted_by))

    bounds = (
        (Execution.submitted_at, filters.submitted_after, filters.submitted_before),
        (Execution.started_at, filters.started_after, filters.started_before),
        (Execution.ended_at, filters.ended_after, filters.ended_before),
    )
    for column, after, before in bounds:
        if after is not None:
            stmt = stmt.where(column >= after)
        if before is not None:
            stmt = stmt.where(column <= before)

    return stmt


async def search_executions(
    db: AsyncSession,
    filters: ExecutionFilters,
    page: int = 0,
    size: int = 20,
) -> Page[ExecutionResponse]:
    """Filtered, paginated execution list ordered by execution id, highest first."""
    count_stmt = _apply_filters(select(func.count()).select_from(Execution), filters)
    total = (await db.execute(count_stmt)).scalar_one()

    stmt = (
        _apply_filters(select(Execution), filters)
        .order_by(Execution.execution_id.desc())
        .offset(page * size)
        .limit(size)
    )
    result = await db.execute(stmt)
    content = [ExecutionResponse.model_validate(e) for e in result.scalars().all()]

    return Page[ExecutionResponse].build(content, page=page, size=size, total=total)


async def _distinct(db: AsyncSession, column) -> list[str]:  # type: ignore[no-untyped-def]
    result = await db.execute(select(column).where(column.is_not(None)).distinct().order_by(column))
    return list(result.scalars().all())


async def get_filter_options(db: AsyncSession) -> FilterOptions:
    return FilterOptions(
        statuses=await _distinct(db, Execution.status),
        job_types=await _distinct(db, Execution.job_type),
        hosts=await _distinct(db, Execution.host),
        submitters=await _distinct(db, Execution.submitted_by),
    )


def _statistics_query() -> Select:
    done = Execution.status == ExecutionStatus.DONE.value
    return select(
        Execution.job_name,
        func.count(),
        func.sum(case((done, 1), else_=0)),
        func.sum(case((Execution.status == ExecutionStatus.FAILED.value, 1), else_=0)),
        func.avg(case((done, Execution.duration_seconds), else_=None)),
    ).group_by(Execution.job_name)


def _to_statistics(row) -> Statistics:  # type: ignore[no-untyped-def]
    _, total, successful, failed, average = row
    return Statistics(
        total_executions=total or 0,
        successful_executions=successful or 0,
        failed_executions=failed or 0,
        average_duration_seconds=float(average) if average is not None else 0.0,
    )


async def get_statistics(db: AsyncSession, job_name: str) -> Statistics:
    result = await db.execute(_statistics_query().where(Execution.job_name == job_name))
    row = result.one_or_none()
    return _to_statistics(row) if row else Statistics()


async def get_all_statistics(db: AsyncSession) -> dict[str, Statistics]:
    result = await db.execute(_statistics_query())
    return {row[0]: _to_statistics(row) for row in result.all()}


def build_summary(latest: Execution, statistics: Statistics) -> JobSummary:
    return JobSummary(
        job_name=latest.job_name,
        job_type=latest.job_type,
        script_path=latest.script_path,
        latest_status=latest.status,
        latest_submission=latest.submitted_at,
        latest_execution=ExecutionResponse.model_validate(latest),
        is_running=latest.is_running,
        is_failed=latest.is_failed,
        is_part_of_chain=latest.is_part_of_chain,
        statistics=statistics,
    )


async def list_job_summaries(
    db: AsyncSession,
    page: int = 0,
    size: int = 20,
) -> Page[JobSummary]:
    """Job summaries sorted by job name, one per distinct job."""
    latest = await list_latest_per_job(db)
    statistics = await get_all_statistics(db)

    summaries = [
        build_summary(execution, statistics.get(execution.job_name, Statistics()))
        for execution in latest
    ]
    start = page * size
    return Page[JobSummary].build(
        summaries[start : start + size],
        page=page,
        size=size,
        total=len(summaries),
    )


async def get_job_summary(db: AsyncSession, job_name: str) -> JobSummary | None:
    latest = await get_latest_execution(db, job_name)
    if latest is None:
        return None
    return build_summary(latest, await get_statistics(db, job_name))


async def get_job_detail(db: AsyncSession, job_name: str) -> JobDetail | None:
    """Full history and chain context for one job, or None if it was never imported."""
    executions = await list_by_job_name(db, job_name)
    if not executions:
        return None

    latest = executions[0]
    children = await list_children(db, latest.execution_id)

    parent = None
    if latest.is_part_of_chain:
        parent = await get_execution(db, latest.parent_execution_id)  # type: ignore[arg-type]

    return JobDetail(
        job_name=job_name,
        job_type=latest.job_type,
        script_path=latest.script_path,
        latest_status=latest.status,
        latest_execution=ExecutionResponse.model_validate(latest),
        executions=[ExecutionResponse.model_validate(e) for e in executions],
        statistics=await get_statistics(db, job_name),
        has_children=bool(children),
        child_executions=[ExecutionResponse.model_validate(e) for e in children],
        parent_execution=ExecutionResponse.model_validate(parent) if parent else None,
    )
