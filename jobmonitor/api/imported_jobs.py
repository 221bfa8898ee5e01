"""Imported job executions, chains, favorites and the manual import trigger.

Fixed paths are registered before the `/{job_name}` routes so a job name
never shadows them.
"""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from jobmonitor.core.logging import get_logger
from jobmonitor.core.rate_limit import IMPORT_TRIGGER_LIMIT, limiter
from jobmonitor.dependencies import (
    AdminUser,
    AppSettings,
    Config,
    CurrentUser,
    DBSession,
    Hotfolder,
    Notifier,
)
from jobmonitor.importer.errors import ImportBatchError, ImportPipelineError
from jobmonitor.jobs.csv_import import import_pending_files
from jobmonitor.schemas.common import Page
from jobmonitor.schemas.execution import (
    ChainResponse,
    ExecutionFilters,
    ExecutionResponse,
    FilterOptions,
    JobDetail,
    JobSummary,
)
from jobmonitor.schemas.favorite import (
    FavoriteInfo,
    FavoriteResponse,
    FavoriteSettingsUpdate,
    FavoriteStatusResponse,
)
from jobmonitor.schemas.imports import (
    HotfolderStatusResponse,
    ImportConfigResponse,
    ImportTriggerResponse,
    TestNotificationRequest,
    TestNotificationResponse,
)
from jobmonitor.services import chains, executions, favorites
from jobmonitor.services.notification_service import NotificationError

logger = get_logger(__name__)

router = APIRouter()


def _page_size(config: Config, size: int | None) -> int:
    if size is None:
        return config.importer.default_page_size
    return min(size, config.importer.max_page_size)


@router.get("", response_model=Page[JobSummary])
async def list_jobs(
    db: DBSession,
    config: Config,
    page: int = Query(default=0, ge=0),
    size: int | None = Query(default=None, ge=1),
) -> Page[JobSummary]:
    """One summary per job name, sorted by name."""
    return await executions.list_job_summaries(db, page=page, size=_page_size(config, size))


@router.get("/executions", response_model=Page[ExecutionResponse])
async def search_executions(
    db: DBSession,
    config: Config,
    filters: Annotated[ExecutionFilters, Query()],
    page: int = Query(default=0, ge=0),
    size: int | None = Query(default=None, ge=1),
) -> Page[ExecutionResponse]:
    """Filtered execution list, highest execution id first."""
    return await executions.search_executions(
        db, filters, page=page, size=_page_size(config, size)
    )


@router.get("/executions/filters", response_model=FilterOptions)
async def get_filter_options(db: DBSession) -> FilterOptions:
    return await executions.get_filter_options(db)


@router.get("/executions/{execution_id}", response_model=ExecutionResponse)
async def get_execution(execution_id: int, db: DBSession) -> ExecutionResponse:
    execution = await executions.get_execution(db, execution_id)
    if execution is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Execution not found")
    return ExecutionResponse.model_validate(execution)


@router.get("/executions/{execution_id}/chain", response_model=ChainResponse)
async def get_execution_chain(execution_id: int, db: DBSession) -> ChainResponse:
    """Root of the chain containing an execution, with the tree below it."""
    chain = await chains.get_job_chain(db, execution_id)
    if chain is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Execution not found")
    return chain


@router.get("/running", response_model=list[ExecutionResponse])
async def list_running(db: DBSession) -> list[ExecutionResponse]:
    running = await executions.list_running(db)
    return [ExecutionResponse.model_validate(e) for e in running]


@router.get("/failures", response_model=list[ExecutionResponse])
async def list_recent_failures(
    db: DBSession,
    config: Config,
    hours: int | None = Query(default=None, ge=1, le=24 * 30),
) -> list[ExecutionResponse]:
    """Failed executions that ended within the last `hours` (default 24)."""
    window = hours or config.importer.recent_failure_hours
    failures = await executions.list_recent_failures(db, hours=window)
    return [ExecutionResponse.model_validate(e) for e in failures]


@router.get("/favorites", response_model=list[FavoriteInfo])
async def list_favorites(user: CurrentUser, db: DBSession) -> list[FavoriteInfo]:
    return await favorites.list_favorites(db, user.id)


@router.post("/import", response_model=ImportTriggerResponse)
@limiter.limit(IMPORT_TRIGGER_LIMIT)
async def trigger_import(
    request: Request,
    user: AdminUser,
    db: DBSession,
    notifier: Notifier,
) -> ImportTriggerResponse | JSONResponse:
    """
    Import every CSV file waiting in the drop directory now.

    Answers 500 with the number of records that did import when one or more
    files failed.
    """
    logger.bind(user_id=user.id).info("manual_import_triggered")

    try:
        stats = await import_pending_files(db, notifier)
    except ImportBatchError as e:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": f"Import failed: {e}", "imported": e.imported},
        )
    except ImportPipelineError as e:
        logger.bind(error=str(e)).error("manual_import_failed")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": f"Import failed: {e}", "imported": 0},
        )

    return ImportTriggerResponse(
        imported=stats["imported"],
        files=stats["files"],
        notifications_sent=stats["notifications"],
    )


@router.get("/import/config", response_model=ImportConfigResponse)
async def get_import_config(user: AdminUser, settings: AppSettings) -> ImportConfigResponse:
    return ImportConfigResponse(
        import_directory=settings.import_directory,
        processed_directory=settings.processed_directory,
        hotfolder_enabled=settings.hotfolder_enabled,
        scheduler_enabled=settings.scheduler_enabled,
    )


@router.get("/hotfolder/status", response_model=HotfolderStatusResponse)
async def get_hotfolder_status(
    hotfolder: Hotfolder,
    settings: AppSettings,
) -> HotfolderStatusResponse:
    if hotfolder is None:
        return HotfolderStatusResponse(
            state="stopped",
            is_running=False,
            directory=settings.import_directory,
        )
    return HotfolderStatusResponse(
        state=hotfolder.state.value,
        is_running=hotfolder.is_running,
        directory=str(hotfolder.directory),
    )


@router.post("/notifications/test", response_model=TestNotificationResponse)
async def send_test_notification(
    body: TestNotificationRequest,
    user: AdminUser,
    notifier: Notifier,
) -> TestNotificationResponse:
    try:
        sent = await notifier.send_test(body.email)
    except NotificationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    if not sent:
        return TestNotificationResponse(ok=False, message="Test notification could not be sent")
    return TestNotificationResponse(ok=True, message=f"Test notification sent to {body.email}")


@router.get("/{job_name}", response_model=JobDetail)
async def get_job(job_name: str, db: DBSession) -> JobDetail:
    detail = await executions.get_job_detail(db, job_name)
    if detail is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return detail


@router.post("/{job_name}/favorite", response_model=FavoriteResponse)
async def add_favorite(job_name: str, user: CurrentUser, db: DBSession) -> FavoriteResponse:
    try:
        favorite = await favorites.add_favorite(db, user.id, job_name)
    except favorites.FavoriteError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return FavoriteResponse.model_validate(favorite)


@router.delete("/{job_name}/favorite")
async def remove_favorite(job_name: str, user: CurrentUser, db: DBSession) -> dict[str, bool]:
    removed = await favorites.remove_favorite(db, user.id, job_name)
    return {"removed": removed}


@router.get("/{job_name}/favorite/status", response_model=FavoriteStatusResponse)
async def get_favorite_status(
    job_name: str,
    user: CurrentUser,
    db: DBSession,
) -> FavoriteStatusResponse:
    return FavoriteStatusResponse(is_favorited=await favorites.is_favorited(db, user.id, job_name))


@router.put("/{job_name}/favorite/settings", response_model=FavoriteResponse)
async def update_favorite_settings(
    job_name: str,
    update: FavoriteSettingsUpdate,
    user: CurrentUser,
    db: DBSession,
) -> FavoriteResponse:
    try:
        favorite = await favorites.update_settings(db, user.id, job_name, update)
    except favorites.FavoriteError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return FavoriteResponse.model_validate(favorite)
