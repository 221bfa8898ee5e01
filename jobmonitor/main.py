from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from jobmonitor.api.router import api_router
from jobmonitor.config import get_config, get_settings
from jobmonitor.core.logging import get_logger, setup_logging
from jobmonitor.core.rate_limit import limiter, rate_limit_exceeded_handler
from jobmonitor.core import scheduler as scheduler_module
from jobmonitor.core.scheduler import start_scheduler, stop_scheduler
from jobmonitor.importer.engine import ensure_directories
from jobmonitor.importer.hotfolder import HotfolderWatcher
from jobmonitor.jobs.csv_import import make_file_handler

settings = get_settings()

logger = get_logger(__name__)


async def start_hotfolder() -> HotfolderWatcher | None:
    """Start the drop-directory watcher unless disabled."""
    if not settings.hotfolder_enabled:
        logger.info("hotfolder_disabled_by_config")
        return None

    config = get_config().importer
    watcher = HotfolderWatcher(
        settings.import_directory,
        make_file_handler(),
        grace_period=config.grace_period_seconds,
        force_polling=config.force_polling,
    )
    await watcher.start()
    return watcher


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    # Startup
    setup_logging()
    ensure_directories()
    app.state.hotfolder = await start_hotfolder()
    await start_scheduler()
    yield
    # Shutdown
    if app.state.hotfolder is not None:
        await app.state.hotfolder.stop()
    await stop_scheduler()


app = FastAPI(
    title="Job Monitor",
    description="Imports legacy job-log CSV exports and tracks job executions",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
)

app.state.hotfolder = None
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.base_url, "http://localhost:5173"],  # Vite dev server
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router)


@app.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """Health check that also reports the import triggers."""
    hotfolder: HotfolderWatcher | None = request.app.state.hotfolder
    return {
        "status": "healthy",
        "hotfolder": hotfolder.state.value if hotfolder is not None else "disabled",
        "scheduler": scheduler_module.scheduler is not None,
    }
