from fastapi import APIRouter

from jobmonitor.api.imported_jobs import router as imported_jobs_router
from jobmonitor.api.jobs import router as jobs_router

api_router = APIRouter()

# API routes at /api/*
api_router.include_router(imported_jobs_router, prefix="/api/imported-jobs", tags=["imported-jobs"])
api_router.include_router(jobs_router, prefix="/api", tags=["jobs"])
