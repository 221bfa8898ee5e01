from jobmonitor.schemas.common import Page
from jobmonitor.schemas.execution import (
    ChainNode,
    ChainResponse,
    ExecutionFilters,
    ExecutionResponse,
    FilterOptions,
    JobDetail,
    JobSummary,
    Statistics,
)
from jobmonitor.schemas.favorite import FavoriteInfo, FavoriteResponse, FavoriteSettingsUpdate

__all__ = [
    "Page",
    "ChainNode",
    "ChainResponse",
    "ExecutionFilters",
    "ExecutionResponse",
    "FilterOptions",
    "JobDetail",
    "JobSummary",
    "Statistics",
    "FavoriteInfo",
    "FavoriteResponse",
    "FavoriteSettingsUpdate",
]
