from datetime import datetime

from pydantic import BaseModel, ConfigDict

from jobmonitor.schemas.execution import ExecutionResponse, JobSummary


class FavoriteResponse(BaseModel):
    """A job favorite with its notification toggles."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    job_name: str
    user_id: int
    created_at: datetime | None = None
    notify_on_failure: bool
    notify_on_success: bool
    notify_on_start: bool
    last_notified_execution_id: int | None = None


class FavoriteSettingsUpdate(BaseModel):
    """Partial update of notification toggles; omitted fields are unchanged."""

    notify_on_failure: bool | None = None
    notify_on_success: bool | None = None
    notify_on_start: bool | None = None


class FavoriteInfo(BaseModel):
    """A favorite together with the latest state of its job."""

    favorite: FavoriteResponse
    latest_execution: ExecutionResponse | None = None
    job_summary: JobSummary | None = None


class FavoriteStatusResponse(BaseModel):
    is_favorited: bool
