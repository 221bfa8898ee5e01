from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, computed_field


class ImportTriggerResponse(BaseModel):
    """Result of a manual import."""

    imported: int
    files: int
    notifications_sent: int
    message: str = "Import completed successfully"


class ImportConfigResponse(BaseModel):
    """Effective import directory configuration."""

    import_directory: str
    processed_directory: str
    hotfolder_enabled: bool
    scheduler_enabled: bool


class HotfolderStatusResponse(BaseModel):
    state: str
    is_running: bool
    directory: str


class TestNotificationRequest(BaseModel):
    email: EmailStr


class TestNotificationResponse(BaseModel):
    ok: bool
    message: str


class ScheduleResponse(BaseModel):
    """A registered import schedule."""

    id: str
    task_id: str
    trigger: str
    next_fire_time: str | None
    last_fire_time: str | None


class ImportRunResponse(BaseModel):
    """One scheduled import run recorded in job_runs."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    job_id: str
    scheduled_at: datetime
    started_at: datetime
    finished_at: datetime
    outcome: str
    error: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()
