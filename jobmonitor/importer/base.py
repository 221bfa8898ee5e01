import enum
from datetime import datetime

from pydantic import BaseModel


class ParsedExecution(BaseModel):
    """One execution record read from a legacy CSV line."""

    execution_id: int
    job_type: str | None = None
    job_name: str | None = None
    script_path: str | None = None
    priority: int | None = None
    strategy: int | None = None
    status: str | None = None
    submitted_by: str | None = None
    submitted_at: datetime | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    host: str | None = None
    parent_execution_id: int | None = None
    duration_seconds: int | None = None
    csv_source_file: str | None = None


class ChangeType(str, enum.Enum):
    """How an import pass touched a stored execution."""

    CREATED = "created"
    UPDATED = "updated"


class ExecutionChange(BaseModel):
    """A stored execution touched by an import, with its status before the pass."""

    execution_id: int
    job_name: str
    status: str | None
    previous_status: str | None = None
    change_type: ChangeType

    @property
    def status_changed(self) -> bool:
        return self.change_type == ChangeType.CREATED or self.status != self.previous_status


class ImportResult(BaseModel):
    """Outcome of importing one CSV file."""

    file_name: str
    new_count: int = 0
    updated_count: int = 0
    skipped_lines: int = 0
    archived: bool = False
    missing: bool = False
    changes: list[ExecutionChange] = []

    @property
    def total(self) -> int:
        return self.new_count + self.updated_count


class BatchImportResult(BaseModel):
    """Outcome of importing every pending file in the drop directory."""

    files: list[ImportResult] = []

    @property
    def total(self) -> int:
        return sum(result.total for result in self.files)

    @property
    def changes(self) -> list[ExecutionChange]:
        return [change for result in self.files for change in result.changes]
