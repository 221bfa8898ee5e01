"""Execution records reconciled from the legacy CSV job log."""

import enum
from datetime import datetime

from sqlalchemy import BigInteger, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from jobmonitor.models.base import Base


class ExecutionStatus(str, enum.Enum):
    """Status codes written by the legacy scheduler."""

    QUEUED = "QUEU"
    RUNNING = "STRT"
    DONE = "DONE"
    FAILED = "FAIL"


class ImportedJobExecution(Base):
    """One execution of a legacy job, keyed by the upstream execution id."""

    __tablename__ = "imported_job_executions"

    execution_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    job_type: Mapped[str | None] = mapped_column(String(50))  # PE, SCRIPT, UOW
    job_name: Mapped[str] = mapped_column(String(200), index=True)
    script_path: Mapped[str | None] = mapped_column(String(500))
    priority: Mapped[int | None] = mapped_column(Integer)
    strategy: Mapped[int | None] = mapped_column(Integer)
    # Raw status code, kept verbatim so unknown upstream codes survive
    status: Mapped[str | None] = mapped_column(String(20), index=True)
    submitted_by: Mapped[str | None] = mapped_column(String(100))
    submitted_at: Mapped[datetime | None] = mapped_column(index=True)
    started_at: Mapped[datetime | None]
    ended_at: Mapped[datetime | None]
    host: Mapped[str | None] = mapped_column(String(100))
    parent_execution_id: Mapped[int | None] = mapped_column(BigInteger, index=True)
    duration_seconds: Mapped[int | None] = mapped_column(BigInteger)
    import_timestamp: Mapped[datetime] = mapped_column(default=func.now(), index=True)
    csv_source_file: Mapped[str | None] = mapped_column(String(500))

    @property
    def is_part_of_chain(self) -> bool:
        return self.parent_execution_id is not None and self.parent_execution_id > 0

    @property
    def is_running(self) -> bool:
        return self.status == ExecutionStatus.RUNNING.value

    @property
    def is_failed(self) -> bool:
        return self.status == ExecutionStatus.FAILED.value

    @property
    def is_completed(self) -> bool:
        return self.status == ExecutionStatus.DONE.value

    def __repr__(self) -> str:
        return f"<ImportedJobExecution {self.execution_id} {self.job_name} {self.status}>"
