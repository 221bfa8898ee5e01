"""History of scheduled import passes."""

from datetime import datetime

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from jobmonitor.models.base import Base


class JobRun(Base):
    """One release of a scheduled import job, as reported by APScheduler."""

    __tablename__ = "job_runs"
    __table_args__ = (Index("ix_job_runs_job_id_scheduled_at", "job_id", "scheduled_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[str] = mapped_column(String(100))
    scheduled_at: Mapped[datetime] = mapped_column(index=True)
    started_at: Mapped[datetime]
    finished_at: Mapped[datetime]
    # JobOutcome name: success, error, missed_start_deadline, cancelled, ...
    outcome: Mapped[str] = mapped_column(String(40))
    error: Mapped[str | None] = mapped_column(Text, default=None)

    def __repr__(self) -> str:
        return f"<JobRun {self.job_id} {self.outcome} at {self.scheduled_at}>"
