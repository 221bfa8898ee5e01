from jobmonitor.models.base import Base
from jobmonitor.models.execution import ExecutionStatus, ImportedJobExecution
from jobmonitor.models.favorite import JobFavorite
from jobmonitor.models.job_run import JobRun
from jobmonitor.models.user import Session, User

__all__ = [
    "Base",
    "ExecutionStatus",
    "ImportedJobExecution",
    "JobFavorite",
    "JobRun",
    "Session",
    "User",
]
