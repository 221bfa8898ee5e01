from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ExecutionResponse(BaseModel):
    """An imported execution as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    execution_id: int
    job_type: str | None = None
    job_name: str
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
    import_timestamp: datetime | None = None
    csv_source_file: str | None = None
    is_running: bool = False
    is_failed: bool = False
    is_part_of_chain: bool = False


class Statistics(BaseModel):
    """Aggregate execution statistics for one job name."""

    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    average_duration_seconds: float = 0.0


class JobSummary(BaseModel):
    """A job aggregate represented by its latest execution."""

    job_name: str
    job_type: str | None = None
    script_path: str | None = None
    latest_status: str | None = None
    latest_submission: datetime | None = None
    latest_execution: ExecutionResponse
    is_running: bool
    is_failed: bool
    is_part_of_chain: bool
    statistics: Statistics


class JobDetail(BaseModel):
    """Job detail with full history and chain context."""

    job_name: str
    job_type: str | None = None
    script_path: str | None = None
    latest_status: str | None = None
    latest_execution: ExecutionResponse
    executions: list[ExecutionResponse]
    statistics: Statistics
    has_children: bool
    child_executions: list[ExecutionResponse]
    parent_execution: ExecutionResponse | None = None


class ExecutionFilters(BaseModel):
    """Search filters for the execution list."""

    job_name: str | None = None
    status: str | None = None
    job_type: str | None = None
    host: str | None = None
    submitted_by: str | None = None
    submitted_after: datetime | None = None
    submitted_before: datetime | None = None
    started_after: datetime | None = None
    started_before: datetime | None = None
    ended_after: datetime | None = None
    ended_before: datetime | None = None


class FilterOptions(BaseModel):
    """Distinct values for the execution list dropdowns."""

    statuses: list[str]
    job_types: list[str]
    hosts: list[str]
    submitters: list[str]


class ChainNode(BaseModel):
    """One execution in a job chain with its child executions."""

    execution: ExecutionResponse
    children: list[ChainNode] = []


class ChainResponse(BaseModel):
    """Job chain containing a given execution."""

    root_execution: ExecutionResponse
    chain_tree: list[ChainNode]


ChainNode.model_rebuild()
