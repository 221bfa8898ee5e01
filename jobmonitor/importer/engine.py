"""
CSV import engine.

Reads legacy job-log exports, reconciles each row against the stored
executions by execution id, and commits one batch per file. A file is moved
to the archive directory only after its batch committed, so a crash between
commit and move re-imports the file on the next pass; the upsert makes that
safe.
"""

import asyncio
import shutil
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession

from jobmonitor.config import get_settings
from jobmonitor.core.datetime_utils import utc_now
from jobmonitor.core.logging import get_logger
from jobmonitor.importer.base import (
    BatchImportResult,
    ChangeType,
    ExecutionChange,
    ImportResult,
    ParsedExecution,
)
from jobmonitor.importer.errors import CsvFileError, ImportBatchError, ImportDirectoryError
from jobmonitor.importer.parser import parse_line
from jobmonitor.models.execution import ImportedJobExecution

logger = get_logger(__name__)

# Fields refreshed when an execution id is seen again. Everything else is
# fixed at first sighting.
MUTABLE_FIELDS = (
    "status",
    "started_at",
    "ended_at",
    "duration_seconds",
    "priority",
    "strategy",
    "host",
    "csv_source_file",
)

# Serialises read-modify-write passes between the hotfolder and the scheduler
_import_lock = asyncio.Lock()


def is_csv_file(path: Path) -> bool:
    return path.suffix.lower() == ".csv"


def ensure_directories(
    import_directory: str | Path | None = None,
    processed_directory: str | Path | None = None,
) -> tuple[Path, Path]:
    """Create the drop and archive directories if absent."""
    settings = get_settings()
    import_path = Path(import_directory or settings.import_directory)
    processed_path = Path(processed_directory or settings.processed_directory)

    for path in (import_path, processed_path):
        if path.is_dir():
            continue
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ImportDirectoryError(f"Cannot create directory {path}: {e}") from e
        logger.bind(directory=str(path.resolve())).info("import_directory_created")

    return import_path, processed_path


def list_pending_files(import_path: Path) -> list[Path]:
    """List CSV files waiting in the drop directory, in name order."""
    try:
        files = [p for p in import_path.iterdir() if p.is_file() and is_csv_file(p)]
        return sorted(files, key=lambda p: p.name.lower())
    except OSError as e:
        raise ImportDirectoryError(f"Cannot list directory {import_path}: {e}") from e


def _read_lines(csv_file: Path) -> list[str]:
    with open(csv_file, encoding="utf-8-sig", errors="replace", newline="") as f:
        return f.read().splitlines()


def apply_update(existing: ImportedJobExecution, latest: ParsedExecution) -> None:
    """Overwrite the mutable fields of a stored execution and refresh provenance."""
    for field in MUTABLE_FIELDS:
        setattr(existing, field, getattr(latest, field))
    existing.import_timestamp = utc_now()


async def upsert_execution(
    db: AsyncSession,
    parsed: ParsedExecution,
    pending: dict[int, ImportedJobExecution],
) -> ExecutionChange | None:
    """
    Insert or partially update one execution.

    ``pending`` holds executions already touched in the current batch so a
    repeated id within one file updates the same object instead of adding
    a duplicate. Returns None when a new row cannot be created.
    """
    execution = pending.get(parsed.execution_id)
    if execution is None:
        execution = await db.get(ImportedJobExecution, parsed.execution_id)

    if execution is not None:
        previous_status = execution.status
        apply_update(execution, parsed)
        pending[parsed.execution_id] = execution
        logger.bind(
            execution_id=parsed.execution_id,
            previous_status=previous_status,
            status=parsed.status,
        ).debug("execution_updated")
        return ExecutionChange(
            execution_id=execution.execution_id,
            job_name=execution.job_name,
            status=execution.status,
            previous_status=previous_status,
            change_type=ChangeType.UPDATED,
        )

    if parsed.job_name is None:
        logger.bind(execution_id=parsed.execution_id).warning("execution_missing_job_name")
        return None

    execution = ImportedJobExecution(
        **parsed.model_dump(),
        import_timestamp=utc_now(),
    )
    db.add(execution)
    pending[parsed.execution_id] = execution
    logger.bind(execution_id=parsed.execution_id).debug("execution_created")
    return ExecutionChange(
        execution_id=execution.execution_id,
        job_name=execution.job_name,
        status=execution.status,
        change_type=ChangeType.CREATED,
    )


def _merge_change(
    changes: dict[int, ExecutionChange],
    change: ExecutionChange,
) -> None:
    """Keep one change per execution, remembering the status from before the pass."""
    earlier = changes.get(change.execution_id)
    if earlier is None:
        changes[change.execution_id] = change
        return
    changes[change.execution_id] = change.model_copy(
        update={
            "previous_status": earlier.previous_status,
            "change_type": earlier.change_type,
        }
    )


async def _import_file(db: AsyncSession, csv_file: Path) -> ImportResult:
    result = ImportResult(file_name=csv_file.name)

    try:
        lines = await asyncio.to_thread(_read_lines, csv_file)
    except FileNotFoundError:
        # Another trigger archived it first
        logger.bind(file=csv_file.name).info("csv_file_already_processed")
        result.missing = True
        return result
    except OSError as e:
        raise CsvFileError(f"Cannot read {csv_file}: {e}") from e

    logger.bind(file=csv_file.name, lines=len(lines)).info("csv_import_started")

    pending: dict[int, ImportedJobExecution] = {}
    changes: dict[int, ExecutionChange] = {}

    try:
        for line_number, line in enumerate(lines, start=1):
            if line_number == 1:
                continue

            try:
                parsed = parse_line(line, csv_file.name)
            except Exception as e:
                logger.bind(file=csv_file.name, line=line_number, error=str(e)).warning(
                    "csv_line_parse_failed"
                )
                result.skipped_lines += 1
                continue

            if parsed is None:
                result.skipped_lines += 1
                continue

            change = await upsert_execution(db, parsed, pending)
            if change is None:
                result.skipped_lines += 1
                continue

            if change.change_type == ChangeType.CREATED and change.execution_id not in changes:
                result.new_count += 1
            else:
                result.updated_count += 1
            _merge_change(changes, change)

        if pending:
            await db.commit()
    except Exception:
        await db.rollback()
        raise

    result.changes = sorted(changes.values(), key=lambda c: c.execution_id)

    logger.bind(
        file=csv_file.name,
        new=result.new_count,
        updated=result.updated_count,
        skipped=result.skipped_lines,
    ).info("csv_import_completed")

    return result


async def import_csv_file(db: AsyncSession, csv_file: Path) -> ImportResult:
    """
    Import one CSV file without moving it.

    Returns the per-file result; ``total`` counts new plus updated rows.
    A file that no longer exists yields an empty result flagged ``missing``.
    """
    async with _import_lock:
        return await _import_file(db, csv_file)


def archive_file(csv_file: Path, processed_path: Path) -> bool:
    """Move an imported file into the archive, replacing a same-named file."""
    target = processed_path / csv_file.name
    try:
        target.unlink(missing_ok=True)
        shutil.move(str(csv_file), str(target))
    except FileNotFoundError:
        logger.bind(file=csv_file.name).info("csv_file_already_archived")
        return False

    logger.bind(file=csv_file.name, target=str(target)).info("csv_file_archived")
    return True


async def import_and_archive(
    db: AsyncSession,
    csv_file: Path,
    processed_directory: str | Path | None = None,
) -> ImportResult:
    """Import one CSV file and archive it once its batch is committed."""
    _, processed_path = ensure_directories(csv_file.parent, processed_directory)

    async with _import_lock:
        result = await _import_file(db, csv_file)
        if not result.missing:
            result.archived = archive_file(csv_file, processed_path)

    return result


async def import_all_csv_files(
    db: AsyncSession,
    import_directory: str | Path | None = None,
    processed_directory: str | Path | None = None,
) -> BatchImportResult:
    """
    Import and archive every CSV file in the drop directory.

    Files are processed one after another. A failing file is logged, left
    in place and reported through ImportBatchError after the remaining files
    were processed. Directory errors abort the whole pass.
    """
    import_path, processed_path = ensure_directories(import_directory, processed_directory)
    batch = BatchImportResult()
    failures: dict[str, str] = {}

    for csv_file in list_pending_files(import_path):
        try:
            async with _import_lock:
                result = await _import_file(db, csv_file)
                if not result.missing:
                    result.archived = archive_file(csv_file, processed_path)
        except Exception as e:
            logger.bind(file=csv_file.name, error=str(e)).error("csv_import_failed")
            failures[csv_file.name] = str(e)
            continue

        batch.files.append(result)

    logger.bind(
        files=len(batch.files),
        failed=len(failures),
        total=batch.total,
    ).info("csv_import_pass_completed")

    if failures:
        raise ImportBatchError(failures, batch.files)

    return batch
