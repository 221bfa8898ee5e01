"""
Parser for the legacy job-log CSV format.

Column layout (header row is skipped by the engine):

    ID, Typ, Name, Script, Prio, Strat., Status, von, am, gestartet,
    beendet, auf, parent, "Laufzeit (s)"

Rows may come from spreadsheet tools, so quoted fields are honoured.
"""

import csv

from jobmonitor.core.logging import get_logger
from jobmonitor.importer.base import ParsedExecution
from jobmonitor.importer.timestamps import parse_timestamp

logger = get_logger(__name__)

COL_ID = 0
COL_TYPE = 1
COL_NAME = 2
COL_SCRIPT = 3
COL_PRIORITY = 4
COL_STRATEGY = 5
COL_STATUS = 6
COL_SUBMITTED_BY = 7
COL_SUBMITTED_AT = 8
COL_STARTED_AT = 9
COL_ENDED_AT = 10
COL_HOST = 11
COL_PARENT = 12
COL_DURATION = 13

EXPECTED_COLUMNS = 14


def split_line(line: str) -> list[str]:
    """Split one CSV line into trimmed fields, honouring quotes."""
    line = line.rstrip("\r\n").strip()
    rows = list(csv.reader([line], skipinitialspace=True))
    if not rows:
        return []
    return [field.strip() for field in rows[0]]


def parse_text(value: str | None) -> str | None:
    """Return trimmed text, or None when empty."""
    if value is None or not value.strip():
        return None
    return value.strip()


def parse_int(value: str | None) -> int | None:
    """Return an integer, or None when empty or not numeric."""
    text = parse_text(value)
    if text is None or not text.lstrip("+-").isdigit():
        return None
    try:
        return int(text)
    except ValueError:
        return None


def parse_line(line: str, source_file: str) -> ParsedExecution | None:
    """
    Parse one CSV data line into a ParsedExecution.

    Returns None when the line cannot be reconciled: fewer than 14 columns,
    or an execution id that is missing, zero or not numeric. Every other
    field is parsed permissively and becomes None when unusable.
    """
    columns = split_line(line)

    if len(columns) < EXPECTED_COLUMNS:
        logger.bind(columns=len(columns), expected=EXPECTED_COLUMNS).warning(
            "csv_line_insufficient_columns"
        )
        return None

    execution_id = parse_int(columns[COL_ID])
    if not execution_id:
        logger.bind(raw_id=columns[COL_ID], line=line.strip()).warning(
            "csv_line_invalid_execution_id"
        )
        return None

    return ParsedExecution(
        execution_id=execution_id,
        job_type=parse_text(columns[COL_TYPE]),
        job_name=parse_text(columns[COL_NAME]),
        script_path=parse_text(columns[COL_SCRIPT]),
        priority=parse_int(columns[COL_PRIORITY]),
        strategy=parse_int(columns[COL_STRATEGY]),
        status=parse_text(columns[COL_STATUS]),
        submitted_by=parse_text(columns[COL_SUBMITTED_BY]),
        submitted_at=parse_timestamp(columns[COL_SUBMITTED_AT]),
        started_at=parse_timestamp(columns[COL_STARTED_AT]),
        ended_at=parse_timestamp(columns[COL_ENDED_AT]),
        host=parse_text(columns[COL_HOST]),
        parent_execution_id=parse_int(columns[COL_PARENT]),
        duration_seconds=parse_int(columns[COL_DURATION]),
        csv_source_file=source_file,
    )
