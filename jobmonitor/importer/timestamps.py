"""Timestamp parsing for legacy job-log exports.

The exporter writes three layouts depending on its version, differing only
in fractional-second precision:

    2024-01-15 10:30:00.1234567   (7 digits)
    2024-01-15 10:30:00.123       (3 digits)
    2024-01-15 10:30:00           (none)
"""

from datetime import datetime

from jobmonitor.core.logging import get_logger

logger = get_logger(__name__)

# (strptime format, exact fraction digits); tried in order, most precise first
TIMESTAMP_LAYOUTS: tuple[tuple[str, int | None], ...] = (
    ("%Y-%m-%d %H:%M:%S.%f", 7),
    ("%Y-%m-%d %H:%M:%S.%f", 3),
    ("%Y-%m-%d %H:%M:%S", None),
)


def _fit_fraction(text: str, digits: int | None) -> str | None:
    """
    Return text ready for strptime if its fraction matches the layout.

    strptime's %f accepts at most six digits, so a seven-digit fraction is
    truncated to microseconds (datetime has no finer resolution).
    """
    if digits is None:
        return text

    head, sep, fraction = text.rpartition(".")
    if not sep or len(fraction) != digits or not fraction.isdigit():
        return None
    return f"{head}.{fraction[:6]}"


def parse_timestamp(value: str | None) -> datetime | None:
    """
    Parse a CSV timestamp, trying each known layout in order.

    Returns None for empty input or when no layout matches. Never raises.
    """
    if value is None or not value.strip():
        return None

    text = value.strip()
    for fmt, digits in TIMESTAMP_LAYOUTS:
        candidate = _fit_fraction(text, digits)
        if candidate is None:
            continue
        try:
            return datetime.strptime(candidate, fmt)
        except ValueError:
            continue

    logger.bind(value=value).warning("timestamp_parse_failed")
    return None
