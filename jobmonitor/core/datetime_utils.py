"""Centralized datetime utilities for consistent timezone handling.

Service-owned columns (import timestamps, sessions, run history) hold naive
UTC. Timestamps read from the legacy CSV exports are naive local wall-clock
values stored as-is, so windows over them are cut from local time.

Usage:
    from jobmonitor.core.datetime_utils import get_local_cutoff, utc_now

    cutoff = get_local_cutoff(hours=24)
    failures = query.filter(ImportedJobExecution.ended_at >= cutoff)
"""

from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    """Get current UTC time as naive datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


def is_expired(expires_at: datetime) -> bool:
    """Check if a timestamp has expired.

    Args:
        expires_at: Expiry timestamp (naive UTC)

    Returns:
        True if current time is past expires_at
    """
    return utc_now() > expires_at


def local_now() -> datetime:
    """Current local wall-clock time, comparable with CSV-sourced timestamps."""
    return datetime.now()


def get_local_cutoff(hours: int = 0, days: int = 0, minutes: int = 0) -> datetime:
    """Cutoff for columns holding local wall-clock values (started_at, ended_at, ...)."""
    return local_now() - timedelta(hours=hours, days=days, minutes=minutes)


def format_display(dt: datetime) -> str:
    """Format a datetime the way notification messages show it (dd.MM.yyyy HH:mm:ss)."""
    return dt.strftime("%d.%m.%Y %H:%M:%S")


def format_duration(duration_seconds: int | None) -> str:
    """Format a duration in seconds as a short human string.

    Examples:
        3725 -> "1h 2m 5s"
        125  -> "2m 5s"
        7    -> "7s"
    """
    if duration_seconds is None:
        return "N/A"

    hours, remainder = divmod(duration_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"
