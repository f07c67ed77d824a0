"""UTC timestamp helpers used for cohort windows."""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    Naive datetimes (SQLite hands those back) are treated as UTC; aware
    datetimes are converted.

    Example:
        >>> ensure_utc(datetime(2025, 11, 4, 12, 0)).tzinfo == timezone.utc
        True
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def window_start(now: datetime, seconds: int) -> datetime:
    """Return the instant ``seconds`` before ``now``.

    Example:
        >>> now = datetime(2025, 11, 10, 9, 0, tzinfo=timezone.utc)
        >>> window_start(now, 7 * 86400)
        datetime.datetime(2025, 11, 3, 9, 0, tzinfo=datetime.timezone.utc)
    """
    return ensure_utc(now) - timedelta(seconds=seconds)
