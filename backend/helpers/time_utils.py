"""
Time window helpers for statistics endpoints.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from models.exceptions import InvalidPeriodException

STATS_PERIODS: dict[str, timedelta] = {
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
}
DEFAULT_STATS_PERIOD = "7d"


def period_start(period: str, now: Optional[datetime] = None) -> datetime:
    """
    Get the start of a statistics window.

    Args:
        period: One of 1h, 24h, 7d, 30d, 90d
        now: End of the window (defaults to current UTC time)

    Returns:
        UTC datetime at the start of the window

    Raises:
        InvalidPeriodException: If period is not supported
    """
    delta = STATS_PERIODS.get(period)
    if delta is None:
        raise InvalidPeriodException(period, list(STATS_PERIODS))
    return (now or datetime.now(timezone.utc)) - delta


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to a naive datetime read back from the database."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt
