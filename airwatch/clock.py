"""
Time helpers shared by the detection and storage layers.

All timestamps in this system are integer milliseconds since the Unix epoch,
matching the persisted alert format. Calendar days are UTC days.
"""

import time
from datetime import date, datetime, timezone

DAY_FORMAT = "%Y-%m-%d"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def ms_to_datetime(timestamp_ms: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)


def day_key(timestamp_ms: int) -> str:
    """Return the UTC calendar day (YYYY-MM-DD) containing a timestamp."""
    return ms_to_datetime(timestamp_ms).strftime(DAY_FORMAT)


def parse_day(value: str) -> date:
    """
    Parse a YYYY-MM-DD string.

    Raises:
        ValueError: If the value is not a valid calendar date.
    """
    return datetime.strptime(value, DAY_FORMAT).date()


def iso_from_ms(timestamp_ms: int) -> str:
    """ISO-8601 rendering of an epoch-millisecond timestamp."""
    return ms_to_datetime(timestamp_ms).isoformat()
