"""
Time source used for order timestamps and status history.

Services take a ``clock`` callable instead of reading the system time so that
history entries can be asserted exactly in tests.
"""
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops the offset on read)"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
