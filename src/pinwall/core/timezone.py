"""UTC timezone enforcement and clock helpers.

Sets the TZ environment variable to UTC and provides the clock used for
calendar-date comparisons (daily upload limit, key validity window).

Timestamps are stored as naive UTC datetimes in every table.
"""

import os
from datetime import date, datetime, timedelta, timezone
from typing import Callable

# Set UTC timezone for the entire application
os.environ["TZ"] = "UTC"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Return the [start, end) naive UTC datetimes of a calendar day."""
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)
