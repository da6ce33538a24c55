"""Period totals over time entry ledgers.

Stateless and recomputed on every call. Period boundaries follow the local
calendar of the machine running the code.
"""

from __future__ import annotations

import calendar
import logging
from collections.abc import Sequence
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable

from .models import Project, TimeEntry

logger = logging.getLogger("timesync.aggregation")

DEFAULT_WEEK_START = calendar.SUNDAY


class Period(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


def period_start(now_ms: int, period: Period, week_start: int = DEFAULT_WEEK_START) -> int:
    """Local midnight opening the day, week or month that contains `now_ms`.

    `week_start` uses the `datetime.weekday()` numbering (Monday=0, Sunday=6).
    """
    now = datetime.fromtimestamp(now_ms / 1000)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == Period.DAY:
        start = midnight
    elif period == Period.WEEK:
        days_back = (midnight.weekday() - week_start) % 7
        start = midnight - timedelta(days=days_back)
    elif period == Period.MONTH:
        start = midnight.replace(day=1)
    else:
        raise ValueError(f"Unknown period: {period}")
    # Naive local wall time; timestamp() resolves it against the local zone.
    return int(start.timestamp() * 1000)


def get_time_in_period(
    entries: Sequence[TimeEntry],
    period: Period | str,
    now_ms: int,
    week_start: int = DEFAULT_WEEK_START,
) -> int:
    """Sum entry durations closed at or after the start of the period."""
    if not isinstance(entries, Sequence) or isinstance(entries, (str, bytes)):
        return 0
    try:
        period = Period(period)
    except ValueError:
        logger.debug(f"Aggregation: unknown period {period!r}, returning 0")
        return 0

    boundary = period_start(now_ms, period, week_start)
    return sum(entry.duration for entry in entries if entry.timestamp >= boundary)


def breakdown(
    projects: Iterable[Project],
    period: Period | str,
    now_ms: int,
    week_start: int = DEFAULT_WEEK_START,
) -> list[tuple[Project, int]]:
    """Per-project totals for one period, in project order."""
    return [
        (project, get_time_in_period(project.time_entries, period, now_ms, week_start))
        for project in projects
    ]
