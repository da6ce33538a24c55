"""Per-project time tracking: timers, ledgers, budgets and period reports."""

from .aggregation import Period, breakdown, get_time_in_period, period_start
from .budget import BudgetStatus, adjust_limit, progress, set_limit
from .models import Project, TimeEntry
from .repository import JsonFileRepository, MemoryRepository, Repository, SqliteRepository
from .scheduler import CancelHandle, Ticker, schedule_every
from .store import TimeStore, wall_clock_ms
from .timer import HoursMinutes, displayed_total, format_duration, format_time

__all__ = [
    "BudgetStatus",
    "CancelHandle",
    "HoursMinutes",
    "JsonFileRepository",
    "MemoryRepository",
    "Period",
    "Project",
    "Repository",
    "SqliteRepository",
    "Ticker",
    "TimeEntry",
    "TimeStore",
    "adjust_limit",
    "breakdown",
    "displayed_total",
    "format_duration",
    "format_time",
    "get_time_in_period",
    "period_start",
    "progress",
    "schedule_every",
    "set_limit",
    "wall_clock_ms",
]
