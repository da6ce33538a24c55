"""Project timer state machine: pure logic, no I/O.

Every transition takes the current instant as `now_ms` (epoch milliseconds)
so callers inject the clock and tests stay deterministic. Durations are
whole seconds; sub-second remainders are floored away.
"""

from __future__ import annotations

from typing import Iterable, NamedTuple

from .models import Project, TimeEntry
from .parsing import parse_non_negative_int


class HoursMinutes(NamedTuple):
    hours: int
    minutes: int


def format_time(seconds: int) -> HoursMinutes:
    """Split seconds into whole hours and minutes, dropping the remainder."""
    seconds = max(0, int(seconds))
    return HoursMinutes(seconds // 3600, (seconds % 3600) // 60)


def format_duration(seconds: int) -> str:
    """Format seconds as 'Xh Ym' string."""
    hours, minutes = format_time(seconds)
    return f"{hours}h {minutes}m"


def format_hours(seconds: int) -> str:
    """Format seconds as decimal hours, e.g. '1.5h'."""
    return f"{seconds / 3600:.1f}h"


def elapsed_seconds(since_ms: int, now_ms: int) -> int:
    """Whole seconds between two instants. A clock that went backwards gives 0."""
    return max(0, (now_ms - since_ms) // 1000)


def displayed_total(project: Project, now_ms: int) -> int:
    """Accumulated time plus the still-open slice of a running timer."""
    if not project.is_running or project.last_start is None:
        return project.time
    return project.time + elapsed_seconds(project.last_start, now_ms)


# ---- Transitions ----

def start(project: Project, now_ms: int) -> bool:
    """Idle -> Running. Returns False (and changes nothing) if already running."""
    if project.is_running:
        return False
    project.is_running = True
    project.last_start = now_ms
    return True


def pause(project: Project, now_ms: int) -> TimeEntry | None:
    """Running -> Idle, always closing the interval with a ledger entry.

    The entry is appended even when it lasted zero seconds. Pausing an idle
    project does nothing and returns None.
    """
    if not project.is_running:
        return None
    entry = _close_interval(project, now_ms)
    project.time_entries.append(entry)
    return entry


def stop(project: Project, now_ms: int) -> TimeEntry | None:
    """Running -> Idle (or Idle -> Idle).

    Same accounting as pause, except a zero-second interval leaves no entry.
    """
    if not project.is_running:
        return None
    entry = _close_interval(project, now_ms)
    if entry.duration > 0:
        project.time_entries.append(entry)
        return entry
    return None


def tick(projects: Iterable[Project], now_ms: int) -> int:
    """Fold the elapsed slice of every running timer into its total.

    Never touches the ledger. Returns how many projects advanced.
    """
    advanced = 0
    for project in projects:
        if not project.is_running or project.last_start is None:
            continue
        elapsed = elapsed_seconds(project.last_start, now_ms)
        if elapsed == 0:
            # Keep the base so fractions of a second add up across ticks.
            continue
        project.time += elapsed
        project.last_start = now_ms
        advanced += 1
    return advanced


def set_initial_time(project: Project, hours, minutes) -> int:
    """Overwrite the accumulated total. Running state and ledger are kept."""
    project.time = parse_non_negative_int(hours) * 3600 + parse_non_negative_int(minutes) * 60
    return project.time


# ---- Internal ----

def _close_interval(project: Project, now_ms: int) -> TimeEntry:
    """Account the open slice since the last start or tick and log it."""
    elapsed = elapsed_seconds(project.last_start, now_ms)
    project.time += elapsed
    entry = TimeEntry(timestamp=now_ms, duration=elapsed)
    project.is_running = False
    project.last_start = None
    return entry
