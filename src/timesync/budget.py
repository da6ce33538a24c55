"""Per-project time budgets.

A limit map holds project id -> budget seconds. A missing key means the
project has no budget at all, which is different from a budget of zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import MutableMapping

from .parsing import parse_minutes_to_seconds, parse_number

MIN_LIMIT_MINUTES = 1


@dataclass(frozen=True)
class BudgetStatus:
    limit: int
    percent: float  # clamped to [0, 100], for progress bars
    ratio: float  # unclamped percentage
    remaining_hours: float


def set_limit(limits: MutableMapping[int, int], project_id: int, minutes) -> int | None:
    """Store a budget given in minutes, or clear it when the input is empty."""
    seconds = parse_minutes_to_seconds(minutes)
    if seconds is None:
        limits.pop(project_id, None)
    else:
        limits[project_id] = seconds
    return seconds


def adjust_limit(limits: MutableMapping[int, int], project_id: int, delta_hours) -> int:
    """Shift a budget by whole or fractional hours, never below one minute.

    Always leaves a limit in place, so adjusting cannot go back to "no budget".
    """
    current_minutes = limits.get(project_id, 0) / 60
    new_minutes = max(MIN_LIMIT_MINUTES, current_minutes + parse_number(delta_hours) * 60)
    limits[project_id] = round(new_minutes * 60)
    return limits[project_id]


def progress(time_seconds: int, limit: int | None) -> BudgetStatus | None:
    """Progress towards a budget. None when there is no budget to measure."""
    if not limit or limit <= 0:
        return None
    ratio = time_seconds / limit * 100
    return BudgetStatus(
        limit=limit,
        percent=min(max(ratio, 0.0), 100.0),
        ratio=ratio,
        remaining_hours=max(0.0, (limit - time_seconds) / 3600),
    )
