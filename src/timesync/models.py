"""Project and time entry records.

All instants are integer epoch milliseconds, all durations integer seconds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class TimeEntry:
    """One closed interval. `timestamp` is when the interval ended."""

    timestamp: int
    duration: int

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp, "duration": self.duration}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TimeEntry":
        return cls(
            timestamp=int(data["timestamp"]),
            duration=max(0, int(data.get("duration", 0))),
        )


@dataclass
class Project:
    id: int
    name: str
    time: int = 0
    is_running: bool = False
    last_start: int | None = None
    time_entries: list[TimeEntry] = field(default_factory=list)

    def to_dict(self) -> dict:
        """CamelCase dict, same shape the browser version kept in localStorage."""
        return {
            "id": self.id,
            "name": self.name,
            "time": self.time,
            "isRunning": self.is_running,
            "lastStart": self.last_start,
            "timeEntries": [entry.to_dict() for entry in self.time_entries],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Project":
        """Restore from a snapshot. Raises KeyError/ValueError/TypeError on garbage."""
        last_start = data.get("lastStart")
        is_running = bool(data.get("isRunning", False)) and last_start is not None
        entries = data.get("timeEntries") or []
        last_start = int(last_start) if is_running else None
        return cls(
            id=int(data["id"]),
            name=str(data["name"]),
            time=max(0, int(data.get("time", 0))),
            is_running=is_running,
            last_start=last_start,
            time_entries=[TimeEntry.from_dict(entry) for entry in entries],
        )
