"""Persistence adapters for the project collection and the limit map.

A missing or unreadable snapshot always loads as an empty collection; parse
failures are logged and never reach the timer logic.
"""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import tempfile
from pathlib import Path
from typing import Any, Mapping, Protocol, Sequence

import aiosqlite

from .models import Project, TimeEntry

logger = logging.getLogger("timesync.repository")


class Repository(Protocol):
    async def load_projects(self) -> list[Project]: ...

    async def save_projects(self, projects: Sequence[Project]) -> None: ...

    async def load_limits(self) -> dict[int, int]: ...

    async def save_limits(self, limits: Mapping[int, int]) -> None: ...


def _projects_from_raw(raw: Any) -> list[Project]:
    if not isinstance(raw, list):
        return []
    projects = []
    for item in raw:
        if not isinstance(item, dict):
            logger.warning(f"Repository: skipping malformed project {item!r}")
            continue
        try:
            projects.append(Project.from_dict(item))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Repository: skipping malformed project {item!r}: {e}")
    return projects


def _limits_from_raw(raw: Any) -> dict[int, int]:
    if not isinstance(raw, dict):
        return {}
    limits = {}
    for key, value in raw.items():
        try:
            project_id, seconds = int(key), int(value)
        except (TypeError, ValueError):
            logger.warning(f"Repository: skipping malformed limit {key!r}: {value!r}")
            continue
        # The browser version stored 0 for a cleared limit.
        if seconds > 0:
            limits[project_id] = seconds
    return limits


class MemoryRepository:
    """Keeps snapshots as plain dicts. Used for tests and throwaway stores."""

    def __init__(self, projects: Sequence[dict] | None = None, limits: Mapping[Any, int] | None = None):
        self.projects_raw: list[dict] = list(projects or [])
        self.limits_raw: dict[str, int] = {str(k): v for k, v in (limits or {}).items()}
        self.saves = 0

    async def load_projects(self) -> list[Project]:
        return _projects_from_raw(self.projects_raw)

    async def save_projects(self, projects: Sequence[Project]) -> None:
        self.projects_raw = [project.to_dict() for project in projects]
        self.saves += 1

    async def load_limits(self) -> dict[int, int]:
        return _limits_from_raw(self.limits_raw)

    async def save_limits(self, limits: Mapping[int, int]) -> None:
        self.limits_raw = {str(k): v for k, v in limits.items()}
        self.saves += 1


class JsonFileRepository:
    """Single JSON document: {"projects": [...], "timeLimits": {"<id>": seconds}}."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Repository: unreadable snapshot {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def load_projects(self) -> list[Project]:
        return _projects_from_raw(self._read().get("projects"))

    async def save_projects(self, projects: Sequence[Project]) -> None:
        self._write("projects", [project.to_dict() for project in projects])

    async def load_limits(self) -> dict[int, int]:
        return _limits_from_raw(self._read().get("timeLimits"))

    async def save_limits(self, limits: Mapping[int, int]) -> None:
        self._write("timeLimits", {str(k): v for k, v in limits.items()})


class SqliteRepository:
    """aiosqlite-backed snapshots. Each save replaces the stored state in one transaction."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._initialized = False

    # ── DB Schema ──────────────────────────────────────────────

    @staticmethod
    async def init_tables(db: aiosqlite.Connection):
        """Create tables if missing."""
        await db.execute("PRAGMA journal_mode=WAL")
        await db.execute("PRAGMA busy_timeout=5000")
        await db.execute("""
            CREATE TABLE IF NOT EXISTS projects (
                id INTEGER PRIMARY KEY,
                position INTEGER NOT NULL,
                name TEXT NOT NULL,
                time INTEGER NOT NULL DEFAULT 0,
                is_running INTEGER NOT NULL DEFAULT 0,
                last_start INTEGER
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS time_entries (
                project_id INTEGER NOT NULL REFERENCES projects(id),
                seq INTEGER NOT NULL,
                timestamp INTEGER NOT NULL,
                duration INTEGER NOT NULL,
                PRIMARY KEY (project_id, seq)
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS time_limits (
                project_id INTEGER PRIMARY KEY,
                seconds INTEGER NOT NULL
            )
        """)

    async def _ensure_tables(self, db: aiosqlite.Connection):
        if not self._initialized:
            await self.init_tables(db)
            await db.commit()
            self._initialized = True

    # ── Load / Save ────────────────────────────────────────────

    async def load_projects(self) -> list[Project]:
        if not self.db_path.exists():
            return []
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await self._ensure_tables(db)
                db.row_factory = aiosqlite.Row
                cursor = await db.execute("SELECT * FROM projects ORDER BY position")
                rows = await cursor.fetchall()
                cursor = await db.execute(
                    "SELECT project_id, timestamp, duration FROM time_entries ORDER BY project_id, seq"
                )
                entry_rows = await cursor.fetchall()
        except sqlite3.DatabaseError as e:
            logger.warning(f"Repository: unreadable database {self.db_path}: {e}")
            return []

        entries: dict[int, list[TimeEntry]] = {}
        for row in entry_rows:
            entries.setdefault(row["project_id"], []).append(
                TimeEntry(timestamp=row["timestamp"], duration=row["duration"])
            )

        projects = []
        for row in rows:
            is_running = bool(row["is_running"]) and row["last_start"] is not None
            projects.append(Project(
                id=row["id"],
                name=row["name"],
                time=max(0, row["time"]),
                is_running=is_running,
                last_start=row["last_start"] if is_running else None,
                time_entries=entries.get(row["id"], []),
            ))
        return projects

    async def save_projects(self, projects: Sequence[Project]) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.db_path) as db:
            await self._ensure_tables(db)
            await db.execute("DELETE FROM time_entries")
            await db.execute("DELETE FROM projects")
            await db.executemany("""
                INSERT INTO projects (id, position, name, time, is_running, last_start)
                VALUES (?, ?, ?, ?, ?, ?)
            """, [
                (p.id, position, p.name, p.time, 1 if p.is_running else 0, p.last_start)
                for position, p in enumerate(projects)
            ])
            await db.executemany("""
                INSERT INTO time_entries (project_id, seq, timestamp, duration)
                VALUES (?, ?, ?, ?)
            """, [
                (p.id, seq, entry.timestamp, entry.duration)
                for p in projects
                for seq, entry in enumerate(p.time_entries)
            ])
            await db.commit()

    async def load_limits(self) -> dict[int, int]:
        if not self.db_path.exists():
            return {}
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await self._ensure_tables(db)
                cursor = await db.execute("SELECT project_id, seconds FROM time_limits")
                rows = await cursor.fetchall()
        except sqlite3.DatabaseError as e:
            logger.warning(f"Repository: unreadable database {self.db_path}: {e}")
            return {}
        return _limits_from_raw({project_id: seconds for project_id, seconds in rows})

    async def save_limits(self, limits: Mapping[int, int]) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.db_path) as db:
            await self._ensure_tables(db)
            await db.execute("DELETE FROM time_limits")
            await db.executemany(
                "INSERT INTO time_limits (project_id, seconds) VALUES (?, ?)",
                list(limits.items()),
            )
            await db.commit()
