"""TimeStore: the project collection and limit map behind one lock.

Every public coroutine applies one transition atomically and then snapshots
the state through the injected repository. Unknown project ids are a no-op
that returns None, so stale references from a UI never raise.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from typing import Callable

from . import budget, timer
from .aggregation import DEFAULT_WEEK_START, Period, breakdown, get_time_in_period
from .models import Project, TimeEntry
from .repository import Repository

logger = logging.getLogger("timesync.store")

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


class TimeStore:
    """Owns projects and limits; serializes transitions; persists after each one."""

    def __init__(
        self,
        repository: Repository,
        clock: Clock = wall_clock_ms,
        week_start: int = DEFAULT_WEEK_START,
    ):
        self.repository = repository
        self.clock = clock
        self.week_start = week_start
        self._projects: list[Project] = []
        self._limits: dict[int, int] = {}
        self._lock = asyncio.Lock()

    # ---- Read-only views ----

    @property
    def projects(self) -> list[Project]:
        return list(self._projects)

    @property
    def limits(self) -> dict[int, int]:
        return dict(self._limits)

    def get(self, project_id: int) -> Project | None:
        for project in self._projects:
            if project.id == project_id:
                return project
        return None

    def displayed_total(self, project: Project) -> int:
        return timer.displayed_total(project, self.clock())

    def budget(self, project_id: int) -> budget.BudgetStatus | None:
        project = self.get(project_id)
        if project is None:
            return None
        return budget.progress(project.time, self._limits.get(project_id))

    def get_time_in_period(self, project_id: int, period: Period | str) -> int:
        project = self.get(project_id)
        if project is None:
            return 0
        return get_time_in_period(project.time_entries, period, self.clock(), self.week_start)

    def breakdown(self, period: Period | str) -> list[tuple[Project, int]]:
        return breakdown(self._projects, period, self.clock(), self.week_start)

    @staticmethod
    def format_time(seconds: int) -> timer.HoursMinutes:
        return timer.format_time(seconds)

    # ---- Lifecycle ----

    async def load(self) -> "TimeStore":
        """Replace in-memory state with the repository snapshot."""
        projects = await self.repository.load_projects()
        limits = await self.repository.load_limits()
        known = {project.id for project in projects}
        async with self._lock:
            self._projects = projects
            self._limits = {pid: seconds for pid, seconds in limits.items() if pid in known}
        logger.info(f"Store: loaded {len(projects)} projects, {len(self._limits)} limits")
        return self

    async def add(self, name: str) -> Project | None:
        name = (name or "").strip()
        if not name:
            return None
        async with self._lock:
            project = Project(id=self._next_id(), name=name)
            self._projects.append(project)
            await self._save_projects()
        logger.info(f"Store: added project {project.id} '{name}'")
        return project

    async def delete(self, project_id: int) -> Project | None:
        async with self._lock:
            project = self.get(project_id)
            if project is None:
                return None
            self._projects.remove(project)
            await self._save_projects()
            if self._limits.pop(project_id, None) is not None:
                await self._save_limits()
        logger.info(f"Store: deleted project {project_id} '{project.name}'")
        return project

    # ---- Timer transitions ----

    async def start(self, project_id: int) -> Project | None:
        async with self._lock:
            project = self.get(project_id)
            if project is None:
                return None
            if timer.start(project, self.clock()):
                await self._save_projects()
                logger.info(f"Store: started {project_id}")
            return project

    async def pause(self, project_id: int) -> Project | None:
        async with self._lock:
            project = self.get(project_id)
            if project is None:
                return None
            entry = timer.pause(project, self.clock())
            if entry is not None:
                await self._save_projects()
                self._log_entry("paused", project, entry)
            return project

    async def stop(self, project_id: int) -> Project | None:
        async with self._lock:
            project = self.get(project_id)
            if project is None:
                return None
            was_running = project.is_running
            entry = timer.stop(project, self.clock())
            if was_running:
                await self._save_projects()
                self._log_entry("stopped", project, entry)
            return project

    async def tick(self) -> int:
        """Reconcile every running timer. Scheduled once per second."""
        async with self._lock:
            advanced = timer.tick(self._projects, self.clock())
            if advanced:
                await self._save_projects()
            return advanced

    async def set_initial_time(self, project_id: int, hours, minutes) -> Project | None:
        async with self._lock:
            project = self.get(project_id)
            if project is None:
                return None
            timer.set_initial_time(project, hours, minutes)
            await self._save_projects()
            logger.info(f"Store: initial time of {project_id} set to {timer.format_duration(project.time)}")
            return project

    # ---- Budgets ----

    async def set_limit(self, project_id: int, minutes) -> int | None:
        async with self._lock:
            if self.get(project_id) is None:
                return None
            seconds = budget.set_limit(self._limits, project_id, minutes)
            await self._save_limits()
            return seconds

    async def adjust_limit(self, project_id: int, delta_hours) -> int | None:
        async with self._lock:
            if self.get(project_id) is None:
                return None
            seconds = budget.adjust_limit(self._limits, project_id, delta_hours)
            await self._save_limits()
            return seconds

    # ---- Internal ----

    def _next_id(self) -> int:
        candidate = self.clock()
        if self._projects:
            candidate = max(candidate, max(p.id for p in self._projects) + 1)
        return candidate

    def _log_entry(self, action: str, project: Project, entry: TimeEntry | None) -> None:
        if entry is None:
            logger.info(f"Store: {action} {project.id}, no entry (zero duration)")
        else:
            logger.info(f"Store: {action} {project.id}, logged {entry.duration}s")

    async def _save_projects(self) -> None:
        try:
            await self.repository.save_projects(self._projects)
        except (OSError, sqlite3.Error) as e:
            logger.error(f"Store: saving projects failed: {e}")

    async def _save_limits(self) -> None:
        try:
            await self.repository.save_limits(self._limits)
        except (OSError, sqlite3.Error) as e:
            logger.error(f"Store: saving limits failed: {e}")
